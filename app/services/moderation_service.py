"""
Moderation workflow: role changes, bans, unbans, status changes and freezes.

Each operation re-reads its target under a row lock, asks the policy module
for a decision, and on approval writes the ledger row(s) and the user change
in a single transaction. If anything fails the transaction is rolled back,
so a failed attempt leaves neither a state change nor a ledger row.

Concurrent attempts on the same user are serialized by the database's row
lock; the loser fails and the caller may retry. There is no retry here.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlmodel import Session, select

from app.core.clock import as_utc, utc_now
from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging import get_logger
from app.db.session import atomic
from app.models.history import BAN_DURATION_UNBAN, BanHistory, FreezeHistory, RoleHistory
from app.models.user import User, UserRole, UserStatus
from app.services import policy
from app.services.user_service import UserService

logger = get_logger(__name__)


class ModerationService:
    """
    Orchestrates policy checks and ledger writes for one session.
    """

    def __init__(self, session: Session):
        self.session = session

    # -- lookups -----------------------------------------------------------

    def _lock_user(self, user_id: int) -> User:
        """Fetch a live user with a row lock, refreshing any cached copy."""
        statement = (
            select(User)
            .where(User.id == user_id, User.deleted_at.is_(None))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        user = self.session.exec(statement).first()
        if user is None:
            logger.info(f"Moderation target {user_id} not found")
            raise NotFoundError("User not found")
        return user

    def first_super_admin(self) -> Optional[User]:
        """The anchor SUPER_ADMIN, looked up fresh for every decision."""
        return UserService.first_super_admin(self.session)

    def _first_super_admin_id(self) -> Optional[int]:
        first = self.first_super_admin()
        return first.id if first else None

    def active_ban(self, user_id: int) -> Optional[BanHistory]:
        statement = select(BanHistory).where(
            BanHistory.user_id == user_id, BanHistory.is_active.is_(True)
        )
        return self.session.exec(statement).first()

    def active_freeze(self, user_id: int) -> Optional[FreezeHistory]:
        statement = select(FreezeHistory).where(
            FreezeHistory.user_id == user_id, FreezeHistory.is_active.is_(True)
        )
        return self.session.exec(statement).first()

    # -- roles -------------------------------------------------------------

    def update_role(
        self,
        actor: User,
        user_id: int,
        new_role: UserRole,
        reason: Optional[str] = None,
    ) -> Tuple[User, RoleHistory]:
        """
        Change a user's role and record the change.

        Returns:
            The updated user and the role history row

        Raises:
            NotFoundError: If the target does not exist
            AuthorizationError / ValidationError: If the policy refuses
            PersistenceError: If the transaction fails
        """
        target = self._lock_user(user_id)
        policy.decide_role_change(
            actor, target, new_role, reason, self._first_super_admin_id()
        ).enforce()

        old_role = target.role
        entry = RoleHistory(
            user_id=target.id,
            changed_by_id=actor.id,
            old_role=old_role,
            new_role=new_role,
            reason=reason or "",
        )
        with atomic(self.session):
            self.session.add(entry)
            target.role = new_role
            target.updated_at = utc_now()
            self.session.add(target)

        self.session.refresh(target)
        self.session.refresh(entry)
        logger.info(
            f"Role updated. User ID: {target.id}, Old Role: {old_role.value}, "
            f"New Role: {new_role.value}, Changed by: {actor.id}"
        )
        return target, entry

    # -- bans --------------------------------------------------------------

    def ban(self, actor: User, user_id: int, reason: str, duration: str) -> BanHistory:
        """
        Ban a user for a number of days or permanently.

        Raises:
            NotFoundError: If the target does not exist
            AuthorizationError / ValidationError: If the policy refuses or
                the duration cannot be parsed
            ConflictError: If the target already has an active ban
            PersistenceError: If the transaction fails
        """
        target = self._lock_user(user_id)
        policy.decide_ban(actor, target, reason, self._first_super_admin_id()).enforce()

        now = utc_now()
        term = policy.parse_ban_duration(duration, now)

        if self.active_ban(target.id) is not None:
            raise ConflictError("User is already banned")

        entry = BanHistory(
            user_id=target.id,
            banned_by_id=actor.id,
            reason=reason,
            duration=term.duration,
            duration_days=term.duration_days,
            start_date=now,
            end_date=term.end_date,
            is_active=True,
        )
        with atomic(self.session):
            self.session.add(entry)
            self._close_active_freeze(target, now)
            target.status = UserStatus.BANNED
            target.updated_at = now
            self.session.add(target)

        self.session.refresh(entry)
        logger.info(
            f"User banned. User ID: {target.id}, Banned by: {actor.id}, "
            f"Duration: {term.duration}"
        )
        return entry

    def unban(self, actor: User, user_id: int, reason: str) -> Tuple[BanHistory, BanHistory]:
        """
        Lift a user's active ban.

        The active row is closed and a second row of kind ``"unban"`` is
        appended, both in the same transaction as the status change.

        Returns:
            The closed ban row and the appended unban row

        Raises:
            NotFoundError: If the target or an active ban does not exist
            AuthorizationError / ValidationError: If the policy refuses
            PersistenceError: If the transaction fails
        """
        target = self._lock_user(user_id)

        active = self.active_ban(target.id)
        if active is None:
            logger.info(f"No active ban found for user ID: {target.id}")
            raise NotFoundError("No active ban found")

        issuer = self.session.get(User, active.banned_by_id)
        issuer_role = issuer.role if issuer else None
        policy.decide_unban(actor, issuer_role, reason).enforce()

        now = utc_now()
        unban_entry = BanHistory(
            user_id=target.id,
            banned_by_id=actor.id,
            reason=reason,
            duration=BAN_DURATION_UNBAN,
            start_date=now,
            is_active=False,
            unbanned_at=now,
            unbanned_by_id=actor.id,
        )
        with atomic(self.session):
            active.is_active = False
            active.unbanned_at = now
            active.unbanned_by_id = actor.id
            self.session.add(active)
            self.session.add(unban_entry)
            target.status = UserStatus.ACTIVE
            target.updated_at = now
            self.session.add(target)

        self.session.refresh(active)
        self.session.refresh(unban_entry)
        logger.info(f"User unbanned. User ID: {target.id}, Unbanned by: {actor.id}")
        return active, unban_entry

    # -- status ------------------------------------------------------------

    def update_status(self, actor: User, user_id: int, new_status: UserStatus) -> User:
        """
        Set a user's status through the self-service/admin status axis.

        Leaving FROZEN closes the active freeze row. Leaving BANNED is only
        possible through ``unban``.

        Raises:
            NotFoundError: If the target does not exist
            AuthorizationError / ValidationError: If the policy refuses
            ConflictError: If the target is banned
            PersistenceError: If the transaction fails
        """
        target = self._lock_user(user_id)
        policy.decide_status_update(actor, target, new_status).enforce()

        if target.status == UserStatus.BANNED:
            raise ConflictError("User is banned; use unban to restore access")

        now = utc_now()
        with atomic(self.session):
            if new_status != UserStatus.FROZEN:
                self._close_active_freeze(target, now)
            target.status = new_status
            target.updated_at = now
            self.session.add(target)

        self.session.refresh(target)
        logger.info(
            f"Status updated. User ID: {target.id}, Status: {new_status.value}, "
            f"Updated by: {actor.id}"
        )
        return target

    # -- freezes -----------------------------------------------------------

    def freeze(self, user: User, duration_days: int, reason: str) -> FreezeHistory:
        """
        Freeze the caller's own account for ``duration_days`` days.

        A stale active freeze (end date already passed) is closed in the
        same transaction instead of blocking the new one.

        Raises:
            ValidationError: If the duration is outside 1-365 days
            ConflictError: If an unexpired freeze is already active
            PersistenceError: If the transaction fails
        """
        policy.validate_freeze_duration(duration_days)
        target = self._lock_user(user.id)

        now = utc_now()
        current = self.active_freeze(target.id)
        if current is not None and as_utc(current.end_date) > now:
            raise ConflictError("Account already has an active freeze")

        entry = FreezeHistory(
            user_id=target.id,
            reason=reason,
            duration_days=duration_days,
            start_date=now,
            end_date=now + timedelta(days=duration_days),
            is_active=True,
        )
        with atomic(self.session):
            if current is not None:
                current.is_active = False
                current.unfrozen_at = now
                self.session.add(current)
            self.session.add(entry)
            target.status = UserStatus.FROZEN
            target.updated_at = now
            self.session.add(target)

        self.session.refresh(entry)
        logger.info(f"Account frozen. User ID: {target.id}, Duration: {duration_days} days")
        return entry

    def _close_active_freeze(self, target: User, now: datetime) -> None:
        current = self.active_freeze(target.id)
        if current is not None:
            current.is_active = False
            current.unfrozen_at = now
            self.session.add(current)

    # -- expiry ------------------------------------------------------------

    def release_expired_restrictions(self, user: User) -> User:
        """
        Return a user to ACTIVE when their temporary ban or freeze has ended.

        Called lazily by the request gate and login; there is no scheduler.
        Permanent bans never expire.
        """
        if user.status not in (UserStatus.BANNED, UserStatus.FROZEN):
            return user

        now = utc_now()
        if user.status == UserStatus.BANNED:
            ban = self.active_ban(user.id)
            if ban is None or ban.end_date is None or as_utc(ban.end_date) > now:
                return user
            with atomic(self.session):
                ban.is_active = False
                ban.unbanned_at = now
                self.session.add(ban)
                user.status = UserStatus.ACTIVE
                user.updated_at = now
                self.session.add(user)
            logger.info(f"Temporary ban expired. User ID: {user.id}")
        else:
            current = self.active_freeze(user.id)
            if current is None or as_utc(current.end_date) > now:
                return user
            with atomic(self.session):
                current.is_active = False
                current.unfrozen_at = now
                self.session.add(current)
                user.status = UserStatus.ACTIVE
                user.updated_at = now
                self.session.add(user)
            logger.info(f"Freeze expired. User ID: {user.id}")

        self.session.refresh(user)
        return user
