"""
Authorization policy for role and status transitions.

Every function here is pure: it looks at the actor, the target and the
requested change and returns a ``Decision``. Nothing is read from or written
to the database; callers supply whatever facts are needed (such as the id of
the first SUPER_ADMIN) and act on the result.

A decision is one of:
    allowed             the transition may proceed
    denied              the actor lacks the rights (AuthorizationError)
    invalid             the request itself is unacceptable (ValidationError)

The request gate already filters roles per endpoint; these rules re-check
the actor's role rather than rely on that.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from app.core.exceptions import AuthorizationError, ValidationError
from app.core.logging import get_logger
from app.models.history import (
    BAN_DURATION_PERMANENT,
    MAX_BAN_DAYS,
    MAX_FREEZE_DAYS,
    MIN_FREEZE_DAYS,
    MIN_REASON_LENGTH,
)
from app.models.user import User, UserRole, UserStatus

logger = get_logger(__name__)

ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})
NON_ADMIN_ROLES = frozenset({UserRole.USER, UserRole.EDITOR})
ADMIN_ASSIGNABLE_ROLES = frozenset({UserRole.USER, UserRole.EDITOR})
SELF_SERVICE_STATUSES = frozenset({UserStatus.ACTIVE, UserStatus.PASSIVE, UserStatus.FROZEN})

_DAYS_PATTERN = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class Decision:
    """Outcome of a policy check."""

    allowed: bool
    reason: Optional[str] = None
    invalid: bool = False

    def enforce(self) -> None:
        """Raise the matching error unless the decision allows the transition."""
        if self.allowed:
            return
        if self.invalid:
            raise ValidationError(self.reason or "Invalid request")
        logger.warning(f"Policy denied transition: {self.reason}")
        raise AuthorizationError(self.reason or "Insufficient permissions")


ALLOW = Decision(allowed=True)


def deny(reason: str) -> Decision:
    return Decision(allowed=False, reason=reason)


def invalid(reason: str) -> Decision:
    return Decision(allowed=False, reason=reason, invalid=True)


def is_admin(user: User) -> bool:
    return user.role in ADMIN_ROLES


def is_first_super_admin(user: User, first_super_admin_id: Optional[int]) -> bool:
    return first_super_admin_id is not None and user.id == first_super_admin_id


def _reason_too_short(reason: Optional[str]) -> bool:
    return len(reason or "") < MIN_REASON_LENGTH


def decide_role_change(
    actor: User,
    target: User,
    new_role: UserRole,
    reason: Optional[str],
    first_super_admin_id: Optional[int],
) -> Decision:
    """
    Decide whether ``actor`` may give ``target`` the role ``new_role``.

    - The first SUPER_ADMIN's role is immutable while it is SUPER_ADMIN.
    - ADMIN may only hand out USER or EDITOR, only to users that are not
      ADMIN or SUPER_ADMIN, and must give a reason of 15+ characters.
    - SUPER_ADMIN may assign any role, but only the first SUPER_ADMIN may
      grant SUPER_ADMIN.
    - Everyone else is denied.
    """
    if is_first_super_admin(target, first_super_admin_id) and target.role == UserRole.SUPER_ADMIN:
        return deny("Cannot change first SUPER_ADMIN's role")

    if actor.role == UserRole.ADMIN:
        if new_role not in ADMIN_ASSIGNABLE_ROLES:
            return deny("Admin can only assign USER or EDITOR roles")
        if target.role in ADMIN_ROLES:
            return deny("Cannot modify ADMIN or SUPER_ADMIN roles")
        if _reason_too_short(reason):
            return invalid(f"Reason must be at least {MIN_REASON_LENGTH} characters long")
        return ALLOW

    if actor.role == UserRole.SUPER_ADMIN:
        if new_role == UserRole.SUPER_ADMIN and not is_first_super_admin(actor, first_super_admin_id):
            return deny("Only first SUPER_ADMIN can grant SUPER_ADMIN role")
        return ALLOW

    if actor.role in NON_ADMIN_ROLES:
        return deny("Insufficient permissions")
    return deny(f"Unknown role: {actor.role}")


def decide_ban(
    actor: User,
    target: User,
    reason: str,
    first_super_admin_id: Optional[int],
) -> Decision:
    """Decide whether ``actor`` may ban ``target``."""
    if not is_admin(actor):
        return deny("Insufficient permissions")
    if is_first_super_admin(target, first_super_admin_id):
        return deny("Cannot ban first SUPER_ADMIN")
    if actor.role == UserRole.ADMIN and target.role == UserRole.SUPER_ADMIN:
        return deny("Admin cannot ban SUPER_ADMIN")
    if _reason_too_short(reason):
        return invalid(f"Reason must be at least {MIN_REASON_LENGTH} characters long")
    return ALLOW


def decide_unban(actor: User, issuer_role: Optional[UserRole], reason: str) -> Decision:
    """
    Decide whether ``actor`` may lift a ban.

    ``issuer_role`` is the current role of the user who issued the active
    ban; an ADMIN may not reverse a SUPER_ADMIN's ban.
    """
    if not is_admin(actor):
        return deny("Insufficient permissions")
    if actor.role == UserRole.ADMIN and issuer_role == UserRole.SUPER_ADMIN:
        return deny("Cannot unban user banned by SUPER_ADMIN")
    if _reason_too_short(reason):
        return invalid(f"Reason must be at least {MIN_REASON_LENGTH} characters long")
    return ALLOW


def decide_status_update(actor: User, target: User, new_status: UserStatus) -> Decision:
    """
    Decide whether ``actor`` may set ``target``'s status.

    Non-admins may only touch their own account and only move between
    active, passive and frozen. ADMIN may not touch a SUPER_ADMIN. Banning
    always goes through the ban operation so that it leaves a ledger row.
    """
    actor_is_admin = is_admin(actor)
    is_self = actor.id == target.id

    if not actor_is_admin:
        if not is_self:
            return deny("You can only update your own status")
        if new_status == UserStatus.BANNED:
            return deny("Only administrators can set banned status")
        if new_status not in SELF_SERVICE_STATUSES:
            return invalid("Invalid status for user")
        return ALLOW

    if actor.role == UserRole.ADMIN and target.role == UserRole.SUPER_ADMIN:
        return deny("Cannot modify SUPER_ADMIN status")
    if new_status == UserStatus.BANNED:
        return invalid("Use the ban endpoint to ban a user")
    return ALLOW


@dataclass(frozen=True)
class BanTerm:
    """Resolved ban length. Both fields are ``None`` for a permanent ban."""

    duration: str
    duration_days: Optional[int]
    end_date: Optional[datetime]


def parse_ban_duration(duration: str, start: datetime) -> BanTerm:
    """
    Resolve a ban duration string.

    ``"permanent"`` gives a ban without end date; anything else must be a
    whole number of days from 1 to ``MAX_BAN_DAYS``.

    Raises:
        ValidationError: If the value is neither
    """
    value = duration.strip()
    if value == BAN_DURATION_PERMANENT:
        return BanTerm(duration=BAN_DURATION_PERMANENT, duration_days=None, end_date=None)

    if not _DAYS_PATTERN.fullmatch(value):
        raise ValidationError("Invalid duration format: must be a number or 'permanent'")

    days = int(value)
    if days < 1:
        raise ValidationError("Duration must be at least 1 day")
    if days > MAX_BAN_DAYS:
        raise ValidationError("Duration is too long")

    return BanTerm(duration=str(days), duration_days=days, end_date=start + timedelta(days=days))


def validate_freeze_duration(days: int) -> None:
    if not MIN_FREEZE_DAYS <= days <= MAX_FREEZE_DAYS:
        raise ValidationError(
            f"Freeze duration must be between {MIN_FREEZE_DAYS} and {MAX_FREEZE_DAYS} days"
        )
