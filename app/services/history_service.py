"""
Read side of the audit ledger: role, ban and freeze history listings.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.history import BAN_DURATION_PERMANENT, BanHistory, FreezeHistory, RoleHistory
from app.models.user import User
from app.schemas.moderation import (
    BanHistoryResponse,
    FreezeHistoryResponse,
    RoleHistoryResponse,
    describe_ban_duration,
)
from app.schemas.pagination import PageParams
from app.services.user_service import UserService


class HistoryService:
    """
    Builds history responses with subject and actor usernames resolved.
    Soft-deleted users still resolve: the ledger outlives the account.
    """

    def __init__(self, session: Session):
        self.session = session

    def _usernames(self, user_ids: Iterable[Optional[int]]) -> Dict[int, str]:
        ids = {user_id for user_id in user_ids if user_id is not None}
        if not ids:
            return {}
        rows = self.session.exec(select(User.id, User.username).where(User.id.in_(ids)))
        return {user_id: username for user_id, username in rows}

    def _role_responses(self, rows: List[RoleHistory]) -> List[RoleHistoryResponse]:
        names = self._usernames(
            [row.user_id for row in rows] + [row.changed_by_id for row in rows]
        )
        return [
            RoleHistoryResponse(
                id=row.id,
                user_id=row.user_id,
                username=names.get(row.user_id, ""),
                changed_by_id=row.changed_by_id,
                changed_by=names.get(row.changed_by_id, ""),
                old_role=row.old_role,
                new_role=row.new_role,
                reason=row.reason,
                created_at=row.created_at,
            )
            for row in rows
        ]

    def _ban_responses(self, rows: List[BanHistory]) -> List[BanHistoryResponse]:
        names = self._usernames(
            [row.user_id for row in rows]
            + [row.banned_by_id for row in rows]
            + [row.unbanned_by_id for row in rows]
        )
        return [
            BanHistoryResponse(
                id=row.id,
                user_id=row.user_id,
                username=names.get(row.user_id, ""),
                banned_by_id=row.banned_by_id,
                banned_by=names.get(row.banned_by_id, ""),
                reason=row.reason,
                duration=describe_ban_duration(row.duration, row.duration_days),
                duration_days=row.duration_days,
                start_date=row.start_date,
                end_date=row.end_date,
                is_active=row.is_active,
                unbanned_at=row.unbanned_at,
                unbanned_by=names.get(row.unbanned_by_id) if row.unbanned_by_id else None,
                created_at=row.created_at,
            )
            for row in rows
        ]

    def user_role_history(self, user_id: int) -> Tuple[User, List[RoleHistoryResponse]]:
        """All role changes of one user, newest first."""
        user = UserService.get_or_404(self.session, user_id)
        statement = (
            select(RoleHistory)
            .where(RoleHistory.user_id == user_id)
            .order_by(RoleHistory.created_at.desc(), RoleHistory.id.desc())
        )
        return user, self._role_responses(list(self.session.exec(statement)))

    def list_role_histories(self, params: PageParams) -> Tuple[List[RoleHistoryResponse], int]:
        """One page of all role changes, newest first, plus the total count."""
        total = self.session.exec(select(func.count()).select_from(RoleHistory)).one()
        statement = (
            select(RoleHistory)
            .order_by(RoleHistory.created_at.desc(), RoleHistory.id.desc())
            .offset(params.offset)
            .limit(params.limit)
        )
        return self._role_responses(list(self.session.exec(statement))), total

    def user_ban_history(self, user_id: int) -> Tuple[User, List[BanHistoryResponse]]:
        """All ban and unban rows of one user, newest first."""
        user = UserService.get_or_404(self.session, user_id)
        statement = (
            select(BanHistory)
            .where(BanHistory.user_id == user_id)
            .order_by(BanHistory.created_at.desc(), BanHistory.id.desc())
        )
        return user, self._ban_responses(list(self.session.exec(statement)))

    def list_ban_histories(
        self,
        params: PageParams,
        status: Optional[str] = None,
        duration: Optional[str] = None,
    ) -> Tuple[List[BanHistoryResponse], int]:
        """
        One page of all ban rows, newest first, plus the total count.

        Args:
            params: Page and limit
            status: ``"active"`` or ``"inactive"`` to filter on ``is_active``
            duration: ``"permanent"`` or ``"temporary"`` to filter on ban kind

        Returns:
            The page of rows and the number of rows matching the filters
        """
        conditions = []
        if status == "active":
            conditions.append(BanHistory.is_active.is_(True))
        elif status == "inactive":
            conditions.append(BanHistory.is_active.is_(False))

        if duration == "permanent":
            conditions.append(BanHistory.duration == BAN_DURATION_PERMANENT)
        elif duration == "temporary":
            conditions.append(BanHistory.duration_days.is_not(None))

        total = self.session.exec(
            select(func.count()).select_from(BanHistory).where(*conditions)
        ).one()
        statement = (
            select(BanHistory)
            .where(*conditions)
            .order_by(BanHistory.created_at.desc(), BanHistory.id.desc())
            .offset(params.offset)
            .limit(params.limit)
        )
        return self._ban_responses(list(self.session.exec(statement))), total

    def user_freeze_history(self, user_id: int) -> List[FreezeHistoryResponse]:
        statement = (
            select(FreezeHistory)
            .where(FreezeHistory.user_id == user_id)
            .order_by(FreezeHistory.created_at.desc(), FreezeHistory.id.desc())
        )
        return [FreezeHistoryResponse.model_validate(row) for row in self.session.exec(statement)]
