"""
Tests for the authorization policy decisions.
These run without a database.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import AuthorizationError, ValidationError
from app.models.user import User, UserRole, UserStatus
from app.schemas.moderation import BanRequest, FreezeRequest
from app.services import policy

FIRST_ID = 1
LONG_REASON = "Repeated violations of the rules"


def _user(user_id: int, role: UserRole, status: UserStatus = UserStatus.ACTIVE) -> User:
    return User(
        id=user_id,
        username=f"user{user_id}",
        email=f"user{user_id}@example.com",
        hashed_password="x",
        role=role,
        status=status,
    )


first = _user(FIRST_ID, UserRole.SUPER_ADMIN)
second_super = _user(2, UserRole.SUPER_ADMIN)
admin = _user(3, UserRole.ADMIN)
editor = _user(4, UserRole.EDITOR)
member = _user(5, UserRole.USER)
other_admin = _user(6, UserRole.ADMIN)


class TestRoleChange:
    def test_first_super_admin_role_is_immutable_for_everyone(self) -> None:
        for actor in (first, second_super, admin):
            decision = policy.decide_role_change(
                actor, first, UserRole.USER, LONG_REASON, FIRST_ID
            )
            assert not decision.allowed
            assert decision.reason == "Cannot change first SUPER_ADMIN's role"

    def test_admin_cannot_grant_admin(self) -> None:
        decision = policy.decide_role_change(admin, member, UserRole.ADMIN, LONG_REASON, FIRST_ID)
        assert not decision.allowed
        assert decision.reason == "Admin can only assign USER or EDITOR roles"

    def test_admin_cannot_touch_other_admin(self) -> None:
        decision = policy.decide_role_change(
            admin, other_admin, UserRole.USER, LONG_REASON, FIRST_ID
        )
        assert not decision.allowed
        assert not decision.invalid

    def test_admin_needs_long_reason(self) -> None:
        decision = policy.decide_role_change(admin, member, UserRole.EDITOR, "too short", FIRST_ID)
        assert not decision.allowed
        assert decision.invalid

        with pytest.raises(ValidationError):
            decision.enforce()

    def test_admin_promotes_user_to_editor(self) -> None:
        decision = policy.decide_role_change(admin, member, UserRole.EDITOR, LONG_REASON, FIRST_ID)
        assert decision.allowed
        decision.enforce()

    def test_reason_of_exactly_fifteen_characters_is_enough(self) -> None:
        decision = policy.decide_role_change(admin, editor, UserRole.USER, "x" * 15, FIRST_ID)
        assert decision.allowed

    def test_only_first_super_admin_grants_super_admin(self) -> None:
        denied = policy.decide_role_change(
            second_super, member, UserRole.SUPER_ADMIN, None, FIRST_ID
        )
        allowed = policy.decide_role_change(first, member, UserRole.SUPER_ADMIN, None, FIRST_ID)

        assert not denied.allowed
        assert allowed.allowed

    def test_super_admin_needs_no_reason(self) -> None:
        decision = policy.decide_role_change(second_super, admin, UserRole.USER, None, FIRST_ID)
        assert decision.allowed

    def test_non_admin_is_denied(self) -> None:
        decision = policy.decide_role_change(editor, member, UserRole.EDITOR, LONG_REASON, FIRST_ID)
        assert not decision.allowed

        with pytest.raises(AuthorizationError):
            decision.enforce()

    def test_super_admin_demoted_later_is_not_the_anchor(self) -> None:
        # The anchor rule only holds while the target still is SUPER_ADMIN.
        demoted = _user(FIRST_ID, UserRole.ADMIN)
        decision = policy.decide_role_change(first, demoted, UserRole.USER, None, FIRST_ID)
        assert decision.allowed


class TestBan:
    def test_first_super_admin_cannot_be_banned(self) -> None:
        decision = policy.decide_ban(second_super, first, LONG_REASON, FIRST_ID)
        assert decision.reason == "Cannot ban first SUPER_ADMIN"

    def test_admin_cannot_ban_super_admin(self) -> None:
        decision = policy.decide_ban(admin, second_super, LONG_REASON, FIRST_ID)
        assert decision.reason == "Admin cannot ban SUPER_ADMIN"

    def test_admin_bans_admin(self) -> None:
        assert policy.decide_ban(admin, other_admin, LONG_REASON, FIRST_ID).allowed

    def test_short_reason_is_invalid(self) -> None:
        decision = policy.decide_ban(admin, member, "spam", FIRST_ID)
        assert decision.invalid

    def test_non_admin_is_denied(self) -> None:
        assert not policy.decide_ban(member, editor, LONG_REASON, FIRST_ID).allowed


class TestUnban:
    def test_admin_cannot_lift_super_admin_ban(self) -> None:
        decision = policy.decide_unban(admin, UserRole.SUPER_ADMIN, LONG_REASON)
        assert decision.reason == "Cannot unban user banned by SUPER_ADMIN"

    def test_admin_lifts_admin_ban(self) -> None:
        assert policy.decide_unban(admin, UserRole.ADMIN, LONG_REASON).allowed

    def test_super_admin_lifts_any_ban(self) -> None:
        assert policy.decide_unban(second_super, UserRole.SUPER_ADMIN, LONG_REASON).allowed

    def test_missing_issuer_does_not_block(self) -> None:
        assert policy.decide_unban(admin, None, LONG_REASON).allowed


class TestStatusUpdate:
    def test_user_sets_own_status_passive(self) -> None:
        assert policy.decide_status_update(member, member, UserStatus.PASSIVE).allowed

    def test_user_cannot_touch_others(self) -> None:
        decision = policy.decide_status_update(member, editor, UserStatus.PASSIVE)
        assert decision.reason == "You can only update your own status"

    def test_user_cannot_ban_self(self) -> None:
        decision = policy.decide_status_update(member, member, UserStatus.BANNED)
        assert decision.reason == "Only administrators can set banned status"

    def test_admin_cannot_touch_super_admin(self) -> None:
        decision = policy.decide_status_update(admin, second_super, UserStatus.PASSIVE)
        assert decision.reason == "Cannot modify SUPER_ADMIN status"

    def test_admin_is_sent_to_ban_operation(self) -> None:
        decision = policy.decide_status_update(admin, member, UserStatus.BANNED)
        assert decision.invalid

    def test_admin_sets_other_user_frozen(self) -> None:
        assert policy.decide_status_update(admin, member, UserStatus.FROZEN).allowed


class TestDurations:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_permanent(self) -> None:
        term = policy.parse_ban_duration("permanent", self.start)
        assert term.duration == "permanent"
        assert term.duration_days is None
        assert term.end_date is None

    def test_days(self) -> None:
        term = policy.parse_ban_duration(" 7 ", self.start)
        assert term.duration == "7"
        assert term.duration_days == 7
        assert term.end_date == self.start + timedelta(days=7)

    @pytest.mark.parametrize("value", ["0", "-3"])
    def test_non_positive_days(self, value: str) -> None:
        with pytest.raises(ValidationError, match="at least 1 day"):
            policy.parse_ban_duration(value, self.start)

    @pytest.mark.parametrize("value", [str(policy.MAX_BAN_DAYS + 1), "99999999", "9" * 40])
    def test_too_many_days(self, value: str) -> None:
        with pytest.raises(ValidationError, match="Duration is too long"):
            policy.parse_ban_duration(value, self.start)

    def test_longest_ban(self) -> None:
        term = policy.parse_ban_duration(str(policy.MAX_BAN_DAYS), self.start)
        assert term.duration_days == policy.MAX_BAN_DAYS
        assert term.end_date == self.start + timedelta(days=policy.MAX_BAN_DAYS)

    @pytest.mark.parametrize("value", ["abc", "1_0", "7d", "1.5", ""])
    def test_garbage(self, value: str) -> None:
        with pytest.raises(ValidationError, match="Invalid duration format"):
            policy.parse_ban_duration(value, self.start)

    @pytest.mark.parametrize("days", [0, 366])
    def test_freeze_out_of_range(self, days: int) -> None:
        with pytest.raises(ValidationError):
            policy.validate_freeze_duration(days)

    def test_freeze_bounds(self) -> None:
        policy.validate_freeze_duration(1)
        policy.validate_freeze_duration(365)


class TestRequestLimits:
    def test_ban_reason_length_matches_policy(self) -> None:
        BanRequest(user_id=1, reason="x" * policy.MIN_REASON_LENGTH, duration="7")
        with pytest.raises(PydanticValidationError):
            BanRequest(user_id=1, reason="x" * (policy.MIN_REASON_LENGTH - 1), duration="7")

    def test_freeze_bounds_match_policy(self) -> None:
        FreezeRequest(duration=policy.MAX_FREEZE_DAYS, reason="holiday")
        with pytest.raises(PydanticValidationError):
            FreezeRequest(duration=policy.MAX_FREEZE_DAYS + 1, reason="holiday")
