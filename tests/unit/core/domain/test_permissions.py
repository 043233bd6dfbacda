"""
core/domain/permissions.py tests
"""

import pytest

from core.domain.permissions import LEDGER_WRITE_ROLES, Actor, can_mutate_ledger
from core.types import Role


class TestCanMutateLedger:
    """Only admins and treasurers write"""

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.TREASURER, "admin", "treasurer"])
    def test_write_roles(self, role) -> None:
        assert can_mutate_ledger(role) is True

    @pytest.mark.parametrize("role", [Role.LEADER, Role.PARENT, Role.SCOUT, "parent"])
    def test_read_only_roles(self, role) -> None:
        assert can_mutate_ledger(role) is False

    def test_unknown_role_refused(self) -> None:
        assert can_mutate_ledger("superuser") is False

    def test_write_roles_set(self) -> None:
        assert LEDGER_WRITE_ROLES == {Role.ADMIN, Role.TREASURER}


class TestActor:
    def test_frozen(self) -> None:
        actor = Actor(profile_id="p-1", role=Role.TREASURER)

        with pytest.raises(AttributeError):
            actor.role = Role.ADMIN  # type: ignore[misc]
