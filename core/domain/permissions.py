"""
Ledger capability check

The caller arrives already authenticated with a role. The only question
the ledger asks is whether that role may write to it.
"""

from dataclasses import dataclass

from core.types import Role

# Roles allowed to create, void, pay or transfer
LEDGER_WRITE_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.TREASURER})


@dataclass(frozen=True)
class Actor:
    """Authorized caller identity

    Attributes:
        profile_id: caller's profile id (recorded as created_by / voided_by)
        role: caller's role in the unit
    """

    profile_id: str
    role: Role


def can_mutate_ledger(role: Role | str) -> bool:
    """Whether the role may write ledger entries

    Unknown role strings are refused.

    Example:
        >>> can_mutate_ledger(Role.TREASURER)
        True
        >>> can_mutate_ledger("parent")
        False
    """
    try:
        return Role(role) in LEDGER_WRITE_ROLES
    except ValueError:
        return False
