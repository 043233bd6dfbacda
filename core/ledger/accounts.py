"""
Unit and scout account models
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from core.utils.money import ZERO


@dataclass
class Unit:
    """Scouting unit (ledger owner)

    Fee policy columns are optional; None falls back to the configured default.
    """

    unit_id: str
    name: str
    processing_fee_percent: Decimal | None = None
    processing_fee_fixed: Decimal | None = None

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> Unit:
        """(unit_id, name, processing_fee_percent, processing_fee_fixed)"""
        return cls(
            unit_id=row[0],
            name=row[1],
            processing_fee_percent=Decimal(row[2]) if row[2] is not None else None,
            processing_fee_fixed=Decimal(row[3]) if row[3] is not None else None,
        )


@dataclass
class ScoutAccount:
    """Scout account

    billing_balance: negative means the scout owes the unit
    funds_balance: fundraising savings, never negative

    Both are cached values owned by the BalanceProjector.
    """

    scout_account_id: str
    unit_id: str
    scout_name: str
    email: str | None = None
    billing_balance: Decimal = ZERO
    funds_balance: Decimal = ZERO
    last_entry_id: str | None = None

    @property
    def amount_owed(self) -> Decimal:
        """What the scout currently owes (0 when in credit)"""
        return max(ZERO, -self.billing_balance)

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> ScoutAccount:
        """(id, unit_id, scout_name, email, billing_balance, funds_balance, last_entry_id)"""
        return cls(
            scout_account_id=row[0],
            unit_id=row[1],
            scout_name=row[2],
            email=row[3],
            billing_balance=Decimal(row[4]),
            funds_balance=Decimal(row[5]),
            last_entry_id=row[6],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "scout_account_id": self.scout_account_id,
            "unit_id": self.unit_id,
            "scout_name": self.scout_name,
            "email": self.email,
            "billing_balance": str(self.billing_balance),
            "funds_balance": str(self.funds_balance),
            "last_entry_id": self.last_entry_id,
        }


SCOUT_ACCOUNT_COLUMNS = (
    "scout_account_id, unit_id, scout_name, email, "
    "billing_balance, funds_balance, last_entry_id"
)
