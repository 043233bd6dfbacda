"""
Journal entry model and builder

Every financial event becomes one balanced JournalEntry.
Scout-facing lines carry the scout account and a balance kind; the
unit-level counter lines (bank, income, fee expense) carry neither.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from core.ledger.errors import InvalidAmountError, UnbalancedEntryError
from core.ledger.types import (
    BALANCE_KIND_ACCOUNTS,
    AccountCode,
    BalanceKind,
    EntryType,
)
from core.types import FundraiserType
from core.utils.money import ZERO, to_money
from core.utils.timezone import now_utc, to_iso

logger = logging.getLogger(__name__)


@dataclass
class JournalLine:
    """Journal line

    Exactly one of debit / credit is positive, the other is zero.
    A line is never edited after it is written.
    """

    account_code: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    # Scout side (both set or both None)
    scout_account_id: str | None = None
    balance_kind: BalanceKind | None = None

    memo: str | None = None
    line_id: int | None = None

    @property
    def amount(self) -> Decimal:
        return self.debit if self.debit > 0 else self.credit

    @property
    def balance_delta(self) -> Decimal:
        """Effect on the scout's cached balance (credit - debit)"""
        return self.credit - self.debit

    def mirrored(self, memo: str | None = None) -> JournalLine:
        """Same line with debit and credit swapped"""
        return JournalLine(
            account_code=self.account_code,
            debit=self.credit,
            credit=self.debit,
            scout_account_id=self.scout_account_id,
            balance_kind=self.balance_kind,
            memo=memo if memo is not None else self.memo,
        )

    def validate(self) -> None:
        """Check the line shape

        Raises:
            InvalidAmountError: negative amounts, both sides set, neither set,
                or a scout line without a balance kind
        """
        if self.debit < 0 or self.credit < 0:
            raise InvalidAmountError(f"Line amounts must not be negative: {self}")
        if (self.debit > 0) == (self.credit > 0):
            raise InvalidAmountError(
                "Each line needs exactly one positive side "
                f"(debit={self.debit}, credit={self.credit})"
            )
        if (self.scout_account_id is None) != (self.balance_kind is None):
            raise InvalidAmountError(
                "A scout line needs both scout_account_id and balance_kind"
            )
        if self.balance_kind is not None:
            expected = BALANCE_KIND_ACCOUNTS[BalanceKind(self.balance_kind)]
            if self.account_code != expected:
                raise InvalidAmountError(
                    f"{self.balance_kind} lines post to {expected}, not {self.account_code}"
                )

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_code": self.account_code,
            "debit": str(self.debit),
            "credit": str(self.credit),
            "scout_account_id": self.scout_account_id,
            "balance_kind": self.balance_kind.value if self.balance_kind else None,
            "memo": self.memo,
        }


@dataclass
class JournalEntry:
    """Journal entry

    One atomic financial event. Sum of debits == sum of credits.
    """

    entry_id: str
    unit_id: str
    ts: datetime
    entry_type: EntryType
    description: str
    lines: list[JournalLine]

    reference: str | None = None
    created_by: str | None = None
    is_posted: bool = True

    # Void bookkeeping
    is_void: bool = False
    void_reason: str | None = None
    voided_at: datetime | None = None
    voided_by: str | None = None
    reverses_entry_id: str | None = None
    reversed_by_entry_id: str | None = None

    raw_data: dict[str, Any] | None = field(default=None, repr=False)

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)

    def is_balanced(self) -> bool:
        """Sum of debits equals sum of credits (exact, to the cent)"""
        return self.total_debit == self.total_credit

    @property
    def scout_account_ids(self) -> list[str]:
        """Scout accounts touched, sorted (lock order)"""
        return sorted({
            line.scout_account_id for line in self.lines if line.scout_account_id
        })

    def validate(self) -> None:
        """Check lines and balance

        Raises:
            InvalidAmountError: a malformed line or no lines at all
            UnbalancedEntryError: debits != credits
        """
        if not self.lines:
            raise InvalidAmountError(f"Entry has no lines: {self.entry_id}")
        for line in self.lines:
            line.validate()
        if not self.is_balanced():
            raise UnbalancedEntryError(
                f"Unbalanced entry {self.entry_id}: "
                f"debit {self.total_debit} != credit {self.total_credit}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "unit_id": self.unit_id,
            "ts": to_iso(self.ts),
            "entry_type": self.entry_type.value,
            "description": self.description,
            "reference": self.reference,
            "created_by": self.created_by,
            "is_posted": self.is_posted,
            "is_void": self.is_void,
            "void_reason": self.void_reason,
            "voided_by": self.voided_by,
            "reverses_entry_id": self.reverses_entry_id,
            "reversed_by_entry_id": self.reversed_by_entry_id,
            "lines": [line.to_dict() for line in self.lines],
        }


def _new_entry(
    unit_id: str,
    entry_type: EntryType,
    description: str,
    lines: list[JournalLine],
    reference: str | None = None,
    created_by: str | None = None,
) -> JournalEntry:
    return JournalEntry(
        entry_id=str(uuid4()),
        unit_id=unit_id,
        ts=now_utc(),
        entry_type=entry_type,
        description=description,
        lines=lines,
        reference=reference,
        created_by=created_by,
    )


def _scout_line(
    scout_account_id: str,
    kind: BalanceKind,
    *,
    debit: Decimal = ZERO,
    credit: Decimal = ZERO,
    memo: str | None = None,
) -> JournalLine:
    return JournalLine(
        account_code=BALANCE_KIND_ACCOUNTS[kind],
        debit=debit,
        credit=credit,
        scout_account_id=scout_account_id,
        balance_kind=kind,
        memo=memo,
    )


FUNDRAISER_INCOME_ACCOUNTS: dict[FundraiserType, str] = {
    FundraiserType.POPCORN: AccountCode.POPCORN_SALES,
    FundraiserType.CAMP_CARDS: AccountCode.CAMP_CARD_SALES,
    FundraiserType.GENERAL: AccountCode.OTHER_INCOME,
}


class JournalEntryBuilder:
    """Builds the balanced entry for each ledger operation

    Pure: nothing here touches the database.
    """

    @staticmethod
    def charge(
        unit_id: str,
        description: str,
        shares: list[tuple[str, Decimal, str | None]],
        reference: str | None = None,
        created_by: str | None = None,
    ) -> JournalEntry:
        """Fair-share billing entry

        One billing debit per scout, one income credit for the total.

        Args:
            unit_id: unit
            description: billing description (prefixed "Fair Share: ")
            shares: (scout_account_id, amount, memo) per scout
            reference: billing record id
            created_by: caller profile id
        """
        lines = [
            _scout_line(scout_id, BalanceKind.BILLING, debit=amount, memo=memo)
            for scout_id, amount, memo in shares
        ]
        total = sum((amount for _, amount, _ in shares), ZERO)
        lines.append(JournalLine(
            account_code=AccountCode.ACTIVITY_FEES,
            credit=total,
            memo=description,
        ))
        return _new_entry(
            unit_id, EntryType.CHARGE, f"Fair Share: {description}",
            lines, reference, created_by,
        )

    @staticmethod
    def charge_void(
        unit_id: str,
        scout_account_id: str,
        amount: Decimal,
        description: str,
        reference: str | None = None,
        created_by: str | None = None,
    ) -> JournalEntry:
        """Compensating entry for a single voided charge"""
        memo = f"Void charge: {description}"
        return _new_entry(
            unit_id,
            EntryType.ADJUSTMENT,
            description,
            [
                _scout_line(scout_account_id, BalanceKind.BILLING, credit=amount, memo=memo),
                JournalLine(account_code=AccountCode.ACTIVITY_FEES, debit=amount, memo=memo),
            ],
            reference,
            created_by,
        )

    @staticmethod
    def payment(
        unit_id: str,
        scout_account_id: str,
        amount: Decimal,
        fee: Decimal,
        description: str,
        reference: str | None = None,
        created_by: str | None = None,
    ) -> JournalEntry:
        """Payment entry

        Scout billing is credited the gross amount; the bank receives the
        net and the fee is booked as unit expense.
        """
        net = amount - fee
        lines = [
            JournalLine(account_code=AccountCode.BANK, debit=net, memo=description),
        ]
        if fee > 0:
            lines.append(JournalLine(
                account_code=AccountCode.PROCESSING_FEES,
                debit=fee,
                memo="Card processing fee",
            ))
        lines.append(_scout_line(
            scout_account_id, BalanceKind.BILLING, credit=amount, memo="Payment received",
        ))
        return _new_entry(
            unit_id, EntryType.PAYMENT, description, lines, reference, created_by,
        )

    @staticmethod
    def refund(
        unit_id: str,
        scout_account_id: str,
        amount: Decimal,
        description: str,
        reference: str | None = None,
        created_by: str | None = None,
    ) -> JournalEntry:
        """Refund entry: scout owes the amount again, bank pays it out"""
        return _new_entry(
            unit_id,
            EntryType.REFUND,
            description,
            [
                _scout_line(scout_account_id, BalanceKind.BILLING, debit=amount, memo="Refund"),
                JournalLine(account_code=AccountCode.BANK, credit=amount, memo=description),
            ],
            reference,
            created_by,
        )

    @staticmethod
    def funds_to_billing(
        unit_id: str,
        scout_account_id: str,
        amount: Decimal,
        description: str = "Transfer from Scout Funds",
        created_by: str | None = None,
    ) -> JournalEntry:
        """Funds -> billing transfer (two lines, same scout)"""
        return _new_entry(
            unit_id,
            EntryType.TRANSFER,
            description,
            [
                _scout_line(scout_account_id, BalanceKind.FUNDS, debit=amount, memo="Transfer to billing"),
                _scout_line(scout_account_id, BalanceKind.BILLING, credit=amount, memo="Transfer from scout funds"),
            ],
            created_by=created_by,
        )

    @staticmethod
    def overpayment_to_funds(
        unit_id: str,
        scout_account_id: str,
        amount: Decimal,
        created_by: str | None = None,
    ) -> JournalEntry:
        """Billing credit balance -> funds"""
        return _new_entry(
            unit_id,
            EntryType.ADJUSTMENT,
            "Overpayment transferred to Scout Funds",
            [
                _scout_line(scout_account_id, BalanceKind.BILLING, debit=amount, memo="Overpayment to funds"),
                _scout_line(scout_account_id, BalanceKind.FUNDS, credit=amount, memo="Overpayment from billing"),
            ],
            created_by=created_by,
        )

    @staticmethod
    def fundraising_credit(
        unit_id: str,
        scout_account_id: str,
        amount: Decimal,
        description: str,
        fundraiser_type: FundraiserType = FundraiserType.GENERAL,
        created_by: str | None = None,
    ) -> JournalEntry:
        """Scout's share of fundraiser income moved into their funds"""
        income_account = FUNDRAISER_INCOME_ACCOUNTS[FundraiserType(fundraiser_type)]
        return _new_entry(
            unit_id,
            EntryType.FUNDRAISING_CREDIT,
            f"Fundraising: {description}",
            [
                _scout_line(scout_account_id, BalanceKind.FUNDS, credit=amount, memo=description),
                JournalLine(account_code=income_account, debit=amount, memo=f"Scout share: {description}"),
            ],
            created_by=created_by,
        )

    @staticmethod
    def reversal(
        original: JournalEntry,
        created_by: str | None = None,
    ) -> JournalEntry:
        """Mirror of an entry (debit/credit swapped)

        The reversal cancels the original line for line.
        """
        entry = _new_entry(
            original.unit_id,
            EntryType.VOID_REVERSAL,
            f"VOID: {original.description}",
            [line.mirrored() for line in original.lines],
            original.reference,
            created_by,
        )
        entry.reverses_entry_id = original.entry_id
        return entry


def money_or_raise(value: Decimal | int | str, field_name: str = "amount") -> Decimal:
    """Parse a strictly positive cent amount

    Raises:
        InvalidAmountError: not a number, finer than a cent, or not > 0
    """
    try:
        amount = to_money(value)
    except ValueError as e:
        raise InvalidAmountError(f"{field_name}: {e}") from e
    exact = value if isinstance(value, Decimal) else Decimal(str(value))
    if amount != exact:
        raise InvalidAmountError(f"{field_name} has more than two decimal places: {value}")
    if amount <= 0:
        raise InvalidAmountError(f"{field_name} must be positive, got {amount}")
    return amount
