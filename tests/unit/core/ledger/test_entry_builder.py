"""
core/ledger/entry_builder.py tests

Every builder produces a balanced entry; validation rejects malformed
lines before anything reaches the database.
"""

from decimal import Decimal

import pytest

from core.ledger.entry_builder import JournalEntry, JournalEntryBuilder, JournalLine
from core.ledger.errors import InvalidAmountError, UnbalancedEntryError
from core.ledger.types import AccountCode, BalanceKind, EntryType
from core.types import FundraiserType
from core.utils.money import ZERO
from core.utils.timezone import now_utc

UNIT = "unit-1"
SCOUT = "scout-1"


def _lines_by_account(entry: JournalEntry) -> dict[str, tuple[Decimal, Decimal]]:
    result: dict[str, tuple[Decimal, Decimal]] = {}
    for line in entry.lines:
        debit, credit = result.get(line.account_code, (ZERO, ZERO))
        result[line.account_code] = (debit + line.debit, credit + line.credit)
    return result


class TestJournalLine:
    """JournalLine tests"""

    def test_balance_delta(self) -> None:
        charge = JournalLine(AccountCode.SCOUT_BILLING, debit=Decimal("40.00"),
                             scout_account_id=SCOUT, balance_kind=BalanceKind.BILLING)

        assert charge.balance_delta == Decimal("-40.00")
        assert charge.amount == Decimal("40.00")

    def test_mirrored(self) -> None:
        line = JournalLine(AccountCode.BANK, debit=Decimal("5.00"), memo="m")

        mirrored = line.mirrored()

        assert mirrored.debit == ZERO
        assert mirrored.credit == Decimal("5.00")
        assert mirrored.memo == "m"

    def test_both_sides_rejected(self) -> None:
        line = JournalLine(AccountCode.BANK, debit=Decimal("1.00"), credit=Decimal("1.00"))

        with pytest.raises(InvalidAmountError, match="exactly one positive side"):
            line.validate()

    def test_zero_line_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            JournalLine(AccountCode.BANK).validate()

    def test_negative_rejected(self) -> None:
        with pytest.raises(InvalidAmountError, match="negative"):
            JournalLine(AccountCode.BANK, debit=Decimal("-1.00")).validate()

    def test_scout_line_needs_kind(self) -> None:
        line = JournalLine(AccountCode.SCOUT_BILLING, debit=Decimal("1.00"), scout_account_id=SCOUT)

        with pytest.raises(InvalidAmountError, match="balance_kind"):
            line.validate()

    def test_kind_must_match_account(self) -> None:
        line = JournalLine(AccountCode.BANK, debit=Decimal("1.00"),
                           scout_account_id=SCOUT, balance_kind=BalanceKind.FUNDS)

        with pytest.raises(InvalidAmountError, match="1210"):
            line.validate()

    def test_to_dict(self) -> None:
        line = JournalLine(AccountCode.SCOUT_FUNDS, credit=Decimal("2.50"),
                           scout_account_id=SCOUT, balance_kind=BalanceKind.FUNDS)

        data = line.to_dict()

        assert data["debit"] == "0.00"
        assert data["credit"] == "2.50"
        assert data["balance_kind"] == "funds"


class TestJournalEntryValidate:
    """JournalEntry.validate tests"""

    def test_unbalanced_rejected(self) -> None:
        entry = JournalEntry(
            entry_id="e-1",
            unit_id=UNIT,
            ts=now_utc(),
            entry_type=EntryType.ADJUSTMENT,
            description="bad",
            lines=[
                JournalLine(AccountCode.BANK, debit=Decimal("10.00")),
                JournalLine(AccountCode.OTHER_INCOME, credit=Decimal("9.99")),
            ],
        )

        assert entry.is_balanced() is False
        with pytest.raises(UnbalancedEntryError):
            entry.validate()

    def test_no_lines_rejected(self) -> None:
        entry = JournalEntry("e-2", UNIT, now_utc(), EntryType.ADJUSTMENT, "empty", [])

        with pytest.raises(InvalidAmountError, match="no lines"):
            entry.validate()


class TestCharge:
    """Fair-share charge entry"""

    def test_lines(self) -> None:
        entry = JournalEntryBuilder.charge(
            UNIT,
            "Winter Campout",
            [("s1", Decimal("33.34"), None), ("s2", Decimal("33.33"), None), ("s3", Decimal("33.33"), None)],
            reference="rec-1",
        )

        entry.validate()
        assert entry.entry_type == EntryType.CHARGE
        assert entry.description == "Fair Share: Winter Campout"
        assert entry.reference == "rec-1"
        assert entry.total_debit == Decimal("100.00")
        assert entry.scout_account_ids == ["s1", "s2", "s3"]
        income = [l for l in entry.lines if l.account_code == AccountCode.ACTIVITY_FEES]
        assert len(income) == 1
        assert income[0].credit == Decimal("100.00")


class TestPayment:
    """Payment entry"""

    def test_card_payment_books_fee(self) -> None:
        entry = JournalEntryBuilder.payment(UNIT, SCOUT, Decimal("40.00"), Decimal("1.14"), "Payment received (card)")

        entry.validate()
        by_account = _lines_by_account(entry)
        assert by_account[AccountCode.BANK] == (Decimal("38.86"), ZERO)
        assert by_account[AccountCode.PROCESSING_FEES] == (Decimal("1.14"), ZERO)
        assert by_account[AccountCode.SCOUT_BILLING] == (ZERO, Decimal("40.00"))

    def test_cash_payment_has_no_fee_line(self) -> None:
        entry = JournalEntryBuilder.payment(UNIT, SCOUT, Decimal("40.00"), ZERO, "Payment received (cash)")

        entry.validate()
        assert AccountCode.PROCESSING_FEES not in _lines_by_account(entry)
        assert len(entry.lines) == 2


class TestTransfers:
    """Funds / billing moves"""

    def test_funds_to_billing(self) -> None:
        entry = JournalEntryBuilder.funds_to_billing(UNIT, SCOUT, Decimal("45.00"))

        entry.validate()
        deltas = {line.balance_kind: line.balance_delta for line in entry.lines}
        assert deltas[BalanceKind.FUNDS] == Decimal("-45.00")
        assert deltas[BalanceKind.BILLING] == Decimal("45.00")

    def test_overpayment_to_funds(self) -> None:
        entry = JournalEntryBuilder.overpayment_to_funds(UNIT, SCOUT, Decimal("10.00"))

        entry.validate()
        assert entry.entry_type == EntryType.ADJUSTMENT
        deltas = {line.balance_kind: line.balance_delta for line in entry.lines}
        assert deltas[BalanceKind.BILLING] == Decimal("-10.00")
        assert deltas[BalanceKind.FUNDS] == Decimal("10.00")

    @pytest.mark.parametrize("kind,account", [
        (FundraiserType.POPCORN, AccountCode.POPCORN_SALES),
        (FundraiserType.CAMP_CARDS, AccountCode.CAMP_CARD_SALES),
        (FundraiserType.GENERAL, AccountCode.OTHER_INCOME),
    ])
    def test_fundraising_income_account(self, kind: FundraiserType, account: str) -> None:
        entry = JournalEntryBuilder.fundraising_credit(UNIT, SCOUT, Decimal("45.00"), "Fall sale", kind)

        entry.validate()
        assert entry.description == "Fundraising: Fall sale"
        assert _lines_by_account(entry)[account] == (Decimal("45.00"), ZERO)


class TestReversal:
    """Mirror entries"""

    def test_reversal_cancels_original(self) -> None:
        original = JournalEntryBuilder.charge(UNIT, "Dues", [(SCOUT, Decimal("25.00"), None)])

        reversal = JournalEntryBuilder.reversal(original, created_by="treasurer-1")

        reversal.validate()
        assert reversal.entry_type == EntryType.VOID_REVERSAL
        assert reversal.description == "VOID: Fair Share: Dues"
        assert reversal.reverses_entry_id == original.entry_id
        assert reversal.created_by == "treasurer-1"
        for before, after in zip(original.lines, reversal.lines):
            assert before.balance_delta == -after.balance_delta
            assert before.account_code == after.account_code

    def test_charge_void_credits_billing(self) -> None:
        entry = JournalEntryBuilder.charge_void(UNIT, SCOUT, Decimal("40.00"), "VOID: Campout - Scout 1")

        entry.validate()
        assert entry.entry_type == EntryType.ADJUSTMENT
        scout_line = next(l for l in entry.lines if l.scout_account_id)
        assert scout_line.balance_delta == Decimal("40.00")

    def test_refund_debits_billing(self) -> None:
        entry = JournalEntryBuilder.refund(UNIT, SCOUT, Decimal("10.00"), "Refund: duplicate")

        entry.validate()
        assert entry.entry_type == EntryType.REFUND
        assert _lines_by_account(entry)[AccountCode.BANK] == (ZERO, Decimal("10.00"))


class TestEntryToDict:
    def test_serialises_amounts_as_strings(self) -> None:
        entry = JournalEntryBuilder.payment(UNIT, SCOUT, Decimal("40.00"), Decimal("1.14"), "p")

        data = entry.to_dict()

        assert data["entry_type"] == "payment"
        assert data["is_void"] is False
        assert {line["account_code"] for line in data["lines"]} == {"1000", "5600", "1200"}
        assert data["ts"].endswith("+00:00")
