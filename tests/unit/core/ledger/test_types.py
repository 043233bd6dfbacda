"""
core/ledger/types.py tests
"""

from core.ledger.types import (
    BALANCE_KIND_ACCOUNTS,
    INITIAL_ACCOUNTS,
    AccountCode,
    AccountType,
    BalanceKind,
    EntryType,
)


class TestEntryType:
    def test_values(self) -> None:
        assert {t.value for t in EntryType} == {
            "charge", "payment", "void_reversal", "transfer",
            "adjustment", "fundraising_credit", "refund",
        }


class TestChartOfAccounts:
    """Seeded chart of accounts"""

    def test_codes_unique(self) -> None:
        codes = [code for code, _, _ in INITIAL_ACCOUNTS]

        assert len(codes) == len(set(codes))

    def test_engine_accounts_seeded(self) -> None:
        codes = {code for code, _, _ in INITIAL_ACCOUNTS}

        for code in (AccountCode.BANK, AccountCode.SCOUT_BILLING, AccountCode.SCOUT_FUNDS,
                     AccountCode.ACTIVITY_FEES, AccountCode.PROCESSING_FEES):
            assert code in codes

    def test_account_types(self) -> None:
        types = {code: kind for code, _, kind in INITIAL_ACCOUNTS}

        assert types[AccountCode.BANK] == AccountType.ASSET.value
        assert types[AccountCode.ACTIVITY_FEES] == AccountType.INCOME.value
        assert types[AccountCode.PROCESSING_FEES] == AccountType.EXPENSE.value

    def test_balance_kind_accounts(self) -> None:
        assert BALANCE_KIND_ACCOUNTS[BalanceKind.BILLING] == "1200"
        assert BALANCE_KIND_ACCOUNTS[BalanceKind.FUNDS] == "1210"
