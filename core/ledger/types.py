"""
Ledger type definitions

Entry types, balance kinds and the chart of accounts seeded for every unit.
"""

from enum import Enum


class EntryType(str, Enum):
    """Journal entry type"""

    CHARGE = "charge"
    PAYMENT = "payment"
    VOID_REVERSAL = "void_reversal"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"  # per-charge void, overpayment move
    FUNDRAISING_CREDIT = "fundraising_credit"
    REFUND = "refund"


class BalanceKind(str, Enum):
    """Which cached scout balance a line moves"""

    BILLING = "billing"
    FUNDS = "funds"


class JournalSide(str, Enum):
    """Debit / credit"""

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class AccountType(str, Enum):
    """Chart of accounts type"""

    ASSET = "asset"
    INCOME = "income"
    EXPENSE = "expense"


class AccountCode:
    """Chart of accounts codes used by the engine"""

    BANK = "1000"
    SCOUT_BILLING = "1200"
    SCOUT_FUNDS = "1210"
    ACTIVITY_FEES = "4100"
    POPCORN_SALES = "4200"
    CAMP_CARD_SALES = "4210"
    OTHER_INCOME = "4900"
    PROCESSING_FEES = "5600"


# Accounts created with every unit: (code, name, account_type)
INITIAL_ACCOUNTS: list[tuple[str, str, str]] = [
    (AccountCode.BANK, "Bank Account", AccountType.ASSET.value),
    (AccountCode.SCOUT_BILLING, "Scout Billing", AccountType.ASSET.value),
    (AccountCode.SCOUT_FUNDS, "Scout Funds", AccountType.ASSET.value),
    (AccountCode.ACTIVITY_FEES, "Camping Fees", AccountType.INCOME.value),
    (AccountCode.POPCORN_SALES, "Popcorn Sales", AccountType.INCOME.value),
    (AccountCode.CAMP_CARD_SALES, "Camp Card Sales", AccountType.INCOME.value),
    (AccountCode.OTHER_INCOME, "Other Income", AccountType.INCOME.value),
    (AccountCode.PROCESSING_FEES, "Payment Processing Fees", AccountType.EXPENSE.value),
]

# Account each balance kind posts to
BALANCE_KIND_ACCOUNTS: dict[BalanceKind, str] = {
    BalanceKind.BILLING: AccountCode.SCOUT_BILLING,
    BalanceKind.FUNDS: AccountCode.SCOUT_FUNDS,
}
