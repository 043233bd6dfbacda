"""
Double-entry ledger core

Every movement of money in a unit is one balanced journal entry.
Entries are never edited or deleted; corrections are new entries.

Example:
```python
from core.ledger import LedgerStore, JournalEntryBuilder

store = LedgerStore(db, projector)

entry = JournalEntryBuilder.funds_to_billing(unit_id, scout_id, Decimal("45.00"))
await store.record_entry(entry)

reversal_id = await store.void_entry(entry.entry_id, reason="Entered twice")
```
"""

from core.ledger.accounts import ScoutAccount, Unit
from core.ledger.entry_builder import JournalEntry, JournalEntryBuilder, JournalLine
from core.ledger.store import LedgerStore
from core.ledger.types import (
    INITIAL_ACCOUNTS,
    AccountCode,
    AccountType,
    BalanceKind,
    EntryType,
)

__all__ = [
    # Core classes
    "LedgerStore",
    "JournalEntryBuilder",
    "JournalEntry",
    "JournalLine",
    "ScoutAccount",
    "Unit",
    # Enums
    "EntryType",
    "BalanceKind",
    "AccountType",
    "AccountCode",
    # Constants
    "INITIAL_ACCOUNTS",
]
