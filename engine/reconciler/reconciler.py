"""
Processor Reconciler

Mirrors the card processor's payments into square_transaction rows and
walks each one through unlinked -> linked -> reconciled.

A row that never matches a scout stays unlinked; it is reported to the
operators, never retried on its own.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import INotifier, ITransactionFeed
from adapters.models import ProcessorTransaction
from core.domain.state_machines import ReconciliationStateMachine, StateMachineError
from core.ledger.errors import InvalidStateTransitionError, NotFoundError
from core.ledger.store import LedgerStore
from core.types import PaymentMethod, ProcessorStatus, ReconciliationState
from engine.payments.adapter import PaymentAdapter
from engine.payments.repository import PaymentRepository, SquareTransaction

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one sync pass"""

    created: int = 0
    updated: int = 0
    auto_linked: int = 0
    transaction_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "auto_linked": self.auto_linked,
            "transaction_ids": list(self.transaction_ids),
        }


class Reconciler:
    """Processor reconciler

    Args:
        db: SQLite adapter
        store: ledger store (scout lookups)
        payments: payment repository (square_transaction rows)
        payment_adapter: creates the Payment + JournalEntry on reconcile
        notifier: operator notifications (optional)
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        store: LedgerStore,
        payments: PaymentRepository,
        payment_adapter: PaymentAdapter,
        notifier: INotifier | None = None,
    ):
        self.db = db
        self.store = store
        self.payments = payments
        self.payment_adapter = payment_adapter
        self.notifier = notifier

    # =========================================================================
    # Sync
    # =========================================================================

    async def sync_transactions(
        self,
        unit_id: str,
        records: list[ProcessorTransaction],
    ) -> SyncResult:
        """Upsert processor records

        New rows start unlinked. An unlinked row whose buyer email matches
        exactly one scout account of the unit is linked automatically.

        Args:
            unit_id: owning unit
            records: processor payments

        Returns:
            SyncResult
        """
        await self.store.get_unit(unit_id)

        async def _write() -> SyncResult:
            result = SyncResult()
            for tx in records:
                row = await self.payments.get_transaction_by_payment_id(unit_id, tx.processor_payment_id)
                if row is None:
                    tx_id = await self.payments.insert_transaction(unit_id, tx)
                    state = ReconciliationState.UNLINKED
                    result.created += 1
                else:
                    tx_id = row.square_transaction_id
                    state = row.reconciliation_state
                    await self.payments.refresh_transaction(tx_id, tx)
                    result.updated += 1
                result.transaction_ids.append(tx_id)

                if state == ReconciliationState.UNLINKED and tx.buyer_email:
                    if await self._auto_link(unit_id, tx_id, tx.buyer_email):
                        result.auto_linked += 1
            return result

        result = await self.db.run_transaction(_write)
        logger.info(
            "Processor transactions synced",
            extra={"unit_id": unit_id, **result.to_dict()},
        )
        return result

    async def sync_from_feed(
        self,
        unit_id: str,
        feed: ITransactionFeed,
        begin_time: datetime | None = None,
    ) -> SyncResult:
        """Pull the processor feed, then upsert what it returned

        The feed is read before the write transaction opens.
        """
        records = await feed.list_transactions(begin_time)
        logger.debug(f"Processor feed returned {len(records)} record(s)")
        return await self.sync_transactions(unit_id, records)

    async def _auto_link(self, unit_id: str, tx_id: str, buyer_email: str) -> bool:
        matches = await self.store.find_scout_accounts_by_email(unit_id, buyer_email)
        if len(matches) != 1:
            return False
        await self.payments.set_link(tx_id, ReconciliationState.LINKED, matches[0].scout_account_id)
        logger.info(
            "Processor transaction auto-linked by email",
            extra={"square_transaction_id": tx_id, "scout_account_id": matches[0].scout_account_id},
        )
        return True

    # =========================================================================
    # State transitions
    # =========================================================================

    async def link_transaction(self, square_transaction_id: str, scout_account_id: str) -> None:
        """Assign a scout account to an unlinked row

        Raises:
            NotFoundError: unknown row, or scout outside the row's unit
            InvalidStateTransitionError: row is not unlinked
        """
        async def _write() -> None:
            row = await self._get_row(square_transaction_id)
            account = await self.store.get_scout_account(scout_account_id)
            if account.unit_id != row.unit_id:
                raise NotFoundError("ScoutAccount", scout_account_id)

            self._transition(row, ReconciliationState.LINKED)
            await self.payments.set_link(square_transaction_id, ReconciliationState.LINKED, scout_account_id)

        await self.db.run_transaction(_write)
        logger.info(
            "Processor transaction linked",
            extra={"square_transaction_id": square_transaction_id, "scout_account_id": scout_account_id},
        )

    async def unlink_transaction(self, square_transaction_id: str) -> None:
        """Withdraw the scout assignment of a linked (not yet reconciled) row"""
        async def _write() -> None:
            row = await self._get_row(square_transaction_id)
            self._transition(row, ReconciliationState.UNLINKED)
            await self.payments.set_link(square_transaction_id, ReconciliationState.UNLINKED, None)

        await self.db.run_transaction(_write)
        logger.info(
            "Processor transaction unlinked",
            extra={"square_transaction_id": square_transaction_id},
        )

    async def reconcile_transaction(
        self,
        square_transaction_id: str,
        reconciled_by: str | None = None,
    ) -> str:
        """Create the Payment + JournalEntry for a linked row

        Uses the processor-reported fee. Reconciling a row twice returns
        the payment created the first time.

        Returns:
            payment_id

        Raises:
            NotFoundError: unknown row
            InvalidStateTransitionError: row unlinked, or processor status not COMPLETED
        """
        async def _write() -> str:
            row = await self._get_row(square_transaction_id)
            if row.reconciliation_state == ReconciliationState.RECONCILED and row.payment_id:
                return row.payment_id

            if row.status != ProcessorStatus.COMPLETED:
                raise InvalidStateTransitionError(
                    f"Processor status {row.status.value} cannot be reconciled"
                )
            machine = ReconciliationStateMachine(row.reconciliation_state)
            if not machine.can_transition(ReconciliationState.RECONCILED) or not row.scout_account_id:
                raise InvalidStateTransitionError(
                    f"Transaction must be linked before it is reconciled "
                    f"(state: {row.reconciliation_state.value})"
                )

            existing = await self.payments.find_by_square_payment_id(row.unit_id, row.square_payment_id)
            if existing is not None:
                await self.payments.mark_reconciled(
                    square_transaction_id, existing.payment_id, existing.scout_account_id, reconciled_by,
                )
                return existing.payment_id

            return await self.payment_adapter.record_payment(
                scout_account_id=row.scout_account_id,
                amount=row.amount,
                method=PaymentMethod.CARD,
                processor_ref=row.square_payment_id,
                notes=row.note,
                created_by=reconciled_by,
                fee_amount=row.fee,
            )

        payment_id = await self.db.run_transaction(_write)
        logger.info(
            "Processor transaction reconciled",
            extra={"square_transaction_id": square_transaction_id, "payment_id": payment_id},
        )
        return payment_id

    def _transition(self, row: SquareTransaction, target: ReconciliationState) -> None:
        machine = ReconciliationStateMachine(
            row.reconciliation_state, name=f"SquareTransaction {row.square_transaction_id}",
        )
        try:
            machine.transition(target)
        except StateMachineError as e:
            raise InvalidStateTransitionError(str(e)) from e

    async def _get_row(self, square_transaction_id: str) -> SquareTransaction:
        row = await self.payments.get_transaction(square_transaction_id)
        if row is None:
            raise NotFoundError("SquareTransaction", square_transaction_id)
        return row

    # =========================================================================
    # Reporting
    # =========================================================================

    async def list_unlinked(self, unit_id: str) -> list[SquareTransaction]:
        return await self.payments.list_transactions(unit_id, ReconciliationState.UNLINKED)

    async def report_unlinked(self, unit_id: str) -> int:
        """Send one WARNING summarising unmatched processor payments

        Returns:
            number of unlinked rows
        """
        rows = await self.list_unlinked(unit_id)
        if not rows:
            return 0

        logger.warning(
            f"{len(rows)} unlinked processor transaction(s)",
            extra={"unit_id": unit_id, "square_payment_ids": [r.square_payment_id for r in rows]},
        )
        if self.notifier is None:
            return len(rows)

        unit = await self.store.get_unit(unit_id)
        transactions = [r.to_processor_transaction() for r in rows]
        send_report = getattr(self.notifier, "send_unlinked_report", None)
        if send_report is not None:
            await send_report(unit.name, transactions)
        else:
            await self.notifier.send(
                f"{unit.name}: {len(rows)} unlinked card payment(s)",
                level="WARNING",
                extra={"count": len(rows)},
            )
        return len(rows)
