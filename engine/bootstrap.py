"""
Ledger Bootstrap

Builds the ledger components and wires them into a LedgerService.
Collaborators (card gateway, processor feed, notifier) come from the
settings unless the caller passes its own.
"""

import logging

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import INotifier, IPaymentGateway
from adapters.slack.notifier import SlackNotifier
from adapters.square.rest_client import SquareRestClient
from core.config.loader import AppSettings
from core.ledger.store import LedgerStore
from engine.billing.engine import BillingEngine
from engine.billing.repository import BillingRepository
from engine.payments.adapter import PaymentAdapter
from engine.payments.repository import PaymentRepository
from engine.projector.projector import BalanceProjector
from engine.reconciler.reconciler import Reconciler
from engine.service import LedgerService
from engine.transfer.service import FundTransferService
from engine.voiding.engine import VoidEngine

logger = logging.getLogger(__name__)


def create_square_client(settings: AppSettings) -> SquareRestClient | None:
    """Square client, or None when no credentials are configured"""
    if not settings.square.is_configured:
        logger.info("Square not configured, card capture disabled")
        return None
    return SquareRestClient(
        base_url=settings.square.base_url,
        access_token=settings.square.access_token,
        location_id=settings.square.location_id,
    )


def create_notifier(settings: AppSettings) -> SlackNotifier | None:
    """Slack notifier, or None when no webhook is configured"""
    if not settings.slack_webhook_url:
        return None
    return SlackNotifier(settings.slack_webhook_url)


def build_ledger_service(
    db: SQLiteAdapter,
    settings: AppSettings,
    gateway: IPaymentGateway | None = None,
    notifier: INotifier | None = None,
) -> LedgerService:
    """Wire every ledger component over one database adapter

    Args:
        db: connected SQLite adapter (schema already initialised)
        settings: loaded settings
        gateway: card capture collaborator (None disables capture)
        notifier: operator notifier (None disables notifications)

    Returns:
        LedgerService
    """
    projector = BalanceProjector(db)
    store = LedgerStore(db, projector=projector)

    billing_repository = BillingRepository(db)
    payment_repository = PaymentRepository(db)

    transfers = FundTransferService(db, store)
    payments = PaymentAdapter(
        db=db,
        store=store,
        payments=payment_repository,
        billing=billing_repository,
        default_fee_policy=settings.fees,
        gateway=gateway,
        transfers=transfers,
        auto_transfer_overpayment=settings.ledger.auto_transfer_overpayment,
    )

    service = LedgerService(
        db=db,
        store=store,
        projector=projector,
        billing=BillingEngine(db, store, billing_repository),
        voiding=VoidEngine(db, store, billing_repository, payment_repository),
        payments=payments,
        reconciler=Reconciler(db, store, payment_repository, payments, notifier),
        transfers=transfers,
        payment_repository=payment_repository,
    )

    logger.info(
        "Ledger service ready",
        extra={
            "card_capture": gateway is not None,
            "notifier": notifier is not None,
            "auto_transfer_overpayment": settings.ledger.auto_transfer_overpayment,
        },
    )
    return service
