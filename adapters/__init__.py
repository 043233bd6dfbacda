"""
Adapter layer

Everything outside the ledger: database, card processor, notifications.
Protocol interfaces let tests swap in the mocks.
"""

from adapters.interfaces import (
    INotifier,
    IPaymentGateway,
    ITransactionFeed,
)
from adapters.models import (
    CaptureResult,
    ProcessorTransaction,
)

__all__ = [
    # Interfaces
    "IPaymentGateway",
    "ITransactionFeed",
    "INotifier",
    # Models
    "CaptureResult",
    "ProcessorTransaction",
]
