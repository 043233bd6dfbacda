"""
Web models package

Pydantic schema definitions
"""

from web.models.requests import (
    BillingDescriptionUpdateRequest,
    BillingRecordCreateRequest,
    CardCaptureRequest,
    FundraisingCreditRequest,
    JournalEntryCreateRequest,
    JournalLineRequest,
    LinkTransactionRequest,
    OverpaymentSweepRequest,
    PaymentCreateRequest,
    RefundRequest,
    ScoutAccountCreateRequest,
    TransferRequest,
    UnitCreateRequest,
    VoidRequest,
)
from web.models.responses import (
    BalanceDriftResponse,
    BillingChargeResponse,
    BillingRecordResponse,
    CreatedResponse,
    EntryIdsResponse,
    HealthResponse,
    JournalEntryResponse,
    JournalLineResponse,
    PaymentResponse,
    ScoutAccountResponse,
    SquareTransactionResponse,
    SyncResultResponse,
    TrialBalanceRow,
    UnitResponse,
    UnlinkedReportResponse,
)

__all__ = [
    # Requests
    "BillingDescriptionUpdateRequest",
    "BillingRecordCreateRequest",
    "CardCaptureRequest",
    "FundraisingCreditRequest",
    "JournalEntryCreateRequest",
    "JournalLineRequest",
    "LinkTransactionRequest",
    "OverpaymentSweepRequest",
    "PaymentCreateRequest",
    "RefundRequest",
    "ScoutAccountCreateRequest",
    "TransferRequest",
    "UnitCreateRequest",
    "VoidRequest",
    # Responses
    "BalanceDriftResponse",
    "BillingChargeResponse",
    "BillingRecordResponse",
    "CreatedResponse",
    "EntryIdsResponse",
    "HealthResponse",
    "JournalEntryResponse",
    "JournalLineResponse",
    "PaymentResponse",
    "ScoutAccountResponse",
    "SquareTransactionResponse",
    "SyncResultResponse",
    "TrialBalanceRow",
    "UnitResponse",
    "UnlinkedReportResponse",
]
