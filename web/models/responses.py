"""
Response schemas (Pydantic)

Amounts are serialised as decimal strings.
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response"""

    status: str = Field(default="ok", description="Service status")
    version: str = Field(..., description="API version")
    card_capture: bool = Field(..., description="Card processor configured")


class CreatedResponse(BaseModel):
    """Id of the created row"""

    id: str


class EntryIdsResponse(BaseModel):
    """Journal entries written by a void"""

    entry_ids: list[str]


class UnitResponse(BaseModel):
    """Unit"""

    unit_id: str
    name: str
    processing_fee_percent: str | None = None
    processing_fee_fixed: str | None = None


class ScoutAccountResponse(BaseModel):
    """Scout account with cached balances"""

    scout_account_id: str
    unit_id: str
    scout_name: str
    email: str | None = None
    billing_balance: str = Field(..., description="Negative means the scout owes the unit")
    funds_balance: str
    last_entry_id: str | None = None


class JournalLineResponse(BaseModel):
    account_code: str
    debit: str
    credit: str
    scout_account_id: str | None = None
    balance_kind: str | None = None
    memo: str | None = None


class JournalEntryResponse(BaseModel):
    """Journal entry with its lines"""

    entry_id: str
    unit_id: str
    ts: str
    entry_type: str
    description: str
    reference: str | None = None
    created_by: str | None = None
    is_posted: bool
    is_void: bool
    void_reason: str | None = None
    voided_by: str | None = None
    reverses_entry_id: str | None = None
    reversed_by_entry_id: str | None = None
    lines: list[JournalLineResponse]


class BillingChargeResponse(BaseModel):
    billing_charge_id: str
    billing_record_id: str
    scout_account_id: str
    amount: str
    is_paid: bool
    is_void: bool
    void_reason: str | None = None
    void_journal_entry_id: str | None = None


class BillingRecordResponse(BaseModel):
    """Billing record with its charges"""

    billing_record_id: str
    unit_id: str
    description: str
    total_amount: str
    billing_date: str
    journal_entry_id: str | None = None
    is_void: bool
    void_reason: str | None = None
    charges: list[BillingChargeResponse] = Field(default_factory=list)


class PaymentResponse(BaseModel):
    """Payment"""

    payment_id: str
    unit_id: str
    scout_account_id: str
    amount: str
    fee_amount: str
    net_amount: str
    method: str
    status: str
    square_payment_id: str | None = None
    billing_charge_id: str | None = None
    journal_entry_id: str | None = None
    refunded_amount: str
    notes: str | None = None
    void_reason: str | None = None


class SquareTransactionResponse(BaseModel):
    """Processor payment mirror"""

    square_transaction_id: str
    unit_id: str
    square_payment_id: str
    amount: str
    fee: str
    currency: str
    status: str
    reconciliation_state: str
    is_reconciled: bool
    buyer_email: str | None = None
    note: str | None = None
    scout_account_id: str | None = None
    payment_id: str | None = None


class SyncResultResponse(BaseModel):
    created: int
    updated: int
    auto_linked: int
    transaction_ids: list[str]


class UnlinkedReportResponse(BaseModel):
    unlinked: int


class BalanceDriftResponse(BaseModel):
    """Cached balance that disagrees with the journal"""

    scout_account_id: str
    balance_kind: str
    cached: str
    derived: str
    difference: str


class TrialBalanceRow(BaseModel):
    account_code: str
    debit: str
    credit: str
