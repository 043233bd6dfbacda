"""
Request schemas (Pydantic)

Amounts travel as decimal strings ("40.00") so no float rounding
happens on the way in.
"""

from datetime import date

from pydantic import BaseModel, Field

from core.ledger.types import BalanceKind, EntryType
from core.types import FundraiserType, PaymentMethod


class UnitCreateRequest(BaseModel):
    """Create a unit"""

    name: str = Field(..., min_length=1, description="Unit name")
    fee_percent: str | None = Field(default=None, description="Card fee fraction (0.026 = 2.6%)")
    fee_fixed: str | None = Field(default=None, description="Card fee fixed part (dollars)")


class ScoutAccountCreateRequest(BaseModel):
    """Create a scout account"""

    unit_id: str = Field(..., description="Unit ID")
    scout_name: str = Field(..., min_length=1, description="Scout name")
    email: str | None = Field(default=None, description="Family contact email (processor matching)")


class JournalLineRequest(BaseModel):
    """One line of a hand-built entry"""

    account_code: str = Field(..., description="Ledger account code")
    debit: str = Field(default="0.00")
    credit: str = Field(default="0.00")
    scout_account_id: str | None = None
    balance_kind: BalanceKind | None = None
    memo: str | None = None


class JournalEntryCreateRequest(BaseModel):
    """Hand-built balanced entry"""

    unit_id: str
    description: str = Field(..., min_length=1)
    entry_type: EntryType = Field(default=EntryType.ADJUSTMENT)
    lines: list[JournalLineRequest] = Field(..., min_length=1)
    reference: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "unit_id": "unit-1",
                    "description": "Camp deposit correction",
                    "entry_type": "adjustment",
                    "lines": [
                        {"account_code": "1200", "debit": "5.00", "scout_account_id": "scout-1", "balance_kind": "billing"},
                        {"account_code": "4100", "credit": "5.00"},
                    ],
                }
            ]
        }
    }


class VoidRequest(BaseModel):
    """Void / refund reason (audited, never defaulted)"""

    reason: str = Field(..., description="Why the entry is being cancelled")


class BillingRecordCreateRequest(BaseModel):
    """Bill a group of scouts for one expense"""

    unit_id: str
    description: str = Field(..., min_length=1)
    total_amount: str = Field(..., description="Total to split across the scouts")
    scout_account_ids: list[str] = Field(..., min_length=1)
    billing_date: date | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "unit_id": "unit-1",
                    "description": "Winter Campout",
                    "total_amount": "320.00",
                    "scout_account_ids": ["scout-1", "scout-2"],
                }
            ]
        }
    }


class BillingDescriptionUpdateRequest(BaseModel):
    """Rename a billing record"""

    description: str = Field(..., min_length=1)


class PaymentCreateRequest(BaseModel):
    """Record a payment received outside the card flow"""

    scout_account_id: str
    amount: str
    method: PaymentMethod
    processor_ref: str | None = Field(default=None, description="Processor payment id")
    billing_charge_id: str | None = None
    notes: str | None = None


class CardCaptureRequest(BaseModel):
    """Charge a tokenized card"""

    scout_account_id: str
    amount: str
    source_token: str = Field(..., min_length=1, description="Card nonce from the processor's web SDK")
    billing_charge_id: str | None = None
    idempotency_key: str | None = None
    note: str | None = None


class RefundRequest(BaseModel):
    """Refund part or all of a payment"""

    amount: str
    reason: str


class TransferRequest(BaseModel):
    """Move scout funds to billing"""

    scout_account_id: str
    amount: str


class FundraisingCreditRequest(BaseModel):
    """Credit fundraiser income to a scout's funds"""

    scout_account_id: str
    amount: str
    description: str = Field(default="")
    fundraiser_type: FundraiserType = Field(default=FundraiserType.GENERAL)


class OverpaymentSweepRequest(BaseModel):
    """Move a billing credit into funds"""

    scout_account_id: str


class LinkTransactionRequest(BaseModel):
    """Assign a processor payment to a scout"""

    scout_account_id: str
