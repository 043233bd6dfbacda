"""
Square API responses -> common models

Converts Square Payments API objects into adapters.models.
Money stays in integer minor units (cents).
"""

from typing import Any

from adapters.models import CaptureResult, ProcessorTransaction
from core.types import ProcessorStatus
from core.utils.timezone import parse_iso


def _money_amount(money: dict[str, Any] | None) -> int:
    if not money:
        return 0
    return int(money.get("amount") or 0)


def parse_fee_minor(payment: dict[str, Any]) -> int | None:
    """Sum of processing_fee entries (None when Square has not assessed it yet)"""
    fees = payment.get("processing_fee")
    if not fees:
        return None
    return sum(_money_amount(fee.get("amount_money")) for fee in fees)


def parse_status(value: str | None) -> ProcessorStatus:
    """Unknown statuses are treated as FAILED (never reconcilable)"""
    try:
        return ProcessorStatus(value or "")
    except ValueError:
        return ProcessorStatus.FAILED


def parse_payment(data: dict[str, Any]) -> ProcessorTransaction:
    """Square Payment object -> ProcessorTransaction

    Square GET /v2/payments item example:
    {
        "id": "GQTFp1ZlXdpoW4o6eGiZhbjosiDFf",
        "created_at": "2026-02-20T16:00:00.000Z",
        "amount_money": {"amount": 4000, "currency": "USD"},
        "processing_fee": [
            {"effective_at": "...", "type": "INITIAL",
             "amount_money": {"amount": 114, "currency": "USD"}}
        ],
        "status": "COMPLETED",
        "buyer_email_address": "parent@example.com",
        "note": "Winter Campout"
    }
    """
    amount_money = data.get("amount_money") or {}
    return ProcessorTransaction(
        processor_payment_id=data["id"],
        amount_minor=_money_amount(amount_money),
        fee_minor=parse_fee_minor(data) or 0,
        status=parse_status(data.get("status")),
        buyer_email=(data.get("buyer_email_address") or "").strip().lower() or None,
        note=data.get("note"),
        currency=amount_money.get("currency") or "USD",
        created_at=parse_iso(data.get("created_at")),
        raw=data,
    )


def parse_capture(data: dict[str, Any]) -> CaptureResult:
    """POST /v2/payments response -> CaptureResult

    Only a COMPLETED payment counts as captured.
    """
    payment = data.get("payment") or {}
    status = payment.get("status")
    if status != ProcessorStatus.COMPLETED.value:
        return CaptureResult.failed(
            error_code=status or "UNKNOWN",
            error_message=f"Payment not completed (status={status})",
        )
    return CaptureResult(
        success=True,
        processor_payment_id=payment.get("id"),
        amount_minor=_money_amount(payment.get("amount_money")),
        fee_minor=parse_fee_minor(payment),
        status=status,
    )


def parse_errors(data: Any) -> tuple[str, str]:
    """Square error body -> (code, detail)

    {"errors": [{"category": "PAYMENT_METHOD_ERROR", "code": "CARD_DECLINED",
                 "detail": "Authorization error: 'CARD_DECLINED'"}]}
    """
    if isinstance(data, dict) and data.get("errors"):
        first = data["errors"][0]
        return first.get("code", "UNKNOWN"), first.get("detail", "")
    return "UNKNOWN", str(data)
