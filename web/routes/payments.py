"""
Payment routes

Cash / check recording, card capture, refunds and manual voids.
"""

from fastapi import APIRouter, Depends, Query

from core.domain.permissions import Actor
from engine.service import LedgerService
from web.dependencies import get_actor, get_ledger
from web.models.requests import CardCaptureRequest, PaymentCreateRequest, RefundRequest, VoidRequest
from web.models.responses import CreatedResponse, EntryIdsResponse, PaymentResponse

router = APIRouter(prefix="/api/payments", tags=["Payments"])


@router.post("", response_model=PaymentResponse, status_code=201)
async def record_payment(
    request: PaymentCreateRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> PaymentResponse:
    """Record a payment; the scout is credited the gross amount"""
    payment_id = await ledger.record_payment(
        actor,
        request.scout_account_id,
        request.amount,
        request.method,
        processor_ref=request.processor_ref,
        billing_charge_id=request.billing_charge_id,
        notes=request.notes,
    )
    payment = await ledger.get_payment(payment_id)
    return PaymentResponse(**payment.to_dict())


@router.post("/card", response_model=PaymentResponse, status_code=201)
async def capture_card_payment(
    request: CardCaptureRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> PaymentResponse:
    """Charge a card, then record the payment

    A decline or timeout returns 502 and nothing is recorded.
    """
    payment_id = await ledger.capture_card_payment(
        actor,
        request.scout_account_id,
        request.amount,
        request.source_token,
        billing_charge_id=request.billing_charge_id,
        idempotency_key=request.idempotency_key,
        note=request.note,
    )
    payment = await ledger.get_payment(payment_id)
    return PaymentResponse(**payment.to_dict())


@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    unit_id: str = Query(...),
    scout_account_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    ledger: LedgerService = Depends(get_ledger),
) -> list[PaymentResponse]:
    payments = await ledger.list_payments(unit_id, scout_account_id, limit)
    return [PaymentResponse(**p.to_dict()) for p in payments]


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: str, ledger: LedgerService = Depends(get_ledger)) -> PaymentResponse:
    payment = await ledger.get_payment(payment_id)
    return PaymentResponse(**payment.to_dict())


@router.post("/{payment_id}/refund", response_model=CreatedResponse, status_code=201)
async def refund_payment(
    payment_id: str,
    request: RefundRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> CreatedResponse:
    entry_id = await ledger.refund_payment(actor, payment_id, request.amount, request.reason)
    return CreatedResponse(id=entry_id)


@router.post("/{payment_id}/void", response_model=EntryIdsResponse)
async def void_payment(
    payment_id: str,
    request: VoidRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> EntryIdsResponse:
    """Void a cash / check payment entered by mistake (card payments are refunded)"""
    entry_id = await ledger.void_payment(actor, payment_id, request.reason)
    return EntryIdsResponse(entry_ids=[entry_id])
