"""
Processor reconciliation routes
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from core.domain.permissions import Actor
from engine.service import LedgerService
from web.dependencies import get_actor, get_ledger
from web.models.requests import LinkTransactionRequest
from web.models.responses import (
    CreatedResponse,
    SquareTransactionResponse,
    SyncResultResponse,
    UnlinkedReportResponse,
)

router = APIRouter(prefix="/api/reconciliation", tags=["Reconciliation"])


@router.get("/transactions", response_model=list[SquareTransactionResponse])
async def list_transactions(
    unit_id: str = Query(...),
    unlinked_only: bool = Query(default=False),
    ledger: LedgerService = Depends(get_ledger),
) -> list[SquareTransactionResponse]:
    if unlinked_only:
        rows = await ledger.list_unlinked(unit_id)
    else:
        rows = await ledger.list_transactions(unit_id)
    return [SquareTransactionResponse(**r.to_dict()) for r in rows]


@router.post("/sync", response_model=SyncResultResponse)
async def sync_transactions(
    request: Request,
    unit_id: str = Query(...),
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> SyncResultResponse:
    """Pull the processor feed into square_transaction rows"""
    feed = getattr(request.app.state, "feed", None)
    if feed is None:
        raise HTTPException(status_code=503, detail="No processor feed is configured")
    result = await ledger.sync_from_feed(actor, unit_id, feed)
    return SyncResultResponse(**result.to_dict())


@router.post("/transactions/{square_transaction_id}/link", status_code=204)
async def link_transaction(
    square_transaction_id: str,
    request: LinkTransactionRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> None:
    await ledger.link_transaction(actor, square_transaction_id, request.scout_account_id)


@router.post("/transactions/{square_transaction_id}/unlink", status_code=204)
async def unlink_transaction(
    square_transaction_id: str,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> None:
    await ledger.unlink_transaction(actor, square_transaction_id)


@router.post("/transactions/{square_transaction_id}/reconcile", response_model=CreatedResponse)
async def reconcile_transaction(
    square_transaction_id: str,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> CreatedResponse:
    """Create the payment for a linked row (repeat calls return the same payment)"""
    payment_id = await ledger.reconcile_transaction(actor, square_transaction_id)
    return CreatedResponse(id=payment_id)


@router.post("/report", response_model=UnlinkedReportResponse)
async def report_unlinked(
    unit_id: str = Query(...),
    ledger: LedgerService = Depends(get_ledger),
) -> UnlinkedReportResponse:
    """Notify operators about unmatched processor payments"""
    return UnlinkedReportResponse(unlinked=await ledger.report_unlinked(unit_id))
