"""
Fund transfer routes
"""

from fastapi import APIRouter, Depends

from core.domain.permissions import Actor
from engine.service import LedgerService
from web.dependencies import get_actor, get_ledger
from web.models.requests import FundraisingCreditRequest, OverpaymentSweepRequest, TransferRequest
from web.models.responses import CreatedResponse, EntryIdsResponse

router = APIRouter(prefix="/api/transfers", tags=["Transfers"])


@router.post("/funds-to-billing", response_model=CreatedResponse, status_code=201)
async def transfer_funds_to_billing(
    request: TransferRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> CreatedResponse:
    """Pay down billing from scout funds

    Bounded by both the funds balance and the amount owed.
    """
    entry_id = await ledger.transfer_funds_to_billing(actor, request.scout_account_id, request.amount)
    return CreatedResponse(id=entry_id)


@router.post("/fundraising", response_model=CreatedResponse, status_code=201)
async def credit_fundraising(
    request: FundraisingCreditRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> CreatedResponse:
    entry_id = await ledger.credit_fundraising(
        actor,
        request.scout_account_id,
        request.amount,
        request.description,
        request.fundraiser_type,
    )
    return CreatedResponse(id=entry_id)


@router.post("/overpayment", response_model=EntryIdsResponse)
async def transfer_overpayment_to_funds(
    request: OverpaymentSweepRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> EntryIdsResponse:
    """Move a billing credit into funds (empty list when there is none)"""
    entry_id = await ledger.transfer_overpayment_to_funds(actor, request.scout_account_id)
    return EntryIdsResponse(entry_ids=[entry_id] if entry_id else [])
