"""
Billing routes

Fair-share billing records and their voids.
"""

from fastapi import APIRouter, Depends, Query

from core.domain.permissions import Actor
from engine.service import LedgerService
from web.dependencies import get_actor, get_ledger
from web.models.requests import (
    BillingDescriptionUpdateRequest,
    BillingRecordCreateRequest,
    VoidRequest,
)
from web.models.responses import BillingRecordResponse, CreatedResponse, EntryIdsResponse

router = APIRouter(prefix="/api/billing", tags=["Billing"])


@router.post("", response_model=CreatedResponse, status_code=201)
async def create_billing_record(
    request: BillingRecordCreateRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> CreatedResponse:
    """Split an expense across scouts

    $100.00 over 3 scouts bills 33.34, 33.33, 33.33.
    """
    record_id = await ledger.create_billing_record(
        actor,
        request.unit_id,
        request.description,
        request.total_amount,
        request.scout_account_ids,
        request.billing_date,
    )
    return CreatedResponse(id=record_id)


@router.get("", response_model=list[BillingRecordResponse])
async def list_billing_records(
    unit_id: str = Query(...),
    include_void: bool = Query(default=True),
    ledger: LedgerService = Depends(get_ledger),
) -> list[BillingRecordResponse]:
    records = await ledger.list_billing_records(unit_id, include_void)
    return [BillingRecordResponse(**r.to_dict()) for r in records]


@router.get("/{billing_record_id}", response_model=BillingRecordResponse)
async def get_billing_record(
    billing_record_id: str,
    ledger: LedgerService = Depends(get_ledger),
) -> BillingRecordResponse:
    record = await ledger.get_billing_record(billing_record_id)
    return BillingRecordResponse(**record.to_dict())


@router.patch("/{billing_record_id}", response_model=BillingRecordResponse)
async def update_billing_description(
    billing_record_id: str,
    request: BillingDescriptionUpdateRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> BillingRecordResponse:
    await ledger.update_billing_description(actor, billing_record_id, request.description)
    record = await ledger.get_billing_record(billing_record_id)
    return BillingRecordResponse(**record.to_dict())


@router.post("/{billing_record_id}/void", response_model=EntryIdsResponse)
async def void_billing_record(
    billing_record_id: str,
    request: VoidRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> EntryIdsResponse:
    """Void a record and all its unpaid charges (409 if any charge is paid)"""
    entry_ids = await ledger.void_billing_record(actor, billing_record_id, request.reason)
    return EntryIdsResponse(entry_ids=entry_ids)


@router.post("/charges/{billing_charge_id}/void", response_model=EntryIdsResponse)
async def void_billing_charge(
    billing_charge_id: str,
    request: VoidRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> EntryIdsResponse:
    entry_id = await ledger.void_billing_charge(actor, billing_charge_id, request.reason)
    return EntryIdsResponse(entry_ids=[entry_id])
