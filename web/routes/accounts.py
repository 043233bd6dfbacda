"""
Unit and scout account routes
"""

from decimal import Decimal, InvalidOperation

from fastapi import APIRouter, Depends, Query

from core.domain.permissions import Actor
from engine.service import LedgerService
from web.dependencies import get_actor, get_ledger
from web.models.requests import ScoutAccountCreateRequest, UnitCreateRequest
from web.models.responses import (
    CreatedResponse,
    JournalEntryResponse,
    ScoutAccountResponse,
    UnitResponse,
)

router = APIRouter(prefix="/api", tags=["Accounts"])


def _optional_decimal(value: str | None, field_name: str) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        parsed = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"{field_name} is not a number: {value!r}")
    if not parsed.is_finite() or parsed < 0:
        raise ValueError(f"{field_name} must be a non-negative number")
    return parsed


@router.post("/units", response_model=CreatedResponse, status_code=201)
async def create_unit(
    request: UnitCreateRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> CreatedResponse:
    """Create a unit and seed its chart of accounts"""
    unit_id = await ledger.create_unit(
        actor,
        request.name,
        _optional_decimal(request.fee_percent, "fee_percent"),
        _optional_decimal(request.fee_fixed, "fee_fixed"),
    )
    return CreatedResponse(id=unit_id)


@router.get("/units/{unit_id}", response_model=UnitResponse)
async def get_unit(unit_id: str, ledger: LedgerService = Depends(get_ledger)) -> UnitResponse:
    unit = await ledger.get_unit(unit_id)
    return UnitResponse(
        unit_id=unit.unit_id,
        name=unit.name,
        processing_fee_percent=str(unit.processing_fee_percent) if unit.processing_fee_percent is not None else None,
        processing_fee_fixed=str(unit.processing_fee_fixed) if unit.processing_fee_fixed is not None else None,
    )


@router.get("/units/{unit_id}/scout-accounts", response_model=list[ScoutAccountResponse])
async def list_scout_accounts(
    unit_id: str,
    ledger: LedgerService = Depends(get_ledger),
) -> list[ScoutAccountResponse]:
    """Scout accounts of a unit (cached balances)"""
    accounts = await ledger.list_scout_accounts(unit_id)
    return [ScoutAccountResponse(**a.to_dict()) for a in accounts]


@router.post("/scout-accounts", response_model=CreatedResponse, status_code=201)
async def create_scout_account(
    request: ScoutAccountCreateRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> CreatedResponse:
    scout_account_id = await ledger.create_scout_account(
        actor, request.unit_id, request.scout_name, request.email,
    )
    return CreatedResponse(id=scout_account_id)


@router.get("/scout-accounts/{scout_account_id}", response_model=ScoutAccountResponse)
async def get_scout_account(
    scout_account_id: str,
    ledger: LedgerService = Depends(get_ledger),
) -> ScoutAccountResponse:
    account = await ledger.get_scout_account(scout_account_id)
    return ScoutAccountResponse(**account.to_dict())


@router.get("/scout-accounts/{scout_account_id}/entries", response_model=list[JournalEntryResponse])
async def get_account_entries(
    scout_account_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    ledger: LedgerService = Depends(get_ledger),
) -> list[JournalEntryResponse]:
    """Journal entries touching a scout account, newest first"""
    await ledger.get_scout_account(scout_account_id)
    entries = await ledger.get_entries_for_account(scout_account_id, limit, offset)
    return [JournalEntryResponse(**e.to_dict()) for e in entries]
