"""
Double-entry ledger routes

Hand-built entries, voids, trial balance and balance audit.
"""

from fastapi import APIRouter, Depends, Query

from core.domain.permissions import Actor
from core.ledger.entry_builder import JournalLine
from core.ledger.errors import NotFoundError
from core.utils.money import to_money
from engine.service import LedgerService
from web.dependencies import get_actor, get_ledger
from web.models.requests import JournalEntryCreateRequest, VoidRequest
from web.models.responses import (
    BalanceDriftResponse,
    CreatedResponse,
    EntryIdsResponse,
    JournalEntryResponse,
    TrialBalanceRow,
)

router = APIRouter(prefix="/api/ledger", tags=["Ledger"])


@router.post("/entries", response_model=CreatedResponse, status_code=201)
async def record_entry(
    request: JournalEntryCreateRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> CreatedResponse:
    """Record a balanced entry (debits must equal credits)"""
    lines = [
        JournalLine(
            account_code=line.account_code,
            debit=to_money(line.debit),
            credit=to_money(line.credit),
            scout_account_id=line.scout_account_id,
            balance_kind=line.balance_kind,
            memo=line.memo,
        )
        for line in request.lines
    ]
    entry_id = await ledger.record_entry(
        actor,
        request.unit_id,
        request.description,
        request.entry_type,
        lines,
        request.reference,
    )
    return CreatedResponse(id=entry_id)


@router.get("/entries/{entry_id}", response_model=JournalEntryResponse)
async def get_entry(entry_id: str, ledger: LedgerService = Depends(get_ledger)) -> JournalEntryResponse:
    entry = await ledger.get_entry(entry_id)
    if entry is None:
        raise NotFoundError("JournalEntry", entry_id)
    return JournalEntryResponse(**entry.to_dict())


@router.post("/entries/{entry_id}/void", response_model=EntryIdsResponse)
async def void_entry(
    entry_id: str,
    request: VoidRequest,
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> EntryIdsResponse:
    """Void an entry by writing its reversal"""
    reversal_id = await ledger.void_entry(actor, entry_id, request.reason)
    return EntryIdsResponse(entry_ids=[reversal_id])


@router.get("/units/{unit_id}/trial-balance", response_model=list[TrialBalanceRow])
async def get_trial_balance(
    unit_id: str,
    ledger: LedgerService = Depends(get_ledger),
) -> list[TrialBalanceRow]:
    """Debit / credit totals per account code"""
    totals = await ledger.get_trial_balance(unit_id)
    return [
        TrialBalanceRow(account_code=code, debit=str(t["debit"]), credit=str(t["credit"]))
        for code, t in sorted(totals.items())
    ]


@router.get("/verify", response_model=list[BalanceDriftResponse])
async def verify_balances(
    unit_id: str | None = Query(default=None),
    ledger: LedgerService = Depends(get_ledger),
) -> list[BalanceDriftResponse]:
    """Cached balances that disagree with a full journal replay (normally empty)"""
    drifts = await ledger.verify_balances(unit_id)
    return [BalanceDriftResponse(**d.to_dict()) for d in drifts]


@router.post("/rebuild", response_model=list[BalanceDriftResponse])
async def rebuild_balances(
    unit_id: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    ledger: LedgerService = Depends(get_ledger),
) -> list[BalanceDriftResponse]:
    """Overwrite drifted caches from the journal"""
    drifts = await ledger.rebuild_balances(actor, unit_id)
    return [BalanceDriftResponse(**d.to_dict()) for d in drifts]
