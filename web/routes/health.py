"""
Health check endpoint

GET /health - server status
"""

from fastapi import APIRouter, Depends

from engine.service import LedgerService
from web.dependencies import get_ledger
from web.models.responses import HealthResponse

API_VERSION = "1.0.0"

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(ledger: LedgerService = Depends(get_ledger)) -> HealthResponse:
    """Server status

    Returns:
        HealthResponse: status, version and whether card capture is available
    """
    return HealthResponse(
        status="ok",
        version=API_VERSION,
        card_capture=ledger.payments.gateway is not None,
    )
