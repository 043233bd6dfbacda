"""
Dependency injection

Dependencies shared by the routes through FastAPI's Depends.
"""

from fastapi import Header, HTTPException, Request

from core.domain.permissions import Actor
from core.types import Role
from engine.service import LedgerService


def get_ledger(request: Request) -> LedgerService:
    """LedgerService created in the app lifespan"""
    ledger: LedgerService | None = getattr(request.app.state, "ledger", None)
    if ledger is None:
        raise HTTPException(status_code=503, detail="Ledger is not ready")
    return ledger


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
) -> Actor:
    """Caller identity, already authenticated upstream

    The upstream proxy sets X-Actor-Id and X-Actor-Role.

    Raises:
        HTTPException: 401 when either header is missing, 403 for an unknown role
    """
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=401, detail="X-Actor-Id and X-Actor-Role headers are required")
    try:
        role = Role(x_actor_role.strip().lower())
    except ValueError:
        raise HTTPException(status_code=403, detail=f"Unknown role: {x_actor_role}")
    return Actor(profile_id=x_actor_id, role=role)
