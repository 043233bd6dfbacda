"""
FastAPI application

Router registration and app setup.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from adapters.interfaces import INotifier, IPaymentGateway, ITransactionFeed
from core.config.loader import AppSettings, get_settings
from engine.bootstrap import build_ledger_service, create_notifier, create_square_client
from web.errors import register_error_handlers
from web.routes import accounts, billing, health, ledger, payments, reconciliation, transfers
from web.routes.health import API_VERSION

logger = logging.getLogger(__name__)


async def _close_quietly(resource: Any, name: str) -> None:
    if resource is None:
        return
    try:
        await resource.close()
    except Exception as e:
        logger.warning(f"Web: {name} close failed: {e}")


def create_app(
    settings: AppSettings | None = None,
    gateway: IPaymentGateway | None = None,
    feed: ITransactionFeed | None = None,
    notifier: INotifier | None = None,
) -> FastAPI:
    """Build the API app

    Collaborators not passed in are created from the settings (Square
    client for capture and feed, Slack for notifications).

    Args:
        settings: settings (None loads config/settings.yaml at startup)
        gateway: card capture collaborator
        feed: processor transaction feed
        notifier: operator notifier
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or get_settings()

        db = SQLiteAdapter(
            app_settings.db_path,
            max_retries=app_settings.ledger.max_commit_retries,
        )
        await db.connect()
        await init_schema(db)

        square = None
        if gateway is None or feed is None:
            square = create_square_client(app_settings)
        slack = create_notifier(app_settings) if notifier is None else None

        app.state.ledger = build_ledger_service(
            db,
            app_settings,
            gateway=gateway or square,
            notifier=notifier or slack,
        )
        app.state.feed = feed or square
        logger.info("Web: ledger ready", extra={"db_path": str(app_settings.db_path)})

        yield

        app.state.ledger = None
        app.state.feed = None
        await _close_quietly(square, "Square client")
        await _close_quietly(slack, "Slack notifier")
        await _close_quietly(db, "DB")

    app = FastAPI(
        title="Unit Ledger API",
        description="Scouting unit double-entry ledger",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(accounts.router)
    app.include_router(ledger.router)
    app.include_router(billing.router)
    app.include_router(payments.router)
    app.include_router(transfers.router)
    app.include_router(reconciliation.router)

    return app


app = create_app()
