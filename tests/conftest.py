"""
Shared pytest fixtures

Temporary database with schema, mock processor / notifier, a wired
LedgerService and a small unit of scouts.
"""

import tempfile
from decimal import Decimal
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from adapters.mock.notifier import MockNotifier
from adapters.mock.payment_gateway import MockPaymentGateway, MockTransactionFeed
from core.config.loader import AppSettings, parse_settings
from core.domain.permissions import Actor
from core.types import Role
from engine.bootstrap import build_ledger_service
from engine.service import LedgerService


@pytest.fixture
def temp_dir() -> Path:
    """OS-independent temporary directory"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir: Path) -> AppSettings:
    """Settings pointing at a temporary DB (default fee policy, no Square/Slack)"""
    return parse_settings({
        "database": {"path": str(temp_dir / "test_ledger.db")},
        "fees": {"percent": "0.026", "fixed": "0.10"},
        "ledger": {"max_commit_retries": 3, "auto_transfer_overpayment": False},
    })


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """settings.yaml written to disk"""
    content = f"""# test settings.yaml
database:
  path: "{(temp_dir / 'file_ledger.db').as_posix()}"

fees:
  percent: 0.029
  fixed: 0.30

ledger:
  max_commit_retries: 5
  auto_transfer_overpayment: true

square:
  environment: production
  access_token: "EAAA-test-token"
  location_id: "L-TEST"

slack:
  webhook_url: "https://hooks.slack.com/services/T000/B000/XXX"
"""
    path = temp_dir / "settings.yaml"
    path.write_text(content, encoding="utf-8")
    return path


@pytest_asyncio.fixture
async def db(settings: AppSettings) -> AsyncGenerator[SQLiteAdapter, None]:
    """Connected adapter with the full schema"""
    adapter = SQLiteAdapter(settings.db_path, retry_backoff=0.0)
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
def gateway() -> MockPaymentGateway:
    return MockPaymentGateway()


@pytest.fixture
def feed() -> MockTransactionFeed:
    return MockTransactionFeed()


@pytest.fixture
def notifier() -> MockNotifier:
    return MockNotifier()


@pytest.fixture
def ledger(
    db: SQLiteAdapter,
    settings: AppSettings,
    gateway: MockPaymentGateway,
    notifier: MockNotifier,
) -> LedgerService:
    """Fully wired ledger service"""
    return build_ledger_service(db, settings, gateway=gateway, notifier=notifier)


@pytest.fixture
def treasurer() -> Actor:
    return Actor(profile_id="treasurer-1", role=Role.TREASURER)


@pytest.fixture
def parent() -> Actor:
    return Actor(profile_id="parent-1", role=Role.PARENT)


@pytest_asyncio.fixture
async def unit_id(ledger: LedgerService) -> str:
    """Unit with the default 2.6% + $0.10 card fee"""
    return await ledger.store.create_unit(
        "Troop 42",
        fee_percent=Decimal("0.026"),
        fee_fixed=Decimal("0.10"),
    )


@pytest_asyncio.fixture
async def scouts(ledger: LedgerService, unit_id: str) -> list[str]:
    """Eight scout accounts; scout i has family{i}@example.com"""
    return [
        await ledger.store.create_scout_account(
            unit_id, f"Scout {i}", email=f"family{i}@example.com",
        )
        for i in range(1, 9)
    ]
