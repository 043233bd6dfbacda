"""
Hard-coded constants - fixed values that rarely change

Paths must always be pathlib.Path (cross-platform).
"""

from decimal import Decimal
from pathlib import Path


# Project root (two levels above this file: core/constants.py -> project)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class SquareEndpoints:
    """Square API endpoints (fixed values)

    Docs: https://developer.squareup.com/reference/square/payments-api
    """

    PROD_URL: str = "https://connect.squareup.com"
    SANDBOX_URL: str = "https://connect.squareupsandbox.com"
    API_VERSION: str = "2024-10-17"


class Defaults:
    """Default values"""

    CURRENCY: str = "USD"

    # Card processing fee (2.6% + $0.10)
    FEE_PERCENT: Decimal = Decimal("0.026")
    FEE_FIXED: Decimal = Decimal("0.10")

    MAX_COMMIT_RETRIES: int = 3

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    LOG_LEVEL: str = "INFO"


class Paths:
    """Project path constants (pathlib - OS independent)"""

    # Directories
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    WEB_LOGS_DIR: Path = LOGS_DIR / "web"
    SCRIPTS_LOGS_DIR: Path = LOGS_DIR / "scripts"

    # Config file
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB file
    DEFAULT_DB: Path = DATA_DIR / "unit_ledger.db"
