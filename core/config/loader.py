"""
Settings loader

Loads settings.yaml into immutable dataclasses.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from core.constants import PROJECT_ROOT, Defaults, Paths, SquareEndpoints
from core.types import SquareEnvironment


@dataclass(frozen=True)
class FeePolicy:
    """Card processing fee policy: percent of the amount plus a fixed part

    percent is a fraction (0.026 == 2.6%), fixed is in dollars.
    """

    percent: Decimal
    fixed: Decimal


@dataclass(frozen=True)
class SquareConfig:
    """Square connection settings"""

    environment: SquareEnvironment
    access_token: str
    location_id: str

    @property
    def base_url(self) -> str:
        if self.environment == SquareEnvironment.PRODUCTION:
            return SquareEndpoints.PROD_URL
        return SquareEndpoints.SANDBOX_URL

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token and self.location_id)


@dataclass(frozen=True)
class LedgerConfig:
    """Ledger engine behaviour"""

    max_commit_retries: int
    auto_transfer_overpayment: bool


@dataclass(frozen=True)
class AppSettings:
    """All settings (loaded from settings.yaml)"""

    db_path: Path
    fees: FeePolicy
    ledger: LedgerConfig
    square: SquareConfig
    slack_webhook_url: str


class SettingsLoadError(Exception):
    """settings.yaml could not be loaded"""

    pass


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise SettingsLoadError(f"settings.yaml: '{name}' must be a mapping")
    return value


def _decimal(value: Any, field_name: str, default: Decimal) -> Decimal:
    if value is None:
        return default
    try:
        result = Decimal(str(value))
    except InvalidOperation as e:
        raise SettingsLoadError(f"settings.yaml: '{field_name}' is not a number: {value!r}") from e
    if result < 0:
        raise SettingsLoadError(f"settings.yaml: '{field_name}' must not be negative")
    return result


def parse_settings(data: dict[str, Any]) -> AppSettings:
    """Build AppSettings from an already-parsed mapping

    Args:
        data: parsed YAML document

    Returns:
        AppSettings instance

    Raises:
        SettingsLoadError: invalid values
    """
    database = _section(data, "database")
    fees = _section(data, "fees")
    ledger = _section(data, "ledger")
    square = _section(data, "square")
    slack = _section(data, "slack")

    db_path = Path(database.get("path") or Paths.DEFAULT_DB)
    if not db_path.is_absolute():
        db_path = PROJECT_ROOT / db_path

    fee_policy = FeePolicy(
        percent=_decimal(fees.get("percent"), "fees.percent", Defaults.FEE_PERCENT),
        fixed=_decimal(fees.get("fixed"), "fees.fixed", Defaults.FEE_FIXED),
    )
    if fee_policy.percent >= 1:
        raise SettingsLoadError("settings.yaml: 'fees.percent' is a fraction (0.026 == 2.6%)")

    retries = ledger.get("max_commit_retries", Defaults.MAX_COMMIT_RETRIES)
    if not isinstance(retries, int) or retries < 1:
        raise SettingsLoadError("settings.yaml: 'ledger.max_commit_retries' must be a positive integer")

    env_str = square.get("environment", SquareEnvironment.SANDBOX.value)
    try:
        environment = SquareEnvironment(env_str)
    except ValueError as e:
        valid = [env.value for env in SquareEnvironment]
        raise SettingsLoadError(
            f"settings.yaml: invalid square.environment '{env_str}'. Valid: {valid}"
        ) from e

    return AppSettings(
        db_path=db_path,
        fees=fee_policy,
        ledger=LedgerConfig(
            max_commit_retries=retries,
            auto_transfer_overpayment=bool(ledger.get("auto_transfer_overpayment", False)),
        ),
        square=SquareConfig(
            environment=environment,
            access_token=square.get("access_token") or "",
            location_id=square.get("location_id") or "",
        ),
        slack_webhook_url=slack.get("webhook_url") or "",
    )


def load_settings(path: Path | None = None) -> AppSettings:
    """Load settings.yaml

    Args:
        path: settings.yaml path (None uses the default path)

    Returns:
        AppSettings instance

    Raises:
        SettingsLoadError: missing file, malformed YAML or invalid values
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        raise SettingsLoadError(f"settings.yaml not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml could not be parsed: {e}") from e

    if data is None:
        raise SettingsLoadError("settings.yaml is empty")
    if not isinstance(data, dict):
        raise SettingsLoadError("settings.yaml must be a mapping at the top level")

    return parse_settings(data)


class Settings:
    """Application settings (singleton)

    Loads settings.yaml once per process.
    """

    _instance: "Settings | None" = None
    _settings: AppSettings | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._settings is None:
            self._settings = load_settings(settings_path)

    @property
    def values(self) -> AppSettings:
        assert self._settings is not None
        return self._settings

    @property
    def db_path(self) -> Path:
        return self.values.db_path

    @property
    def fees(self) -> FeePolicy:
        return self.values.fees

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (tests)"""
        cls._instance = None
        cls._settings = None


def get_settings(settings_path: Path | None = None) -> AppSettings:
    """Process-wide settings

    Args:
        settings_path: settings.yaml path (None uses the default path)

    Returns:
        AppSettings loaded on first call
    """
    return Settings(settings_path).values
