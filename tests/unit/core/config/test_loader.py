"""
core/config/loader.py tests

settings.yaml loading, validation and the settings singleton.
"""

from decimal import Decimal
from pathlib import Path

import pytest

from core.config.loader import (
    AppSettings,
    FeePolicy,
    Settings,
    SettingsLoadError,
    SquareConfig,
    get_settings,
    load_settings,
    parse_settings,
)
from core.constants import PROJECT_ROOT, Defaults, Paths, SquareEndpoints
from core.types import SquareEnvironment


class TestParseSettings:
    """parse_settings tests"""

    def test_empty_mapping_uses_defaults(self) -> None:
        settings = parse_settings({})

        assert settings.db_path == Paths.DEFAULT_DB
        assert settings.fees == FeePolicy(Defaults.FEE_PERCENT, Defaults.FEE_FIXED)
        assert settings.ledger.max_commit_retries == Defaults.MAX_COMMIT_RETRIES
        assert settings.ledger.auto_transfer_overpayment is False
        assert settings.square.environment == SquareEnvironment.SANDBOX
        assert settings.square.is_configured is False
        assert settings.slack_webhook_url == ""

    def test_relative_db_path_resolved_from_project_root(self) -> None:
        settings = parse_settings({"database": {"path": "data/other.db"}})

        assert settings.db_path == PROJECT_ROOT / "data" / "other.db"

    def test_fees_are_decimal(self) -> None:
        """YAML floats become exact Decimals"""
        settings = parse_settings({"fees": {"percent": 0.029, "fixed": 0.30}})

        assert settings.fees.percent == Decimal("0.029")
        assert settings.fees.fixed == Decimal("0.3")

    def test_percent_as_whole_number_rejected(self) -> None:
        with pytest.raises(SettingsLoadError, match="fraction"):
            parse_settings({"fees": {"percent": 2.6}})

    def test_negative_fee_rejected(self) -> None:
        with pytest.raises(SettingsLoadError, match="negative"):
            parse_settings({"fees": {"fixed": -1}})

    def test_non_numeric_fee_rejected(self) -> None:
        with pytest.raises(SettingsLoadError, match="not a number"):
            parse_settings({"fees": {"percent": "lots"}})

    @pytest.mark.parametrize("retries", [0, -1, "3"])
    def test_invalid_retries_rejected(self, retries) -> None:
        with pytest.raises(SettingsLoadError, match="max_commit_retries"):
            parse_settings({"ledger": {"max_commit_retries": retries}})

    def test_invalid_environment_rejected(self) -> None:
        with pytest.raises(SettingsLoadError, match="square.environment"):
            parse_settings({"square": {"environment": "staging"}})

    def test_section_must_be_mapping(self) -> None:
        with pytest.raises(SettingsLoadError, match="'fees' must be a mapping"):
            parse_settings({"fees": "2.6%"})


class TestSquareConfig:
    """SquareConfig tests"""

    def test_sandbox_url(self) -> None:
        config = SquareConfig(SquareEnvironment.SANDBOX, "token", "loc")

        assert config.base_url == SquareEndpoints.SANDBOX_URL
        assert config.is_configured is True

    def test_production_url(self) -> None:
        config = SquareConfig(SquareEnvironment.PRODUCTION, "token", "loc")

        assert config.base_url == SquareEndpoints.PROD_URL

    def test_missing_location_not_configured(self) -> None:
        assert SquareConfig(SquareEnvironment.SANDBOX, "token", "").is_configured is False


class TestLoadSettings:
    """load_settings tests"""

    def test_load_valid_file(self, temp_settings_file: Path, temp_dir: Path) -> None:
        settings = load_settings(temp_settings_file)

        assert isinstance(settings, AppSettings)
        assert settings.db_path == temp_dir / "file_ledger.db"
        assert settings.fees.percent == Decimal("0.029")
        assert settings.ledger.max_commit_retries == 5
        assert settings.ledger.auto_transfer_overpayment is True
        assert settings.square.environment == SquareEnvironment.PRODUCTION
        assert settings.square.access_token == "EAAA-test-token"
        assert settings.square.location_id == "L-TEST"
        assert settings.slack_webhook_url.startswith("https://hooks.slack.com/")

    def test_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(SettingsLoadError, match="not found"):
            load_settings(temp_dir / "nope.yaml")

    def test_empty_file(self, temp_dir: Path) -> None:
        path = temp_dir / "empty.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="empty"):
            load_settings(path)

    def test_malformed_yaml(self, temp_dir: Path) -> None:
        path = temp_dir / "bad.yaml"
        path.write_text("fees: [unclosed\n", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="could not be parsed"):
            load_settings(path)

    def test_top_level_list(self, temp_dir: Path) -> None:
        path = temp_dir / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="mapping"):
            load_settings(path)


class TestSettingsSingleton:
    """Settings singleton tests"""

    @pytest.fixture(autouse=True)
    def reset_singleton(self):
        Settings.reset()
        yield
        Settings.reset()

    def test_same_instance(self, temp_settings_file: Path) -> None:
        first = Settings(temp_settings_file)
        second = Settings()

        assert first is second
        assert second.fees.percent == Decimal("0.029")

    def test_get_settings(self, temp_settings_file: Path) -> None:
        settings = get_settings(temp_settings_file)

        assert settings.ledger.max_commit_retries == 5
        # later calls ignore the path and reuse the loaded values
        assert get_settings() is settings

    def test_reset(self, temp_settings_file: Path, temp_dir: Path) -> None:
        get_settings(temp_settings_file)
        Settings.reset()

        with pytest.raises(SettingsLoadError):
            get_settings(temp_dir / "missing.yaml")
