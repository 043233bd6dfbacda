"""
core/constants.py tests

Every path is a pathlib.Path and the constants are reachable.
"""

from decimal import Decimal
from pathlib import Path

from core.constants import PROJECT_ROOT, Defaults, Paths, SquareEndpoints


class TestProjectRoot:
    """PROJECT_ROOT tests"""

    def test_project_root_is_path(self) -> None:
        assert isinstance(PROJECT_ROOT, Path)

    def test_project_root_is_absolute(self) -> None:
        assert PROJECT_ROOT.is_absolute()

    def test_project_root_contains_core_directory(self) -> None:
        assert (PROJECT_ROOT / "core").exists()


class TestSquareEndpoints:
    def test_production_url(self) -> None:
        assert SquareEndpoints.PROD_URL == "https://connect.squareup.com"

    def test_sandbox_url(self) -> None:
        assert SquareEndpoints.SANDBOX_URL == "https://connect.squareupsandbox.com"


class TestDefaults:
    """Defaults tests"""

    def test_fee_policy_is_decimal(self) -> None:
        assert Defaults.FEE_PERCENT == Decimal("0.026")
        assert Defaults.FEE_FIXED == Decimal("0.10")

    def test_commit_retries(self) -> None:
        assert Defaults.MAX_COMMIT_RETRIES >= 1


class TestPaths:
    """Paths tests"""

    def test_all_paths_are_path(self) -> None:
        for name in ("CONFIG_DIR", "DATA_DIR", "LOGS_DIR", "WEB_LOGS_DIR",
                     "SCRIPTS_LOGS_DIR", "SETTINGS_FILE", "DEFAULT_DB"):
            assert isinstance(getattr(Paths, name), Path), name

    def test_paths_under_project_root(self) -> None:
        assert Paths.SETTINGS_FILE.parent == Paths.CONFIG_DIR
        assert Paths.DEFAULT_DB.parent == Paths.DATA_DIR
        assert Paths.CONFIG_DIR.parent == PROJECT_ROOT
