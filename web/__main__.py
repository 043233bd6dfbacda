"""
Web entry point

Usage:
    python -m web
    python -m web --port 8080 --config config/settings.yaml
"""

import argparse
from pathlib import Path

import uvicorn

from core.config.loader import get_settings
from core.constants import Defaults
from core.logging import setup_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Unit ledger HTTP API")
    parser.add_argument("--host", default=Defaults.WEB_HOST)
    parser.add_argument("--port", type=int, default=Defaults.WEB_PORT)
    parser.add_argument("--config", type=Path, default=None, help="settings.yaml path")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    setup_logging("web")
    # loads the process-wide settings the app lifespan picks up
    get_settings(args.config)
    uvicorn.run(
        "web.app:app",
        host=args.host,
        port=args.port,
        reload=False,
        log_config=None,
    )
