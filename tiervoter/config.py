"""Environment-driven settings for Tierlist Voter."""

from __future__ import annotations

import os
from pathlib import Path

from tiervoter.logging import configure_logging, get_logger
from tiervoter.store import JsonFileStore

log = get_logger(__name__)

LOG_LEVEL = os.environ.get("TIERVOTER_LOG_LEVEL", "INFO")

STORE_PATH = Path(os.environ.get("TIERVOTER_STORE_PATH", "tiervoter.json"))

DEBUG = os.environ.get("DEBUG", "").lower() == "true"


def _parse_seed(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        log.warning("invalid_shuffle_seed", value=value)
        return None


# Optional fixed seed for reproducible queue shuffles.
SHUFFLE_SEED = _parse_seed(os.environ.get("TIERVOTER_SHUFFLE_SEED"))


def setup_logging(cli_mode: bool = False) -> None:
    """Configure structlog from ``TIERVOTER_LOG_LEVEL`` and ``DEBUG``."""
    configure_logging(cli_mode=cli_mode, log_level=LOG_LEVEL, debug=DEBUG)


def open_default_store() -> JsonFileStore:
    """Open the JSON file store configured by ``TIERVOTER_STORE_PATH``."""
    log.debug("store_opened", path=str(STORE_PATH))
    return JsonFileStore(STORE_PATH)
