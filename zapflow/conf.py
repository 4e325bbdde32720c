# zapflow/conf.py
from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ----------------------------------------------------------------------
# Paths (all under assets/)
# ----------------------------------------------------------------------
ROOT_DIR = Path(__file__).parent.parent
ASSETS_DIR = ROOT_DIR / "assets"

SERVER_DB_PATH = ASSETS_DIR / "server.db"
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{SERVER_DB_PATH}")

# ----------------------------------------------------------------------
# Trigger monitoring
# ----------------------------------------------------------------------
SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", True)

MAILBOX_POLL_INTERVAL_S = _env_int("MAILBOX_POLL_INTERVAL_S", 60)
PRICE_POLL_INTERVAL_S = _env_int("PRICE_POLL_INTERVAL_S", 60)
INITIAL_TICK_DELAY_S = _env_int("INITIAL_TICK_DELAY_S", 5)

# Timeouts for every outbound call (seconds)
MAILBOX_TIMEOUT_S = _env_int("MAILBOX_TIMEOUT_S", 10)
PRICE_TIMEOUT_S = _env_int("PRICE_TIMEOUT_S", 5)
EXECUTE_TIMEOUT_S = _env_int("EXECUTE_TIMEOUT_S", 30)

MAILBOX_MAX_RESULTS = 10

GMAIL_API_BASE_URL = os.getenv("GMAIL_API_BASE_URL", "https://gmail.googleapis.com/gmail/v1")
PRICE_API_BASE_URL = os.getenv("PRICE_API_BASE_URL", "https://api.coingecko.com/api/v3")

# When set, the scheduler hands triggered zaps to a separate executor process
# via POST {EXECUTOR_URL}/execute/{zap_id} instead of running them in-process.
EXECUTOR_URL = os.getenv("EXECUTOR_URL") or None

# ----------------------------------------------------------------------
# HTTP server
# ----------------------------------------------------------------------
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 8000)
