# triplist/config.py
import os
import logging
from typing import List

from dotenv import load_dotenv

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_LIST_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

# Load .env file if present
load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %d", name, raw, default)
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s", name, raw, default)
        return default


MAX_PAGE_SIZE = max(1, _int_env("TRIP_LIST_MAX_PAGE_SIZE", 50))
DEFAULT_PAGE_SIZE = min(max(1, _int_env("TRIP_LIST_DEFAULT_PAGE_SIZE", 10)), MAX_PAGE_SIZE)
ACTIVITY_PAGE_SIZE = min(max(1, _int_env("TRIP_LIST_ACTIVITY_PAGE_SIZE", 20)), MAX_PAGE_SIZE)

API_BASE_URL = os.getenv("TRIP_LIST_API_BASE_URL", "http://localhost:8000").rstrip("/")
HTTP_TIMEOUT = _float_env("TRIP_LIST_HTTP_TIMEOUT", 10.0)


def allowed_origins() -> List[str]:
    """CORS origins for the HTTP service, ``*`` unless narrowed by the operator."""
    raw = os.getenv("TRIP_LIST_ALLOWED_ORIGINS") or "*"
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


def clamp_page_size(page_size: int, max_page_size: int = MAX_PAGE_SIZE) -> int:
    """Clamp ``page_size`` into ``[1, max_page_size]``."""
    return min(max(1, int(page_size)), max_page_size)
