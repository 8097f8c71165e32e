"""Environment-driven settings.

Values are read on every call so a running process (or a test using
``monkeypatch.setenv``) picks up changes without re-importing.
"""
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_INTERVAL_HOURS = 1.0
DEFAULT_REQUEST_EXPIRY_HOURS = 24.0

MAX_NOTE_LENGTH = 500
MIN_PERSONS = 1
MAX_PERSONS = 8


def _env_hours(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", name, raw, default)
        return default
    return value


def cleanup_interval_hours() -> float:
    return _env_hours("AUTO_CLEANUP_INTERVAL_HOURS", DEFAULT_CLEANUP_INTERVAL_HOURS)


def request_expiry_hours() -> float:
    return _env_hours("REQUEST_EXPIRY_HOURS", DEFAULT_REQUEST_EXPIRY_HOURS)


def auto_cleanup_enabled() -> bool:
    return os.environ.get("AUTO_CLEANUP_ENABLED", "true").strip().lower() not in ("0", "false", "no", "off")


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()
