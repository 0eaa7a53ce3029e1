"""Runtime settings.

Every setting is read from the environment first and then from Streamlit
secrets (``.streamlit/secrets.toml``), so the same code works from the app
and from the scripts in ``scripts/``.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

ROOT_DIR = Path(__file__).resolve().parents[1]

DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_LANGUAGE = "English"
DEFAULT_BRIEFING_RECENT_EVENTS = 3
DEFAULT_STALE_HOURS = 24
DEFAULT_LOG_LEVEL = "INFO"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _from_secrets(name: str) -> Optional[Any]:
    try:
        import streamlit as st

        return st.secrets.get(name)
    except Exception:
        # No secrets file or not running under Streamlit.
        return None


def get_setting(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        value = _from_secrets(name)
    if value is None or not str(value).strip():
        return default
    return str(value).strip()


def _int_setting(name: str, default: int) -> int:
    raw = get_setting(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring non-integer %s=%r", name, raw)
        return default


def api_key() -> Optional[str]:
    return get_setting("GEMINI_API_KEY")


def model_name() -> str:
    return get_setting("EVENTPULSE_MODEL", DEFAULT_MODEL) or DEFAULT_MODEL


def response_language() -> str:
    return get_setting("EVENTPULSE_LANGUAGE", DEFAULT_LANGUAGE) or DEFAULT_LANGUAGE


def data_dir() -> Path:
    raw = get_setting("EVENTPULSE_DATA_DIR")
    return Path(raw) if raw else ROOT_DIR / "data"


def briefing_recent_events() -> int:
    return max(1, _int_setting("EVENTPULSE_BRIEFING_RECENT_EVENTS", DEFAULT_BRIEFING_RECENT_EVENTS))


def stale_hours() -> int:
    return max(0, _int_setting("EVENTPULSE_STALE_HOURS", DEFAULT_STALE_HOURS))


def configure_logging(level: Optional[str] = None) -> None:
    """Install a root handler once. Safe to call on every Streamlit rerun."""
    name = (level or get_setting("EVENTPULSE_LOG_LEVEL", DEFAULT_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=_LOG_FORMAT)
    root.setLevel(getattr(logging, name, logging.INFO))
