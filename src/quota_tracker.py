"""Daily call counter for Gemini models.

Counts are kept in ``<data dir>/api_usage.json`` and reset at midnight
Pacific Time, which is when Google's per-day request quotas roll over.
Counting is informational only; calls are never blocked.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict

from src import config

logger = logging.getLogger(__name__)

_PT = timezone(timedelta(hours=-8))  # Pacific Standard, close enough for a daily window
_USAGE_FILE = "api_usage.json"

# Free-tier requests per day. Override with set_quota() for paid plans.
DEFAULT_QUOTAS: Dict[str, int] = {
    config.DEFAULT_MODEL: 20,
    "gemini-2.5-flash": 20,
}


def _tracker_path() -> Path:
    return config.data_dir() / _USAGE_FILE


def _pt_today() -> str:
    return datetime.now(_PT).strftime("%Y-%m-%d")


def _load() -> dict:
    path = _tracker_path()
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Resetting unreadable usage file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _save(data: dict) -> None:
    path = _tracker_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def _count(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _ensure_today(data: dict) -> dict:
    today = _pt_today()
    quotas = data.get("quotas")
    if not isinstance(quotas, dict):
        quotas = {}
    calls = data.get("calls")
    if data.get("date") != today or not isinstance(calls, dict):
        calls = {}
    return {"date": today, "calls": calls, "quotas": quotas}


def record_call(model: str, count: int = 1) -> None:
    data = _ensure_today(_load())
    calls = data.setdefault("calls", {})
    calls[model] = _count(calls.get(model)) + count
    try:
        _save(data)
    except OSError as e:
        logger.warning("Could not persist API usage: %s", e)


def get_usage() -> Dict[str, Dict[str, int]]:
    """{model: {used, quota, remaining}} for today."""
    data = _ensure_today(_load())
    calls = data.get("calls", {})
    custom = data.get("quotas", {})
    models = set(calls) | set(DEFAULT_QUOTAS) | set(custom)
    out: Dict[str, Dict[str, int]] = {}
    for model in sorted(models):
        quota = _count(custom.get(model, DEFAULT_QUOTAS.get(model, 0)))
        used = _count(calls.get(model))
        out[model] = {"used": used, "quota": quota, "remaining": max(0, quota - used)}
    return out


def set_quota(model: str, daily_limit: int) -> None:
    data = _ensure_today(_load())
    data.setdefault("quotas", {})[model] = int(daily_limit)
    _save(data)


def reset_date() -> str:
    return _pt_today()
