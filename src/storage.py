from __future__ import annotations

import json
import logging
import os
import tempfile
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from src import config
from src.constants import (
    BRIEFING_KEY,
    DEFAULT_CATEGORY,
    LEGACY_EVENT_FIELDS,
    LEGACY_TOPIC_FIELDS,
    LEGACY_TOPICS_KEY,
    SCHEMA_VERSION,
    STORAGE_KEYS,
    TOPICS_KEY,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def new_id() -> str:
    return uuid.uuid4().hex


def now_ms() -> int:
    return int(time.time() * 1000)


def ensure_dirs() -> Path:
    path = config.data_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def key_path(key: str) -> Path:
    return config.data_dir() / f"{key}.json"


def _read_key(key: str) -> Any:
    """Parsed JSON for ``key``; ``_MISSING`` when absent or unreadable."""
    path = key_path(key)
    if not path.exists():
        return _MISSING
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Could not read %s: %s", path, e)
        return _MISSING


def _write_key(key: str, value: Any) -> None:
    ensure_dirs()
    path = key_path(key)
    fd, tmp = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(value, f, ensure_ascii=False, indent=1)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    out: List[str] = []
    for item in value:
        s = str(item or "").strip()
        if s and s not in out:
            out.append(s)
    return out


def normalize_event(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(raw.get("id") or new_id()),
        "timestamp": _as_int(raw.get("timestamp")),
        "content": str(raw.get("content") or ""),
        "source_urls": _str_list(raw.get("source_urls")),
    }


def normalize_topic(raw: Dict[str, Any]) -> Dict[str, Any]:
    events = raw.get("events") if isinstance(raw.get("events"), list) else []
    return {
        "id": str(raw.get("id") or new_id()),
        "title": str(raw.get("title") or "").strip() or "Untitled",
        "description": str(raw.get("description") or ""),
        "category": str(raw.get("category") or "").strip() or DEFAULT_CATEGORY,
        "events": [normalize_event(e) for e in events if isinstance(e, dict)],
        "last_updated": _as_int(raw.get("last_updated")),
        "parent_id": raw.get("parent_id") or None,
        "relevant_sources": _str_list(raw.get("relevant_sources")),
    }


def _rename_keys(raw: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
    return {mapping.get(k, k): v for k, v in raw.items()}


def migrate_v2_topic(raw: Dict[str, Any]) -> Dict[str, Any]:
    """camelCase v2 topic -> normalized v3 topic."""
    topic = _rename_keys(raw, LEGACY_TOPIC_FIELDS)
    events = topic.get("events") if isinstance(topic.get("events"), list) else []
    topic["events"] = [_rename_keys(e, LEGACY_EVENT_FIELDS) for e in events if isinstance(e, dict)]
    return normalize_topic(topic)


def _sits_in_cycle(topic: Dict[str, Any], by_id: Dict[str, Dict[str, Any]]) -> bool:
    start = topic["id"]
    seen = set()
    parent_id = topic.get("parent_id")
    while parent_id and parent_id in by_id and parent_id not in seen:
        if parent_id == start:
            return True
        seen.add(parent_id)
        parent_id = by_id[parent_id].get("parent_id")
    return False


def repair_forest(topics: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Make loaded topics a valid forest.

    Later topics reusing an id get a fresh one. A topic whose parent chain
    leads back to itself is detached and becomes a root.
    """
    out: List[Dict[str, Any]] = []
    ids = set()
    for topic in topics:
        topic = dict(topic)
        if topic["id"] in ids:
            fresh = new_id()
            logger.warning("Duplicate topic id %s on %r, reassigned to %s", topic["id"], topic["title"], fresh)
            topic["id"] = fresh
        ids.add(topic["id"])
        out.append(topic)

    by_id = {t["id"]: t for t in out}
    for topic in out:
        if _sits_in_cycle(topic, by_id):
            logger.warning("Topic %r is part of a parent cycle, detached to the top level", topic["title"])
            topic["parent_id"] = None
    return out


def _topics_from_v3(payload: Any) -> Optional[List[Dict[str, Any]]]:
    if isinstance(payload, dict) and isinstance(payload.get("topics"), list):
        version = payload.get("schema_version")
        if version != SCHEMA_VERSION:
            logger.warning("Topics file has schema_version=%r, reading as v%d", version, SCHEMA_VERSION)
        return repair_forest([normalize_topic(t) for t in payload["topics"] if isinstance(t, dict)])
    logger.error("Ignoring malformed %s payload (%s)", TOPICS_KEY, type(payload).__name__)
    return None


def load_legacy_topics() -> Optional[List[Dict[str, Any]]]:
    """Migrated v2 topics, or None when there is no readable v2 file."""
    legacy = _read_key(LEGACY_TOPICS_KEY)
    if legacy is _MISSING:
        return None
    if not isinstance(legacy, list):
        logger.error("Ignoring malformed %s payload (%s)", LEGACY_TOPICS_KEY, type(legacy).__name__)
        return None
    topics = repair_forest([migrate_v2_topic(t) for t in legacy if isinstance(t, dict)])
    logger.info("Migrated %d topic(s) from %s", len(topics), LEGACY_TOPICS_KEY)
    return topics


def load_topics() -> Tuple[List[Dict[str, Any]], str]:
    """Return (topics, origin) where origin is 'v3', 'v2' or 'empty'."""
    payload = _read_key(TOPICS_KEY)
    if payload is not _MISSING:
        topics = _topics_from_v3(payload)
        if topics is not None:
            return topics, "v3"

    legacy = load_legacy_topics()
    if legacy is not None:
        return legacy, "v2"

    return [], "empty"


def save_topics(topics: List[Dict[str, Any]]) -> None:
    _write_key(TOPICS_KEY, {"schema_version": SCHEMA_VERSION, "topics": topics})
    logger.debug("Saved %d topic(s)", len(topics))


def load_briefing() -> Optional[Dict[str, Any]]:
    payload = _read_key(BRIEFING_KEY)
    if payload is _MISSING or not isinstance(payload, dict) or not payload.get("content"):
        return None
    return {
        "id": str(payload.get("id") or new_id()),
        "timestamp": _as_int(payload.get("timestamp")),
        "content": str(payload.get("content") or ""),
        "topic_ids": _str_list(payload.get("topic_ids", payload.get("topicIds"))),
    }


def save_briefing(briefing: Optional[Dict[str, Any]]) -> None:
    if not briefing:
        return
    _write_key(BRIEFING_KEY, briefing)


def clear_all() -> List[str]:
    """Delete every stored key. Returns the keys that existed."""
    removed: List[str] = []
    for key in STORAGE_KEYS:
        path = key_path(key)
        if path.exists():
            path.unlink()
            removed.append(key)
    logger.info("Cleared local storage: %s", ", ".join(removed) or "nothing stored")
    return removed
