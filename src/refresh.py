from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from src.events import apply_update
from src.storage import now_ms
from src.topic_tree import TopicError, children_of, find_topic, walk_tree

logger = logging.getLogger(__name__)

FetchFn = Callable[[Dict[str, Any], List[Dict[str, Any]]], Dict[str, Any]]


def _default_fetch(topic: Dict[str, Any], subtopics: List[Dict[str, Any]]) -> Dict[str, Any]:
    from src.gemini_service import fetch_topic_updates

    return fetch_topic_updates(topic, subtopics)


def refresh_topic(
    topics: List[Dict[str, Any]],
    topic_id: str,
    now: Optional[int] = None,
    fetch: Optional[FetchFn] = None,
) -> List[Dict[str, Any]]:
    """Fetch one update for ``topic_id`` (direct children as context) and append it."""
    topic = find_topic(topics, topic_id)
    if topic is None:
        raise TopicError(f"Unknown topic: {topic_id}")
    fetch = fetch or _default_fetch
    result = fetch(topic, children_of(topics, topic_id))
    updated = apply_update(
        topic,
        result.get("summary", ""),
        result.get("sources") or [],
        result.get("relevant_websites") or [],
        now=now if now is not None else now_ms(),
    )
    return [updated if t.get("id") == topic_id else t for t in topics]


def stale_topics(topics: List[Dict[str, Any]], max_age_hours: float, now: Optional[int] = None) -> List[Dict[str, Any]]:
    """Never-fetched topics plus those last fetched more than ``max_age_hours`` ago, in tree order."""
    now = now if now is not None else now_ms()
    cutoff = now - int(max_age_hours * 3600 * 1000)
    return [
        t for t, _level in walk_tree(topics)
        if not t.get("last_updated") or int(t.get("last_updated") or 0) <= cutoff
    ]


def refresh_stale(
    topics: List[Dict[str, Any]],
    max_age_hours: float,
    now: Optional[int] = None,
    fetch: Optional[FetchFn] = None,
) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """Refresh every stale topic; one failure does not stop the run."""
    report: Dict[str, Any] = {"refreshed": [], "failed": {}, "skipped": 0}
    due = stale_topics(topics, max_age_hours, now=now)
    report["skipped"] = len(topics) - len(due)
    for topic in due:
        tid = topic["id"]
        try:
            topics = refresh_topic(topics, tid, now=now, fetch=fetch)
        except Exception as e:
            logger.warning("Refresh failed for %r: %s", topic.get("title"), e)
            report["failed"][tid] = str(e)
            continue
        report["refreshed"].append(tid)
    logger.info(
        "Refresh run: %d refreshed, %d failed, %d fresh",
        len(report["refreshed"]),
        len(report["failed"]),
        report["skipped"],
    )
    return topics, report
