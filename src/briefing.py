from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from src.constants import BRIEFING_TOPIC_CARDS
from src.storage import new_id, now_ms
from src.text_cleanup import html_to_text
from src.topic_tree import find_topic, root_topics, walk_tree

logger = logging.getLogger(__name__)

ACTIVITY_COLUMNS = ["topic_id", "topic", "root_topic", "category", "level", "event_id", "recorded_at", "date", "sources", "text"]


def _default_generate(topics: List[Dict[str, Any]]) -> str:
    from src.gemini_service import generate_daily_briefing

    return generate_daily_briefing(topics)


def generate_global_briefing(
    topics: List[Dict[str, Any]],
    now: Optional[int] = None,
    generate: Optional[Callable[[List[Dict[str, Any]]], str]] = None,
) -> Optional[Dict[str, Any]]:
    """Cross-topic briefing over every topic, or None when there is nothing to brief."""
    if not topics:
        return None
    generate = generate or _default_generate
    content = generate(topics)
    briefing = {
        "id": new_id(),
        "timestamp": int(now if now is not None else now_ms()),
        "content": content,
        "topic_ids": [t["id"] for t in topics],
    }
    logger.info("Generated global briefing over %d topic(s)", len(topics))
    return briefing


def briefing_topic_cards(
    briefing: Optional[Dict[str, Any]],
    topics: List[Dict[str, Any]],
    limit: int = BRIEFING_TOPIC_CARDS,
) -> List[Dict[str, Any]]:
    if not briefing:
        return []
    covered = set(briefing.get("topic_ids") or [])
    return [t for t in root_topics(topics) if t.get("id") in covered][:limit]


def _root_title(topics: List[Dict[str, Any]], topic: Dict[str, Any]) -> str:
    current = topic
    seen = set()
    while current.get("parent_id") and current.get("id") not in seen:
        seen.add(current.get("id"))
        parent = find_topic(topics, current.get("parent_id"))
        if parent is None:
            break
        current = parent
    return str(current.get("title") or "")


def activity_frame(topics: List[Dict[str, Any]]) -> pd.DataFrame:
    """One row per tracked event, for the activity chart and exports."""
    rows = []
    for topic, level in walk_tree(topics):
        for event in topic.get("events") or []:
            recorded = datetime.fromtimestamp(int(event.get("timestamp") or 0) / 1000)
            rows.append(
                {
                    "topic_id": topic.get("id"),
                    "topic": topic.get("title"),
                    "root_topic": _root_title(topics, topic),
                    "category": topic.get("category"),
                    "level": level,
                    "event_id": event.get("id"),
                    "recorded_at": recorded,
                    "date": recorded.date(),
                    "sources": ", ".join(event.get("source_urls") or []),
                    "text": html_to_text(event.get("content", "")),
                }
            )
    return pd.DataFrame(rows, columns=ACTIVITY_COLUMNS)
