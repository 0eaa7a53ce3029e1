"""Topic forest keyed by parent pointers.

Topics are plain dicts (see ``src.constants.TOPIC_KEYS``). Every operation
returns a new list and leaves its input untouched; callers persist the result.
"""
from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from src.constants import DEFAULT_CATEGORY, MIN_SELECTION_CHARS
from src.storage import new_id


class TopicError(ValueError):
    """Raised for invalid topic-tree operations."""


def new_topic(
    title: str,
    description: str = "",
    category: str = DEFAULT_CATEGORY,
    parent_id: Optional[str] = None,
) -> Dict[str, Any]:
    title = (title or "").strip()
    if not title:
        raise TopicError("Topic title must not be empty.")
    return {
        "id": new_id(),
        "title": title,
        "description": (description or "").strip(),
        "category": (category or "").strip() or DEFAULT_CATEGORY,
        "events": [],
        "last_updated": 0,
        "parent_id": parent_id or None,
        "relevant_sources": [],
    }


def find_topic(topics: List[Dict[str, Any]], topic_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not topic_id:
        return None
    return next((t for t in topics if t.get("id") == topic_id), None)


def _require(topics: List[Dict[str, Any]], topic_id: Optional[str]) -> Dict[str, Any]:
    topic = find_topic(topics, topic_id)
    if topic is None:
        raise TopicError(f"Unknown topic: {topic_id}")
    return topic


def children_of(topics: List[Dict[str, Any]], topic_id: Optional[str]) -> List[Dict[str, Any]]:
    if not topic_id:
        return []
    return [t for t in topics if t.get("parent_id") == topic_id]


def root_topics(topics: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Topics without a parent. Orphans (dangling parent_id) count as roots."""
    ids = {t.get("id") for t in topics}
    return [t for t in topics if not t.get("parent_id") or t.get("parent_id") not in ids]


def descendant_ids(topics: List[Dict[str, Any]], topic_id: str) -> Set[str]:
    out: Set[str] = set()
    frontier = [topic_id]
    while frontier:
        current = frontier.pop()
        for child in children_of(topics, current):
            cid = child.get("id")
            if cid and cid not in out and cid != topic_id:
                out.add(cid)
                frontier.append(cid)
    return out


def walk_tree(topics: List[Dict[str, Any]]) -> Iterator[Tuple[Dict[str, Any], int]]:
    """Depth-first (topic, level) pairs in insertion order."""
    seen: Set[str] = set()

    def _walk(topic: Dict[str, Any], level: int) -> Iterator[Tuple[Dict[str, Any], int]]:
        tid = topic.get("id")
        if tid in seen:
            return
        seen.add(tid)
        yield topic, level
        for child in children_of(topics, tid):
            yield from _walk(child, level + 1)

    for root in root_topics(topics):
        yield from _walk(root, 0)


def topic_path(topics: List[Dict[str, Any]], topic_id: str) -> List[str]:
    """Titles from the root down to ``topic_id``."""
    path: List[str] = []
    seen: Set[str] = set()
    current = find_topic(topics, topic_id)
    while current is not None and current.get("id") not in seen:
        seen.add(current.get("id"))
        path.append(str(current.get("title") or ""))
        current = find_topic(topics, current.get("parent_id"))
    return list(reversed(path))


def add_topic(topics: List[Dict[str, Any]], topic: Dict[str, Any]) -> List[Dict[str, Any]]:
    if find_topic(topics, topic.get("id")) is not None:
        raise TopicError(f"Duplicate topic id: {topic.get('id')}")
    parent_id = topic.get("parent_id")
    if parent_id and find_topic(topics, parent_id) is None:
        raise TopicError(f"Unknown parent topic: {parent_id}")
    return [*topics, topic]


def update_topic(topics: List[Dict[str, Any]], updated: Dict[str, Any]) -> List[Dict[str, Any]]:
    topic_id = updated.get("id")
    _require(topics, topic_id)
    parent_id = updated.get("parent_id")
    if parent_id:
        if parent_id == topic_id or parent_id in descendant_ids(topics, topic_id):
            raise TopicError("A topic cannot be moved under itself or one of its subtopics.")
        _require(topics, parent_id)
    if not str(updated.get("title") or "").strip():
        raise TopicError("Topic title must not be empty.")
    return [updated if t.get("id") == topic_id else t for t in topics]


def edit_topic(
    topics: List[Dict[str, Any]],
    topic_id: str,
    title: str,
    description: str,
    category: str,
) -> List[Dict[str, Any]]:
    """Apply the edit-form fields. Events, sources and timestamps are kept."""
    current = _require(topics, topic_id)
    updated = {
        **current,
        "title": (title or "").strip(),
        "description": (description or "").strip(),
        "category": (category or "").strip() or DEFAULT_CATEGORY,
    }
    return update_topic(topics, updated)


def delete_topic(topics: List[Dict[str, Any]], topic_id: str) -> Tuple[List[Dict[str, Any]], Set[str]]:
    """Remove a topic with its whole subtree. Returns (remaining, deleted_ids)."""
    _require(topics, topic_id)
    doomed = {topic_id} | descendant_ids(topics, topic_id)
    return [t for t in topics if t.get("id") not in doomed], doomed


def add_subtopic_from_selection(
    topics: List[Dict[str, Any]],
    text: str,
    parent_id: str,
) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """Turn highlighted text from a parent's event log into a focus-point child topic."""
    parent = _require(topics, parent_id)
    title = " ".join((text or "").split())
    if len(title) < MIN_SELECTION_CHARS:
        raise TopicError(f"Select at least {MIN_SELECTION_CHARS} characters to create a focus point.")
    child = new_topic(
        title,
        description=f'Focus point for "{parent.get("title")}": {title}',
        category=parent.get("category") or DEFAULT_CATEGORY,
        parent_id=parent_id,
    )
    return add_topic(topics, child), child
