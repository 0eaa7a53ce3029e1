"""Event accumulation: turning one model reply into an appended log entry."""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from src.constants import RELEVANT_SITES_PATTERN
from src.storage import new_id, now_ms

_SITES_RE = re.compile(RELEVANT_SITES_PATTERN)


def parse_relevant_sites(raw_text: str) -> Tuple[str, List[str]]:
    """Split the trailing ``[RELEVANT_SITES: ...]`` marker from a reply.

    Only the first marker is removed; entries that are not http(s) URLs are
    dropped.
    """
    text = raw_text or ""
    m = _SITES_RE.search(text)
    if not m:
        return text.strip(), []
    sites = [s.strip() for s in m.group(1).split(",")]
    sites = merge_sources([], [s for s in sites if s.startswith("http")])
    summary = (text[: m.start()] + text[m.end():]).strip()
    return summary, sites


def merge_sources(existing: Optional[Iterable[str]], new: Optional[Iterable[str]]) -> List[str]:
    out: List[str] = []
    seen = set()
    for url in list(existing or []) + list(new or []):
        s = str(url or "").strip()
        if s and s not in seen:
            seen.add(s)
            out.append(s)
    return out


def new_event(content: str, source_urls: Optional[Iterable[str]] = None, timestamp: Optional[int] = None) -> Dict[str, Any]:
    return {
        "id": new_id(),
        "timestamp": int(timestamp if timestamp is not None else now_ms()),
        "content": content or "",
        "source_urls": merge_sources([], source_urls),
    }


def apply_update(
    topic: Dict[str, Any],
    summary: str,
    sources: Optional[Iterable[str]],
    relevant_websites: Optional[Iterable[str]],
    now: Optional[int] = None,
) -> Dict[str, Any]:
    ts = int(now if now is not None else now_ms())
    return {
        **topic,
        "events": [*(topic.get("events") or []), new_event(summary, sources, ts)],
        "last_updated": ts,
        "relevant_sources": merge_sources(topic.get("relevant_sources"), relevant_websites),
    }


def recent_events(topic: Dict[str, Any], n: int) -> List[Dict[str, Any]]:
    events = topic.get("events") or []
    return events[-n:] if n > 0 else []


def numbered_events(topic: Dict[str, Any]) -> Iterator[Tuple[int, Dict[str, Any]]]:
    """Newest first, numbered by chronological position (1 = oldest)."""
    events = topic.get("events") or []
    for idx in range(len(events), 0, -1):
        yield idx, events[idx - 1]
