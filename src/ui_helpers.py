"""Session-state plumbing shared by the Streamlit pages.

Persisted state is loaded into ``st.session_state`` once per browser session
and written back only by ``commit_topics`` / ``commit_briefing``, so a fresh
session never overwrites stored topics with an empty list.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import streamlit as st

from src import storage

logger = logging.getLogger(__name__)

_TOPICS_KEY = "_topics"
_TOPICS_ORIGIN_KEY = "_topics_origin"
_BRIEFING_KEY = "_briefing"
_ACTIVE_TOPIC_KEY = "active_topic_id"
_CHAT_KEY = "_chat_by_topic"
_NAV_LOCK_ACTIVE_KEY = "_nav_lock_active"
_NAV_LOCK_OWNER_KEY = "_nav_lock_owner"
_NAV_LOCK_REASON_KEY = "_nav_lock_reason"
_NAV_LOCK_SET_AT_KEY = "_nav_lock_set_at"
_NAV_LOCK_TTL_SECONDS = 10 * 60

PAGE_PATHS = {
    "home": "Home.py",
    "topics": "pages/01_Topics.py",
    "detail": "pages/02_Topic_Detail.py",
    "admin": "pages/03_Admin.py",
}


def load_state() -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
    if _TOPICS_KEY not in st.session_state:
        topics, origin = storage.load_topics()
        st.session_state[_TOPICS_KEY] = topics
        st.session_state[_TOPICS_ORIGIN_KEY] = origin
        st.session_state[_BRIEFING_KEY] = storage.load_briefing()
        logger.info("Loaded %d topic(s) from %s storage", len(topics), origin)
    return st.session_state[_TOPICS_KEY], st.session_state[_BRIEFING_KEY]


def get_topics() -> List[Dict[str, Any]]:
    return load_state()[0]


def get_briefing() -> Optional[Dict[str, Any]]:
    return load_state()[1]


def storage_origin() -> str:
    load_state()
    return str(st.session_state.get(_TOPICS_ORIGIN_KEY) or "empty")


def commit_topics(topics: List[Dict[str, Any]]) -> None:
    st.session_state[_TOPICS_KEY] = topics
    storage.save_topics(topics)
    st.session_state[_TOPICS_ORIGIN_KEY] = "v3"
    known = {t.get("id") for t in topics}
    if get_active_topic_id() not in known:
        set_active_topic(None)
    chats = st.session_state.get(_CHAT_KEY) or {}
    for tid in [k for k in chats if k not in known]:
        chats.pop(tid, None)


def commit_briefing(briefing: Optional[Dict[str, Any]]) -> None:
    st.session_state[_BRIEFING_KEY] = briefing
    storage.save_briefing(briefing)


def reset_state() -> None:
    """Wipe local storage and the in-session copy."""
    storage.clear_all()
    st.session_state[_TOPICS_KEY] = []
    st.session_state[_TOPICS_ORIGIN_KEY] = "empty"
    st.session_state[_BRIEFING_KEY] = None
    st.session_state[_CHAT_KEY] = {}
    set_active_topic(None)


def get_active_topic_id() -> Optional[str]:
    return st.session_state.get(_ACTIVE_TOPIC_KEY)


def set_active_topic(topic_id: Optional[str]) -> None:
    st.session_state[_ACTIVE_TOPIC_KEY] = topic_id


def open_topic(topic_id: str) -> None:
    set_active_topic(topic_id)
    st.switch_page(PAGE_PATHS["detail"])


def chat_history(topic_id: str) -> List[Dict[str, Any]]:
    chats = st.session_state.setdefault(_CHAT_KEY, {})
    return chats.setdefault(topic_id, [])


def set_chat_history(topic_id: str, history: List[Dict[str, Any]]) -> None:
    st.session_state.setdefault(_CHAT_KEY, {})[topic_id] = history


def set_navigation_lock(active: bool, owner_page: str, reason: str = "Processing") -> None:
    if active:
        st.session_state[_NAV_LOCK_ACTIVE_KEY] = True
        st.session_state[_NAV_LOCK_OWNER_KEY] = str(owner_page or "home")
        st.session_state[_NAV_LOCK_REASON_KEY] = str(reason or "Processing")
        st.session_state[_NAV_LOCK_SET_AT_KEY] = int(time.time())
        return
    for key in (_NAV_LOCK_ACTIVE_KEY, _NAV_LOCK_OWNER_KEY, _NAV_LOCK_REASON_KEY, _NAV_LOCK_SET_AT_KEY):
        st.session_state.pop(key, None)


def _lock_state() -> Tuple[bool, str, str]:
    active = bool(st.session_state.get(_NAV_LOCK_ACTIVE_KEY, False))
    owner = str(st.session_state.get(_NAV_LOCK_OWNER_KEY, "") or "")
    reason = str(st.session_state.get(_NAV_LOCK_REASON_KEY, "Processing") or "Processing")
    set_at = int(st.session_state.get(_NAV_LOCK_SET_AT_KEY, 0) or 0)
    if active and set_at > 0 and (int(time.time()) - set_at) > _NAV_LOCK_TTL_SECONDS:
        set_navigation_lock(False, owner_page=owner)
        return False, "", ""
    return active, owner, reason


def enforce_navigation_lock(current_page: str) -> None:
    """Send the user back to the page running a Gemini call until it finishes."""
    active, owner, reason = _lock_state()
    if not active or owner == str(current_page or "").strip().lower():
        return
    st.warning(f"{reason} is running. Stay on the active page until it completes.")
    try:
        st.switch_page(PAGE_PATHS.get(owner, PAGE_PATHS["home"]))
    except Exception:
        logger.debug("switch_page to %s failed", owner, exc_info=True)
    st.stop()
