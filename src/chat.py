from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from src.constants import CHAT_FALLBACK_TEXT
from src.gemini_service import GeminiServiceError
from src.storage import now_ms

logger = logging.getLogger(__name__)

ReplyFn = Callable[[Dict[str, Any], str, List[Dict[str, Any]]], str]


def _default_reply(topic: Dict[str, Any], query: str, history: List[Dict[str, Any]]) -> str:
    from src.gemini_service import deep_dive_chat

    return deep_dive_chat(topic, query, history)


def message(role: str, content: str, timestamp: Optional[int] = None) -> Dict[str, Any]:
    return {"role": role, "content": content, "timestamp": int(timestamp if timestamp is not None else now_ms())}


def send_message(
    topic: Dict[str, Any],
    history: List[Dict[str, Any]],
    query: str,
    now: Optional[int] = None,
    reply: Optional[ReplyFn] = None,
) -> List[Dict[str, Any]]:
    """Append the user's question and the model's answer to a copy of ``history``.

    A blank query is ignored. If the model call fails the answer is a fixed
    fallback message so the conversation stays usable.
    """
    query = (query or "").strip()
    if not query:
        return list(history)
    reply = reply or _default_reply
    prior = list(history)
    out = [*prior, message("user", query, now)]
    try:
        answer = reply(topic, query, prior)
    except GeminiServiceError as e:
        logger.warning("Chat reply failed for %r: %s", topic.get("title"), e)
        answer = CHAT_FALLBACK_TEXT
    out.append(message("model", answer, now))
    return out
