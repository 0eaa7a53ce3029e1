"""Gemini calls: topic updates, the global briefing and deep-dive chat.

The provider is treated as a black box: a prompt goes in, text (and, with
Google Search grounding, source URLs) comes out. Every failure surfaces as
GeminiServiceError.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from src import config
from src.constants import BRIEFING_PENDING_TEXT, CHAT_FALLBACK_TEXT, CHAT_PENDING_TEXT, NO_UPDATES_TEXT
from src.events import parse_relevant_sites
from src.prompts import build_briefing_prompt, build_chat_system_instruction, build_update_prompt
from src.quota_tracker import record_call
from src.text_cleanup import strip_code_fences

logger = logging.getLogger(__name__)


class GeminiServiceError(RuntimeError):
    """Any failure talking to the Gemini API."""


def _genai():
    try:
        from google import genai
        from google.genai import types
    except ImportError as e:
        raise GeminiServiceError("google-genai is not installed. Install it with: pip install google-genai") from e
    return genai, types


def _client():
    key = config.api_key()
    if not key:
        raise GeminiServiceError(
            "GEMINI_API_KEY is not set. Set it in .streamlit/secrets.toml or as an environment variable."
        )
    genai, _types = _genai()
    return genai.Client(api_key=key)


def _generate_config(use_google_search: bool = False, system_instruction: Optional[str] = None):
    _genai_mod, types = _genai()
    kwargs: Dict[str, Any] = {}
    if system_instruction:
        kwargs["system_instruction"] = system_instruction
    if use_google_search:
        kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
    return types.GenerateContentConfig(**kwargs)


def _extract_usage(resp: Any, model_used: str) -> Dict[str, Any]:
    usage = getattr(resp, "usage_metadata", None)
    return {
        "model": model_used,
        "prompt_tokens": getattr(usage, "prompt_token_count", None),
        "output_tokens": getattr(usage, "candidates_token_count", None),
        "total_tokens": getattr(usage, "total_token_count", None),
    }


def grounding_sources(resp: Any) -> List[str]:
    """web.uri of every grounding chunk on the first candidate, in order."""
    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []
    out: List[str] = []
    for chunk in chunks:
        uri = getattr(getattr(chunk, "web", None), "uri", None)
        if uri:
            out.append(uri)
    return out


def generate_text(
    prompt: str,
    *,
    model: Optional[str] = None,
    use_google_search: bool = False,
) -> Tuple[str, Any, Dict[str, Any]]:
    """Single generate_content call. Returns (text, raw_response, usage)."""
    model = model or config.model_name()
    client = _client()
    try:
        resp = client.models.generate_content(
            model=model,
            contents=prompt,
            config=_generate_config(use_google_search=use_google_search),
        )
    except Exception as e:
        logger.error("Gemini generate_content failed (%s): %s", model, e)
        raise GeminiServiceError(f"Gemini API call failed: {e}") from e

    record_call(model)
    usage = _extract_usage(resp, model)
    logger.debug("Gemini usage: %s", usage)
    return strip_code_fences(resp.text or ""), resp, usage


def fetch_topic_updates(
    topic: Dict[str, Any],
    subtopics: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Search for new developments on ``topic``.

    Returns {"summary", "sources", "relevant_websites"} where ``sources`` are the
    grounding URLs and ``relevant_websites`` the sites named in the reply marker.
    """
    prompt = build_update_prompt(topic, subtopics or [], language=config.response_language())
    text, resp, _usage = generate_text(prompt, use_google_search=True)
    summary, relevant = parse_relevant_sites(text or NO_UPDATES_TEXT)
    logger.info(
        "Fetched update for %r: %d grounding source(s), %d relevant site(s)",
        topic.get("title"),
        len(grounding_sources(resp)),
        len(relevant),
    )
    return {
        "summary": summary or NO_UPDATES_TEXT,
        "sources": grounding_sources(resp),
        "relevant_websites": relevant,
    }


def generate_daily_briefing(topics: List[Dict[str, Any]]) -> str:
    prompt = build_briefing_prompt(
        topics,
        recent_n=config.briefing_recent_events(),
        language=config.response_language(),
    )
    text, _resp, _usage = generate_text(prompt)
    return text or BRIEFING_PENDING_TEXT


def _history_contents(history: Optional[List[Dict[str, Any]]]) -> List[Any]:
    _genai_mod, types = _genai()
    out = []
    for msg in history or []:
        role = msg.get("role")
        content = str(msg.get("content") or "")
        if role not in ("user", "model") or not content.strip():
            continue
        if role == "model" and content == CHAT_FALLBACK_TEXT:
            continue
        out.append(types.Content(role=role, parts=[types.Part(text=content)]))
    return out


def deep_dive_chat(
    topic: Dict[str, Any],
    query: str,
    history: Optional[List[Dict[str, Any]]] = None,
) -> str:
    """Answer ``query`` against the topic's event database, replaying earlier turns."""
    model = config.model_name()
    client = _client()
    system_instruction = build_chat_system_instruction(topic, language=config.response_language())
    try:
        chat = client.chats.create(
            model=model,
            config=_generate_config(use_google_search=True, system_instruction=system_instruction),
            history=_history_contents(history),
        )
        resp = chat.send_message(query)
    except Exception as e:
        logger.error("Gemini chat failed for %r: %s", topic.get("title"), e)
        raise GeminiServiceError(f"Gemini chat failed: {e}") from e

    record_call(model)
    return strip_code_fences(resp.text or "") or CHAT_PENDING_TEXT
