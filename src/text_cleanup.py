from __future__ import annotations

import re
from datetime import datetime
from html import unescape
from typing import Optional

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)
_BLOCK_TAG_RE = re.compile(r"</?(?:p|div|h[1-6]|ul|ol|li|br|hr|tr|table|section|article)\b[^>]*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_SCRIPT_RE = re.compile(r"<(script|style)\b.*?</\1\s*>", re.IGNORECASE | re.DOTALL)

DEFAULT_TIME_FORMAT = "%Y-%m-%d %H:%M"


def strip_code_fences(text: str) -> str:
    """Unwrap a reply the model wrapped in a Markdown code fence anyway."""
    if not isinstance(text, str):
        return ""
    m = _FENCE_RE.match(text)
    return (m.group(1) if m else text).strip()


def html_to_text(html: str) -> str:
    """Plain text for exports and prompts. Block tags become line breaks."""
    if not isinstance(html, str) or not html.strip():
        return ""
    text = _SCRIPT_RE.sub(" ", html)
    text = _BLOCK_TAG_RE.sub("\n", text)
    text = _TAG_RE.sub("", text)
    text = unescape(text)
    lines = [re.sub(r"[ \t\u00a0]+", " ", ln).strip() for ln in text.split("\n")]
    return "\n".join(ln for ln in lines if ln)


def sanitize_model_html(html: str) -> str:
    """Drop script/style blocks before the HTML is rendered with unsafe_allow_html."""
    if not isinstance(html, str):
        return ""
    return _SCRIPT_RE.sub("", strip_code_fences(html))


def format_timestamp(ms: Optional[int], fmt: str = DEFAULT_TIME_FORMAT) -> str:
    if not ms:
        return "never"
    try:
        return datetime.fromtimestamp(int(ms) / 1000).strftime(fmt)
    except (OverflowError, OSError, ValueError):
        return "unknown"
