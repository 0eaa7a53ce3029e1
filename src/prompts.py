from __future__ import annotations

from typing import Any, Dict, List, Optional

from src.constants import EMPTY_EVENT_DB_TEXT
from src.events import recent_events
from src.text_cleanup import format_timestamp, html_to_text

_HTML_RULE = (
    "Your answer must be plain HTML. Use tags such as <h3>, <p>, <ul>, <li> and <strong>. "
    "Do not wrap the answer in a Markdown code block and do not use Markdown."
)


def time_window_clause(topic: Dict[str, Any]) -> str:
    last_updated = int(topic.get("last_updated") or 0)
    if last_updated == 0:
        return (
            "This is a new topic: search across its full history, covering its origins, "
            "the current state of play and every key milestone."
        )
    return f"Search for the latest developments since {format_timestamp(last_updated)}."


def source_clause(topic: Dict[str, Any]) -> str:
    sources = topic.get("relevant_sources") or []
    if sources:
        return "Prefer information from these sites, already known to be highly relevant: " + ", ".join(sources) + "."
    return "While searching, identify and list 3-5 specialist news sites or official sources highly relevant to this topic."


def subtopic_clause(subtopics: Optional[List[Dict[str, Any]]]) -> str:
    titles = [str(s.get("title") or "").strip() for s in subtopics or []]
    titles = [t for t in titles if t]
    if not titles:
        return ""
    return (
        "This topic has the following sub-focus points; prioritise developments related to them: "
        + ", ".join(titles)
        + "."
    )


def build_update_prompt(
    topic: Dict[str, Any],
    subtopics: Optional[List[Dict[str, Any]]] = None,
    language: str = "English",
) -> str:
    rules = [
        time_window_clause(topic),
        source_clause(topic),
        subtopic_clause(subtopics),
        _HTML_RULE,
        "After the event summary, list the relevant sites you identified on a final line in the form "
        "[RELEVANT_SITES: url1, url2].",
    ]
    numbered = "\n".join(f"  {i}. {rule}" for i, rule in enumerate((r for r in rules if r), start=1))
    return (
        "You are an intelligence specialist.\n"
        f"  Topic: {topic.get('title', '')}\n"
        f"  Description: {topic.get('description', '')}\n\n"
        "  Requirements:\n"
        f"{numbered}\n\n"
        f"  Answer in {language}."
    )


def _briefing_block(topic: Dict[str, Any], recent_n: int) -> str:
    entries = "<br>".join(
        f"[{format_timestamp(e.get('timestamp'), '%Y-%m-%d')}] {html_to_text(e.get('content', ''))}"
        for e in recent_events(topic, recent_n)
    )
    return (
        f"Topic: {topic.get('title', '')}<br>"
        f"Key background: {topic.get('description', '')}<br>"
        f"Recent entries:<br>{entries}"
    )


def build_briefing_prompt(topics: List[Dict[str, Any]], recent_n: int = 3, language: str = "English") -> str:
    data = "<hr>".join(_briefing_block(t, recent_n) for t in topics)
    return (
        "You are a chief intelligence analyst. Using the tracking data for the independent topics below, "
        "produce a consolidated HTML intelligence briefing.\n\n"
        "  Requirements:\n"
        "  1. Look for links and potential knock-on effects between different topics, including across domains.\n"
        "  2. Use the layout of a high-end weekly intelligence digest.\n"
        "  3. Keep the tone professional, rigorous and insightful.\n"
        "  4. Markdown is strictly forbidden.\n"
        f"  5. Answer in {language}.\n\n"
        "  Data to process:\n"
        f"  {data}"
    )


def build_event_transcript(topic: Dict[str, Any]) -> str:
    events = topic.get("events") or []
    if not events:
        return EMPTY_EVENT_DB_TEXT
    return "\n\n".join(
        f"Entry #{idx} (recorded {format_timestamp(e.get('timestamp'))})\nContent: {html_to_text(e.get('content', ''))}"
        for idx, e in enumerate(events, start=1)
    )


def build_chat_system_instruction(topic: Dict[str, Any], language: str = "English") -> str:
    return (
        f'You are a deep-analysis expert. The user is discussing the topic "{topic.get("title", "")}" '
        f"(description: {topic.get('description', '')}) with you.\n\n"
        "  [EVENT DATABASE - CRITICAL]\n"
        "  These are all the event entries the system has tracked and stored so far:\n"
        f"{build_event_transcript(topic)}\n\n"
        "  [ANSWER RULES]\n"
        "  1. When the user mentions \"these entries\", \"the messages above\" or \"the tracked content\", "
        "refer precisely to the [EVENT DATABASE] above, citing entries by number.\n"
        "  2. Compare how things changed between entries recorded at different times.\n"
        "  3. Combine your own knowledge and Google Search to comment on, explain or forecast from these entries.\n"
        f"  4. {_HTML_RULE}\n"
        f"  5. Answer in {language}."
    )
