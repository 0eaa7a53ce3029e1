import streamlit as st

from src import ui
from src.chat import send_message
from src.constants import EVENT_SOURCE_LINKS_SHOWN, MIN_SELECTION_CHARS
from src.events import numbered_events
from src.gemini_service import GeminiServiceError
from src.refresh import refresh_topic
from src.text_cleanup import format_timestamp, sanitize_model_html
from src.topic_tree import TopicError, add_subtopic_from_selection, children_of, find_topic, topic_path
from src.ui_helpers import (
    chat_history,
    commit_topics,
    enforce_navigation_lock,
    get_active_topic_id,
    get_topics,
    open_topic,
    set_chat_history,
    set_navigation_lock,
)

st.set_page_config(page_title="Topic detail", layout="wide")
enforce_navigation_lock("detail")
topics = get_topics()
ui.init_page(topics)

topic = find_topic(topics, get_active_topic_id())
if topic is None:
    ui.render_page_header("Topic detail")
    st.info("Select a topic in the sidebar.")
    st.stop()

topic_id = topic["id"]
subtopics = children_of(topics, topic_id)

ui.render_page_header(topic["title"], subtitle=topic.get("description") or None)
b1, b2, b3 = st.columns([1, 1, 4])
with b1:
    if topic.get("parent_id"):
        ui.status_badge("Subtopic", "info")
    else:
        ui.status_badge(topic.get("category") or "General", "muted")
with b2:
    ui.status_badge(f"Synced: {format_timestamp(topic.get('last_updated'))}", "success" if topic.get("last_updated") else "warning")
with b3:
    if topic.get("parent_id"):
        st.caption(" / ".join(topic_path(topics, topic_id)))

if subtopics:
    st.caption("Focus points: " + ", ".join(s["title"] for s in subtopics))

if st.button("Sync intelligence", type="primary"):
    set_navigation_lock(True, owner_page="detail", reason="Intelligence sync")
    try:
        with st.spinner("Searching for new developments..."):
            updated = refresh_topic(topics, topic_id)
        commit_topics(updated)
    except (GeminiServiceError, TopicError) as e:
        st.error(f"Sync failed, check your network and API key: {e}")
    else:
        st.rerun()
    finally:
        set_navigation_lock(False, owner_page="detail")

log_col, chat_col = st.columns([3, 2])

# ---------------------------------------------------------------------------
# Event log
# ---------------------------------------------------------------------------

with log_col:
    events = topic.get("events") or []
    with ui.card("Event database / entry history", f"{len(events)} entries"):
        if not events:
            st.caption('The event database is empty. Press "Sync intelligence" to start searching.')
        for number, event in numbered_events(topic):
            st.markdown(
                f'<div class="ep-event-meta">Entry #{number} · {format_timestamp(event.get("timestamp"))}</div>',
                unsafe_allow_html=True,
            )
            st.markdown(
                f'<div class="ep-event-body">{sanitize_model_html(event.get("content", ""))}</div>',
                unsafe_allow_html=True,
            )
            ui.source_links(event.get("source_urls") or [], EVENT_SOURCE_LINKS_SHOWN)
            st.divider()

    with ui.card("Track as focus point", "Paste a phrase from the log to follow it as a subtopic."):
        with st.form(f"focus_{topic_id}", clear_on_submit=True):
            selection = st.text_input("Selected text", help=f"At least {MIN_SELECTION_CHARS} characters.")
            make_focus = st.form_submit_button("Set as focus point")
        if make_focus:
            try:
                updated, child = add_subtopic_from_selection(topics, selection, topic_id)
                commit_topics(updated)
            except TopicError as e:
                st.warning(str(e))
            else:
                open_topic(child["id"])

    if topic.get("relevant_sources"):
        with st.expander(f"Known relevant sources ({len(topic['relevant_sources'])})"):
            for url in topic["relevant_sources"]:
                st.markdown(f"- {url}")

# ---------------------------------------------------------------------------
# Deep-dive chat
# ---------------------------------------------------------------------------

with chat_col:
    with ui.card("Deep-analysis workstation", "The AI has loaded this topic's event database. Ask about the entries."):
        history = chat_history(topic_id)
        if not history:
            st.caption('Try: "Compare the last three entries. What changed?"')
        for msg in history:
            with st.chat_message("user" if msg["role"] == "user" else "assistant"):
                st.markdown(sanitize_model_html(msg["content"]), unsafe_allow_html=msg["role"] == "model")

    query = st.chat_input("Ask about the tracked entries")
    if query:
        with st.spinner("The AI is analysing the event database..."):
            set_chat_history(topic_id, send_message(topic, history, query))
        st.rerun()
