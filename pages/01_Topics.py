import streamlit as st

from src import ui
from src.constants import CATEGORIES, DEFAULT_CATEGORY
from src.topic_tree import (
    TopicError,
    add_topic,
    delete_topic,
    descendant_ids,
    edit_topic,
    find_topic,
    new_topic,
    topic_path,
    update_topic,
    walk_tree,
)
from src.ui_helpers import commit_topics, enforce_navigation_lock, get_active_topic_id, get_topics, open_topic

st.set_page_config(page_title="Manage topics", layout="wide")
enforce_navigation_lock("topics")
topics = get_topics()
ui.init_page(topics)

ui.render_page_header(
    "Manage topics",
    subtitle="The AI runs a full-history search the first time a new topic is synced",
)

_ROOT = "__root__"


def _label(topic_id: str) -> str:
    if topic_id == _ROOT:
        return "(none: top-level topic)"
    return " / ".join(topic_path(topics, topic_id)) or topic_id


def _category_index(value: str) -> int:
    return CATEGORIES.index(value) if value in CATEGORIES else CATEGORIES.index(DEFAULT_CATEGORY)


tree_ids = [t["id"] for t, _level in walk_tree(topics)]

# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

with ui.card("Start tracking a topic", "Create a top-level topic or a subtopic under an existing one."):
    with st.form("create_topic", clear_on_submit=True):
        title = st.text_input("Title")
        description = st.text_area("Description", help="What should the AI watch for?")
        c1, c2 = st.columns(2)
        with c1:
            category = st.selectbox("Category", CATEGORIES, index=_category_index(DEFAULT_CATEGORY))
        with c2:
            parent_choice = st.selectbox(
                "Parent topic",
                [_ROOT] + tree_ids,
                index=0,
                format_func=_label,
            )
        submitted = st.form_submit_button("Create topic", type="primary")
    if submitted:
        try:
            topic = new_topic(title, description, category, parent_id=None if parent_choice == _ROOT else parent_choice)
            commit_topics(add_topic(topics, topic))
        except TopicError as e:
            st.error(str(e))
        else:
            open_topic(topic["id"])

if not topics:
    st.info("No topics yet.")
    st.stop()

# ---------------------------------------------------------------------------
# Edit / delete
# ---------------------------------------------------------------------------

active = get_active_topic_id()
selected_id = st.selectbox(
    "Topic to edit",
    tree_ids,
    index=tree_ids.index(active) if active in tree_ids else 0,
    format_func=_label,
)
selected = find_topic(topics, selected_id)

with ui.card("Edit monitoring settings", "Events and sources are kept when you edit a topic."):
    with st.form(f"edit_{selected_id}"):
        e_title = st.text_input("Title", value=selected["title"])
        e_description = st.text_area("Description", value=selected.get("description", ""))
        e_category = st.selectbox("Category", CATEGORIES, index=_category_index(selected.get("category", "")))
        blocked = {selected_id} | descendant_ids(topics, selected_id)
        parent_options = [_ROOT] + [tid for tid in tree_ids if tid not in blocked]
        current_parent = selected.get("parent_id") or _ROOT
        e_parent = st.selectbox(
            "Parent topic",
            parent_options,
            index=parent_options.index(current_parent) if current_parent in parent_options else 0,
            format_func=_label,
        )
        saved = st.form_submit_button("Save changes", type="primary")
    if saved:
        try:
            updated = edit_topic(topics, selected_id, e_title, e_description, e_category)
            moved = find_topic(updated, selected_id)
            new_parent = None if e_parent == _ROOT else e_parent
            if moved.get("parent_id") != new_parent:
                updated = update_topic(updated, {**moved, "parent_id": new_parent})
            commit_topics(updated)
        except TopicError as e:
            st.error(str(e))
        else:
            st.success("Saved.")
            st.rerun()

with ui.card("Delete topic", "Deletes the topic, all of its subtopics and their event logs."):
    doomed = {selected_id} | descendant_ids(topics, selected_id)
    st.caption(f"{len(doomed)} topic(s) will be removed. This cannot be undone.")
    confirm = st.checkbox("I understand the data cannot be recovered", key=f"confirm_delete_{selected_id}")
    if st.button("Delete", type="secondary", disabled=not confirm):
        remaining, _deleted = delete_topic(topics, selected_id)
        commit_topics(remaining)
        st.rerun()
