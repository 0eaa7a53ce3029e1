import altair as alt
import streamlit as st

from src import ui
from src.briefing import activity_frame, briefing_topic_cards, generate_global_briefing
from src.gemini_service import GeminiServiceError
from src.text_cleanup import format_timestamp, sanitize_model_html
from src.ui_helpers import (
    commit_briefing,
    enforce_navigation_lock,
    get_briefing,
    get_topics,
    set_active_topic,
    set_navigation_lock,
    storage_origin,
)

st.set_page_config(page_title="EventPulse AI", layout="wide")
enforce_navigation_lock("home")
topics = get_topics()
briefing = get_briefing()
set_active_topic(None)
ui.init_page(topics)

ui.render_page_header(
    "Global intelligence briefing",
    subtitle="Cross-topic analysis of everything tracked in your topic tree",
)

if storage_origin() == "v2":
    st.info("Topics were imported from an older storage version. They will be saved in the new format on your next change.")

# ---------------------------------------------------------------------------
# KPI row
# ---------------------------------------------------------------------------

events_total = sum(len(t.get("events") or []) for t in topics)
never_synced = sum(1 for t in topics if not t.get("last_updated"))

k1, k2, k3, k4 = st.columns(4)
with k1:
    ui.kpi_card("Topics", len(topics), caption="Including subtopics")
with k2:
    ui.kpi_card("Events tracked", events_total, caption="Across all topic logs")
with k3:
    ui.kpi_card("Never synced", never_synced, caption="Waiting for a first search")
with k4:
    ui.kpi_card(
        "Last briefing",
        format_timestamp(briefing.get("timestamp"), "%b %d %H:%M") if briefing else "-",
        caption="Generated on demand",
    )

# ---------------------------------------------------------------------------
# Briefing
# ---------------------------------------------------------------------------

if st.button("Generate cross-topic analysis", type="primary", disabled=not topics):
    set_navigation_lock(True, owner_page="home", reason="Briefing generation")
    try:
        with st.spinner("Analysing the topic tree and linking topics and focus points..."):
            new_briefing = generate_global_briefing(topics)
        commit_briefing(new_briefing)
        briefing = new_briefing
    except GeminiServiceError as e:
        st.error(f"Briefing generation failed: {e}")
    finally:
        set_navigation_lock(False, owner_page="home")

if not briefing:
    with ui.card("No briefing yet", "Add topics, then generate a cross-topic analysis."):
        st.caption("The briefing links developments across every topic you track.")
else:
    with ui.card("Intelligence summary", format_timestamp(briefing.get("timestamp"), "%Y-%m-%d %H:%M")):
        st.markdown(sanitize_model_html(briefing.get("content", "")), unsafe_allow_html=True)

    cards = briefing_topic_cards(briefing, topics)
    if cards:
        cols = st.columns(len(cards))
        for col, topic in zip(cols, cards):
            with col:
                with ui.card(topic["title"]):
                    st.caption(topic.get("description") or "")

# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------

df = activity_frame(topics)
if not df.empty:
    daily = df.groupby(["date", "root_topic"]).size().reset_index(name="events")
    chart = (
        alt.Chart(daily)
        .mark_bar()
        .encode(
            x=alt.X("date:T", title="Day"),
            y=alt.Y("events:Q", title="Events"),
            color=alt.Color("root_topic:N", title="Topic"),
            tooltip=["date:T", "root_topic:N", "events:Q"],
        )
        .properties(height=220)
    )
    with ui.card("Tracking activity", "Events recorded per day, grouped by root topic."):
        st.altair_chart(chart, use_container_width=True)
