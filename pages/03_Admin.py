import io

import pandas as pd
import streamlit as st

from src import ui
from src.briefing import activity_frame
from src.quota_tracker import get_usage, reset_date
from src.constants import TOPICS_KEY
from src.storage import key_path
from src.ui_helpers import enforce_navigation_lock, get_topics, reset_state, storage_origin

st.set_page_config(page_title="Settings", layout="wide")
enforce_navigation_lock("admin")
topics = get_topics()
ui.init_page(topics)
ui.render_page_header("Settings", subtitle="Export, API usage and local data")

# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

with ui.card("Export event log", "One row per tracked event, with its topic and sources."):
    df = activity_frame(topics)
    if df.empty:
        st.caption("No events tracked yet.")
    else:
        st.dataframe(df.drop(columns=["topic_id", "event_id"]), use_container_width=True, hide_index=True)
        c1, c2 = st.columns(2)
        with c1:
            st.download_button(
                "Download CSV",
                data=df.to_csv(index=False).encode("utf-8"),
                file_name="eventpulse_events.csv",
                mime="text/csv",
            )
        with c2:
            buf = io.BytesIO()
            with pd.ExcelWriter(buf, engine="openpyxl") as writer:
                df.to_excel(writer, sheet_name="events", index=False)
            st.download_button(
                "Download Excel",
                data=buf.getvalue(),
                file_name="eventpulse_events.xlsx",
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            )

# ---------------------------------------------------------------------------
# API usage
# ---------------------------------------------------------------------------

with ui.card("API usage", f"Calls counted since midnight Pacific Time ({reset_date()})."):
    usage = pd.DataFrame(
        [{"model": m, **info} for m, info in get_usage().items()],
        columns=["model", "used", "quota", "remaining"],
    )
    st.dataframe(usage, use_container_width=True, hide_index=True)

# ---------------------------------------------------------------------------
# Local data
# ---------------------------------------------------------------------------

with ui.card("Local data", "Topics and the latest briefing are stored on this machine only."):
    st.caption(f"Storage: {key_path(TOPICS_KEY)} (loaded from {storage_origin()})")
    confirm = st.checkbox("Remove every topic, event and briefing")
    if st.button("Clear local cache", type="secondary", disabled=not confirm):
        reset_state()
        st.success("Cleared.")
        st.rerun()
