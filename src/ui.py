from __future__ import annotations

from contextlib import contextmanager
from html import escape
from typing import Any, Dict, Iterator, List, Optional

import streamlit as st

from src import config
from src.quota_tracker import get_usage, reset_date
from src.topic_tree import walk_tree
from src.ui_helpers import PAGE_PATHS, get_active_topic_id, open_topic

_BADGE_CLASS = {
    "info": "ep-badge-info",
    "success": "ep-badge-success",
    "warning": "ep-badge-warning",
    "muted": "ep-badge-muted",
}


def _inject_css() -> None:
    st.markdown(
        """
<style>
:root {
  --ep-app-bg: #F8FAFC;
  --ep-card-bg: #FFFFFF;
  --ep-text-primary: #0F172A;
  --ep-text-secondary: #64748B;
  --ep-border: #E2E8F0;
  --ep-accent: #2563EB;
  --ep-accent-soft: #EFF6FF;
}

.stApp {
  background: var(--ep-app-bg);
  color: var(--ep-text-primary);
}

.ep-page-title {
  margin: 0;
  font-size: 2rem;
  line-height: 1.2;
  font-weight: 700;
  color: var(--ep-text-primary);
}

.ep-page-subtitle {
  margin-top: 0.35rem;
  margin-bottom: 0.75rem;
  font-size: 0.9rem;
  color: var(--ep-text-secondary);
}

.ep-divider {
  border-top: 1px solid var(--ep-border);
  margin: 0.4rem 0 1rem 0;
}

.ep-card-title {
  margin: 0;
  font-size: 1.02rem;
  font-weight: 600;
}

.ep-card-help {
  margin-top: 0.2rem;
  margin-bottom: 0.7rem;
  font-size: 0.85rem;
  color: var(--ep-text-secondary);
}

.ep-kpi-card {
  border: 1px solid var(--ep-border);
  border-radius: 8px;
  background: var(--ep-card-bg);
  box-shadow: 0 3px 8px rgba(15, 23, 42, 0.05);
  padding: 0.75rem 0.85rem;
  min-height: 86px;
  margin-bottom: 0.6rem;
}

.ep-kpi-label {
  font-size: 0.75rem;
  color: #475569;
  letter-spacing: 0.06em;
  text-transform: uppercase;
  font-weight: 600;
}

.ep-kpi-value {
  font-size: 1.75rem;
  font-weight: 700;
  color: #1E293B;
}

.ep-kpi-caption {
  font-size: 0.78rem;
  color: var(--ep-text-secondary);
}

.ep-event-meta {
  font-size: 0.75rem;
  font-weight: 600;
  color: var(--ep-text-secondary);
  letter-spacing: 0.04em;
  text-transform: uppercase;
}

.ep-event-body {
  font-size: 0.92rem;
  line-height: 1.55;
}

.ep-source-link {
  display: inline-block;
  margin-right: 0.5rem;
  font-size: 0.75rem;
  color: var(--ep-accent);
}

.ep-badge {
  display: inline-block;
  border-radius: 999px;
  padding: 0.1rem 0.5rem;
  font-size: 0.76rem;
  font-weight: 600;
  border: 1px solid transparent;
}

.ep-badge-info { background: #DBEAFE; color: #1D4ED8; border-color: #BFDBFE; }
.ep-badge-success { background: #DCFCE7; color: #166534; border-color: #BBF7D0; }
.ep-badge-warning { background: #FEF3C7; color: #92400E; border-color: #FDE68A; }
.ep-badge-muted { background: #F1F5F9; color: #475569; border-color: #E2E8F0; }

.ep-tree-label {
  font-size: 0.7rem;
  font-weight: 700;
  color: #94A3B8;
  letter-spacing: 0.1em;
  text-transform: uppercase;
  margin: 0.6rem 0 0.3rem 0;
}
</style>
        """,
        unsafe_allow_html=True,
    )


def render_page_header(title: str, subtitle: Optional[str] = None) -> None:
    st.markdown(f'<h1 class="ep-page-title">{escape(title)}</h1>', unsafe_allow_html=True)
    if subtitle:
        st.markdown(f'<div class="ep-page-subtitle">{escape(subtitle)}</div>', unsafe_allow_html=True)
    st.markdown('<div class="ep-divider"></div>', unsafe_allow_html=True)


def _render_sidebar_brand() -> None:
    st.sidebar.markdown("### EventPulse AI")
    st.sidebar.caption("Hierarchical intelligence tracking")
    st.sidebar.divider()


def _render_sidebar_nav() -> None:
    with st.sidebar:
        st.page_link(PAGE_PATHS["home"], label="Global briefing")
        st.page_link(PAGE_PATHS["topics"], label="Manage topics")
        st.page_link(PAGE_PATHS["detail"], label="Topic detail")
        st.page_link(PAGE_PATHS["admin"], label="Settings", icon=":material/settings:")


def render_topic_tree(topics: List[Dict[str, Any]]) -> None:
    """Sidebar topic tree; clicking a topic opens its detail page."""
    active = get_active_topic_id()
    with st.sidebar:
        st.markdown('<div class="ep-tree-label">My topic tree</div>', unsafe_allow_html=True)
        if not topics:
            st.caption("No topics yet. Create one under Manage topics.")
            return
        for topic, level in walk_tree(topics):
            indent = "\u00a0\u00a0\u00a0" * level
            marker = "●" if topic["id"] == active else "○"
            if st.button(
                f"{indent}{marker} {topic['title']}",
                key=f"tree_{topic['id']}",
                use_container_width=True,
                type="primary" if topic["id"] == active else "secondary",
            ):
                open_topic(topic["id"])


def render_sidebar_utilities() -> None:
    usage = get_usage()
    with st.sidebar:
        st.divider()
        with st.expander("API quota", expanded=False):
            st.caption(f"Tracking date: {reset_date()}")
            for model_name, info in usage.items():
                used = int(info.get("used", 0))
                quota = int(info.get("quota", 0))
                rem = int(info.get("remaining", 0))
                pct = used / max(quota, 1)
                st.progress(min(pct, 1.0), text=f"{model_name}: {used}/{quota} ({rem} left)")
        with st.expander("Model", expanded=False):
            st.caption(config.model_name())
            st.caption(f"Answer language: {config.response_language()}")


def init_page(topics: Optional[List[Dict[str, Any]]] = None) -> None:
    config.configure_logging()
    _inject_css()
    _render_sidebar_brand()
    _render_sidebar_nav()
    if topics is not None:
        render_topic_tree(topics)
    render_sidebar_utilities()


@contextmanager
def card(title: str, help_text: Optional[str] = None) -> Iterator[None]:
    with st.container(border=True):
        st.markdown(f'<div class="ep-card-title">{escape(title)}</div>', unsafe_allow_html=True)
        if help_text:
            st.markdown(f'<div class="ep-card-help">{escape(help_text)}</div>', unsafe_allow_html=True)
        yield


def status_badge(label: str, kind: str = "info", help_text: Optional[str] = None) -> None:
    cls = _BADGE_CLASS.get(kind, _BADGE_CLASS["info"])
    tip_attr = f' title="{escape(str(help_text), quote=True)}"' if help_text else ""
    st.markdown(f'<span class="ep-badge {cls}"{tip_attr}>{escape(str(label))}</span>', unsafe_allow_html=True)


def kpi_card(label: str, value: object, caption: Optional[str] = None) -> None:
    parts = [
        '<div class="ep-kpi-card">',
        f'<div class="ep-kpi-label">{escape(str(label))}</div>',
        f'<div class="ep-kpi-value">{escape(str(value))}</div>',
    ]
    if caption:
        parts.append(f'<div class="ep-kpi-caption">{escape(str(caption))}</div>')
    parts.append("</div>")
    st.markdown("".join(parts), unsafe_allow_html=True)


def source_links(urls: List[str], limit: int) -> None:
    links = [
        f'<a class="ep-source-link" href="{escape(u, quote=True)}" target="_blank" rel="noopener noreferrer">'
        f"Source {i}</a>"
        for i, u in enumerate(urls[:limit], start=1)
    ]
    if links:
        st.markdown("".join(links), unsafe_allow_html=True)
