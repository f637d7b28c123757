import asyncio
from contextlib import contextmanager
from typing import Any, Dict, Optional

import pandas as pd
import streamlit as st

from learnboard.errors import DashboardError, QueryError
from learnboard.logging_config import setup_logging
from learnboard.service import DashboardService
from learnboard.session import TokenStore
from learnboard.settings import load_settings
from learnboard.views import VIEWS


class SessionStateStore:
    """Key-value store backed by ``st.session_state`` (one browser session)."""

    prefix = "_kv_"

    def set(self, key: str, value: str) -> None:
        st.session_state[self.prefix + key] = value

    def get(self, key: str) -> Optional[str]:
        return st.session_state.get(self.prefix + key)

    def remove(self, key: str) -> None:
        st.session_state.pop(self.prefix + key, None)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .profile-line {color: #374151;font-size: 0.95rem;}
        .profile-line span {font-weight: 600;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def render_page_header(title: str, breadcrumb: str):
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if st.button("Refresh"):
            st.session_state.pop("dashboard", None)
            st.rerun()


def render_profile(profile: Optional[Dict[str, Any]]):
    if not profile:
        return
    with card(profile.get("name") or "Profile"):
        for label, key in [("E-mail", "email"), ("Telephone", "tel"), ("Campus", "campus")]:
            st.markdown(
                f"<div class='profile-line'><span>{label}: </span>{profile.get(key) or ''}</div>",
                unsafe_allow_html=True,
            )


def render_summaries(summaries: Dict[str, Dict[str, Any]]):
    if not summaries:
        return
    cols = st.columns(len(summaries))
    for col, tile in zip(cols, summaries.values()):
        col.metric(tile["label"], tile["display"])


def render_charts(charts: Dict[str, Any]):
    for spec in charts.values():
        st.vega_lite_chart(spec, use_container_width=True)


def render_tables(tables: Dict[str, Dict[str, Any]]):
    for table in tables.values():
        with card(table["title"]):
            display = pd.DataFrame(table["rows"], columns=table["columns"])
            st.dataframe(display, use_container_width=True, hide_index=True)


def render_login(service: DashboardService, view_name: str):
    with st.form("login"):
        st.markdown("### Sign in")
        username = st.text_input("Username or e-mail")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login")
    if not submitted:
        return
    try:
        st.session_state["dashboard"] = asyncio.run(service.login(username, password, view=view_name))
    except DashboardError as exc:
        st.error(str(exc))
        return
    st.rerun()


# ---------- UI setup ----------
settings = load_settings()
setup_logging(settings.log_level)
st.set_page_config(page_title="Learner Dashboard", layout="wide")
inject_base_styles()

service = DashboardService(settings, tokens=TokenStore(SessionStateStore()))

with st.sidebar:
    st.markdown("### View")
    view_name = st.radio("View", list(VIEWS), index=0, label_visibility="collapsed")
    if st.session_state.get("dashboard", {}).get("view") not in (None, view_name):
        st.session_state.pop("dashboard", None)
    if service.has_session:
        st.markdown("---")
        if st.button("Logout"):
            service.logout()
            st.session_state.pop("dashboard", None)
            st.rerun()

if not service.has_session:
    st.title("Learner Dashboard")
    render_login(service, view_name)
    st.stop()

if "dashboard" not in st.session_state:
    try:
        st.session_state["dashboard"] = asyncio.run(service.load(view=view_name))
    except DashboardError as exc:
        st.error(str(exc))
        st.caption("Failed to fetch user data")
        if isinstance(exc, QueryError) and exc.token_rejected:
            st.info("Your session has expired. Refresh to sign in again.")
        st.stop()

payload = st.session_state["dashboard"]
render_page_header("Learner Dashboard", f"Dashboard / {payload['view'].capitalize()}")
render_profile(payload.get("profile"))
render_summaries(payload.get("summaries", {}))
render_charts(payload.get("charts", {}))
render_tables(payload.get("tables", {}))
