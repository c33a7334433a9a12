#!/usr/bin/env python3
"""
Run instructions
- Install the package and its dependencies:
    pip install -e .
- Run the app:
    streamlit run app.py

Notes
- Readings are stored in Supabase (table temperature_logs), a Google Sheet
  (Date,Temperature header) or, in guest mode, a JSON file next to the app.
- Configure credentials in .streamlit/secrets.toml:
    SUPABASE_URL = "..."
    SUPABASE_ANON_KEY = "..."
  or
    google_sheet_url = "..."
    [gcp_service_account]
    ...
- One reading per day. Adding a reading for a day that already has one replaces it.
"""
from __future__ import annotations

import logging
import os
from datetime import date
from typing import Optional

import streamlit as st

from temptracker.charts import make_temperature_chart, style_dense_table
from temptracker.config import (
    DEFAULT_TEMPERATURE,
    SLIDER_MAX,
    SLIDER_MIN,
    SLIDER_STEP,
    Settings,
    configure_logging,
    load_settings,
)
from temptracker.dashboard import Dashboard
from temptracker.densifier import missing_dates
from temptracker.errors import TrackerError
from temptracker.identity import GuestIdentity, IdentityProvider, SupabaseIdentity
from temptracker.models import today
from temptracker.notifications import Notifier
from temptracker.providers import build_provider, create_supabase_client
from temptracker.store import SeriesStore

logger = logging.getLogger("temptracker.app")


# -------------------------------
# Session wiring
# -------------------------------

def _settings() -> Settings:
    if "settings" not in st.session_state:
        settings = load_settings()
        configure_logging(settings)
        st.session_state.settings = settings
    return st.session_state.settings


def _identity(settings: Settings) -> IdentityProvider:
    if "identity" not in st.session_state:
        if settings.effective_backend() == "supabase":
            try:
                st.session_state.identity = SupabaseIdentity(create_supabase_client(settings))
            except Exception as e:
                logger.error("Supabase initialization failed: %s", e)
                st.session_state.identity = GuestIdentity()
        else:
            st.session_state.identity = GuestIdentity()
    return st.session_state.identity


def _build_dashboard(settings: Settings, identity: IdentityProvider) -> Optional[Dashboard]:
    user = identity.user
    if user is None:
        return None
    notifier = st.session_state.setdefault("notifier", Notifier(timeout=settings.notification_timeout))
    client = identity.client if isinstance(identity, SupabaseIdentity) else None
    try:
        provider = build_provider(settings, user_id=user["id"] if client is not None else None, client=client)
    except TrackerError as e:
        notifier.push(e.message)
        return None
    store = SeriesStore(
        provider,
        identity=identity,
        require_auth=isinstance(identity, SupabaseIdentity),
        tz_name=settings.timezone,
    )
    return Dashboard(store, notifier, identity)


def _dashboard() -> Optional[Dashboard]:
    settings = _settings()
    identity = _identity(settings)
    dashboard = st.session_state.get("dashboard")
    if dashboard is None:
        dashboard = _build_dashboard(settings, identity)
        st.session_state.dashboard = dashboard
    return dashboard


def _handle_oauth_callback() -> None:
    identity = st.session_state.get("identity")
    if not isinstance(identity, SupabaseIdentity) or "code" not in st.query_params:
        return
    code = st.query_params["code"]
    st.query_params.clear()
    try:
        identity.sign_in(auth_code=code)
    except TrackerError as e:
        st.session_state.setdefault("notifier", Notifier()).push(e.message)
        return
    st.session_state.dashboard = None


# -------------------------------
# UI sections
# -------------------------------

def render_notification(dashboard: Optional[Dashboard]) -> None:
    if dashboard is not None:
        message, dismiss = dashboard.error(), dashboard.dismiss_error
    else:
        notifier: Optional[Notifier] = st.session_state.get("notifier")
        if notifier is None:
            return
        message, dismiss = notifier.current(), notifier.dismiss
    if not message:
        return
    col1, col2 = st.columns([6, 1])
    with col1:
        st.error(message)
    with col2:
        if st.button("Dismiss", key="dismiss_error"):
            dismiss()
            st.rerun()


def render_auth_ui(settings: Settings, identity: IdentityProvider) -> None:
    """Sign-in panel for Supabase; guest mode needs no sign-in."""
    if isinstance(identity, GuestIdentity):
        if not identity.is_signed_in():
            if st.button("Continue as Guest", key="guest_btn"):
                identity.sign_in()
                st.session_state.dashboard = None
                st.rerun()
        return

    if not identity.is_signed_in():
        st.markdown("### Sign in")
        redirect_url = st.session_state.get("redirect_url", "http://localhost:8501")
        auth_url = f"{settings.supabase_url}/auth/v1/authorize?provider=google&redirect_to={redirect_url}&flow_type=pkce"
        st.markdown(f"[Login with Google]({auth_url})")

        email = st.text_input("Email", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")
        if st.button("Login", key="login_btn"):
            try:
                identity.sign_in(email=email, password=password)
            except TrackerError as e:
                st.session_state.setdefault("notifier", Notifier(timeout=settings.notification_timeout)).push(e.message)
            else:
                st.session_state.dashboard = None
            st.rerun()
        return

    col1, col2 = st.columns([3, 1])
    with col1:
        st.markdown(f"Signed in as **{identity.user.get('email', 'Unknown')}**")
    with col2:
        if st.button("Logout", use_container_width=True):
            dashboard = st.session_state.get("dashboard")
            if dashboard is not None:
                dashboard.sign_out()
            else:
                identity.sign_out()
            st.session_state.dashboard = None
            st.rerun()


def render_input_form(dashboard: Dashboard, tz_name: str) -> None:
    st.subheader("Add reading")
    with st.form("add_reading", clear_on_submit=True):
        slider_value = st.slider(
            "Temperature (°C)",
            min_value=SLIDER_MIN,
            max_value=SLIDER_MAX,
            value=DEFAULT_TEMPERATURE,
            step=SLIDER_STEP,
            format="%.1f",
        )
        manual = st.text_input("Manual temperature (optional)", value="")
        entry_date: date = st.date_input("Date", value=today(tz_name))
        submitted = st.form_submit_button("Add", use_container_width=True)

    if submitted:
        temperature = manual if manual.strip() else round(slider_value, 1)
        if dashboard.add_reading(entry_date, temperature):
            st.success(f"Saved {entry_date:%Y-%m-%d}")
        st.rerun()


def render_table(dashboard: Dashboard) -> None:
    st.subheader("Readings")
    dense = dashboard.dense_view()
    if dense.empty:
        st.info("No readings yet.")
        return
    sparse = dashboard.sparse_view()
    gaps = missing_dates(sparse)
    st.caption(f"{len(sparse)} readings, {len(gaps)} days without a reading")
    st.dataframe(style_dense_table(dense), hide_index=True, use_container_width=True)

    with st.expander("Delete readings"):
        for row in reversed(dashboard.table_rows()):
            if row["missing"]:
                continue
            c_date, c_temp, c_del = st.columns([2, 2, 1])
            c_date.write(f"{row['date']:%Y-%m-%d}")
            c_temp.write(row["label"])
            if c_del.button("Delete", key=f"del_{row['date'].isoformat()}"):
                dashboard.delete_reading(row["date"])
                st.rerun()


def render_import_export(dashboard: Dashboard) -> None:
    with st.expander("Import / export CSV"):
        uploaded = st.file_uploader("Import CSV (Date,Temperature)", type=["csv"], accept_multiple_files=False)
        if uploaded is not None and st.button("Import", key="import_btn"):
            stats = dashboard.import_csv(uploaded.getvalue())
            st.success(f"Imported {stats['imported']} readings ({stats['failed']} failed, {stats['dropped']} dropped)")
        st.download_button(
            label="Download CSV",
            data=dashboard.export_csv(),
            file_name="temperatures.csv",
            mime="text/csv",
        )


# Main UI
def main():
    st.set_page_config(page_title="Temperature Tracker", layout="centered")
    st.title("Temperature Tracker")
    st.caption("Daily temperature log")

    settings = _settings()
    identity = _identity(settings)
    if settings.effective_backend() != settings.backend:
        st.warning(f"{settings.backend} is not configured. Running in guest mode only.")

    _handle_oauth_callback()
    render_auth_ui(settings, identity)

    dashboard = _dashboard()
    render_notification(dashboard)
    if dashboard is None:
        return

    if not dashboard.started:
        with st.spinner("Loading readings..."):
            dashboard.start()
        st.rerun()

    if dashboard.loading:
        st.info("Loading...")
        return

    render_input_form(dashboard, settings.timezone)
    st.plotly_chart(make_temperature_chart(dashboard.dense_view()), key="daily_temperature_chart", use_container_width=True)
    render_table(dashboard)
    render_import_export(dashboard)


# -------------------------------
# Lightweight tests (doctests)
# -------------------------------

def _run_doctests_if_requested():
    if os.environ.get("RUN_DOCTESTS", "0") == "1":
        import doctest as _doctest

        from temptracker import charts, densifier, models

        for module in (models, densifier, charts):
            _doctest.testmod(module, verbose=True)


if __name__ == "__main__":
    _run_doctests_if_requested()
    # Streamlit apps are started via: streamlit run app.py
    # Running this file directly won't start the UI, but doctests may run.
    pass

# Call the Streamlit app entrypoint when the script is executed by Streamlit
main()
