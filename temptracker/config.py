"""
Runtime configuration.

Values come from Streamlit secrets (.streamlit/secrets.toml) and may be
overridden by environment variables:

- TEMPTRACKER_BACKEND: supabase | sheets | local
- TEMPTRACKER_LOG_LEVEL: DEBUG, INFO, ...
- TEMPTRACKER_TZ: IANA timezone used for the "today" default
- TEMPTRACKER_STORE_PATH: JSON file used by the local (guest) store
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import streamlit as st

# -------------------------------
# Configuration and constants
# -------------------------------
BACKENDS = ("supabase", "sheets", "local")
DEFAULT_STORE_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "temperatures.json")
DEFAULT_TZ = "Europe/Stockholm"
SUPABASE_TABLE = "temperature_logs"
SHEET_WORKSHEET = "Sheet1"

NOTIFICATION_TIMEOUT_S = 5.0
DEFAULT_TEMPERATURE = 37.0
SLIDER_MIN = 36.0
SLIDER_MAX = 40.0
SLIDER_STEP = 0.1


def _secret(name: str, default: Any = None) -> Any:
    # st.secrets raises when no secrets file exists at all
    try:
        return st.secrets[name]
    except Exception:
        return default


@dataclass
class Settings:
    backend: str = "local"
    log_level: str = "INFO"
    timezone: str = DEFAULT_TZ
    store_path: str = DEFAULT_STORE_PATH
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_table: str = SUPABASE_TABLE
    gcp_service_account: Optional[Dict[str, Any]] = None
    sheet_url: Optional[str] = None
    worksheet_name: str = SHEET_WORKSHEET
    notification_timeout: float = NOTIFICATION_TIMEOUT_S
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def sheets_configured(self) -> bool:
        return bool(self.gcp_service_account and self.sheet_url)

    def effective_backend(self) -> str:
        """Backend to use, falling back to guest mode when credentials are missing."""
        if self.backend == "supabase" and self.supabase_configured:
            return "supabase"
        if self.backend == "sheets" and self.sheets_configured:
            return "sheets"
        return "local"


def load_settings(env: Optional[Dict[str, str]] = None) -> Settings:
    env = os.environ if env is None else env

    backend = env.get("TEMPTRACKER_BACKEND") or _secret("BACKEND")
    if backend is None:
        # Supabase first, like the hosted deployment
        backend = "supabase" if _secret("SUPABASE_URL") else ("sheets" if _secret("google_sheet_url") else "local")
    backend = str(backend).lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend {backend!r}; expected one of {BACKENDS}")

    service_account = _secret("gcp_service_account")
    if service_account is not None:
        service_account = dict(service_account)

    return Settings(
        backend=backend,
        log_level=str(env.get("TEMPTRACKER_LOG_LEVEL") or _secret("LOG_LEVEL", "INFO")).upper(),
        timezone=env.get("TEMPTRACKER_TZ") or _secret("TIMEZONE", DEFAULT_TZ),
        store_path=env.get("TEMPTRACKER_STORE_PATH") or DEFAULT_STORE_PATH,
        supabase_url=_secret("SUPABASE_URL"),
        supabase_key=_secret("SUPABASE_ANON_KEY"),
        supabase_table=_secret("SUPABASE_TABLE", SUPABASE_TABLE),
        gcp_service_account=service_account,
        sheet_url=_secret("google_sheet_url"),
        worksheet_name=_secret("google_worksheet_name", SHEET_WORKSHEET),
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
