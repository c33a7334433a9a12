"""
Persistence providers.

Every provider stores one record per date with fields date (ISO string) and
temperature (float). Concrete adapters translate their own failures into
ProviderError subclasses so the store never sees backend-specific errors.
"""
from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import gspread
import pandas as pd
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from supabase import Client, create_client

from temptracker.config import Settings
from temptracker.errors import DeleteFailed, EntryNotFound, FetchFailed, UpsertFailed, ValidationError
from temptracker.models import Entry, clean_frame, empty_frame, frame_to_entries

logger = logging.getLogger(__name__)

SHEET_COLS = ["Date", "Temperature"]
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets", "https://www.googleapis.com/auth/drive"]
# gspread does not wrap transport or token-refresh failures
SHEETS_ERRORS = (gspread.exceptions.GSpreadException, requests.exceptions.RequestException, GoogleAuthError)


class PersistenceProvider(ABC):
    @abstractmethod
    def list_entries(self) -> List[Entry]:
        """Return every stored entry. Raises FetchFailed."""

    @abstractmethod
    def upsert_entry(self, entry: Entry) -> None:
        """Insert or replace the entry for entry.date. Raises UpsertFailed."""

    @abstractmethod
    def delete_entry(self, key: date) -> None:
        """Remove the entry for key. Raises EntryNotFound or DeleteFailed."""


def _records_to_entries(records: List[Dict[str, Any]]) -> List[Entry]:
    entries: List[Entry] = []
    for record in records:
        entry = Entry.from_record(record)
        if entry is not None:
            entries.append(entry)
    return entries


# -------------------------------
# Local JSON store (guest mode)
# -------------------------------

class LocalJsonProvider(PersistenceProvider):
    """Entries in a JSON file next to the app. Used for guest mode."""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> pd.DataFrame:
        if not os.path.exists(self.path):
            return empty_frame()
        with open(self.path, "r", encoding="utf-8") as f:
            obj = json.load(f)
        if not isinstance(obj, dict):
            raise ValueError(f"expected a JSON object, got {type(obj).__name__}")
        rows = obj.get("temperatures", [])
        if not rows:
            return empty_frame()
        df = pd.DataFrame(rows).rename(columns={"date": "Date", "temperature": "Temperature"})
        return clean_frame(df)

    def _write(self, df: pd.DataFrame) -> None:
        data = [{"date": d.isoformat(), "temperature": float(t)} for d, t in zip(df["Date"], df["Temperature"])]
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"temperatures": data, "saved_at": datetime.now().isoformat()}, f, indent=2)

    def list_entries(self) -> List[Entry]:
        try:
            return frame_to_entries(self._read())
        except (OSError, ValueError, ValidationError) as e:
            logger.error("Failed to read %s: %s", self.path, e)
            raise FetchFailed(f"Failed to load readings: {e}") from e

    def upsert_entry(self, entry: Entry) -> None:
        try:
            df = self._read()
            df = df[df["Date"] != entry.date]
            df = pd.concat([df, pd.DataFrame([{"Date": entry.date, "Temperature": entry.temperature}])], ignore_index=True)
            self._write(clean_frame(df))
        except (OSError, ValueError, ValidationError) as e:
            logger.error("Failed to write %s: %s", self.path, e)
            raise UpsertFailed(f"Failed to save reading: {e}") from e

    def delete_entry(self, key: date) -> None:
        try:
            df = self._read()
            if not (df["Date"] == key).any():
                raise EntryNotFound(f"No reading for {key.isoformat()}")
            self._write(df[df["Date"] != key].reset_index(drop=True))
        except (OSError, ValueError, ValidationError) as e:
            logger.error("Failed to write %s: %s", self.path, e)
            raise DeleteFailed(f"Failed to delete reading: {e}") from e


# -------------------------------
# Supabase table store
# -------------------------------

class SupabaseProvider(PersistenceProvider):
    """
    Rows of a Supabase table keyed by (user_id, date).

    Expected schema: temperature_logs(user_id uuid, date date, temperature float8,
    unique(user_id, date)).
    """

    def __init__(self, client: Client, user_id: str, table: str = "temperature_logs"):
        self.client = client
        self.user_id = user_id
        self.table = table

    def list_entries(self) -> List[Entry]:
        try:
            response = self.client.table(self.table).select("date, temperature").eq("user_id", self.user_id).execute()
        except Exception as e:
            logger.error("Supabase fetch failed: %s", e)
            raise FetchFailed(f"Failed to load data from database: {e}") from e
        try:
            return _records_to_entries(response.data or [])
        except ValidationError as e:
            logger.error("Supabase returned a malformed row: %s", e)
            raise FetchFailed(f"Failed to load data from database: {e}") from e

    def upsert_entry(self, entry: Entry) -> None:
        # delete-then-insert keeps one row per (user_id, date)
        try:
            self.client.table(self.table).delete().eq("user_id", self.user_id).eq("date", entry.date.isoformat()).execute()
            self.client.table(self.table).insert({
                "user_id": self.user_id,
                "date": entry.date.isoformat(),
                "temperature": float(entry.temperature),
            }).execute()
        except Exception as e:
            logger.error("Supabase upsert failed for %s: %s", entry.date, e)
            raise UpsertFailed(f"Failed to save entry: {e}") from e

    def delete_entry(self, key: date) -> None:
        try:
            response = self.client.table(self.table).delete().eq("user_id", self.user_id).eq("date", key.isoformat()).execute()
        except Exception as e:
            logger.error("Supabase delete failed for %s: %s", key, e)
            raise DeleteFailed(f"Failed to delete entry: {e}") from e
        if not response.data:
            raise EntryNotFound(f"No reading for {key.isoformat()}")


# -------------------------------
# Google Sheets store
# -------------------------------

class SheetsProvider(PersistenceProvider):
    """
    A worksheet with a Date,Temperature header row.

    Mutations rewrite the whole sheet in chronological order, so there are no
    blank rows left behind and no row-index drift between reads and writes.
    """

    def __init__(self, worksheet: gspread.Worksheet):
        self.worksheet = worksheet

    def _ensure_header(self) -> None:
        header = self.worksheet.row_values(1)
        if not header:
            self.worksheet.update(values=[SHEET_COLS], range_name="A1:B1")
        elif [h.strip() for h in header[: len(SHEET_COLS)]] != SHEET_COLS:
            # sheets written without a header start with data on row 1
            self.worksheet.insert_row(SHEET_COLS, index=1)

    def _read(self) -> pd.DataFrame:
        self._ensure_header()
        vals = self.worksheet.get_all_values()
        if len(vals) <= 1:
            return empty_frame()
        rows = [(list(r[:2]) + ["", ""])[:2] for r in vals[1:]]
        df = pd.DataFrame(rows, columns=SHEET_COLS)
        # cleared rows come back as blanks and are dropped by clean_frame
        df["Temperature"] = df["Temperature"].astype(str).str.replace(",", ".", regex=False)
        return clean_frame(df)

    def _rewrite(self, df: pd.DataFrame) -> None:
        out = [[d.isoformat(), float(t)] for d, t in zip(df["Date"], df["Temperature"])]
        self.worksheet.clear()
        self.worksheet.update(values=[SHEET_COLS], range_name="A1:B1")
        if out:
            self.worksheet.update(values=out, range_name=f"A2:B{len(out) + 1}", value_input_option="RAW")

    def list_entries(self) -> List[Entry]:
        try:
            return frame_to_entries(self._read())
        except SHEETS_ERRORS as e:
            logger.error("Sheets fetch failed: %s", e)
            raise FetchFailed(f"Failed to load data from sheet: {e}") from e

    def upsert_entry(self, entry: Entry) -> None:
        try:
            df = self._read()
            df = df[df["Date"] != entry.date]
            df = pd.concat([df, pd.DataFrame([{"Date": entry.date, "Temperature": entry.temperature}])], ignore_index=True)
            self._rewrite(clean_frame(df))
        except SHEETS_ERRORS as e:
            logger.error("Sheets upsert failed for %s: %s", entry.date, e)
            raise UpsertFailed(f"Failed to save entry: {e}") from e

    def delete_entry(self, key: date) -> None:
        try:
            df = self._read()
            if not (df["Date"] == key).any():
                raise EntryNotFound(f"No reading for {key.isoformat()}")
            self._rewrite(df[df["Date"] != key].reset_index(drop=True))
        except SHEETS_ERRORS as e:
            logger.error("Sheets delete failed for %s: %s", key, e)
            raise DeleteFailed(f"Failed to delete entry: {e}") from e


def open_worksheet(settings: Settings) -> gspread.Worksheet:
    creds = Credentials.from_service_account_info(settings.gcp_service_account, scopes=SHEETS_SCOPES)
    spreadsheet = gspread.authorize(creds).open_by_url(settings.sheet_url)
    return spreadsheet.worksheet(settings.worksheet_name)


def create_supabase_client(settings: Settings) -> Client:
    return create_client(settings.supabase_url, settings.supabase_key)


def build_provider(settings: Settings, user_id: Optional[str] = None, client: Optional[Client] = None) -> PersistenceProvider:
    """Provider for the effective backend. Supabase needs the signed-in user's id."""
    backend = settings.effective_backend()
    if backend == "supabase" and user_id is not None:
        return SupabaseProvider(client or create_supabase_client(settings), user_id, settings.supabase_table)
    if backend == "sheets":
        try:
            return SheetsProvider(open_worksheet(settings))
        except SHEETS_ERRORS + (ValueError,) as e:
            logger.error("Sheets initialization failed: %s", e)
            raise FetchFailed(f"Failed to open sheet: {e}") from e
    return LocalJsonProvider(settings.store_path)
