"""
Orchestration between the UI and the Series Store.

Every collaborator failure is caught here and turned into a notification;
callers only ever see True/False.
"""
from __future__ import annotations

import logging
from io import StringIO
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from temptracker.densifier import densify
from temptracker.errors import TrackerError, ValidationError
from temptracker.identity import IdentityProvider
from temptracker.models import MISSING_LABEL, clean_frame
from temptracker.notifications import Notifier
from temptracker.store import SeriesStore

logger = logging.getLogger(__name__)


class Dashboard:
    def __init__(self, store: SeriesStore, notifier: Optional[Notifier] = None, identity: Optional[IdentityProvider] = None):
        self.store = store
        self.notifier = notifier or Notifier()
        self.identity = identity if identity is not None else store.identity
        self.started = False

    @property
    def loading(self) -> bool:
        return self.store.loading

    def _report(self, error: TrackerError) -> None:
        logger.info("%s: %s", type(error).__name__, error.message)
        self.notifier.push(error.message)

    # -------------------------------
    # Session
    # -------------------------------

    def start(self) -> bool:
        """Initial load. Only one load runs at a time."""
        if self.store.loading:
            return False
        try:
            self.store.load()
        except TrackerError as e:
            self._report(e)
            return False
        finally:
            self.started = True
        return True

    def sign_in(self, **credentials: Any) -> bool:
        if self.identity is None:
            return self.start()
        try:
            self.identity.sign_in(**credentials)
        except TrackerError as e:
            self._report(e)
            return False
        self.started = False
        return self.start()

    def sign_out(self) -> None:
        if self.identity is not None:
            self.identity.sign_out()
        self.store.reset_session()
        self.started = False

    # -------------------------------
    # User intents
    # -------------------------------

    def add_reading(self, entry_date: Any, temperature: Any) -> bool:
        try:
            self.store.add(entry_date, temperature)
        except TrackerError as e:
            self._report(e)
            return False
        return True

    def delete_reading(self, key: Any) -> bool:
        try:
            self.store.delete(key)
        except TrackerError as e:
            self._report(e)
            return False
        return True

    def import_csv(self, csv_data: Union[str, bytes]) -> Dict[str, int]:
        """
        Import Date,Temperature rows. Each cleaned row is one add; failures are
        counted and the last one is reported. Uploaded bytes must be UTF-8.
        """
        stats = {"imported": 0, "failed": 0, "dropped": 0}
        if isinstance(csv_data, bytes):
            try:
                csv_data = csv_data.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                self._report(ValidationError(f"CSV file is not UTF-8 encoded: {e.reason}"))
                return stats
        try:
            raw = pd.read_csv(StringIO(csv_data))
            cleaned = clean_frame(raw, how="mean")
        except (ValueError, pd.errors.ParserError) as e:
            self._report(ValidationError(f"Failed to read CSV: {e}"))
            return stats
        except ValidationError as e:
            self._report(e)
            return stats

        stats["dropped"] = len(raw) - len(cleaned)
        for d, t in zip(cleaned["Date"], cleaned["Temperature"]):
            if self.add_reading(d, float(t)):
                stats["imported"] += 1
            else:
                stats["failed"] += 1
        return stats

    def export_csv(self) -> str:
        df = self.sparse_view()
        if df.empty:
            return "Date,Temperature\n"
        return df.to_csv(index=False)

    # -------------------------------
    # Views
    # -------------------------------

    def sparse_view(self) -> pd.DataFrame:
        return self.store.snapshot()

    def dense_view(self) -> pd.DataFrame:
        return densify(self.store.snapshot())

    def table_rows(self) -> List[Dict[str, Any]]:
        """Dense rows for the table, with alternate rows striped and gaps labelled."""
        dense = self.dense_view()
        rows = []
        for i, (d, t) in enumerate(zip(dense["Date"], dense["Temperature"])):
            missing = pd.isna(t)
            rows.append({
                "date": d,
                "temperature": None if missing else float(t),
                "label": MISSING_LABEL if missing else f"{float(t):.1f}°C",
                "missing": bool(missing),
                "striped": i % 2 == 1,
            })
        return rows

    def error(self) -> Optional[str]:
        return self.notifier.current()

    def dismiss_error(self) -> None:
        self.notifier.dismiss()
