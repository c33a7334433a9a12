"""
Series Store: owns the sparse list of readings.

Mutations are applied locally first and then sent to the persistence
provider. When the provider fails, the local change is rolled back for that
date only, and only if no later mutation has overwritten it in the meantime.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, List, Optional, Tuple

import pandas as pd

from temptracker.config import DEFAULT_TZ
from temptracker.densifier import densify
from temptracker.errors import AuthError, DeleteFailed, EntryNotFound, FetchFailed, ProviderError, UpsertFailed, ValidationError
from temptracker.identity import IdentityProvider
from temptracker.models import Entry, clean_frame, empty_frame, entries_to_frame, frame_to_entries, parse_date, parse_temperature
from temptracker.providers import PersistenceProvider

logger = logging.getLogger(__name__)

Listener = Callable[[pd.DataFrame], None]


def _with_entry(df: pd.DataFrame, entry: Entry) -> pd.DataFrame:
    df = df[df["Date"] != entry.date]
    df = pd.concat([df, pd.DataFrame([{"Date": entry.date, "Temperature": entry.temperature}])], ignore_index=True)
    return clean_frame(df)


def _without_date(df: pd.DataFrame, entry_date: date) -> pd.DataFrame:
    return df[df["Date"] != entry_date].reset_index(drop=True)


def _resolve_key(key: Any) -> Tuple[date, Optional[float]]:
    """
    Normalize a delete key to (date, expected temperature or None).

    Accepts a date-like value or a (date, temperature) pair. Positions are
    rejected: an index computed against a stale view can name the wrong entry.
    """
    if isinstance(key, tuple):
        if len(key) != 2:
            raise ValidationError(f"Invalid delete key: {key!r}")
        return parse_date(key[0], allow_default=False), parse_temperature(key[1])
    if isinstance(key, (int, float)) and not isinstance(key, bool):
        raise ValidationError("Readings are deleted by date, not by position.")
    if isinstance(key, (date, datetime, str, pd.Timestamp)):
        return parse_date(key, allow_default=False), None
    raise ValidationError(f"Invalid delete key: {key!r}")


class SeriesStore:
    def __init__(
        self,
        provider: PersistenceProvider,
        identity: Optional[IdentityProvider] = None,
        require_auth: bool = False,
        tz_name: str = DEFAULT_TZ,
    ):
        self.provider = provider
        self.identity = identity
        self.require_auth = require_auth
        self.tz_name = tz_name
        self.loading = False
        self._df = empty_frame()
        self._listeners: List[Listener] = []
        self._generation = 0

    # -------------------------------
    # Read side
    # -------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> pd.DataFrame:
        return self._df.copy()

    def entries(self) -> List[Entry]:
        return frame_to_entries(self._df)

    def get(self, entry_date: date) -> Optional[Entry]:
        match = self._df[self._df["Date"] == entry_date]
        if match.empty:
            return None
        return Entry(date=entry_date, temperature=float(match["Temperature"].iloc[-1]))

    def dense(self) -> pd.DataFrame:
        return densify(self._df)

    def __len__(self) -> int:
        return len(self._df)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for snapshots after each change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, df: pd.DataFrame) -> None:
        self._df = df
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # -------------------------------
    # Session handling
    # -------------------------------

    def _ensure_authenticated(self) -> None:
        if not self.require_auth or self.identity is None:
            return
        if not self.identity.is_signed_in():
            self.identity.sign_in()
            if not self.identity.is_signed_in():
                raise AuthError("Sign-in required.")

    def reset_session(self) -> None:
        """Forget local state on sign-out. Loads started before this call are discarded."""
        self._generation += 1
        self._set(empty_frame())

    # -------------------------------
    # Mutations
    # -------------------------------

    def load(self) -> pd.DataFrame:
        """Replace local state with the provider's entries."""
        if self.loading:
            logger.debug("load() already in flight; ignoring")
            return self.snapshot()

        self.loading = True
        generation = self._generation
        try:
            self._ensure_authenticated()
            entries = self.provider.list_entries()
        except ProviderError as e:
            if generation == self._generation:
                self._set(empty_frame())
            if isinstance(e, FetchFailed):
                raise
            raise FetchFailed(e.message) from e
        finally:
            self.loading = False

        if generation != self._generation:
            logger.info("Discarding load from a previous session (%d != %d)", generation, self._generation)
            return self.snapshot()

        self._set(entries_to_frame(entries))
        logger.debug("Loaded %d readings", len(self._df))
        return self.snapshot()

    def add(self, entry_date: Any = None, temperature: Any = None) -> pd.DataFrame:
        """
        Insert or replace the reading for entry_date (today when omitted).

        Raises ValidationError before any I/O for bad input, AuthError when a
        required sign-in fails, UpsertFailed when the provider rejects the write.
        """
        entry = Entry(date=parse_date(entry_date, tz_name=self.tz_name), temperature=parse_temperature(temperature))
        self._ensure_authenticated()

        previous = self.get(entry.date)
        self._set(_with_entry(self._df, entry))
        try:
            self.provider.upsert_entry(entry)
        except ProviderError as e:
            logger.warning("Upsert failed for %s, rolling back: %s", entry.date, e)
            self._rollback(entry.date, expected=entry, restore=previous)
            if isinstance(e, UpsertFailed):
                raise
            raise UpsertFailed(e.message) from e

        logger.debug("Saved %s = %.1f", entry.date, entry.temperature)
        return self.snapshot()

    def delete(self, key: Any) -> pd.DataFrame:
        """
        Remove the reading identified by key: a date or a (date, temperature) pair.

        Raises EntryNotFound when nothing matches, leaving the series unchanged.
        A provider failure restores the reading and raises DeleteFailed (or
        EntryNotFound when the provider no longer has it).
        """
        entry_date, expected_temp = _resolve_key(key)
        previous = self.get(entry_date)
        if previous is None or (expected_temp is not None and previous.temperature != expected_temp):
            raise EntryNotFound(f"No reading for {entry_date.isoformat()}")

        self._ensure_authenticated()

        self._set(_without_date(self._df, entry_date))
        try:
            self.provider.delete_entry(entry_date)
        except ProviderError as e:
            logger.warning("Delete failed for %s, restoring: %s", entry_date, e)
            self._rollback(entry_date, expected=None, restore=previous)
            if isinstance(e, (DeleteFailed, EntryNotFound)):
                raise
            raise DeleteFailed(e.message) from e

        logger.debug("Deleted %s", entry_date)
        return self.snapshot()

    def _rollback(self, entry_date: date, expected: Optional[Entry], restore: Optional[Entry]) -> None:
        # Last write wins: leave the date alone if another mutation has touched it since
        if self.get(entry_date) != expected:
            logger.info("Skipping rollback for %s; it changed in the meantime", entry_date)
            return
        if restore is None:
            self._set(_without_date(self._df, entry_date))
        else:
            self._set(_with_entry(self._df, restore))
