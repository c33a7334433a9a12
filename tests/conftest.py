from datetime import date
from typing import List

import gspread
import pytest

from temptracker.errors import AuthError, DeleteFailed, EntryNotFound, FetchFailed, UpsertFailed
from temptracker.identity import IdentityProvider
from temptracker.models import Entry
from temptracker.notifications import Notifier
from temptracker.providers import PersistenceProvider
from temptracker.store import SeriesStore


class FakeProvider(PersistenceProvider):
    """In-memory provider that records calls and can be told to fail."""

    def __init__(self, entries: List[Entry] = None):
        self.rows = {e.date: e.temperature for e in (entries or [])}
        self.calls = []
        self.fail_list = False
        self.fail_upsert = False
        self.fail_delete = False
        self.on_list = None

    def list_entries(self) -> List[Entry]:
        self.calls.append(("list",))
        if self.on_list is not None:
            self.on_list()
        if self.fail_list:
            raise FetchFailed("boom")
        return [Entry(d, t) for d, t in self.rows.items()]

    def upsert_entry(self, entry: Entry) -> None:
        self.calls.append(("upsert", entry))
        if self.fail_upsert:
            raise UpsertFailed("boom")
        self.rows[entry.date] = entry.temperature

    def delete_entry(self, key: date) -> None:
        self.calls.append(("delete", key))
        if self.fail_delete:
            raise DeleteFailed("boom")
        if key not in self.rows:
            raise EntryNotFound("gone")
        del self.rows[key]


class FakeIdentity(IdentityProvider):
    def __init__(self, signed_in=False, fail=False):
        self.signed_in = signed_in
        self.fail = fail
        self.sign_in_calls = 0

    def is_signed_in(self) -> bool:
        return self.signed_in

    def sign_in(self) -> None:
        self.sign_in_calls += 1
        if self.fail:
            raise AuthError("denied")
        self.signed_in = True

    def sign_out(self) -> None:
        self.signed_in = False


class FakeWorksheet:
    """In-memory stand-in for a gspread Worksheet."""

    def __init__(self, values):
        self.values = [list(r) for r in values]
        self.fail = False
        self.raise_on_read = None

    def row_values(self, n):
        if self.raise_on_read is not None:
            raise self.raise_on_read
        return self.values[n - 1] if len(self.values) >= n else []

    def get_all_values(self):
        if self.fail:
            raise gspread.exceptions.GSpreadException("quota")
        return [list(r) for r in self.values]

    def clear(self):
        self.values = []

    def insert_row(self, values, index=1):
        self.values.insert(index - 1, list(values))

    def update(self, values=None, range_name=None, **kwargs):
        start_row = int(range_name.split(":")[0][1:])
        while len(self.values) < start_row - 1 + len(values):
            self.values.append([])
        for i, row in enumerate(values):
            self.values[start_row - 1 + i] = [str(v) for v in row]


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def sample_entries():
    return [Entry(date(2024, 1, 1), 36.5), Entry(date(2024, 1, 3), 37.2)]


@pytest.fixture
def provider(sample_entries):
    return FakeProvider(sample_entries)


@pytest.fixture
def store(provider):
    s = SeriesStore(provider)
    s.load()
    return s


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier(clock):
    return Notifier(timeout=5.0, clock=clock)
