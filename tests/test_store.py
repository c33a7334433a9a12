from datetime import date

import pandas as pd
import pytest

from conftest import FakeIdentity, FakeProvider
from temptracker.errors import AuthError, DeleteFailed, EntryNotFound, FetchFailed, UpsertFailed, ValidationError
from temptracker.models import Entry, today
from temptracker.store import SeriesStore


def _dates(df):
    return list(df["Date"])


# ---- load -------------------------------------------------------------------


class TestLoad:
    def test_replaces_state_sorted(self):
        provider = FakeProvider([Entry(date(2024, 1, 3), 37.2), Entry(date(2024, 1, 1), 36.5)])
        store = SeriesStore(provider)
        out = store.load()
        assert _dates(out) == [date(2024, 1, 1), date(2024, 1, 3)]
        assert len(store) == 2

    def test_failure_empties_series(self, store, provider):
        provider.fail_list = True
        with pytest.raises(FetchFailed):
            store.load()
        assert store.snapshot().empty
        assert not store.loading

    def test_reentrant_load_is_ignored(self, provider):
        store = SeriesStore(provider)
        nested = []
        provider.on_list = lambda: nested.append(store.load())
        store.load()
        assert len(nested) == 1
        assert nested[0].empty
        assert [c for c in provider.calls if c[0] == "list"] == [("list",)]

    def test_stale_load_discarded_after_sign_out(self, provider):
        store = SeriesStore(provider)
        provider.on_list = store.reset_session
        out = store.load()
        assert out.empty
        assert store.generation == 1

    def test_requires_auth(self, provider):
        identity = FakeIdentity(signed_in=False)
        store = SeriesStore(provider, identity=identity, require_auth=True)
        store.load()
        assert identity.sign_in_calls == 1
        assert len(store) == 2


# ---- add --------------------------------------------------------------------


class TestAdd:
    def test_fills_gap(self, store, provider):
        out = store.add(date(2024, 1, 2), 37.0)
        assert _dates(out) == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
        assert out["Temperature"].tolist() == [36.5, 37.0, 37.2]
        assert not store.dense()["Temperature"].isna().any()
        assert provider.calls[-1] == ("upsert", Entry(date(2024, 1, 2), 37.0))

    def test_replaces_existing_date(self, store):
        out = store.add(date(2024, 1, 1), 38.0)
        assert len(out) == 2
        assert store.get(date(2024, 1, 1)) == Entry(date(2024, 1, 1), 38.0)

    def test_uniqueness_after_many_adds(self, store):
        for t in (36.1, 36.2, 36.3):
            store.add("2024-01-05", t)
        df = store.snapshot()
        assert df["Date"].is_unique
        assert df["Date"].is_monotonic_increasing
        assert store.get(date(2024, 1, 5)).temperature == 36.3

    def test_defaults_to_today(self, store):
        store.add(temperature=36.9)
        assert store.get(today(store.tz_name)) is not None

    def test_accepts_string_temperature(self, store):
        store.add("2024-01-10", "37,4")
        assert store.get(date(2024, 1, 10)).temperature == 37.4

    @pytest.mark.parametrize("bad", ["abc", None, float("nan"), float("inf"), True, [37.0]])
    def test_rejects_invalid_temperature(self, store, provider, bad):
        before = store.snapshot()
        calls = len(provider.calls)
        with pytest.raises(ValidationError):
            store.add(date(2024, 1, 2), bad)
        pd.testing.assert_frame_equal(store.snapshot(), before)
        assert len(provider.calls) == calls

    def test_rejects_invalid_date(self, store, provider):
        calls = len(provider.calls)
        with pytest.raises(ValidationError):
            store.add("not a date", 37.0)
        assert len(provider.calls) == calls

    def test_provider_failure_rolls_back_new_date(self, store, provider):
        provider.fail_upsert = True
        with pytest.raises(UpsertFailed):
            store.add(date(2024, 1, 2), 37.0)
        assert _dates(store.snapshot()) == [date(2024, 1, 1), date(2024, 1, 3)]

    def test_provider_failure_restores_previous_value(self, store, provider):
        provider.fail_upsert = True
        with pytest.raises(UpsertFailed):
            store.add(date(2024, 1, 1), 39.0)
        assert store.get(date(2024, 1, 1)).temperature == 36.5

    def test_applied_before_provider_returns(self, store, provider):
        seen = []
        original = provider.upsert_entry

        def upsert(entry):
            seen.append(store.get(entry.date))
            original(entry)

        provider.upsert_entry = upsert
        store.add(date(2024, 1, 2), 37.0)
        assert seen == [Entry(date(2024, 1, 2), 37.0)]

    def test_auth_failure_blocks_mutation(self, provider):
        store = SeriesStore(provider, identity=FakeIdentity(signed_in=True), require_auth=True)
        store.load()
        store.identity.signed_in = False
        store.identity.fail = True
        with pytest.raises(AuthError):
            store.add(date(2024, 1, 2), 37.0)
        assert store.get(date(2024, 1, 2)) is None
        assert not any(c[0] == "upsert" for c in provider.calls)


# ---- delete -----------------------------------------------------------------


class TestDelete:
    def test_by_date(self, store, provider):
        out = store.delete(date(2024, 1, 1))
        assert _dates(out) == [date(2024, 1, 3)]
        assert provider.calls[-1] == ("delete", date(2024, 1, 1))

    def test_by_iso_string(self, store):
        store.delete("2024-01-03")
        assert _dates(store.snapshot()) == [date(2024, 1, 1)]

    def test_by_pair(self, store):
        store.delete((date(2024, 1, 3), 37.2))
        assert store.get(date(2024, 1, 3)) is None

    def test_pair_with_wrong_temperature_not_found(self, store, provider):
        calls = len(provider.calls)
        with pytest.raises(EntryNotFound):
            store.delete((date(2024, 1, 3), 36.0))
        assert len(store) == 2
        assert len(provider.calls) == calls

    def test_not_found(self, store, provider):
        before = store.snapshot()
        with pytest.raises(EntryNotFound):
            store.delete(date(2024, 1, 2))
        pd.testing.assert_frame_equal(store.snapshot(), before)
        assert not any(c[0] == "delete" for c in provider.calls)

    def test_already_removed(self, store):
        store.delete(date(2024, 1, 1))
        before = store.snapshot()
        with pytest.raises(EntryNotFound):
            store.delete(date(2024, 1, 1))
        pd.testing.assert_frame_equal(store.snapshot(), before)

    def test_removed_remotely_is_restored_and_reported(self, store, provider):
        del provider.rows[date(2024, 1, 1)]
        with pytest.raises(EntryNotFound):
            store.delete(date(2024, 1, 1))
        assert store.get(date(2024, 1, 1)) == Entry(date(2024, 1, 1), 36.5)

    def test_provider_failure_restores(self, store, provider):
        provider.fail_delete = True
        with pytest.raises(DeleteFailed):
            store.delete(date(2024, 1, 3))
        assert _dates(store.snapshot()) == [date(2024, 1, 1), date(2024, 1, 3)]

    def test_index_keys_rejected(self, store):
        with pytest.raises(ValidationError):
            store.delete(0)

    def test_signs_in_first(self, provider):
        identity = FakeIdentity(signed_in=True)
        store = SeriesStore(provider, identity=identity, require_auth=True)
        store.load()
        identity.signed_in = False
        store.delete(date(2024, 1, 1))
        assert identity.sign_in_calls == 1
        assert store.get(date(2024, 1, 1)) is None

    def test_ordering_kept(self, store):
        store.add(date(2023, 12, 30), 36.8)
        store.add(date(2024, 1, 2), 37.0)
        store.delete(date(2024, 1, 1))
        df = store.snapshot()
        assert df["Date"].is_monotonic_increasing
        assert _dates(df) == [date(2023, 12, 30), date(2024, 1, 2), date(2024, 1, 3)]


# ---- notifications to subscribers -------------------------------------------


class TestSubscribe:
    def test_listener_gets_snapshots(self, store):
        seen = []
        store.subscribe(lambda df: seen.append(_dates(df)))
        store.add(date(2024, 1, 2), 37.0)
        store.delete(date(2024, 1, 1))
        assert seen == [
            [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)],
            [date(2024, 1, 2), date(2024, 1, 3)],
        ]

    def test_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        store.add(date(2024, 1, 2), 37.0)
        assert seen == []

    def test_snapshot_is_a_copy(self, store):
        snap = store.snapshot()
        snap.loc[0, "Temperature"] = 99.0
        assert store.get(date(2024, 1, 1)).temperature == 36.5

    def test_rollback_notifies(self, store, provider):
        seen = []
        store.subscribe(lambda df: seen.append(len(df)))
        provider.fail_upsert = True
        with pytest.raises(UpsertFailed):
            store.add(date(2024, 1, 2), 37.0)
        assert seen == [3, 2]


def test_reset_session_clears_state(store):
    store.reset_session()
    assert store.snapshot().empty
    assert store.generation == 1
