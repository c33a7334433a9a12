"""
Gap filling for the chart and table views.

The sparse series holds at most one reading per day. The dense series covers
every calendar day between the earliest and latest reading, with pd.NA
marking days without a reading.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List, Sequence, Union

import pandas as pd

from temptracker.models import MISSING, DenseEntry, Entry, clean_frame, empty_frame, entries_to_frame

SeriesLike = Union[pd.DataFrame, Iterable[Entry]]


def date_range(start: date, end: date) -> List[str]:
    """
    Inclusive list of ISO dates from start to end.

    >>> date_range(date(2024, 2, 28), date(2024, 3, 1))
    ['2024-02-28', '2024-02-29', '2024-03-01']
    >>> date_range(date(2024, 1, 2), date(2024, 1, 1))
    []
    """
    days = (end - start).days
    return [(start + timedelta(days=i)).isoformat() for i in range(days + 1)]


def _as_frame(series: SeriesLike) -> pd.DataFrame:
    if isinstance(series, pd.DataFrame):
        return series
    return entries_to_frame(series)


def densify(series: SeriesLike) -> pd.DataFrame:
    """
    Gap-filled daily view of a sparse series.
    - Daily canonicalization: duplicate dates in external input collapse to their mean
    - min/max are taken over the whole input, not its first/last rows
    - Reindex to continuous daily dates; days without a reading get pd.NA

    Returns a DataFrame with columns [Date (date), Temperature (Float64)].

    >>> sparse = pd.DataFrame({"Date": ["2024-01-03", "2024-01-01"], "Temperature": [37.2, 36.5]})
    >>> densify(sparse)["Temperature"].tolist()
    [36.5, <NA>, 37.2]
    """
    df = _as_frame(series)
    if df.empty:
        out = empty_frame()
        out["Temperature"] = out["Temperature"].astype("Float64")
        return out

    daily = clean_frame(df, how="mean")
    if daily.empty:
        out = empty_frame()
        out["Temperature"] = out["Temperature"].astype("Float64")
        return out

    idx = pd.date_range(min(daily["Date"]), max(daily["Date"]), freq="D")
    s = pd.Series(daily["Temperature"].to_numpy(dtype=float), index=pd.to_datetime(daily["Date"]))
    s = s.astype("Float64").reindex(idx, fill_value=MISSING)

    return pd.DataFrame({"Date": idx.date, "Temperature": s.array})


def dense_entries(series: SeriesLike) -> List[DenseEntry]:
    dense = densify(series)
    return [
        DenseEntry(date=d, temperature=None if pd.isna(t) else float(t))
        for d, t in zip(dense["Date"], dense["Temperature"])
    ]


def missing_dates(series: SeriesLike) -> Sequence[date]:
    """Days inside the observed range that have no reading."""
    dense = densify(series)
    return list(dense.loc[dense["Temperature"].isna(), "Date"])
