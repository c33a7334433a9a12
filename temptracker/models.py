from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
import pytz
from dateutil import parser as dateparser

from temptracker.config import DEFAULT_TZ
from temptracker.errors import ValidationError

COLUMNS = ["Date", "Temperature"]

# Marker for a day without a reading in dense frames (DenseEntry uses None)
MISSING = pd.NA
MISSING_LABEL = "No data"


@dataclass(frozen=True)
class Entry:
    """One real observation. Unique per calendar date within a series."""

    date: date
    temperature: float

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> Optional["Entry"]:
        """
        Build an Entry from the provider shape {date: ISO string, temperature: number|null}.

        Returns None for records without a temperature (blank spreadsheet rows).

        >>> Entry.from_record({"date": "2024-01-03", "temperature": "37.2"})
        Entry(date=datetime.date(2024, 1, 3), temperature=37.2)
        >>> Entry.from_record({"date": "2024-01-03", "temperature": None}) is None
        True
        """
        raw_temp = record.get("temperature")
        if raw_temp is None or (isinstance(raw_temp, str) and not raw_temp.strip()):
            return None
        return cls(date=parse_date(record.get("date"), allow_default=False), temperature=parse_temperature(raw_temp))

    def to_record(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "temperature": float(self.temperature)}


@dataclass(frozen=True)
class DenseEntry:
    """One calendar day of the gap-filled series. temperature is None when no reading exists."""

    date: date
    temperature: Optional[float]

    @property
    def is_missing(self) -> bool:
        return self.temperature is None


# -------------------------------
# Validation
# -------------------------------

def today(tz_name: str = DEFAULT_TZ) -> date:
    return datetime.now(pytz.timezone(tz_name)).date()


def parse_temperature(value: Any) -> float:
    """
    Coerce user or provider input to a finite float.

    >>> parse_temperature("37,5")
    37.5
    >>> parse_temperature(0)
    0.0
    >>> parse_temperature("abc")
    Traceback (most recent call last):
    ...
    temptracker.errors.ValidationError: Invalid temperature: 'abc'
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid temperature: {value!r}")
    if isinstance(value, numbers.Real):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip().replace(",", "."))
        except ValueError:
            raise ValidationError(f"Invalid temperature: {value!r}") from None
    else:
        raise ValidationError(f"Invalid temperature: {value!r}")
    if not math.isfinite(result):
        raise ValidationError(f"Invalid temperature: {value!r}")
    return result


def parse_date(value: Any, allow_default: bool = True, tz_name: str = DEFAULT_TZ) -> date:
    """
    Coerce a date-like value to a calendar date.

    Missing values default to today in the configured timezone unless
    allow_default is False.

    >>> parse_date("2024-01-02")
    datetime.date(2024, 1, 2)
    >>> parse_date(pd.Timestamp("2024-01-02 13:45"))
    datetime.date(2024, 1, 2)
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_default:
            return today(tz_name)
        raise ValidationError("Date is required.")
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            raise ValidationError("Date is required.")
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return dateparser.parse(str(value)).date()
    except (ValueError, OverflowError):
        raise ValidationError(f"Invalid date: {value!r}") from None


# -------------------------------
# Frame conversions
# -------------------------------

def empty_frame() -> pd.DataFrame:
    return pd.DataFrame({"Date": pd.Series(dtype=object), "Temperature": pd.Series(dtype=float)})


def clean_frame(df: pd.DataFrame, how: str = "last") -> pd.DataFrame:
    """
    Normalize a sparse series.
    - Coerce Date to python dates and Temperature to float
    - Drop rows with nulls
    - Collapse duplicate dates, keeping the last row (how="last") or the mean (how="mean")
    - Sort ascending by Date
    """
    if df.empty:
        return empty_frame()
    if "Date" not in df.columns or "Temperature" not in df.columns:
        raise ValidationError("Data must contain 'Date' and 'Temperature' columns")

    df = df[COLUMNS].copy()
    df["Date"] = pd.to_datetime(df["Date"], errors="coerce").dt.date
    df["Temperature"] = pd.to_numeric(df["Temperature"], errors="coerce").astype(float)
    df = df.dropna(subset=COLUMNS)

    if how == "mean":
        df = df.groupby("Date", as_index=False)["Temperature"].mean()
    else:
        df = df.drop_duplicates(subset="Date", keep="last")

    return df.sort_values("Date").reset_index(drop=True)


def entries_to_frame(entries: Iterable[Entry]) -> pd.DataFrame:
    rows = [{"Date": e.date, "Temperature": float(e.temperature)} for e in entries]
    if not rows:
        return empty_frame()
    return clean_frame(pd.DataFrame(rows))


def frame_to_entries(df: pd.DataFrame) -> List[Entry]:
    return [Entry(date=d, temperature=float(t)) for d, t in zip(df["Date"], df["Temperature"])]
