"""Temperature Tracker: log daily temperature readings and chart them."""
from temptracker.errors import (
    AuthError,
    DeleteFailed,
    EntryNotFound,
    FetchFailed,
    ProviderError,
    TrackerError,
    UpsertFailed,
    ValidationError,
)
from temptracker.models import DenseEntry, Entry
from temptracker.densifier import date_range, dense_entries, densify
from temptracker.store import SeriesStore
from temptracker.notifications import Notifier
from temptracker.dashboard import Dashboard

__version__ = "0.1.0"

__all__ = [
    "AuthError",
    "Dashboard",
    "DeleteFailed",
    "DenseEntry",
    "Entry",
    "EntryNotFound",
    "FetchFailed",
    "Notifier",
    "ProviderError",
    "SeriesStore",
    "TrackerError",
    "UpsertFailed",
    "ValidationError",
    "date_range",
    "dense_entries",
    "densify",
]
