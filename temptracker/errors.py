from __future__ import annotations


class TrackerError(Exception):
    """Base class for every error surfaced to the notification slot."""

    default_message = "Something went wrong."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(TrackerError):
    default_message = "Please enter a valid temperature and date."


class AuthError(TrackerError):
    default_message = "Sign-in failed."


class ProviderError(TrackerError):
    default_message = "The data store could not be reached."


class FetchFailed(ProviderError):
    default_message = "Failed to load readings."


class UpsertFailed(ProviderError):
    default_message = "Failed to save reading."


class DeleteFailed(ProviderError):
    default_message = "Failed to delete reading."


class EntryNotFound(ProviderError):
    default_message = "Reading not found."
