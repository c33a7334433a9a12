from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from supabase import Client

from temptracker.errors import AuthError

logger = logging.getLogger(__name__)

GUEST_USER = {"id": "guest", "email": "guest@example.com"}


class IdentityProvider(ABC):
    @abstractmethod
    def is_signed_in(self) -> bool:
        ...

    @abstractmethod
    def sign_in(self) -> None:
        """Raises AuthError when sign-in fails."""

    @abstractmethod
    def sign_out(self) -> None:
        ...

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return None


class GuestIdentity(IdentityProvider):
    """Local-only mode: always signed in, nothing to authenticate against."""

    def __init__(self):
        self._signed_in = True

    def is_signed_in(self) -> bool:
        return self._signed_in

    def sign_in(self) -> None:
        self._signed_in = True

    def sign_out(self) -> None:
        self._signed_in = False

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return dict(GUEST_USER) if self._signed_in else None


class SupabaseIdentity(IdentityProvider):
    """
    Supabase auth. Supports email/password and the OAuth (PKCE) code exchange.

    sign_in() with no arguments reuses the last credentials, which is what the
    store does when a mutation needs a fresh session.
    """

    def __init__(self, client: Client):
        self.client = client
        self._user: Optional[Dict[str, Any]] = None
        self._session = None
        self._credentials: Optional[Dict[str, str]] = None

    def is_signed_in(self) -> bool:
        return self._user is not None

    def sign_in(self, email: Optional[str] = None, password: Optional[str] = None, auth_code: Optional[str] = None) -> None:
        if email is not None or password is not None:
            if not email or not password:
                raise AuthError("Please enter both email and password.")
            self._credentials = {"email": email, "password": password}

        try:
            if auth_code is not None:
                response = self.client.auth.exchange_code_for_session({"auth_code": auth_code})
            elif self._credentials is not None:
                response = self.client.auth.sign_in_with_password(self._credentials)
            else:
                raise AuthError("Please sign in first.")
        except AuthError:
            raise
        except Exception as e:
            logger.warning("Supabase sign-in failed: %s", e)
            raise AuthError(f"Login failed: {e}") from e

        if response.user is None:
            raise AuthError("Login failed: no user returned.")
        self._user = {"id": response.user.id, "email": response.user.email}
        self._session = response.session
        logger.info("Signed in as %s", self._user["email"])

    def sign_out(self) -> None:
        try:
            self.client.auth.sign_out()
        except Exception as e:
            # Local state is cleared regardless
            logger.warning("Supabase sign-out failed: %s", e)
        self._user = None
        self._session = None
        self._credentials = None

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self._user

    @property
    def session(self):
        return self._session
