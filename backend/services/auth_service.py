"""Shared admin token login issuing per-operator bearer sessions."""

from __future__ import annotations

import secrets
from threading import Lock
from typing import Optional

from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class AuthenticationError(Exception):
    """Base authentication failure."""


class AdminTokenNotConfiguredError(AuthenticationError):
    """Raised when ADMIN_TOKEN is missing."""


class InvalidAdminTokenError(AuthenticationError):
    """Raised when provided token is invalid."""


class AuthService:
    """Validates login credentials and maps bearer tokens to operator names."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._sessions: dict[str, str] = {}
        self._lock = Lock()

    @property
    def auth_enabled(self) -> bool:
        return bool(self._settings.admin_token)

    @property
    def anonymous_actor(self) -> str:
        return self._settings.default_actor

    def _expected_token(self) -> str:
        if not self._settings.admin_token:
            raise AdminTokenNotConfiguredError(
                "ADMIN_TOKEN is not configured. Set ADMIN_TOKEN in environment variables."
            )
        return self._settings.admin_token

    def login(self, provided_admin_token: str, display_name: Optional[str] = None) -> str:
        expected = self._expected_token()
        if not secrets.compare_digest(provided_admin_token, expected):
            raise InvalidAdminTokenError("Invalid admin token")
        actor = (display_name or "").strip() or "admin"
        bearer = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[bearer] = actor
        logger.info("Operator session opened for %s", actor)
        return bearer

    def logout(self, bearer_token: str) -> None:
        with self._lock:
            self._sessions.pop(bearer_token, None)

    def resolve_actor(self, bearer_token: Optional[str]) -> str:
        """Return the operator bound to ``bearer_token``.

        With auth disabled every caller acts as the configured default actor.
        """
        if not self.auth_enabled:
            return self.anonymous_actor
        if not bearer_token:
            raise InvalidAdminTokenError("No active session. Login first.")
        with self._lock:
            for token, actor in self._sessions.items():
                if secrets.compare_digest(bearer_token, token):
                    return actor
        raise InvalidAdminTokenError("Invalid bearer token")

    def validate_bearer_token(self, bearer_token: str) -> None:
        self.resolve_actor(bearer_token)
