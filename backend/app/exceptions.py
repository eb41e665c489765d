"""Tollgate exceptions."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.services.session_service import ValidationOutcome


class TollgateError(Exception):
    """Base exception with the HTTP status it maps to."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConfigurationError(TollgateError):
    """Misconfiguration detected while building a component."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class ClientInputError(TollgateError):
    """Missing or malformed request input."""


class AuthenticationFailure(TollgateError):
    """Refresh token rejected. The cause stays server-side."""

    def __init__(self, outcome: "ValidationOutcome | None" = None, message: str = "Bad Request"):
        super().__init__(message, status_code=400)
        self.outcome = outcome


class InfrastructureError(TollgateError):
    """Store or crypto primitive failure, tagged with the failing operation."""

    def __init__(self, op: str, cause: Exception | str):
        super().__init__(f"{op}: {cause}", status_code=500)
        self.op = op
        self.cause = cause


class SessionNotFound(TollgateError):
    """No session record exists for the requested key."""

    def __init__(self, user_name: str):
        super().__init__(f"no session for {user_name!r}", status_code=400)
        self.user_name = user_name
