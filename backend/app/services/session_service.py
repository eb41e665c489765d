"""Session lifecycle: login, refresh-token validation and rotation."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
import logging
from typing import Protocol

from app.exceptions import AuthenticationFailure, SessionNotFound
from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)


class TokenAuthenticator(Protocol):
    def mint_access_token(self, subject: str, ttl: timedelta) -> str:
        ...

    def mint_refresh_token(self) -> str:
        ...

    def hash_for_storage(self, token: str) -> str:
        ...

    def verify(self, provided_token: str, stored_hash: str) -> bool:
        ...


class ValidationOutcome(str, Enum):
    VALID = "valid"
    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TokenPair:
    user_name: str
    access_token: str
    refresh_token: str


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionService:
    """Enforces the single-session policy and the refresh-token rotation protocol.

    A user has at most one session record. Logging in replaces it; a
    successful refresh swaps its hash for a new one; an expired record is
    deleted the first time it is presented.
    """

    def __init__(
        self,
        store: SessionStore,
        authenticator: TokenAuthenticator,
        access_token_ttl: timedelta,
        refresh_token_ttl: timedelta,
    ) -> None:
        self._store = store
        self._authenticator = authenticator
        self._access_token_ttl = access_token_ttl
        self._refresh_token_ttl = refresh_token_ttl

    def start_session(self, user_name: str) -> TokenPair:
        """Replace any session of ``user_name`` with a fresh one and return its tokens."""
        refresh_token = self._authenticator.mint_refresh_token()
        token_hash = self._authenticator.hash_for_storage(refresh_token)
        self._store.reset(user_name, token_hash, utcnow())
        access_token = self.issue_access_token(user_name)
        logger.debug("Started session for %s", user_name)
        return TokenPair(user_name=user_name, access_token=access_token, refresh_token=refresh_token)

    def check_refresh_token(self, token: str, user_name: str) -> ValidationOutcome:
        """Classify a presented refresh token. Expired records are deleted."""
        try:
            stored_hash = self._store.get_hash(user_name)
        except SessionNotFound:
            return self._reject(user_name, ValidationOutcome.NOT_FOUND)

        if not self._authenticator.verify(token, stored_hash):
            return self._reject(user_name, ValidationOutcome.MISMATCH)

        try:
            created_at = self._store.get_created_at(stored_hash, user_name)
        except SessionNotFound:
            # rotated or purged between the two reads
            return self._reject(user_name, ValidationOutcome.NOT_FOUND)

        if created_at + self._refresh_token_ttl < utcnow():
            self._store.delete_by_hash(stored_hash, user_name)
            return self._reject(user_name, ValidationOutcome.EXPIRED)

        return ValidationOutcome.VALID

    def validate_refresh_token(self, token: str, user_name: str) -> bool:
        return self.check_refresh_token(token, user_name) is ValidationOutcome.VALID

    def rotate_session(self, old_token: str, user_name: str) -> str:
        """Swap the stored hash of ``old_token`` for a new refresh token.

        The swap is conditional on the old hash still being stored, so of two
        concurrent rotations from the same token only one can succeed.
        """
        try:
            old_hash = self._store.get_hash(user_name)
        except SessionNotFound as exc:
            raise AuthenticationFailure(ValidationOutcome.NOT_FOUND) from exc
        if not self._authenticator.verify(old_token, old_hash):
            raise AuthenticationFailure(ValidationOutcome.MISMATCH)

        new_token = self._authenticator.mint_refresh_token()
        new_hash = self._authenticator.hash_for_storage(new_token)
        if not self._store.replace(user_name, old_hash, new_hash, utcnow()):
            logger.info("Rotation for %s lost to a concurrent session change", user_name)
            raise AuthenticationFailure(ValidationOutcome.NOT_FOUND)

        logger.debug("Rotated session for %s", user_name)
        return new_token

    def issue_access_token(self, user_name: str) -> str:
        return self._authenticator.mint_access_token(user_name, self._access_token_ttl)

    def enforce_single_session(self, user_name: str) -> None:
        """Delete every session of ``user_name``; a new login ends all others."""
        if self._store.count(user_name) > 0:
            removed = self._store.delete_by_user(user_name)
            logger.debug("Purged %d session(s) for %s", removed, user_name)

    def refresh(self, token: str, user_name: str) -> TokenPair:
        """Validate ``token``, rotate it and issue a new access token."""
        outcome = self.check_refresh_token(token, user_name)
        if outcome is not ValidationOutcome.VALID:
            raise AuthenticationFailure(outcome)
        refresh_token = self.rotate_session(token, user_name)
        access_token = self.issue_access_token(user_name)
        return TokenPair(user_name=user_name, access_token=access_token, refresh_token=refresh_token)

    def _reject(self, user_name: str, outcome: ValidationOutcome) -> ValidationOutcome:
        logger.info("Refresh token rejected for %s: %s", user_name, outcome.value)
        return outcome
