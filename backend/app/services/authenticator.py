"""Token minting, hashing and verification."""
from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import Any
from uuid import uuid4

import bcrypt
from jose import JWTError, jwt

from app.exceptions import AuthenticationFailure, ConfigurationError, InfrastructureError

logger = logging.getLogger(__name__)

REFRESH_TOKEN_BYTES = 32


class Authenticator:
    """Holds the signing secret and wraps the JWT and bcrypt primitives.

    Stateless beyond the secret, so one instance is shared across requests.
    """

    def __init__(
        self,
        signing_key: str,
        algorithm: str = "HS512",
        refresh_token_bytes: int = REFRESH_TOKEN_BYTES,
        bcrypt_rounds: int = 12,
    ) -> None:
        if not signing_key:
            raise ConfigurationError("Authenticator: empty signing key")
        self._signing_key = signing_key
        self._algorithm = algorithm
        self._refresh_token_bytes = refresh_token_bytes
        self._bcrypt_rounds = bcrypt_rounds

    def mint_access_token(self, subject: str, ttl: timedelta) -> str:
        """Sign a JWT naming ``subject`` that expires ``ttl`` from now."""
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": subject,
            "type": "access",
            "exp": now + ttl,
            "iat": now,
            "jti": uuid4().hex,
        }
        try:
            return jwt.encode(payload, self._signing_key, algorithm=self._algorithm)
        except JWTError as exc:
            raise InfrastructureError("authenticator.mint_access_token", exc) from exc

    def decode_access_token(self, token: str) -> dict[str, Any]:
        """Return the claims of a valid, unexpired access token."""
        try:
            payload = jwt.decode(token, self._signing_key, algorithms=[self._algorithm])
        except JWTError as exc:
            raise AuthenticationFailure(message="Invalid access token") from exc
        if payload.get("type") != "access":
            raise AuthenticationFailure(message="Invalid access token")
        return payload

    def mint_refresh_token(self) -> str:
        """Random hex refresh token from the OS CSPRNG."""
        return secrets.token_hex(self._refresh_token_bytes)

    def hash_for_storage(self, token: str) -> str:
        """Salted bcrypt hash of ``token``; the salt is embedded in the result."""
        try:
            hashed = bcrypt.hashpw(token.encode("utf-8"), bcrypt.gensalt(rounds=self._bcrypt_rounds))
        except ValueError as exc:
            raise InfrastructureError("authenticator.hash_for_storage", exc) from exc
        return hashed.decode("utf-8")

    def verify(self, provided_token: str, stored_hash: str) -> bool:
        """Check a token against its stored hash."""
        try:
            return bcrypt.checkpw(provided_token.encode("utf-8"), stored_hash.encode("utf-8"))
        except (TypeError, ValueError):
            # malformed hash and mismatch look the same to callers
            logger.debug("Stored refresh token hash could not be parsed")
            return False
