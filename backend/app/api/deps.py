"""FastAPI dependencies wiring the session service."""
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.services.authenticator import Authenticator
from app.services.memory_session_store import MemorySessionStore
from app.services.session_service import SessionService
from app.services.session_store import SessionStore, SqlSessionStore

__all__ = [
    "get_authenticator",
    "get_db",
    "get_memory_store",
    "get_session_service",
    "get_session_store",
]


@lru_cache
def get_authenticator() -> Authenticator:
    settings = get_settings()
    return Authenticator(
        settings.secret_key,
        algorithm=settings.algorithm,
        bcrypt_rounds=settings.bcrypt_rounds,
    )


@lru_cache
def get_memory_store() -> MemorySessionStore:
    return MemorySessionStore(timeout=get_settings().store_timeout_seconds)


def get_session_store(db: Session = Depends(get_db)) -> SessionStore:
    """Store for the configured backend; SQL stores share the request's DB session."""
    if get_settings().session_store_backend == "memory":
        return get_memory_store()
    return SqlSessionStore(db)


def get_session_service(
    store: SessionStore = Depends(get_session_store),
    authenticator: Authenticator = Depends(get_authenticator),
) -> SessionService:
    settings = get_settings()
    return SessionService(
        store,
        authenticator,
        access_token_ttl=settings.access_token_ttl,
        refresh_token_ttl=settings.refresh_token_ttl,
    )
