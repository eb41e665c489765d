"""In-memory session store."""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
import threading

from app.exceptions import InfrastructureError, SessionNotFound
from app.services.session_store import SessionRecord


class MemorySessionStore:
    """Process-local session store; every operation runs under one lock."""

    def __init__(self, timeout: float = 5.0) -> None:
        self._lock = threading.Lock()
        self._timeout = timeout
        self._records: list[SessionRecord] = []

    @contextmanager
    def _locked(self, op: str) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._timeout):
            raise InfrastructureError(op, "timed out waiting for store lock")
        try:
            yield
        finally:
            self._lock.release()

    def insert(self, user_name: str, token_hash: str, created_at: datetime) -> None:
        with self._locked("store.memory.insert"):
            self._records.append(SessionRecord(user_name, token_hash, created_at))

    def delete_by_hash(self, token_hash: str, user_name: str | None = None) -> int:
        with self._locked("store.memory.delete_by_hash"):
            return self._remove(
                lambda r: r.refresh_token_hash == token_hash
                and (user_name is None or r.user_name == user_name)
            )

    def delete_by_user(self, user_name: str) -> int:
        with self._locked("store.memory.delete_by_user"):
            return self._remove(lambda r: r.user_name == user_name)

    def count(self, user_name: str) -> int:
        with self._locked("store.memory.count"):
            return sum(1 for r in self._records if r.user_name == user_name)

    def get_hash(self, user_name: str) -> str:
        with self._locked("store.memory.get_hash"):
            matches = [r for r in self._records if r.user_name == user_name]
        if not matches:
            raise SessionNotFound(user_name)
        if len(matches) > 1:
            raise InfrastructureError("store.memory.get_hash", f"multiple sessions for {user_name!r}")
        return matches[0].refresh_token_hash

    def get_created_at(self, token_hash: str, user_name: str) -> datetime:
        with self._locked("store.memory.get_created_at"):
            for record in self._records:
                if record.user_name == user_name and record.refresh_token_hash == token_hash:
                    return record.created_at
        raise SessionNotFound(user_name)

    def replace(self, user_name: str, old_hash: str, new_hash: str, created_at: datetime) -> bool:
        with self._locked("store.memory.replace"):
            removed = self._remove(
                lambda r: r.user_name == user_name and r.refresh_token_hash == old_hash
            )
            if removed != 1:
                return False
            self._records.append(SessionRecord(user_name, new_hash, created_at))
            return True

    def reset(self, user_name: str, token_hash: str, created_at: datetime) -> None:
        with self._locked("store.memory.reset"):
            self._remove(lambda r: r.user_name == user_name)
            self._records.append(SessionRecord(user_name, token_hash, created_at))

    def _remove(self, predicate) -> int:
        kept = [r for r in self._records if not predicate(r)]
        removed = len(self._records) - len(kept)
        self._records = kept
        return removed
