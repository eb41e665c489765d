"""Session store contract and the SQLAlchemy-backed store."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import InfrastructureError, SessionNotFound
from app.models.auth import SessionRow

RESET_ATTEMPTS = 2


@dataclass(frozen=True)
class SessionRecord:
    user_name: str
    refresh_token_hash: str
    created_at: datetime


class SessionStore(Protocol):
    """Durable storage for session records. Holds no protocol logic."""

    def insert(self, user_name: str, token_hash: str, created_at: datetime) -> None:
        ...

    def delete_by_hash(self, token_hash: str, user_name: str | None = None) -> int:
        ...

    def delete_by_user(self, user_name: str) -> int:
        ...

    def count(self, user_name: str) -> int:
        ...

    def get_hash(self, user_name: str) -> str:
        ...

    def get_created_at(self, token_hash: str, user_name: str) -> datetime:
        ...

    def replace(self, user_name: str, old_hash: str, new_hash: str, created_at: datetime) -> bool:
        ...

    def reset(self, user_name: str, token_hash: str, created_at: datetime) -> None:
        ...


def to_column_time(value: datetime) -> str:
    """Aware datetime -> naive UTC ISO string for the created_time column."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat()


def from_column_time(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


class SqlSessionStore:
    """Session store over a request-scoped SQLAlchemy session.

    Every mutating call commits its own transaction. ``replace`` and ``reset``
    run their delete and insert inside a single transaction, so a concurrent
    writer either sees the old row or the new one, never both or neither.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def _fail(self, op: str, exc: SQLAlchemyError) -> InfrastructureError:
        self._db.rollback()
        return InfrastructureError(op, exc)

    def insert(self, user_name: str, token_hash: str, created_at: datetime) -> None:
        try:
            self._db.add(
                SessionRow(
                    name=user_name,
                    refresh_token=token_hash,
                    created_time=to_column_time(created_at),
                )
            )
            self._db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("store.sql.insert", exc) from exc

    def delete_by_hash(self, token_hash: str, user_name: str | None = None) -> int:
        try:
            query = self._db.query(SessionRow).filter(SessionRow.refresh_token == token_hash)
            if user_name is not None:
                query = query.filter(SessionRow.name == user_name)
            deleted = query.delete(synchronize_session=False)
            self._db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("store.sql.delete_by_hash", exc) from exc
        return deleted

    def delete_by_user(self, user_name: str) -> int:
        try:
            deleted = self._db.query(SessionRow).filter(
                SessionRow.name == user_name,
            ).delete(synchronize_session=False)
            self._db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("store.sql.delete_by_user", exc) from exc
        return deleted

    def count(self, user_name: str) -> int:
        try:
            return self._db.query(SessionRow).filter(SessionRow.name == user_name).count()
        except SQLAlchemyError as exc:
            raise self._fail("store.sql.count", exc) from exc

    def get_hash(self, user_name: str) -> str:
        try:
            rows = self._db.query(SessionRow.refresh_token).filter(
                SessionRow.name == user_name,
            ).limit(2).all()
        except SQLAlchemyError as exc:
            raise self._fail("store.sql.get_hash", exc) from exc
        if not rows:
            raise SessionNotFound(user_name)
        if len(rows) > 1:
            raise InfrastructureError("store.sql.get_hash", f"multiple sessions for {user_name!r}")
        return rows[0].refresh_token

    def get_created_at(self, token_hash: str, user_name: str) -> datetime:
        try:
            row = self._db.query(SessionRow.created_time).filter(
                SessionRow.refresh_token == token_hash,
                SessionRow.name == user_name,
            ).first()
        except SQLAlchemyError as exc:
            raise self._fail("store.sql.get_created_at", exc) from exc
        if row is None:
            raise SessionNotFound(user_name)
        return from_column_time(row.created_time)

    def replace(self, user_name: str, old_hash: str, new_hash: str, created_at: datetime) -> bool:
        try:
            deleted = self._db.query(SessionRow).filter(
                SessionRow.name == user_name,
                SessionRow.refresh_token == old_hash,
            ).delete(synchronize_session=False)
            if deleted != 1:
                self._db.rollback()
                return False
            self._db.add(
                SessionRow(
                    name=user_name,
                    refresh_token=new_hash,
                    created_time=to_column_time(created_at),
                )
            )
            self._db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("store.sql.replace", exc) from exc
        return True

    def reset(self, user_name: str, token_hash: str, created_at: datetime) -> None:
        for attempt in range(1, RESET_ATTEMPTS + 1):
            try:
                self._db.query(SessionRow).filter(
                    SessionRow.name == user_name,
                ).delete(synchronize_session=False)
                self._db.add(
                    SessionRow(
                        name=user_name,
                        refresh_token=token_hash,
                        created_time=to_column_time(created_at),
                    )
                )
                self._db.commit()
                return
            except IntegrityError as exc:
                # a concurrent login inserted the user's row after our delete
                if attempt == RESET_ATTEMPTS:
                    raise self._fail("store.sql.reset", exc) from exc
                self._db.rollback()
            except SQLAlchemyError as exc:
                raise self._fail("store.sql.reset", exc) from exc
