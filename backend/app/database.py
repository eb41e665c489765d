"""Database connection and session management."""
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.config import get_settings

settings = get_settings()


def build_engine_options(database_url: str, timeout: float) -> dict:
    """Engine options bounding every store call by the configured timeout."""
    if "sqlite" not in database_url:
        return {"pool_timeout": timeout}

    # SQLite requires check_same_thread=False for FastAPI
    options = {"connect_args": {"check_same_thread": False, "timeout": timeout}}
    if ":memory:" not in database_url:
        options["pool_timeout"] = timeout
    return options


engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    **build_engine_options(settings.database_url, settings.store_timeout_seconds),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency that provides a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

