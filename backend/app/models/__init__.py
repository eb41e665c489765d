"""SQLAlchemy models package."""
from app.models.auth import SessionRow

__all__ = [
    "SessionRow",
]
