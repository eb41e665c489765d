"""Authentication/session models."""
import uuid

from sqlalchemy import Column, String

from app.database import Base


class SessionRow(Base):
    """One active refresh-token session per user name."""

    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), unique=True, nullable=False, index=True)
    refresh_token = Column(String(60), nullable=False, index=True)  # bcrypt hash, never the raw token
    created_time = Column(String(26), nullable=False)
