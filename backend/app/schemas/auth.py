"""Authentication schemas."""
from pydantic import BaseModel


class TokenPairResponse(BaseModel):
    """Token pair returned by /auth and /refresh."""

    user_name: str
    access_token: str
    refresh_token: str

    class Config:
        from_attributes = True


class HealthResponse(BaseModel):
    status: str
    app: str
