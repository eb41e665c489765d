"""Authentication API endpoints."""
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status

from app.api.deps import get_session_service
from app.config import get_settings
from app.exceptions import ClientInputError, InfrastructureError, TollgateError
from app.schemas.auth import TokenPairResponse
from app.services.session_service import SessionService, TokenPair

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])
settings = get_settings()

NAME_HEADER = "Name"
TOKEN_HEADER = "Token"


def require_header(value: str | None, header: str) -> str:
    """Reject a missing or blank header with 400."""
    if not value:
        raise ClientInputError(f"Header '{header}' is missing")
    return value


def to_http_error(exc: TollgateError) -> HTTPException:
    """Map a service error to the response the client is allowed to see."""
    if isinstance(exc, InfrastructureError):
        logger.error("%s failed: %s", exc.op, exc.cause)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal Server Error",
        )
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def set_token_cookies(response: Response, pair: TokenPair) -> None:
    """Issue HttpOnly access and refresh cookies that live as long as the tokens."""
    response.set_cookie(
        key=settings.access_cookie_name,
        value=pair.access_token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        path=settings.cookie_path,
        max_age=int(settings.access_token_ttl.total_seconds()),
    )
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=pair.refresh_token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        path=settings.cookie_path,
        max_age=int(settings.refresh_token_ttl.total_seconds()),
    )


@router.get("/auth", response_model=TokenPairResponse)
def login(
    response: Response,
    name: str | None = Header(default=None, alias=NAME_HEADER),
    service: SessionService = Depends(get_session_service),
):
    """Start a session for the user named in the Name header."""
    try:
        user_name = require_header(name, NAME_HEADER)
        service.enforce_single_session(user_name)
        pair = service.start_session(user_name)
    except TollgateError as exc:
        raise to_http_error(exc) from exc

    set_token_cookies(response, pair)
    return TokenPairResponse.model_validate(pair)


@router.post("/refresh", response_model=TokenPairResponse)
def refresh_tokens(
    response: Response,
    token: str | None = Header(default=None, alias=TOKEN_HEADER),
    name: str | None = Header(default=None, alias=NAME_HEADER),
    service: SessionService = Depends(get_session_service),
):
    """Exchange a valid refresh token for a new token pair."""
    try:
        refresh_token = require_header(token, TOKEN_HEADER)
        user_name = require_header(name, NAME_HEADER)
        pair = service.refresh(refresh_token, user_name)
    except TollgateError as exc:
        raise to_http_error(exc) from exc

    set_token_cookies(response, pair)
    return TokenPairResponse.model_validate(pair)
