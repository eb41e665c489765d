"""Tollgate - access and refresh token service."""
from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request

from app.config import get_settings
from app.logging_config import configure_logging
from app.schemas.auth import HealthResponse

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    configure_logging(settings.env, settings.log_level)

    from app.database import Base, engine

    # Import all models so they're registered with Base
    from app import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Starting %s (env=%s, store=%s)", settings.app_name, settings.env, settings.session_store_backend)

    yield

    engine.dispose()
    logger.info("Stopped %s", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Issue and rotate access/refresh token pairs",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log one line per completed request."""
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "request completed method=%s path=%s remote_addr=%s user_agent=%s status_code=%d duration=%.3fs",
        request.method,
        request.url.path,
        request.client.host if request.client else "unknown",
        request.headers.get("user-agent", ""),
        response.status_code,
        time.perf_counter() - started,
    )
    return response


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}


from app.api import auth  # noqa: E402

app.include_router(auth.router)
