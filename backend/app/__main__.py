"""Run the Tollgate API with uvicorn."""
import uvicorn

from app.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        timeout_keep_alive=settings.idle_timeout_seconds,
        timeout_graceful_shutdown=settings.shutdown_timeout_seconds,
        log_level=(settings.log_level or ("info" if settings.env == "prod" else "debug")).lower(),
    )


if __name__ == "__main__":
    main()
