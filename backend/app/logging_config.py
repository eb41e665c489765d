"""Logging setup."""
import logging

LEVELS_BY_ENV = {
    "local": logging.DEBUG,
    "dev": logging.DEBUG,
    "prod": logging.INFO,
}

LOCAL_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
SERVICE_FORMAT = "time=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s"


def resolve_level(env: str, level: str | None = None) -> int:
    """Pick the root log level: an explicit LOG_LEVEL wins over the env default."""
    if level:
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        return resolved
    return LEVELS_BY_ENV.get(env, logging.INFO)


def configure_logging(env: str, level: str | None = None) -> None:
    """Install the root handler for the given environment."""
    logging.basicConfig(
        level=resolve_level(env, level),
        format=LOCAL_FORMAT if env == "local" else SERVICE_FORMAT,
        force=True,
    )
    logging.getLogger(__name__).debug("Logging configured for env=%s", env)
