"""Process-wide logging configuration for runtime entrypoints."""

from logging.config import dictConfig

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def config_configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for CLI and worker entrypoints.

    Args:
        level: Root logging level name.

    Returns:
        None: Logging is configured as side effect.

    Raises:
        ValueError: Raised when level is blank.
    """

    normalized_level = level.strip().upper()
    if not normalized_level:
        raise ValueError("level must not be blank")

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": _LOG_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "stream": "ext://sys.stderr",
                }
            },
            "root": {"level": normalized_level, "handlers": ["console"]},
            "loggers": {
                "httpx": {"level": "WARNING"},
                "websockets": {"level": "WARNING"},
            },
        }
    )
