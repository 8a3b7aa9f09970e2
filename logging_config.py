import logging.config

from config import settings


def configure_logging(level: str | None = None) -> None:
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"}
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "simple"},
        },
        "root": {"level": (level or settings.log_level).upper(), "handlers": ["console"]},
        "loggers": {
            # httpx logs every request line at INFO
            "httpx": {"level": "WARNING"},
        },
    })
