"""Centralized logging setup for the API and Celery worker."""

import logging
import logging.config
import sys


def setup_logging(log_level: str = "INFO") -> None:
    """Configure console logging for the application.

    Args:
        log_level: Level applied to the root and ``marketplace`` loggers.
    """
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "default",
                "level": log_level,
            },
        },
        "loggers": {
            "": {
                "handlers": ["console"],
                "level": log_level,
            },
            "marketplace": {
                "level": log_level,
            },
            "uvicorn.access": {
                "handlers": ["console"],
                "level": "INFO",
                "propagate": False,
            },
            # passlib logs a trapped version lookup error with bcrypt>=4.1
            "passlib": {
                "level": "ERROR",
            },
        },
    }

    logging.config.dictConfig(logging_config)
    logging.getLogger("marketplace").info(f"Logging initialized at level {log_level}")
