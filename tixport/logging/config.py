"""Public entry point for configuring application logging."""

from __future__ import annotations

import logging
import logging.config
import os
from typing import Any

from .formatter import SERVICE_NAME

_TRUE_VALUES = {"1", "true", "yes", "on"}

# Third party loggers that are too chatty at INFO.
_QUIET_LOGGERS = {
    "uvicorn.access": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
}


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE_VALUES


def build_logging_config(
    level: str = "INFO", *, json_enabled: bool = True, metrics_enabled: bool = True
) -> dict[str, Any]:
    """Return the :func:`logging.config.dictConfig` payload for the service.

    All records go to a single stdout handler that attaches the request
    context and applies the privacy rules before formatting.
    """

    loggers: dict[str, dict[str, Any]] = {
        name: {"level": logger_level, "handlers": [], "propagate": True}
        for name, logger_level in _QUIET_LOGGERS.items()
    }
    loggers["uvicorn"] = {"level": "INFO", "handlers": [], "propagate": True}
    # Metrics are plain INFO records; raising the level switches them off.
    loggers["tixport.metrics"] = {
        "level": "INFO" if metrics_enabled else "CRITICAL",
        "handlers": [],
        "propagate": True,
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "tixport.logging.formatter.ECSJsonFormatter",
                "service_name": SERVICE_NAME,
            },
            "plain": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
        },
        "filters": {
            "context": {"()": "tixport.logging.filters.RequestContextFilter"},
            "privacy": {"()": "tixport.logging.filters.PrivacyFilter"},
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "json" if json_enabled else "plain",
                "filters": ["context", "privacy"],
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": loggers,
    }


def configure_logging() -> None:
    """Configure structured logging from ``LOG_LEVEL``, ``LOG_JSON`` and ``LOG_METRICS``."""

    logging.config.dictConfig(
        build_logging_config(
            os.getenv("LOG_LEVEL", "INFO").upper(),
            json_enabled=_env_flag("LOG_JSON", "true"),
            metrics_enabled=_env_flag("LOG_METRICS", "true"),
        )
    )
    logging.captureWarnings(True)
