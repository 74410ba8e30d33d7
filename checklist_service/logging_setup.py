"""Central logging configuration for the checklist service.

Installs a single stdout handler on the root logger so every module logger
emits INFO-level records without per-module setup. Uvicorn's loggers are
routed through the same handler and formatter.

Per-request lines come from `RequestLogMiddleware`, which also carries the
request id and duration, so `uvicorn.access` is held at WARNING to avoid a
second, less informative line for every request. The same dict is passed to
`uvicorn.run` as `log_config` so uvicorn does not install its own handlers.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig

_DICT_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        }
    },
    "root": {"level": "INFO", "handlers": ["console"]},
    "loggers": {
        "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
        # Request lines are emitted by RequestLogMiddleware instead
        "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
    },
}

# Handed to uvicorn.run so it does not replace the configuration above
UVICORN_LOG_CONFIG = _DICT_CONFIG


def configure_logging() -> None:
    """Configure application-wide logging once.

    Returns early when the root logger already has handlers, which keeps
    reloaders and test runners from stacking duplicate output.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    dictConfig(_DICT_CONFIG)
