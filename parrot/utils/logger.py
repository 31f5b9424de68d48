"""
Logging helpers shared by services and routers.
"""

import logging
import sys

from parrot.config import settings

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_base() -> logging.Logger:
    base = logging.getLogger("parrot")
    if not base.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        base.addHandler(handler)
        base.setLevel(settings.LOG_LEVEL.upper())
    return base


_base_logger = _configure_base()


def setup_logger(name: str) -> logging.Logger:
    """Return a logger under the service's handler"""
    _configure_base()
    return logging.getLogger(name)


def _format(message: str, fields: dict) -> str:
    if not fields:
        return message
    extras = " ".join(f"{k}={v}" for k, v in fields.items())
    return f"{message} | {extras}"


def log_info(message: str, **fields):
    _base_logger.info(_format(message, fields))
