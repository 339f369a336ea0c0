import logging
from typing import Optional, Union

from foodscan.core.config import settings

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _coerce_level(value: Optional[Union[str, int]]) -> int:
    if isinstance(value, str):
        return _LEVELS.get(value.upper().strip(), logging.INFO)
    if isinstance(value, int):
        return value
    return logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Return a stdout logger under the "foodscan" namespace.
    Level follows LOG_LEVEL; handlers are attached only once per logger.
    """
    logger = logging.getLogger(f"foodscan.{name}")
    if getattr(logger, "_foodscan_configured", False):
        return logger

    level = _coerce_level(settings.LOG_LEVEL)
    logger.setLevel(level)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    logger.addHandler(handler)

    # uvicorn installs its own root handlers; avoid duplicate lines
    logger.propagate = False
    setattr(logger, "_foodscan_configured", True)
    return logger
