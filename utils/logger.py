"""
Shared logging setup for the expiry automation service.
Provides one stream handler format for every module logger.
"""

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """
    Attach the standard handler to the root logger once and set its level.
    Module loggers created with logging.getLogger(__name__) propagate here.
    """
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    if not any(getattr(h, "_expiry_automation", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._expiry_automation = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level)
    return root


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a named logger; call configure_logging() once at process start."""
    return logging.getLogger(name)
