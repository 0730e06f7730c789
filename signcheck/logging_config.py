"""Logging configuration for signcheck."""

import logging
import os
import sys
from typing import Optional

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors level names when attached to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str = _FORMAT, datefmt: str = _DATEFMT, use_color: Optional[bool] = None):
        super().__init__(fmt, datefmt=datefmt)
        self.use_color = sys.stderr.isatty() if use_color is None else use_color

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_color:
            return super().format(record)
        # Work on a copy so other handlers see the plain level name.
        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, "")
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def setup_logging(log_level: Optional[str] = None) -> None:
    """Configure the root logger for command-line use.

    Stdout is reserved for the verification summary, so log records go to
    stderr.
    """
    if log_level is None:
        log_level = os.getenv("SIGNCHECK_LOG_LEVEL", "INFO")

    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ColoredFormatter())

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    configure_external_loggers()


def configure_external_loggers() -> None:
    """Keep third-party HTTP chatter out of the run log."""
    external_loggers = {
        "urllib3": logging.WARNING,
        "requests": logging.WARNING,
    }
    for logger_name, level in external_loggers.items():
        logging.getLogger(logger_name).setLevel(level)
