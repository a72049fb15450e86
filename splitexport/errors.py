"""
Error reporting for the converter.

Problems that do not stop the run are reported here and counted; the
command-line entry point turns the count into the exit status.
"""
from __future__ import annotations
import logging

logger = logging.getLogger("splitexport")

_error_count = 0


class ConfigError(Exception):
    """The configuration leaves nothing to convert into."""


def report(message: str) -> None:
    """Log an error and remember that the run was not clean."""
    global _error_count
    _error_count += 1
    logger.error(message)


def warn(message: str) -> None:
    logger.warning(message)


def error_count() -> int:
    return _error_count


def exit_status() -> int:
    return 1 if _error_count else 0


def reset() -> None:
    global _error_count
    _error_count = 0
