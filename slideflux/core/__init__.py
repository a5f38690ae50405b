"""Shared runtime helpers: logging and cooperative cancellation."""

from .cancel import CancellationToken
from .log import get_logger, setup_logging

__all__ = [
    "CancellationToken",
    "get_logger",
    "setup_logging",
]
