"""Cooperative cancellation for long-running generation calls."""

from .lib import CancellationToken

__all__ = ["CancellationToken"]
