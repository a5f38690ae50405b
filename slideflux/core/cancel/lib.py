"""Cancellation token shared between a caller and one generation call.

The token wraps a ``threading.Event``. Waiting on it doubles as an
interruptible sleep: the retry backoff and the poll interval both wait on
the token, so a caller (for example an HTTP handler whose client went
away) can abort a pending sleep from another thread.
"""

import threading


class CancellationToken:
    """Caller-owned signal that aborts a generation at its next suspension point.

    Example:
        >>> token = CancellationToken()
        >>> token.cancelled
        False
        >>> token.cancel("client disconnected")
        >>> token.wait(5.0)  # returns immediately
        True
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Reason passed to cancel(), if any."""
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Signal cancellation. Safe to call more than once."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def wait(self, timeout: float) -> bool:
        """Block for up to ``timeout`` seconds.

        Returns:
            True if the token was cancelled before or during the wait.
        """
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"CancellationToken({state})"


__all__ = ["CancellationToken"]
