"""Tests for the cancellation token."""

import threading
import time

import pytest

from .lib import CancellationToken


class TestCancellationToken:
    """Tests for CancellationToken."""

    @pytest.mark.unit
    def test_starts_active(self):
        """A new token is not cancelled."""
        token = CancellationToken()
        assert token.cancelled is False
        assert token.reason is None

    @pytest.mark.unit
    def test_cancel_sets_reason_once(self):
        """First reason wins on repeated cancel()."""
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")
        assert token.cancelled is True
        assert token.reason == "first"

    @pytest.mark.unit
    def test_wait_returns_false_on_timeout(self):
        """wait() reports False when nothing cancelled it."""
        assert CancellationToken().wait(0.01) is False

    @pytest.mark.unit
    def test_cancel_from_other_thread_interrupts_wait(self):
        """A long wait returns early once another thread cancels."""
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()
        started = time.monotonic()
        try:
            assert token.wait(10.0) is True
        finally:
            timer.cancel()
        assert time.monotonic() - started < 5.0

    @pytest.mark.unit
    def test_repr(self):
        """repr shows the state."""
        token = CancellationToken()
        assert "active" in repr(token)
        token.cancel()
        assert "cancelled" in repr(token)
