"""Whole-generation retry with capped exponential backoff.

Only this layer decides to run another attempt. Adapters and the polling
engine raise ``ClassifiedError``s; the orchestrator looks at
``retryable`` and either sleeps and tries again or stops.
"""

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from slideflux.core.cancel import CancellationToken
from slideflux.providers.base import ClassifiedError, GenerationExhaustedError, pause

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry backoff.

    Attributes:
        base_delay_ms: Delay after the first failed attempt.
        max_delay_ms: Upper bound for any single delay.
        jitter_ratio: Fraction of the delay randomised (0.0 disables jitter).
    """

    base_delay_ms: int = 1000
    max_delay_ms: int = 10_000
    jitter_ratio: float = 0.0


class RetryOrchestrator:
    """Runs an attempt function until success, a permanent error or the budget.

    Attempt k (1-based) that fails with a retryable error is followed by a
    sleep of ``min(base * 2**(k-1), max)`` milliseconds, unless it was the
    last permitted attempt.

    Example:
        >>> orchestrator = RetryOrchestrator()
        >>> output = orchestrator.with_retries(
        ...     lambda: adapter.generate(prompt, config), max_retries=3, provider="fal"
        ... )
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        sleep: Callable[[float], None] | None = None,
        cancel_token: CancellationToken | None = None,
        rng: random.Random | None = None,
    ):
        """Initialize orchestrator.

        Args:
            config: Backoff configuration.
            sleep: Injected sleep (tests).
            cancel_token: Aborts a pending backoff.
            rng: Random source for jitter.
        """
        self._config = config or RetryConfig()
        self._sleep = sleep
        self._cancel_token = cancel_token
        self._rng = rng or random.Random()
        self.attempts = 0

    @property
    def config(self) -> RetryConfig:
        return self._config

    def backoff_delay_ms(self, attempt: int) -> float:
        """Delay after a failed attempt.

        Args:
            attempt: The attempt that just failed (1-based).

        Returns:
            Delay in milliseconds.
        """
        delay = min(self._config.base_delay_ms * 2 ** (attempt - 1), self._config.max_delay_ms)
        if self._config.jitter_ratio > 0:
            spread = delay * self._config.jitter_ratio
            delay = max(0.0, delay + self._rng.uniform(-spread, spread))
        return delay

    def with_retries(self, fn: Callable[[], T], max_retries: int, provider: str = "") -> T:
        """Run ``fn`` up to ``max_retries`` times.

        Args:
            fn: One whole generation attempt.
            max_retries: Maximum attempts (at least 1).
            provider: Provider name for logs and errors.

        Returns:
            The first successful result.

        Raises:
            ClassifiedError: The first non-retryable error, with ``attempts``
                stamped.
            GenerationExhaustedError: If the last attempt failed with a
                retryable error.
        """
        max_retries = max(1, max_retries)
        self.attempts = 0

        for attempt in range(1, max_retries + 1):
            self.attempts = attempt
            try:
                return fn()
            except ClassifiedError as e:
                if not e.retryable:
                    e.attempts = attempt
                    logger.warning(
                        "%s attempt %d/%d failed permanently: %s",
                        provider, attempt, max_retries, e.message,
                    )
                    raise

                if attempt == max_retries:
                    logger.error(
                        "%s: all %d attempts failed, last error: %s",
                        provider, max_retries, e.message,
                    )
                    raise GenerationExhaustedError(
                        f"Generation failed after {attempt} attempts: {e.message}",
                        provider=provider,
                        attempts=attempt,
                        last_error=e,
                    ) from e

                delay_ms = self.backoff_delay_ms(attempt)
                logger.warning(
                    "%s attempt %d/%d failed (%s), retrying in %.0fms",
                    provider, attempt, max_retries, e.message, delay_ms,
                )
                pause(
                    delay_ms / 1000.0,
                    provider=provider,
                    token=self._cancel_token,
                    sleep=self._sleep,
                )

        # range() is never empty after the clamp above
        raise AssertionError("unreachable")


__all__ = ["RetryConfig", "RetryOrchestrator"]
