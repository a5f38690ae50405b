"""Submit-then-poll state machine shared by asynchronous providers.

The engine owns the poll loop for one ``GenerationAttempt``: it waits the
provider's poll interval, asks the adapter for exactly one status
observation, and stops on a terminal state or when the poll budget runs
out. Transient status-check failures are absorbed here; whole-generation
retries belong to the retry orchestrator.
"""

import logging
from collections.abc import Callable

from slideflux.core.cancel import CancellationToken

from .base import (
    AttemptState,
    ClassifiedError,
    GenerationAttempt,
    JobState,
    JobStatus,
    PollTimeoutError,
    ProviderCanceledError,
    ProviderReportedFailureError,
    pause,
)
from .spec import ProviderParams

logger = logging.getLogger(__name__)


class PollingEngine:
    """Drives a GenerationAttempt from submitted to a terminal state.

    Transitions:
        submitted -> polling -> succeeded | failed | canceled
        polling -> timed_out (budget exhausted)

    Example:
        >>> engine = PollingEngine(get_provider_params("bfl"))
        >>> status = engine.poll(attempt, adapter.check_status)
    """

    def __init__(
        self,
        params: ProviderParams,
        *,
        sleep: Callable[[float], None] | None = None,
        cancel_token: CancellationToken | None = None,
    ):
        """Initialize polling engine.

        Args:
            params: Poll interval and budget.
            sleep: Injected sleep function (tests).
            cancel_token: Optional cancellation token.
        """
        self._params = params
        self._sleep = sleep
        self._cancel_token = cancel_token

    def poll(
        self,
        attempt: GenerationAttempt,
        check_status: Callable[[GenerationAttempt], JobStatus],
    ) -> JobStatus:
        """Poll until the job is terminal or the budget is spent.

        Each iteration sleeps one poll interval, then issues exactly one
        status check.

        Args:
            attempt: Attempt to drive; mutated in place.
            check_status: Performs one status request for the attempt.

        Returns:
            The succeeded JobStatus.

        Raises:
            ProviderReportedFailureError: Provider reported failure.
            ProviderCanceledError: Provider reported cancellation.
            PollTimeoutError: Still pending after max_poll_attempts.
            ClassifiedError: Non-retryable status-check failure.
            GenerationCancelledError: Cancelled by the caller.
        """
        provider = attempt.provider
        attempt.state = AttemptState.POLLING
        budget = self._params.max_poll_attempts

        for poll_number in range(1, budget + 1):
            pause(
                self._params.poll_interval,
                provider=provider,
                token=self._cancel_token,
                sleep=self._sleep,
            )
            attempt.poll_count = poll_number

            try:
                status = check_status(attempt)
            except ClassifiedError as e:
                if not e.retryable:
                    attempt.state = AttemptState.FAILED
                    attempt.error = e
                    raise
                logger.warning(
                    "%s status check %d/%d failed, continuing: %s",
                    provider,
                    poll_number,
                    budget,
                    e.message,
                )
                continue

            attempt.payload = status.payload
            if status.state is JobState.PENDING:
                logger.debug(
                    "%s job %s still %s (%d/%d)",
                    provider,
                    attempt.job_id,
                    status.raw_status,
                    poll_number,
                    budget,
                )
                continue

            if status.state is JobState.SUCCEEDED:
                attempt.state = AttemptState.SUCCEEDED
                logger.debug("%s job %s succeeded after %d polls", provider, attempt.job_id, poll_number)
                return status

            if status.state is JobState.CANCELED:
                attempt.state = AttemptState.CANCELED
                error: ClassifiedError = ProviderCanceledError(
                    f"{provider} job {attempt.job_id} was canceled", provider=provider
                )
            else:
                attempt.state = AttemptState.FAILED
                detail = status.error or status.raw_status or "unknown error"
                error = ProviderReportedFailureError(
                    f"{provider} job {attempt.job_id} failed: {detail}", provider=provider
                )
            attempt.error = error
            raise error

        attempt.state = AttemptState.TIMED_OUT
        error = PollTimeoutError(
            f"{provider} job {attempt.job_id} not finished after {budget} polls",
            provider=provider,
        )
        attempt.error = error
        raise error


__all__ = ["PollingEngine"]
