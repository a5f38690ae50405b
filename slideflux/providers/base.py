"""Abstract base class and error taxonomy for Flux image providers.

Defines the interface every provider adapter implements, the shared
httpx request helper that classifies transport and HTTP failures, the
per-attempt state record used while polling, and the ``ClassifiedError``
hierarchy that the retry layer uses to decide whether to try again.
"""

import json as jsonlib
import logging
import random
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

import httpx

from slideflux.core.cancel import CancellationToken
from slideflux.prompt import ImagePrompt

from .config import ProviderConfig
from .spec import ProviderParams, ProviderType, get_provider_spec

logger = logging.getLogger(__name__)

MAX_SEED = 999_999
MAX_ERROR_BODY = 500


# =============================================================================
# Errors
# =============================================================================


class ErrorCode(str, Enum):
    """Stable identifiers for every failure the engine can report."""

    CONFIG_INVALID = "config_invalid"
    UNKNOWN_PROVIDER = "unknown_provider"
    HTTP_ERROR = "http_error"
    PROVIDER_FAILURE = "provider_failure"
    PROVIDER_CANCELED = "provider_canceled"
    POLL_TIMEOUT = "poll_timeout"
    REQUEST_TIMEOUT = "request_timeout"
    TRANSPORT_ERROR = "transport_error"
    INVALID_RESPONSE = "invalid_response"
    CANCELLED = "cancelled"
    GENERATION_EXHAUSTED = "generation_exhausted"


class ClassifiedError(Exception):
    """Base exception for image generation failures.

    Attributes:
        message: Human-readable description.
        provider: Provider the failure came from (may be empty).
        code: Failure category.
        retryable: Whether another whole attempt may succeed.
        attempts: Whole attempts made when the error ended the call, once known.
    """

    code: ClassVar[ErrorCode]
    default_retryable: ClassVar[bool] = False

    def __init__(self, message: str, *, provider: str = "", retryable: bool | None = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.retryable = self.default_retryable if retryable is None else retryable
        self.attempts: int | None = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, provider={self.provider!r}, "
            f"code={self.code.value}, retryable={self.retryable})"
        )


class ConfigInvalidError(ClassifiedError):
    """Raised when provider configuration fails validation.

    Attributes:
        errors: Individual validation errors.
    """

    code = ErrorCode.CONFIG_INVALID

    def __init__(self, message: str, *, provider: str = "", errors: list[str] | None = None):
        super().__init__(message, provider=provider)
        self.errors = list(errors or [])


class UnknownProviderError(ClassifiedError):
    """Raised when the configured provider is not supported."""

    code = ErrorCode.UNKNOWN_PROVIDER


class HttpStatusError(ClassifiedError):
    """Raised when a provider answers with a non-2xx status.

    Retryable for 429 and 5xx.

    Attributes:
        status_code: HTTP status code.
        response_body: Truncated response text.
    """

    code = ErrorCode.HTTP_ERROR

    def __init__(
        self,
        message: str,
        status_code: int,
        *,
        provider: str = "",
        response_body: str | None = None,
    ):
        retryable = status_code == 429 or status_code >= 500
        super().__init__(message, provider=provider, retryable=retryable)
        self.status_code = status_code
        self.response_body = response_body


class ProviderReportedFailureError(ClassifiedError):
    """Raised when the provider reports the job itself failed."""

    code = ErrorCode.PROVIDER_FAILURE


class ProviderCanceledError(ClassifiedError):
    """Raised when the provider reports the job was canceled."""

    code = ErrorCode.PROVIDER_CANCELED


class PollTimeoutError(ClassifiedError):
    """Raised when a job is still pending after the poll budget."""

    code = ErrorCode.POLL_TIMEOUT
    default_retryable = True


class RequestTimeoutError(ClassifiedError):
    """Raised when a single HTTP request times out."""

    code = ErrorCode.REQUEST_TIMEOUT
    default_retryable = True


class ProviderTransportError(ClassifiedError):
    """Raised on connection-level failures (DNS, refused, reset)."""

    code = ErrorCode.TRANSPORT_ERROR
    default_retryable = True


class InvalidResponseError(ClassifiedError):
    """Raised when a response cannot be decoded or lacks expected fields."""

    code = ErrorCode.INVALID_RESPONSE


class GenerationCancelledError(ClassifiedError):
    """Raised when the caller cancels a generation."""

    code = ErrorCode.CANCELLED


class GenerationExhaustedError(ClassifiedError):
    """Raised when every permitted attempt failed with a retryable error.

    Attributes:
        attempts: Number of attempts made.
        last_error: Error from the final attempt.
    """

    code = ErrorCode.GENERATION_EXHAUSTED

    def __init__(self, message: str, *, provider: str = "", attempts: int, last_error: ClassifiedError):
        super().__init__(message, provider=provider)
        self.attempts = attempts
        self.last_error = last_error


# =============================================================================
# Attempt State
# =============================================================================


class AttemptState(str, Enum):
    """Lifecycle of one generation attempt against a provider."""

    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    TIMED_OUT = "timed_out"


class JobState(str, Enum):
    """Normalised provider job status."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass
class JobStatus:
    """One status observation from a provider.

    Attributes:
        state: Normalised state.
        payload: Decoded response body.
        error: Provider-supplied error text, if any.
        raw_status: Provider's own status string.
    """

    state: JobState
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    raw_status: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state is not JobState.PENDING


@dataclass
class GenerationAttempt:
    """Mutable record of one attempt, owned by a single adapter call.

    Attributes:
        provider: Provider name.
        job_id: Provider job identifier, once submitted.
        state: Current lifecycle state.
        poll_count: Status checks made so far.
        payload: Last decoded provider response.
        error: Error that ended the attempt, if any.
        status_url: Where to check status, when the provider supplies it.
        result_url: Where to fetch the result, when separate from status.
    """

    provider: str
    job_id: str | None = None
    state: AttemptState = AttemptState.SUBMITTED
    poll_count: int = 0
    payload: dict[str, Any] = field(default_factory=dict)
    error: ClassifiedError | None = None
    status_url: str | None = None
    result_url: str | None = None


@dataclass(frozen=True)
class AdapterOutput:
    """What a successful adapter call returns.

    Attributes:
        image_url: Hosted image URL (or data URL).
        model_used: "provider:model".
        image_base64: Inline image data, when the provider returns it.
        seed: Seed used, when known.
    """

    image_url: str
    model_used: str
    image_base64: str | None = None
    seed: int | None = None


# =============================================================================
# Suspension
# =============================================================================


def pause(
    seconds: float,
    *,
    provider: str = "",
    token: CancellationToken | None = None,
    sleep: Callable[[float], None] | None = None,
) -> None:
    """Sleep between attempts or polls, honouring cancellation.

    Args:
        seconds: How long to wait.
        provider: Provider name for the cancellation error.
        token: Optional cancellation token; waiting on it is interruptible.
        sleep: Injected sleep function (tests); bypasses the token wait.

    Raises:
        GenerationCancelledError: If the token is cancelled before or
            during the wait.
    """
    _raise_if_cancelled(token, provider)
    if sleep is not None:
        sleep(seconds)
    elif token is not None:
        token.wait(seconds)
    else:
        time.sleep(seconds)
    _raise_if_cancelled(token, provider)


def _raise_if_cancelled(token: CancellationToken | None, provider: str) -> None:
    if token is not None and token.cancelled:
        reason = f": {token.reason}" if token.reason else ""
        raise GenerationCancelledError(f"Generation cancelled{reason}", provider=provider)


def default_seed() -> int:
    """Uniform random seed in 0..999999."""
    return random.randint(0, MAX_SEED)


# =============================================================================
# Adapter
# =============================================================================


class ProviderAdapter(ABC):
    """Abstract interface for Flux image providers.

    An adapter translates an ``ImagePrompt`` plus a ``ProviderConfig``
    into the provider's wire format, drives any submit-then-poll cycle,
    and returns an ``AdapterOutput``. Every failure is raised as a
    ``ClassifiedError``; adapters never retry whole generations.

    Example:
        >>> with httpx.Client(timeout=60) as client:
        ...     adapter = TogetherAdapter(client)
        ...     output = adapter.generate(prompt, config)
    """

    provider: ClassVar[ProviderType]

    def __init__(
        self,
        client: httpx.Client,
        params: ProviderParams | None = None,
        *,
        seed_factory: Callable[[], int] | None = None,
        sleep: Callable[[float], None] | None = None,
        cancel_token: CancellationToken | None = None,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize adapter.

        Args:
            client: HTTP client; its per-phase timeout applies to every request.
            params: Polling budget and per-request deadline. Defaults to the
                provider's params.
            seed_factory: Seed source. Defaults to uniform 0..999999.
            sleep: Injected sleep for poll intervals (tests).
            cancel_token: Optional cancellation token.
            clock: Monotonic clock in seconds for request deadlines.
        """
        self._client = client
        self._params = params or get_provider_spec(self.provider).params
        self._seed_factory = seed_factory or default_seed
        self._sleep = sleep
        self._cancel_token = cancel_token
        self._clock = clock or time.monotonic

    @property
    def name(self) -> str:
        """Provider identifier for logging."""
        return self.provider.value

    @property
    def display_name(self) -> str:
        return get_provider_spec(self.provider).display_name

    @property
    def params(self) -> ProviderParams:
        return self._params

    @abstractmethod
    def generate(self, prompt: ImagePrompt, config: ProviderConfig) -> AdapterOutput:
        """Generate one image.

        Args:
            prompt: Provider-neutral image request.
            config: Resolved, validated provider configuration.

        Returns:
            AdapterOutput for the finished image.

        Raises:
            ClassifiedError: On any failure.
        """

    @abstractmethod
    def auth_headers(self, config: ProviderConfig) -> dict[str, str]:
        """Authentication headers for this provider."""

    def next_seed(self) -> int:
        return self._seed_factory()

    def model_used(self, config: ProviderConfig) -> str:
        return f"{self.name}:{config.model}"

    def poll(
        self,
        attempt: GenerationAttempt,
        check_status: Callable[[GenerationAttempt], JobStatus],
    ) -> JobStatus:
        """Poll a submitted job until it is terminal."""
        from .polling import PollingEngine

        engine = PollingEngine(self._params, sleep=self._sleep, cancel_token=self._cancel_token)
        return engine.poll(attempt, check_status)

    def request_json(
        self,
        method: str,
        url: str,
        config: ProviderConfig,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send one authenticated request and decode the JSON body.

        The whole exchange, body included, must finish within
        ``params.timeout_seconds``. The client timeout only bounds each
        connect, read and write separately.

        Args:
            method: HTTP method.
            url: Absolute URL.
            config: Provider configuration (for auth).
            json: Optional JSON body.
            params: Optional query parameters.
            headers: Extra headers.

        Returns:
            Decoded JSON object.

        Raises:
            GenerationCancelledError: If cancelled before sending.
            RequestTimeoutError: If the request timed out or overran the
                deadline.
            ProviderTransportError: On other transport failures.
            HttpStatusError: On a non-2xx response.
            InvalidResponseError: If the body is not a JSON object.
        """
        _raise_if_cancelled(self._cancel_token, self.name)

        request_headers = {"Content-Type": "application/json", **self.auth_headers(config)}
        if headers:
            request_headers.update(headers)

        logger.debug("%s %s %s", self.name, method, url)
        deadline = self._clock() + self._params.timeout_seconds
        try:
            with self._client.stream(
                method, url, json=json, params=params, headers=request_headers
            ) as response:
                chunks = []
                self._check_deadline(deadline)
                for chunk in response.iter_bytes():
                    chunks.append(chunk)
                    self._check_deadline(deadline)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"{self.display_name} request timed out: {e}", provider=self.name
            ) from e
        except httpx.RequestError as e:
            raise ProviderTransportError(
                f"{self.display_name} request failed: {e}", provider=self.name
            ) from e

        content = b"".join(chunks)
        if not response.is_success:
            body = content.decode("utf-8", errors="replace")[:MAX_ERROR_BODY]
            raise HttpStatusError(
                f"{self.display_name} API error {response.status_code}: {body}",
                response.status_code,
                provider=self.name,
                response_body=body,
            )

        try:
            data = jsonlib.loads(content)
        except ValueError as e:
            raise InvalidResponseError(
                f"{self.display_name} returned invalid JSON", provider=self.name
            ) from e

        if not isinstance(data, dict):
            raise InvalidResponseError(
                f"{self.display_name} returned {type(data).__name__}, expected an object",
                provider=self.name,
            )
        return data

    def _check_deadline(self, deadline: float) -> None:
        if self._clock() > deadline:
            raise RequestTimeoutError(
                f"{self.display_name} request exceeded {self._params.timeout_seconds}s",
                provider=self.name,
            )

    def invalid_response(self, detail: str) -> InvalidResponseError:
        """Build an InvalidResponseError for a missing or malformed field."""
        return InvalidResponseError(f"{self.display_name} response {detail}", provider=self.name)


__all__ = [
    "AdapterOutput",
    "AttemptState",
    "ClassifiedError",
    "ConfigInvalidError",
    "ErrorCode",
    "GenerationAttempt",
    "GenerationCancelledError",
    "GenerationExhaustedError",
    "HttpStatusError",
    "InvalidResponseError",
    "JobState",
    "JobStatus",
    "PollTimeoutError",
    "ProviderAdapter",
    "ProviderCanceledError",
    "ProviderReportedFailureError",
    "ProviderTransportError",
    "RequestTimeoutError",
    "UnknownProviderError",
    "default_seed",
    "pause",
]
