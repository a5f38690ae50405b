"""Tests for provider specs, configuration, polling and adapters."""

import httpx
import pytest

from slideflux.core.cancel import CancellationToken
from slideflux.prompt import AspectRatio, ImagePrompt

from .base import (
    AttemptState,
    ClassifiedError,
    ErrorCode,
    GenerationAttempt,
    GenerationCancelledError,
    HttpStatusError,
    InvalidResponseError,
    JobState,
    JobStatus,
    PollTimeoutError,
    ProviderCanceledError,
    ProviderReportedFailureError,
    ProviderTransportError,
    RequestTimeoutError,
    UnknownProviderError,
    pause,
)
from .bfl import BFLAdapter
from .config import (
    ConfigOverride,
    ProviderConfig,
    get_config_help,
    is_configured,
    resolve_provider_config,
    validate_provider_config,
)
from .factory import ADAPTERS, create_adapter
from .fal import FalAdapter
from .polling import PollingEngine
from .replicate import ReplicateAdapter
from .spec import (
    PROVIDER_SPECS,
    ProviderParams,
    ProviderType,
    get_provider_params,
    get_provider_spec,
    list_provider_models,
)
from .together import TogetherAdapter

FAST_PARAMS = ProviderParams(
    max_retries=3, timeout_seconds=5, poll_interval_ms=10, max_poll_attempts=3
)

REPLICATE_URL = "https://api.replicate.com/v1/predictions"
FAL_URL = "https://queue.fal.run/fal-ai/flux/schnell"
TOGETHER_URL = "https://api.together.xyz/v1/images/generations"
BFL_ROOT = "https://api.bfl.ml/v1"
TOGETHER_BODY = b'{"data": [{"url": "https://together/slow.png"}]}'


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TrickleStream(httpx.SyncByteStream):
    """Response body sent in small chunks, each costing ``step`` seconds."""

    def __init__(self, body: bytes, clock: FakeClock, step: float, size: int = 6):
        self._body = body
        self._clock = clock
        self._step = step
        self._size = size

    def __iter__(self):
        for i in range(0, len(self._body), self._size):
            self._clock.now += self._step
            yield self._body[i : i + self._size]


@pytest.fixture
def prompt() -> ImagePrompt:
    return ImagePrompt(
        prompt="Professional consulting slide",
        negative_prompt="blurry text, watermark",
        guidance_scale=7.5,
        num_inference_steps=28,
    )


# =============================================================================
# Spec
# =============================================================================


class TestProviderSpec:
    """Tests for the static provider tables."""

    @pytest.mark.unit
    def test_params_table(self):
        """Retry and polling budgets per provider."""
        assert get_provider_params("replicate") == ProviderParams(3, 120, 1000, 120)
        assert get_provider_params("fal") == ProviderParams(2, 60, 500, 120)
        assert get_provider_params("together") == ProviderParams(3, 60, 1000, 60)
        assert get_provider_params("bfl") == ProviderParams(3, 120, 1000, 120)

    @pytest.mark.unit
    def test_poll_interval_seconds(self):
        """Poll interval converts to seconds."""
        assert get_provider_params("fal").poll_interval == 0.5

    @pytest.mark.unit
    def test_default_models(self):
        """Default models are in each provider's known list."""
        assert get_provider_spec("replicate").default_model == "black-forest-labs/flux-schnell"
        assert get_provider_spec("bfl").default_model == "flux-dev"
        for spec in PROVIDER_SPECS.values():
            assert spec.is_known_model(spec.default_model)

    @pytest.mark.unit
    def test_every_provider_registered(self):
        """Specs and adapters cover every provider."""
        assert set(PROVIDER_SPECS) == set(ProviderType)
        assert set(ADAPTERS) == set(ProviderType)

    @pytest.mark.unit
    def test_unknown_provider(self):
        """Unknown provider raises ValueError."""
        with pytest.raises(ValueError, match="Unknown provider"):
            get_provider_spec("midjourney")

    @pytest.mark.unit
    def test_list_models(self):
        """Known models are listed."""
        assert "fal-ai/flux-lora" in list_provider_models(ProviderType.FAL)


# =============================================================================
# Config
# =============================================================================


class TestResolveProviderConfig:
    """Tests for override > environment > default resolution."""

    @pytest.mark.unit
    def test_defaults(self, clean_flux_env):
        """Nothing set falls back to replicate defaults."""
        config = resolve_provider_config()
        assert config.provider == "replicate"
        assert config.api_key == ""
        assert config.model == "black-forest-labs/flux-schnell"
        assert config.base_url == REPLICATE_URL

    @pytest.mark.unit
    def test_environment(self, clean_flux_env, valid_keys):
        """Environment variables are used."""
        clean_flux_env.setenv("FLUX_PROVIDER", "together")
        clean_flux_env.setenv("FLUX_API_KEY", valid_keys["together"])
        config = resolve_provider_config()
        assert config.provider == "together"
        assert config.api_key == valid_keys["together"]
        assert config.model == "black-forest-labs/FLUX.1-schnell"
        assert config.base_url == TOGETHER_URL

    @pytest.mark.unit
    def test_override_beats_environment(self, clean_flux_env, valid_keys):
        """Explicit override takes priority per field."""
        clean_flux_env.setenv("FLUX_PROVIDER", "together")
        clean_flux_env.setenv("FLUX_MODEL", "black-forest-labs/FLUX.1-dev")
        config = resolve_provider_config(
            ConfigOverride(provider="bfl", api_key=valid_keys["bfl"], model="flux-pro")
        )
        assert config.provider == "bfl"
        assert config.model == "flux-pro"
        assert config.base_url == BFL_ROOT

    @pytest.mark.unit
    def test_base_url_trailing_slash(self, clean_flux_env):
        """Trailing slashes are removed from the endpoint."""
        clean_flux_env.setenv("FLUX_BASE_URL", "https://proxy.internal/v1/")
        assert resolve_provider_config().base_url == "https://proxy.internal/v1"

    @pytest.mark.unit
    def test_fal_endpoint_follows_model(self, clean_flux_env, valid_keys):
        """The default fal endpoint is built from the configured model."""
        config = resolve_provider_config(
            ConfigOverride(provider="fal", api_key=valid_keys["fal"], model="fal-ai/flux-pro")
        )
        assert config.base_url == "https://queue.fal.run/fal-ai/flux-pro"

        default = resolve_provider_config(ConfigOverride(provider="fal"))
        assert default.base_url == FAL_URL

    @pytest.mark.unit
    def test_fal_base_url_override_wins(self, clean_flux_env):
        """An explicit fal endpoint is used as given."""
        config = resolve_provider_config(
            ConfigOverride(
                provider="fal", model="fal-ai/flux/dev", base_url="https://fal.proxy/flux"
            )
        )
        assert config.base_url == "https://fal.proxy/flux"

    @pytest.mark.unit
    def test_unknown_provider_kept(self, clean_flux_env):
        """Unknown providers resolve so validation can report them."""
        config = resolve_provider_config(ConfigOverride(provider="midjourney"))
        assert config.provider == "midjourney"
        assert config.model == ""


class TestProviderConfig:
    """Tests for ProviderConfig secrecy."""

    @pytest.mark.unit
    def test_api_key_not_in_repr(self, valid_keys):
        """The key never appears in repr."""
        key = valid_keys["replicate"]
        config = ProviderConfig(provider="replicate", api_key=key, model="m", base_url="u")
        assert key not in repr(config)
        assert config.masked_api_key.endswith(key[-4:])
        assert key not in config.masked_api_key


class TestValidateProviderConfig:
    """Tests for configuration validation."""

    @pytest.mark.unit
    def test_valid_configs(self, provider_config_for):
        """Default configs with plausible keys validate cleanly."""
        for provider in ProviderType:
            result = validate_provider_config(provider_config_for(provider.value))
            assert result.valid, result.errors
            assert result.warnings == []
            assert result.docs_url

    @pytest.mark.unit
    def test_invalid_provider(self, valid_keys):
        """Unknown provider is an error."""
        config = ProviderConfig(provider="midjourney", api_key=valid_keys["bfl"])
        result = validate_provider_config(config)
        assert not result.valid
        assert "Invalid provider: midjourney" in result.errors[0]
        assert result.docs_url == ""

    @pytest.mark.unit
    def test_missing_and_short_key(self, provider_config_for):
        """Missing or short keys are errors."""
        missing = validate_provider_config(provider_config_for("fal", api_key=""))
        assert "FLUX_API_KEY environment variable is required" in missing.errors

        short = validate_provider_config(provider_config_for("together", api_key="short-key"))
        assert not short.valid
        assert "too short" in short.errors[0]

    @pytest.mark.unit
    def test_replicate_model_format(self, provider_config_for):
        """Replicate models need an owner."""
        result = validate_provider_config(provider_config_for("replicate", model="flux-schnell"))
        assert not result.valid
        assert any("owner/model" in e for e in result.errors)
        assert any("may not be valid" in w for w in result.warnings)

    @pytest.mark.unit
    def test_key_format_warnings(self, provider_config_for):
        """Provider-specific key hints are warnings, not errors."""
        fal = validate_provider_config(provider_config_for("fal", api_key="x" * 30))
        assert fal.valid
        assert 'start with "fal-"' in fal.warnings[0]

        together = validate_provider_config(provider_config_for("together", api_key="sk-" + "x" * 30))
        assert together.valid
        assert '"sk-"' in together.warnings[0]

        bfl = validate_provider_config(provider_config_for("bfl", api_key="x" * 30))
        assert bfl.valid
        assert "longer than 40" in bfl.warnings[0]


class TestIsConfigured:
    """Tests for the environment-only configuration check."""

    @pytest.mark.unit
    def test_not_configured(self, clean_flux_env):
        """Nothing set is not configured."""
        assert is_configured() is False

    @pytest.mark.unit
    def test_configured(self, clean_flux_env):
        """Known provider and a key over 10 characters."""
        clean_flux_env.setenv("FLUX_PROVIDER", "fal")
        clean_flux_env.setenv("FLUX_API_KEY", "k" * 11)
        assert is_configured() is True

    @pytest.mark.unit
    def test_short_key_or_bad_provider(self, clean_flux_env):
        """Short key or unknown provider is not configured."""
        clean_flux_env.setenv("FLUX_PROVIDER", "fal")
        clean_flux_env.setenv("FLUX_API_KEY", "k" * 10)
        assert is_configured() is False
        clean_flux_env.setenv("FLUX_API_KEY", "k" * 30)
        clean_flux_env.setenv("FLUX_PROVIDER", "dalle")
        assert is_configured() is False


class TestGetConfigHelp:
    """Tests for setup help text."""

    @pytest.mark.unit
    def test_mentions_every_provider(self):
        """Help lists variables and each provider's docs."""
        text = get_config_help()
        assert "FLUX_PROVIDER" in text
        assert "FLUX_API_KEY" in text
        for spec in PROVIDER_SPECS.values():
            assert spec.docs_url in text
            assert f"FLUX_PROVIDER={spec.provider.value}" in text


# =============================================================================
# Errors and Suspension
# =============================================================================


class TestClassifiedError:
    """Tests for error classification."""

    @pytest.mark.unit
    @pytest.mark.parametrize("status,retryable", [(429, True), (500, True), (503, True), (400, False), (401, False), (404, False)])
    def test_http_status_retryable(self, status, retryable):
        """Only 429 and 5xx are retryable."""
        error = HttpStatusError("boom", status, provider="fal")
        assert error.retryable is retryable
        assert error.code is ErrorCode.HTTP_ERROR
        assert error.status_code == status

    @pytest.mark.unit
    def test_default_retryability(self):
        """Timeouts and transport errors retry; provider failures do not."""
        assert PollTimeoutError("x").retryable
        assert RequestTimeoutError("x").retryable
        assert ProviderTransportError("x").retryable
        assert not ProviderReportedFailureError("x").retryable
        assert not ProviderCanceledError("x").retryable
        assert not InvalidResponseError("x").retryable
        assert not GenerationCancelledError("x").retryable

    @pytest.mark.unit
    def test_carries_provider(self):
        """Errors carry the provider name."""
        error = RequestTimeoutError("slow", provider="bfl")
        assert error.provider == "bfl"
        assert "bfl" in repr(error)
        assert isinstance(error, ClassifiedError)


class TestPause:
    """Tests for the cancellable sleep."""

    @pytest.mark.unit
    def test_uses_injected_sleep(self, no_sleep):
        """Injected sleep receives the delay."""
        pause(1.5, sleep=no_sleep)
        assert no_sleep.calls == [1.5]

    @pytest.mark.unit
    def test_cancelled_before(self, no_sleep):
        """A cancelled token raises without sleeping."""
        token = CancellationToken()
        token.cancel("user left")
        with pytest.raises(GenerationCancelledError, match="user left"):
            pause(1.0, token=token, sleep=no_sleep)
        assert no_sleep.calls == []

    @pytest.mark.unit
    def test_cancelled_during(self):
        """Cancelling during the sleep raises after it."""
        token = CancellationToken()
        with pytest.raises(GenerationCancelledError):
            pause(1.0, token=token, sleep=lambda s: token.cancel())

    @pytest.mark.unit
    def test_token_wait_is_interrupted(self):
        """Waiting on an already-cancelled token returns immediately."""
        token = CancellationToken()
        token.cancel()
        with pytest.raises(GenerationCancelledError):
            pause(60.0, token=token)


# =============================================================================
# Polling
# =============================================================================


def _statuses(*items):
    """check_status stub that replays statuses or raises errors in order."""
    remaining = list(items)
    calls = []

    def check(attempt):
        calls.append(attempt.poll_count)
        item = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(item, Exception):
            raise item
        return item

    check.calls = calls
    return check


PENDING = JobStatus(state=JobState.PENDING, raw_status="processing")
DONE = JobStatus(state=JobState.SUCCEEDED, payload={"output": "https://img"}, raw_status="succeeded")


class TestPollingEngine:
    """Tests for the submit-then-poll state machine."""

    @pytest.mark.unit
    def test_succeeds_after_pending(self, no_sleep):
        """Pending statuses are polled until success."""
        attempt = GenerationAttempt(provider="replicate", job_id="p1")
        check = _statuses(PENDING, PENDING, DONE)
        status = PollingEngine(FAST_PARAMS, sleep=no_sleep).poll(attempt, check)

        assert status is DONE
        assert attempt.state is AttemptState.SUCCEEDED
        assert attempt.poll_count == 3
        assert attempt.payload == {"output": "https://img"}

    @pytest.mark.unit
    def test_sleeps_before_each_check(self, no_sleep):
        """Every status check is preceded by one poll interval."""
        attempt = GenerationAttempt(provider="bfl", job_id="j")
        PollingEngine(FAST_PARAMS, sleep=no_sleep).poll(attempt, _statuses(PENDING, DONE))
        assert no_sleep.calls == [0.01, 0.01]

    @pytest.mark.unit
    def test_times_out_exactly_at_budget(self, no_sleep):
        """Still pending after max_poll_attempts raises PollTimeoutError."""
        attempt = GenerationAttempt(provider="bfl", job_id="j")
        check = _statuses(PENDING)
        with pytest.raises(PollTimeoutError) as exc_info:
            PollingEngine(FAST_PARAMS, sleep=no_sleep).poll(attempt, check)

        assert exc_info.value.retryable
        assert check.calls == [1, 2, 3]
        assert attempt.state is AttemptState.TIMED_OUT
        assert attempt.error is exc_info.value

    @pytest.mark.unit
    def test_absorbs_retryable_status_errors(self, no_sleep):
        """Transient status-check failures count against the budget."""
        attempt = GenerationAttempt(provider="fal", job_id="r")
        check = _statuses(HttpStatusError("busy", 503), DONE)
        status = PollingEngine(FAST_PARAMS, sleep=no_sleep).poll(attempt, check)
        assert status is DONE
        assert attempt.poll_count == 2

    @pytest.mark.unit
    def test_non_retryable_status_error_propagates(self, no_sleep):
        """Non-retryable status-check failures stop polling."""
        attempt = GenerationAttempt(provider="fal", job_id="r")
        check = _statuses(HttpStatusError("gone", 404), DONE)
        with pytest.raises(HttpStatusError):
            PollingEngine(FAST_PARAMS, sleep=no_sleep).poll(attempt, check)
        assert attempt.state is AttemptState.FAILED
        assert len(check.calls) == 1

    @pytest.mark.unit
    def test_provider_failure(self, no_sleep):
        """Reported failure raises a non-retryable error with detail."""
        attempt = GenerationAttempt(provider="replicate", job_id="p")
        failed = JobStatus(state=JobState.FAILED, error="NSFW content detected", raw_status="failed")
        with pytest.raises(ProviderReportedFailureError, match="NSFW") as exc_info:
            PollingEngine(FAST_PARAMS, sleep=no_sleep).poll(attempt, _statuses(PENDING, failed))
        assert not exc_info.value.retryable
        assert attempt.state is AttemptState.FAILED

    @pytest.mark.unit
    def test_provider_canceled(self, no_sleep):
        """Reported cancellation raises ProviderCanceledError."""
        attempt = GenerationAttempt(provider="replicate", job_id="p")
        canceled = JobStatus(state=JobState.CANCELED, raw_status="canceled")
        with pytest.raises(ProviderCanceledError):
            PollingEngine(FAST_PARAMS, sleep=no_sleep).poll(attempt, _statuses(canceled))
        assert attempt.state is AttemptState.CANCELED

    @pytest.mark.unit
    def test_cancellation_stops_polling(self, no_sleep):
        """A cancelled token stops the loop before the next check."""
        token = CancellationToken()
        attempt = GenerationAttempt(provider="bfl", job_id="j")

        def check(a):
            token.cancel()
            return PENDING

        with pytest.raises(GenerationCancelledError):
            PollingEngine(FAST_PARAMS, sleep=no_sleep, cancel_token=token).poll(attempt, check)
        assert attempt.poll_count == 1


# =============================================================================
# HTTP Helper
# =============================================================================


class TestRequestJson:
    """Tests for transport and HTTP error classification."""

    def _adapter(self, http_client):
        return TogetherAdapter(http_client, FAST_PARAMS, seed_factory=lambda: 7)

    @pytest.mark.unit
    def test_timeout(self, mock_api, http_client, provider_config_for, prompt):
        """httpx timeouts become retryable RequestTimeoutError."""
        mock_api.add("POST", TOGETHER_URL, httpx.ReadTimeout("read timed out"))
        with pytest.raises(RequestTimeoutError) as exc_info:
            self._adapter(http_client).generate(prompt, provider_config_for("together"))
        assert exc_info.value.retryable
        assert isinstance(exc_info.value.__cause__, httpx.TimeoutException)

    @pytest.mark.unit
    def test_slow_body_hits_deadline(self, mock_api, http_client, provider_config_for, prompt):
        """A body trickled past timeout_seconds raises RequestTimeoutError."""
        clock = FakeClock()
        mock_api.add(
            "POST",
            TOGETHER_URL,
            httpx.Response(200, stream=TrickleStream(TOGETHER_BODY, clock, step=0.4)),
        )
        params = ProviderParams(
            max_retries=1, timeout_seconds=1, poll_interval_ms=10, max_poll_attempts=3
        )
        adapter = TogetherAdapter(http_client, params, clock=clock)

        with pytest.raises(RequestTimeoutError, match="exceeded 1s") as exc_info:
            adapter.generate(prompt, provider_config_for("together"))
        assert exc_info.value.retryable
        # Stops at the first chunk past the deadline instead of reading the rest
        assert clock.now == pytest.approx(1.2)

    @pytest.mark.unit
    def test_body_within_deadline(self, mock_api, http_client, provider_config_for, prompt):
        """A chunked body that finishes in time is decoded."""
        clock = FakeClock()
        mock_api.add(
            "POST",
            TOGETHER_URL,
            httpx.Response(200, stream=TrickleStream(TOGETHER_BODY, clock, step=0.01)),
        )
        adapter = TogetherAdapter(http_client, FAST_PARAMS, clock=clock)

        output = adapter.generate(prompt, provider_config_for("together"))
        assert output.image_url == "https://together/slow.png"

    @pytest.mark.unit
    def test_transport_error(self, mock_api, http_client, provider_config_for, prompt):
        """Connection failures become retryable ProviderTransportError."""
        mock_api.add("POST", TOGETHER_URL, httpx.ConnectError("connection refused"))
        with pytest.raises(ProviderTransportError) as exc_info:
            self._adapter(http_client).generate(prompt, provider_config_for("together"))
        assert exc_info.value.retryable

    @pytest.mark.unit
    def test_http_error_body(self, mock_api, http_client, provider_config_for, prompt):
        """Non-2xx responses carry status and truncated body."""
        mock_api.add("POST", TOGETHER_URL, httpx.Response(401, text="invalid api key"))
        with pytest.raises(HttpStatusError) as exc_info:
            self._adapter(http_client).generate(prompt, provider_config_for("together"))
        error = exc_info.value
        assert error.status_code == 401
        assert error.response_body == "invalid api key"
        assert not error.retryable
        assert error.provider == "together"

    @pytest.mark.unit
    def test_invalid_json(self, mock_api, http_client, provider_config_for, prompt):
        """Undecodable bodies are non-retryable."""
        mock_api.add("POST", TOGETHER_URL, httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(InvalidResponseError) as exc_info:
            self._adapter(http_client).generate(prompt, provider_config_for("together"))
        assert not exc_info.value.retryable

    @pytest.mark.unit
    def test_non_object_json(self, mock_api, http_client, provider_config_for, prompt):
        """A JSON array is not a valid response."""
        mock_api.add("POST", TOGETHER_URL, httpx.Response(200, json=[1, 2]))
        with pytest.raises(InvalidResponseError, match="expected an object"):
            self._adapter(http_client).generate(prompt, provider_config_for("together"))

    @pytest.mark.unit
    def test_cancelled_before_request(self, mock_api, http_client, provider_config_for, prompt):
        """No request is sent once the token is cancelled."""
        token = CancellationToken()
        token.cancel()
        adapter = TogetherAdapter(http_client, FAST_PARAMS, cancel_token=token)
        with pytest.raises(GenerationCancelledError):
            adapter.generate(prompt, provider_config_for("together"))
        assert mock_api.requests == []


# =============================================================================
# Adapters
# =============================================================================


class TestReplicateAdapter:
    """Tests for the Replicate backend."""

    @pytest.mark.unit
    def test_immediate_success_skips_polling(
        self, mock_api, http_client, provider_config_for, prompt, no_sleep
    ):
        """A finished prediction in the first response is not polled."""
        mock_api.add(
            "POST",
            REPLICATE_URL,
            {"id": "p1", "status": "succeeded", "output": ["https://replicate.delivery/a.png"]},
        )
        config = provider_config_for("replicate")
        output = ReplicateAdapter(http_client, FAST_PARAMS, sleep=no_sleep).generate(prompt, config)

        assert output.image_url == "https://replicate.delivery/a.png"
        assert output.model_used == "replicate:black-forest-labs/flux-schnell"
        assert len(mock_api.requests) == 1
        assert no_sleep.calls == []

    @pytest.mark.unit
    def test_wire_format(self, mock_api, http_client, provider_config_for, prompt):
        """Headers and body follow the predictions API."""
        mock_api.add("POST", REPLICATE_URL, {"id": "p1", "status": "succeeded", "output": "https://x"})
        config = provider_config_for("replicate")
        ReplicateAdapter(http_client, FAST_PARAMS).generate(prompt, config)

        request = mock_api.requests[0]
        assert request.headers["Authorization"] == f"Token {config.api_key}"
        assert request.headers["Prefer"] == "wait"
        body = mock_api.json_body()
        assert body["version"] == "black-forest-labs/flux-schnell"
        assert body["input"] == {
            "prompt": prompt.prompt,
            "negative_prompt": prompt.negative_prompt,
            "aspect_ratio": "16:9",
            "guidance_scale": 7.5,
            "num_inference_steps": 28,
            "output_format": "png",
            "output_quality": 100,
        }

    @pytest.mark.unit
    def test_polls_until_succeeded(self, mock_api, http_client, provider_config_for, prompt, no_sleep):
        """Unfinished predictions are polled via urls.get."""
        poll_url = f"{REPLICATE_URL}/p2"
        mock_api.add(
            "POST", REPLICATE_URL, {"id": "p2", "status": "starting", "urls": {"get": poll_url}}
        )
        mock_api.add(
            "GET",
            poll_url,
            {"id": "p2", "status": "processing"},
            {"id": "p2", "status": "succeeded", "output": ["https://img/p2.png"]},
        )
        output = ReplicateAdapter(http_client, FAST_PARAMS, sleep=no_sleep).generate(
            prompt, provider_config_for("replicate")
        )
        assert output.image_url == "https://img/p2.png"
        assert len(mock_api.calls("GET", poll_url)) == 2
        assert len(no_sleep.calls) == 2

    @pytest.mark.unit
    def test_poll_failure_reports_error(
        self, mock_api, http_client, provider_config_for, prompt, no_sleep
    ):
        """A failed prediction surfaces the provider's error."""
        mock_api.add("POST", REPLICATE_URL, {"id": "p3", "status": "starting"})
        mock_api.add("GET", f"{REPLICATE_URL}/p3", {"id": "p3", "status": "failed", "error": "CUDA OOM"})
        with pytest.raises(ProviderReportedFailureError, match="CUDA OOM"):
            ReplicateAdapter(http_client, FAST_PARAMS, sleep=no_sleep).generate(
                prompt, provider_config_for("replicate")
            )

    @pytest.mark.unit
    def test_succeeded_without_output(self, mock_api, http_client, provider_config_for, prompt, no_sleep):
        """A succeeded prediction with an empty output list is invalid."""
        mock_api.add("POST", REPLICATE_URL, {"id": "p4", "status": "starting"})
        mock_api.add("GET", f"{REPLICATE_URL}/p4", {"id": "p4", "status": "succeeded", "output": []})
        with pytest.raises(InvalidResponseError):
            ReplicateAdapter(http_client, FAST_PARAMS, sleep=no_sleep).generate(
                prompt, provider_config_for("replicate")
            )


class TestFalAdapter:
    """Tests for the fal.ai backend."""

    @pytest.mark.unit
    def test_sync_response(self, mock_api, http_client, provider_config_for, prompt):
        """Images in the first response are returned directly."""
        mock_api.add(
            "POST",
            FAL_URL,
            {"images": [{"url": "https://fal.media/a.png", "content": "aGVsbG8="}], "seed": 42},
        )
        config = provider_config_for("fal")
        output = FalAdapter(http_client, FAST_PARAMS, seed_factory=lambda: 123).generate(prompt, config)

        assert output.image_url == "https://fal.media/a.png"
        assert output.image_base64 == "aGVsbG8="
        assert output.seed == 42
        assert output.model_used == "fal:fal-ai/flux/schnell"
        assert mock_api.requests[0].headers["Authorization"] == f"Key {config.api_key}"
        assert mock_api.json_body() == {
            "prompt": prompt.prompt,
            "image_size": "landscape_16_9",
            "num_inference_steps": 28,
            "seed": 123,
            "enable_safety_checker": False,
            "sync_mode": True,
        }

    @pytest.mark.unit
    def test_standard_aspect_ratio(self, mock_api, http_client, provider_config_for, prompt):
        """4:3 maps to landscape_4_3."""
        mock_api.add("POST", FAL_URL, {"images": [{"url": "https://fal.media/b.png"}]})
        narrow = ImagePrompt(prompt="p", negative_prompt="n", aspect_ratio=AspectRatio.STANDARD)
        output = FalAdapter(http_client, FAST_PARAMS, seed_factory=lambda: 5).generate(
            narrow, provider_config_for("fal")
        )
        assert mock_api.json_body()["image_size"] == "landscape_4_3"
        assert output.seed == 5

    @pytest.mark.unit
    def test_queue_fallback(self, mock_api, http_client, provider_config_for, prompt, no_sleep):
        """A queued request is polled and its result fetched."""
        status_url = f"{FAL_URL}/requests/r1/status"
        response_url = f"{FAL_URL}/requests/r1"
        mock_api.add(
            "POST",
            FAL_URL,
            {"request_id": "r1", "status_url": status_url, "response_url": response_url},
        )
        mock_api.add("GET", status_url, {"status": "IN_QUEUE"}, {"status": "COMPLETED"})
        mock_api.add("GET", response_url, {"images": [{"url": "https://fal.media/q.png"}], "seed": 9})

        output = FalAdapter(http_client, FAST_PARAMS, sleep=no_sleep).generate(
            prompt, provider_config_for("fal")
        )
        assert output.image_url == "https://fal.media/q.png"
        assert len(mock_api.calls("GET", status_url)) == 2
        assert len(mock_api.calls("GET", response_url)) == 1

    @pytest.mark.unit
    def test_non_default_model_is_called(
        self, mock_api, http_client, clean_flux_env, valid_keys, prompt
    ):
        """The request goes to the configured model's endpoint."""
        pro_url = "https://queue.fal.run/fal-ai/flux-pro"
        mock_api.add("POST", pro_url, {"images": [{"url": "https://fal.media/pro.png"}]})
        config = resolve_provider_config(
            ConfigOverride(provider="fal", api_key=valid_keys["fal"], model="fal-ai/flux-pro")
        )
        output = FalAdapter(http_client, FAST_PARAMS).generate(prompt, config)

        assert str(mock_api.requests[0].url) == pro_url
        assert mock_api.calls("POST", FAL_URL) == []
        assert output.model_used == "fal:fal-ai/flux-pro"

    @pytest.mark.unit
    def test_content_without_url(self, mock_api, http_client, provider_config_for, prompt):
        """Inline content becomes a data URL when no url is given."""
        mock_api.add(
            "POST",
            FAL_URL,
            {"images": [{"content": "aGVsbG8=", "content_type": "image/jpeg"}]},
        )
        output = FalAdapter(http_client, FAST_PARAMS).generate(prompt, provider_config_for("fal"))

        assert output.image_url == "data:image/jpeg;base64,aGVsbG8="
        assert output.image_base64 == "aGVsbG8="

    @pytest.mark.unit
    def test_image_without_url_or_content(self, mock_api, http_client, provider_config_for, prompt):
        """An image entry with neither url nor content is invalid."""
        mock_api.add("POST", FAL_URL, {"images": [{"width": 1024}]})
        with pytest.raises(InvalidResponseError, match="neither url nor content"):
            FalAdapter(http_client, FAST_PARAMS).generate(prompt, provider_config_for("fal"))

    @pytest.mark.unit
    def test_missing_images(self, mock_api, http_client, provider_config_for, prompt):
        """A response without images is invalid."""
        mock_api.add("POST", FAL_URL, {"detail": "nothing"})
        with pytest.raises(InvalidResponseError):
            FalAdapter(http_client, FAST_PARAMS).generate(prompt, provider_config_for("fal"))


class TestTogetherAdapter:
    """Tests for the Together AI backend."""

    @pytest.mark.unit
    def test_wire_format(self, mock_api, http_client, provider_config_for, prompt):
        """Body carries model, dimensions and guidance."""
        mock_api.add("POST", TOGETHER_URL, {"data": [{"url": "https://together/a.png"}]})
        config = provider_config_for("together")
        output = TogetherAdapter(http_client, FAST_PARAMS, seed_factory=lambda: 77).generate(
            prompt, config
        )

        assert output.image_url == "https://together/a.png"
        assert output.seed == 77
        assert mock_api.requests[0].headers["Authorization"] == f"Bearer {config.api_key}"
        assert mock_api.json_body() == {
            "model": "black-forest-labs/FLUX.1-schnell",
            "prompt": prompt.prompt,
            "width": 1344,
            "height": 768,
            "steps": 28,
            "guidance": 7.5,
            "seed": 77,
            "response_format": "url",
            "n": 1,
        }

    @pytest.mark.unit
    def test_standard_dimensions(self, mock_api, http_client, provider_config_for):
        """4:3 maps to 1024x768."""
        mock_api.add("POST", TOGETHER_URL, {"data": [{"url": "https://together/b.png"}]})
        narrow = ImagePrompt(prompt="p", negative_prompt="n", aspect_ratio="4:3")
        TogetherAdapter(http_client, FAST_PARAMS).generate(narrow, provider_config_for("together"))
        body = mock_api.json_body()
        assert (body["width"], body["height"]) == (1024, 768)

    @pytest.mark.unit
    def test_base64_only(self, mock_api, http_client, provider_config_for, prompt):
        """Inline-only images get a data URL."""
        mock_api.add("POST", TOGETHER_URL, {"data": [{"b64_json": "iVBORw0"}]})
        output = TogetherAdapter(http_client, FAST_PARAMS).generate(
            prompt, provider_config_for("together")
        )
        assert output.image_base64 == "iVBORw0"
        assert output.image_url == "data:image/png;base64,iVBORw0"


class TestBFLAdapter:
    """Tests for the Black Forest Labs backend."""

    @pytest.mark.unit
    def test_submit_then_poll(self, mock_api, http_client, provider_config_for, prompt, no_sleep):
        """Jobs are polled via polling_url until Ready."""
        polling_url = "https://api.us1.bfl.ai/v1/get_result"
        mock_api.add(
            "POST", f"{BFL_ROOT}/flux-dev", {"id": "job-1", "polling_url": f"{polling_url}?id=job-1"}
        )
        mock_api.add(
            "GET",
            polling_url,
            {"id": "job-1", "status": "Pending"},
            {"id": "job-1", "status": "Ready", "result": {"sample": "https://bfl/s.png"}},
        )
        config = provider_config_for("bfl")
        output = BFLAdapter(http_client, FAST_PARAMS, seed_factory=lambda: 11, sleep=no_sleep).generate(
            prompt, config
        )

        assert output.image_url == "https://bfl/s.png"
        assert output.model_used == "bfl:flux-dev"
        assert output.seed == 11
        assert mock_api.requests[0].headers["X-Key"] == config.api_key
        assert mock_api.json_body() == {
            "prompt": prompt.prompt,
            "width": 1344,
            "height": 768,
            "steps": 28,
            "guidance": 7.5,
            "safety_tolerance": 2,
            "seed": 11,
        }

    @pytest.mark.unit
    def test_legacy_get_result(self, mock_api, http_client, provider_config_for, prompt, no_sleep):
        """Without polling_url the get_result endpoint is used with the id."""
        mock_api.add("POST", f"{BFL_ROOT}/flux-pro-1.1", {"id": "job-2"})
        mock_api.add(
            "GET",
            f"{BFL_ROOT}/get_result",
            {"status": "Ready", "result": {"sample": "https://bfl/t.png"}},
        )
        output = BFLAdapter(http_client, FAST_PARAMS, sleep=no_sleep).generate(
            prompt, provider_config_for("bfl", model="flux-pro-1.1")
        )
        assert output.image_url == "https://bfl/t.png"
        poll = mock_api.calls("GET")[0]
        assert poll.url.params["id"] == "job-2"

    @pytest.mark.unit
    def test_moderated(self, mock_api, http_client, provider_config_for, prompt, no_sleep):
        """Moderation is a non-retryable provider failure."""
        mock_api.add("POST", f"{BFL_ROOT}/flux-dev", {"id": "job-3"})
        mock_api.add("GET", f"{BFL_ROOT}/get_result", {"status": "Content Moderated"})
        with pytest.raises(ProviderReportedFailureError, match="Content Moderated") as exc_info:
            BFLAdapter(http_client, FAST_PARAMS, sleep=no_sleep).generate(
                prompt, provider_config_for("bfl")
            )
        assert not exc_info.value.retryable

    @pytest.mark.unit
    def test_poll_timeout(self, mock_api, http_client, provider_config_for, prompt, no_sleep):
        """A job pending past the budget times out after exactly that many polls."""
        mock_api.add("POST", f"{BFL_ROOT}/flux-dev", {"id": "job-4"})
        mock_api.add("GET", f"{BFL_ROOT}/get_result", {"status": "Pending"})
        with pytest.raises(PollTimeoutError):
            BFLAdapter(http_client, FAST_PARAMS, sleep=no_sleep).generate(
                prompt, provider_config_for("bfl")
            )
        assert len(mock_api.calls("GET")) == FAST_PARAMS.max_poll_attempts

    @pytest.mark.unit
    def test_missing_id(self, mock_api, http_client, provider_config_for, prompt):
        """A submit response without an id is invalid."""
        mock_api.add("POST", f"{BFL_ROOT}/flux-dev", {"detail": "queued"})
        with pytest.raises(InvalidResponseError):
            BFLAdapter(http_client, FAST_PARAMS).generate(prompt, provider_config_for("bfl"))


class TestCreateAdapter:
    """Tests for the adapter factory."""

    @pytest.mark.unit
    @pytest.mark.parametrize("provider,cls", [
        ("replicate", ReplicateAdapter),
        ("fal", FalAdapter),
        ("together", TogetherAdapter),
        ("bfl", BFLAdapter),
    ])
    def test_dispatch(self, http_client, provider, cls):
        """Each provider maps to its adapter with its own params."""
        adapter = create_adapter(provider, http_client)
        assert isinstance(adapter, cls)
        assert adapter.params == get_provider_params(provider)
        assert adapter.name == provider

    @pytest.mark.unit
    def test_unknown(self, http_client):
        """Unknown providers raise UnknownProviderError."""
        with pytest.raises(UnknownProviderError) as exc_info:
            create_adapter("midjourney", http_client)
        assert exc_info.value.code is ErrorCode.UNKNOWN_PROVIDER
