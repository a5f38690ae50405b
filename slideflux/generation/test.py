"""Tests for the generation module.

Covers:
- RetryOrchestrator: backoff schedule, retry decisions, exhaustion
- GenerationService: end-to-end flows against scripted provider APIs
- SlideImagePipeline: prompt building and user-facing errors
"""

import itertools
import random
import re

import pytest

from slideflux.content import ArchetypeId
from slideflux.core.cancel import CancellationToken
from slideflux.prompt import ImagePrompt, SlideStyle
from slideflux.providers import (
    ConfigInvalidError,
    ConfigOverride,
    ErrorCode,
    GenerationCancelledError,
    GenerationExhaustedError,
    HttpStatusError,
    PollTimeoutError,
    ProviderReportedFailureError,
    UnknownProviderError,
)

from .lib import GenerationService, check_prompt_ranges, new_slide_id, user_message
from .pipeline import SlideImagePipeline, detect_style_from_text
from .retry import RetryConfig, RetryOrchestrator

REPLICATE_URL = "https://api.replicate.com/v1/predictions"
TOGETHER_URL = "https://api.together.xyz/v1/images/generations"

TOGETHER_OK = {"data": [{"url": "https://together/slide.png"}]}


@pytest.fixture
def prompt() -> ImagePrompt:
    return ImagePrompt(prompt="Professional consulting slide", negative_prompt="blurry")


@pytest.fixture
def service(mock_api, no_sleep) -> GenerationService:
    """Service wired to the scripted API with a fake clock (250ms per reading)."""
    return GenerationService(
        transport=mock_api.transport,
        sleep=no_sleep,
        clock=itertools.count(0.0, 0.25).__next__,
        seed_factory=lambda: 42,
    )


@pytest.fixture
def override_for(clean_flux_env, valid_keys):
    """Build a ConfigOverride for a provider with a valid key."""

    def _make(provider: str, **fields) -> ConfigOverride:
        fields.setdefault("api_key", valid_keys[provider])
        return ConfigOverride(provider=provider, **fields)

    return _make


# =============================================================================
# RetryOrchestrator Tests
# =============================================================================


def _script(*outcomes):
    """Attempt function that raises or returns each outcome in turn."""
    remaining = list(outcomes)
    calls = []

    def fn():
        calls.append(len(calls) + 1)
        item = remaining.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    fn.calls = calls
    return fn


class TestRetryConfig:
    """Tests for RetryConfig defaults."""

    @pytest.mark.unit
    def test_defaults(self):
        """Base 1s, cap 10s, no jitter."""
        config = RetryConfig()
        assert config.base_delay_ms == 1000
        assert config.max_delay_ms == 10_000
        assert config.jitter_ratio == 0.0


class TestRetryOrchestrator:
    """Tests for whole-generation retries."""

    @pytest.mark.unit
    def test_backoff_schedule(self):
        """Delay doubles per attempt and is capped at 10s."""
        orchestrator = RetryOrchestrator()
        delays = [orchestrator.backoff_delay_ms(k) for k in range(1, 7)]
        assert delays == [1000, 2000, 4000, 8000, 10_000, 10_000]

    @pytest.mark.unit
    def test_jitter_stays_within_ratio(self):
        """Opt-in jitter spreads delays by at most the ratio."""
        orchestrator = RetryOrchestrator(RetryConfig(jitter_ratio=0.2), rng=random.Random(7))
        for _ in range(50):
            assert 1600 <= orchestrator.backoff_delay_ms(2) <= 2400

    @pytest.mark.unit
    def test_first_success(self, no_sleep):
        """Success on the first attempt makes one call and no sleep."""
        fn = _script("ok")
        orchestrator = RetryOrchestrator(sleep=no_sleep)
        assert orchestrator.with_retries(fn, max_retries=3) == "ok"
        assert fn.calls == [1]
        assert orchestrator.attempts == 1
        assert no_sleep.calls == []

    @pytest.mark.unit
    def test_retries_until_success(self, no_sleep):
        """Retryable failures are followed by growing backoff."""
        fn = _script(HttpStatusError("busy", 503), HttpStatusError("busy", 503), "ok")
        orchestrator = RetryOrchestrator(sleep=no_sleep)
        assert orchestrator.with_retries(fn, max_retries=3) == "ok"
        assert fn.calls == [1, 2, 3]
        assert no_sleep.calls == [1.0, 2.0]

    @pytest.mark.unit
    def test_non_retryable_stops_immediately(self, no_sleep):
        """A non-retryable error propagates unchanged after one attempt."""
        error = HttpStatusError("unauthorized", 401)
        fn = _script(error, "ok")
        with pytest.raises(HttpStatusError) as exc_info:
            RetryOrchestrator(sleep=no_sleep).with_retries(fn, max_retries=3)

        assert exc_info.value is error
        assert error.attempts == 1
        assert fn.calls == [1]
        assert no_sleep.calls == []

    @pytest.mark.unit
    def test_non_retryable_after_retryable(self, no_sleep):
        """A permanent failure on a later attempt records that attempt."""
        fn = _script(PollTimeoutError("slow"), ProviderReportedFailureError("nsfw"))
        with pytest.raises(ProviderReportedFailureError) as exc_info:
            RetryOrchestrator(sleep=no_sleep).with_retries(fn, max_retries=3)
        assert exc_info.value.attempts == 2
        assert no_sleep.calls == [1.0]

    @pytest.mark.unit
    def test_exhausted(self, no_sleep):
        """A retryable failure on the last attempt raises GenerationExhaustedError."""
        last = PollTimeoutError("still pending", provider="bfl")
        fn = _script(PollTimeoutError("still pending"), PollTimeoutError("still pending"), last)
        with pytest.raises(GenerationExhaustedError) as exc_info:
            RetryOrchestrator(sleep=no_sleep).with_retries(fn, max_retries=3, provider="bfl")

        error = exc_info.value
        assert error.attempts == 3
        assert error.last_error is last
        assert error.__cause__ is last
        assert error.retryable is False
        assert error.provider == "bfl"
        assert no_sleep.calls == [1.0, 2.0]

    @pytest.mark.unit
    def test_single_attempt_budget(self, no_sleep):
        """max_retries=1 never sleeps."""
        fn = _script(PollTimeoutError("x"))
        with pytest.raises(GenerationExhaustedError):
            RetryOrchestrator(sleep=no_sleep).with_retries(fn, max_retries=1)
        assert no_sleep.calls == []

    @pytest.mark.unit
    def test_cancel_during_backoff(self):
        """Cancelling the token aborts the pending backoff."""
        token = CancellationToken()
        fn = _script(HttpStatusError("busy", 503), "ok")
        orchestrator = RetryOrchestrator(sleep=lambda s: token.cancel("shutdown"), cancel_token=token)
        with pytest.raises(GenerationCancelledError, match="shutdown"):
            orchestrator.with_retries(fn, max_retries=3)
        assert fn.calls == [1]

    @pytest.mark.unit
    def test_cancelled_token_interrupts_real_wait(self):
        """Without injected sleep the backoff waits on the token."""
        token = CancellationToken()
        token.cancel()
        fn = _script(HttpStatusError("busy", 503), "ok")
        with pytest.raises(GenerationCancelledError):
            RetryOrchestrator(cancel_token=token).with_retries(fn, max_retries=3)


# =============================================================================
# GenerationService Tests
# =============================================================================


class TestGenerationScenarios:
    """End-to-end generation against scripted provider APIs."""

    @pytest.mark.unit
    def test_sync_provider_single_call(self, service, mock_api, no_sleep, override_for, prompt):
        """A synchronous success is one HTTP call with no polling."""
        mock_api.add("POST", TOGETHER_URL, TOGETHER_OK)
        result = service.generate(prompt, ArchetypeId.KPI_DASHBOARD, override_for("together"))

        assert len(mock_api.requests) == 1
        assert no_sleep.calls == []
        assert result.image_url == "https://together/slide.png"
        assert result.model_used == "together:black-forest-labs/FLUX.1-schnell"
        assert result.archetype_id is ArchetypeId.KPI_DASHBOARD
        assert result.prompt is prompt
        assert result.seed == 42
        assert result.attempts == 1
        assert result.generation_time_ms == 250

    @pytest.mark.unit
    def test_submit_then_poll(self, service, mock_api, override_for, prompt):
        """Two processing polls then success: 1 submit + 3 polls."""
        mock_api.add("POST", REPLICATE_URL, {"id": "p1", "status": "processing"})
        mock_api.add(
            "GET",
            f"{REPLICATE_URL}/p1",
            {"id": "p1", "status": "processing"},
            {"id": "p1", "status": "processing"},
            {"id": "p1", "status": "succeeded", "output": ["https://replicate/final.png"]},
        )
        result = service.generate(prompt, "trend_line", override_for("replicate"))

        assert len(mock_api.calls("POST")) == 1
        assert len(mock_api.calls("GET")) == 3
        assert result.image_url == "https://replicate/final.png"
        assert result.seed is None

    @pytest.mark.unit
    def test_transient_errors_then_success(self, service, mock_api, no_sleep, override_for, prompt):
        """503, 503, 200 with three attempts: 3 calls, backoff 1s then 2s."""
        mock_api.add("POST", TOGETHER_URL, 503, 503, TOGETHER_OK)
        result = service.generate(prompt, "kpi_dashboard", override_for("together"))

        assert len(mock_api.requests) == 3
        assert no_sleep.calls == [1.0, 2.0]
        assert result.attempts == 3

    @pytest.mark.unit
    def test_unauthorized_stops(self, service, mock_api, no_sleep, override_for, prompt):
        """401 on the first attempt: one call, no backoff."""
        mock_api.add("POST", TOGETHER_URL, 401, TOGETHER_OK)
        with pytest.raises(HttpStatusError) as exc_info:
            service.generate(prompt, "kpi_dashboard", override_for("together"))

        assert exc_info.value.status_code == 401
        assert len(mock_api.requests) == 1
        assert no_sleep.calls == []

    @pytest.mark.unit
    def test_provider_failure_on_first_poll(self, service, mock_api, no_sleep, override_for, prompt):
        """Failed status on the first poll: 1 submit + 1 poll, no retry."""
        mock_api.add("POST", REPLICATE_URL, {"id": "p2", "status": "starting"})
        mock_api.add("GET", f"{REPLICATE_URL}/p2", {"id": "p2", "status": "failed", "error": "NSFW"})
        with pytest.raises(ProviderReportedFailureError, match="NSFW"):
            service.generate(prompt, "kpi_dashboard", override_for("replicate"))

        assert len(mock_api.calls("POST")) == 1
        assert len(mock_api.calls("GET")) == 1
        # Only the poll interval, no backoff
        assert no_sleep.calls == [1.0]

    @pytest.mark.unit
    def test_exhausted(self, service, mock_api, no_sleep, override_for, prompt):
        """Persistent 5xx exhausts the provider's retry budget."""
        mock_api.add("POST", TOGETHER_URL, 500)
        with pytest.raises(GenerationExhaustedError) as exc_info:
            service.generate(prompt, "kpi_dashboard", override_for("together"))

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, HttpStatusError)
        assert len(mock_api.requests) == 3

    @pytest.mark.unit
    def test_fal_budget_is_two_attempts(self, service, mock_api, override_for, prompt):
        """fal.ai allows two attempts."""
        mock_api.add("POST", "https://queue.fal.run/fal-ai/flux/schnell", 502)
        with pytest.raises(GenerationExhaustedError) as exc_info:
            service.generate(prompt, "kpi_dashboard", override_for("fal"))
        assert exc_info.value.attempts == 2
        assert len(mock_api.requests) == 2


class TestGenerationConfig:
    """Tests for configuration failures before any network call."""

    @pytest.mark.unit
    def test_missing_key_makes_no_calls(self, service, mock_api, clean_flux_env, prompt):
        """No API key fails validation without touching the network."""
        with pytest.raises(ConfigInvalidError) as exc_info:
            service.generate(prompt, "kpi_dashboard", ConfigOverride(provider="together"))

        assert "FLUX_API_KEY environment variable is required" in exc_info.value.errors
        assert exc_info.value.code is ErrorCode.CONFIG_INVALID
        assert mock_api.requests == []

    @pytest.mark.unit
    def test_unknown_provider_makes_no_calls(self, service, mock_api, override_for, valid_keys, prompt):
        """Unsupported provider fails without touching the network."""
        override = ConfigOverride(provider="midjourney", api_key=valid_keys["bfl"])
        with pytest.raises(UnknownProviderError):
            service.generate(prompt, "kpi_dashboard", override)
        assert mock_api.requests == []

    @pytest.mark.unit
    def test_environment_config(self, service, mock_api, clean_flux_env, valid_keys, prompt):
        """Config is read from the environment when no override is given."""
        clean_flux_env.setenv("FLUX_PROVIDER", "together")
        clean_flux_env.setenv("FLUX_API_KEY", valid_keys["together"])
        mock_api.add("POST", TOGETHER_URL, TOGETHER_OK)
        result = service.generate(prompt, "kpi_dashboard")
        assert result.model_used.startswith("together:")

    @pytest.mark.unit
    def test_unknown_archetype(self, service, mock_api, override_for, prompt):
        """Unknown archetype is a ValueError raised before any request."""
        with pytest.raises(ValueError):
            service.generate(prompt, "pie_chart", override_for("together"))
        assert mock_api.requests == []


class TestGenerationResult:
    """Tests for result assembly."""

    @pytest.mark.unit
    def test_slide_id_format(self):
        """Slide ids are flux_<ms>_<9 hex chars>."""
        assert re.fullmatch(r"flux_\d{13}_[0-9a-f]{9}", new_slide_id())
        assert new_slide_id() != new_slide_id()

    @pytest.mark.unit
    def test_generation_time_non_negative(self, mock_api, no_sleep, override_for, prompt):
        """A clock that goes backwards still yields a non-negative time."""
        readings = iter([10.0, 9.0])
        service = GenerationService(
            transport=mock_api.transport, sleep=no_sleep, clock=lambda: next(readings)
        )
        mock_api.add("POST", TOGETHER_URL, TOGETHER_OK)
        result = service.generate(prompt, "kpi_dashboard", override_for("together"))
        assert result.generation_time_ms == 0

    @pytest.mark.unit
    def test_injected_slide_id(self, mock_api, no_sleep, override_for, prompt):
        """id_factory supplies the slide id."""
        service = GenerationService(
            transport=mock_api.transport, sleep=no_sleep, id_factory=lambda: "flux_1_abc"
        )
        mock_api.add("POST", TOGETHER_URL, TOGETHER_OK)
        assert service.generate(prompt, "kpi_dashboard", override_for("together")).slide_id == "flux_1_abc"

    @pytest.mark.unit
    def test_prompt_range_warnings(self):
        """Out-of-range numerics produce warnings, not errors."""
        prompt = ImagePrompt(prompt="p", negative_prompt="n", guidance_scale=7.5, num_inference_steps=60)
        warnings = check_prompt_ranges(prompt, "bfl")
        assert len(warnings) == 2
        assert check_prompt_ranges(ImagePrompt(prompt="p", negative_prompt="n"), "together") == []


class TestCancellation:
    """Tests for caller cancellation."""

    @pytest.mark.unit
    def test_cancelled_before_start(self, service, mock_api, override_for, prompt):
        """A cancelled token sends no requests."""
        token = CancellationToken()
        token.cancel()
        with pytest.raises(GenerationCancelledError):
            service.generate(prompt, "kpi_dashboard", override_for("together"), cancel_token=token)
        assert mock_api.requests == []

    @pytest.mark.unit
    def test_cancel_aborts_backoff(self, mock_api, override_for, prompt):
        """Cancelling during backoff stops before the next attempt."""
        token = CancellationToken()
        service = GenerationService(transport=mock_api.transport, sleep=lambda s: token.cancel())
        mock_api.add("POST", TOGETHER_URL, 503, TOGETHER_OK)
        with pytest.raises(GenerationCancelledError):
            service.generate(prompt, "kpi_dashboard", override_for("together"), cancel_token=token)
        assert len(mock_api.requests) == 1


class TestVariations:
    """Tests for concurrent independent generations."""

    @pytest.mark.unit
    def test_variations_are_independent(self, mock_api, no_sleep, override_for, prompt):
        """Each variation makes its own call with its own seed."""
        seeds = itertools.count(1)
        service = GenerationService(
            transport=mock_api.transport, sleep=no_sleep, seed_factory=lambda: next(seeds)
        )
        mock_api.add("POST", TOGETHER_URL, TOGETHER_OK)
        outcomes = service.generate_variations(
            prompt, "kpi_dashboard", count=3, config_override=override_for("together")
        )

        assert [o.index for o in outcomes] == [0, 1, 2]
        assert all(o.ok for o in outcomes)
        assert len(mock_api.requests) == 3
        assert len({o.result.seed for o in outcomes}) == 3
        assert len({o.result.slide_id for o in outcomes}) == 3

    @pytest.mark.unit
    def test_one_failure_does_not_sink_others(self, service, mock_api, override_for, prompt):
        """Failures are reported per variation."""
        mock_api.add("POST", TOGETHER_URL, TOGETHER_OK, 401)
        outcomes = service.generate_many(
            [prompt, prompt, prompt], "kpi_dashboard", override_for("together"), max_workers=1
        )

        assert [o.ok for o in outcomes] == [True, False, False]
        assert isinstance(outcomes[1].error, HttpStatusError)


class TestUserMessage:
    """Tests for end-user error messages."""

    @pytest.mark.unit
    def test_config_error(self):
        """Config errors explain what is missing."""
        error = ConfigInvalidError("bad", errors=["FLUX_API_KEY environment variable is required"])
        assert user_message(error) == (
            "Image generation is not configured: FLUX_API_KEY environment variable is required"
        )

    @pytest.mark.unit
    def test_unknown_provider(self):
        """Unknown provider is a configuration problem."""
        message = user_message(UnknownProviderError("Invalid provider: x"))
        assert message.startswith("Image generation is not configured: Invalid provider")

    @pytest.mark.unit
    def test_exhausted(self):
        """Exhaustion reports attempts and the last provider message."""
        last = HttpStatusError("Together AI returned HTTP 503", 503)
        error = GenerationExhaustedError("x", attempts=3, last_error=last)
        assert user_message(error) == "Generation failed after 3 attempts: Together AI returned HTTP 503"

    @pytest.mark.unit
    def test_permanent_failure(self):
        """Permanent failures report the attempt they ended on."""
        error = ProviderReportedFailureError("Prediction failed: NSFW")
        error.attempts = 1
        assert user_message(error) == "Generation failed after 1 attempt: Prediction failed: NSFW"

    @pytest.mark.unit
    def test_other_errors(self):
        """Non-generation errors fall back to their text."""
        assert user_message(ValueError("Unknown archetype: pie")) == "Unknown archetype: pie"


# =============================================================================
# SlideImagePipeline Tests
# =============================================================================


class TestDetectStyle:
    """Tests for style detection from free text."""

    @pytest.mark.unit
    @pytest.mark.parametrize("text,style", [
        ("Make it look like a BCG deck", SlideStyle.BCG),
        ("Boston Consulting Group style", SlideStyle.BCG),
        ("bain-style summary", SlideStyle.BAIN),
        ("McKinsey format please", SlideStyle.MCKINSEY),
        ("clean modern look", SlideStyle.MODERN),
        ("quarterly results", None),
        ("", None),
    ])
    def test_detect(self, text, style):
        """Firm and style names map to house styles."""
        assert detect_style_from_text(text) == style


class TestSlideImagePipeline:
    """Tests for the content-to-image pipeline."""

    @pytest.fixture
    def pipeline(self, service) -> SlideImagePipeline:
        return SlideImagePipeline(service=service, clock=itertools.count(0.0, 1.0).__next__)

    @pytest.mark.unit
    def test_run_success(self, pipeline, mock_api, override_for, sample_content):
        """The prompt is built, text-enhanced and generated."""
        mock_api.add("POST", TOGETHER_URL, TOGETHER_OK)
        outcome = pipeline.run(
            sample_content, "executive_summary", config_override=override_for("together")
        )

        assert outcome.success
        assert outcome.error is None
        assert outcome.archetype_id is ArchetypeId.EXECUTIVE_SUMMARY
        assert outcome.prompt.text_enhanced
        assert outcome.prompt.guidance_scale == 8.0
        assert "Q3 Revenue Up 23%" in mock_api.json_body()["prompt"]
        assert outcome.generation_time_ms == 1000

    @pytest.mark.unit
    def test_run_detects_style(self, pipeline, mock_api, override_for, sample_content):
        """Style comes from the source text when not given."""
        mock_api.add("POST", TOGETHER_URL, TOGETHER_OK)
        outcome = pipeline.run(
            sample_content,
            "executive_summary",
            source_text="BCG style please",
            config_override=override_for("together"),
        )
        assert outcome.prompt.style is SlideStyle.BCG

    @pytest.mark.unit
    def test_run_unconfigured(self, pipeline, mock_api, clean_flux_env, sample_content):
        """Configuration errors are reported, not raised."""
        outcome = pipeline.run(sample_content, "executive_summary")

        assert not outcome.success
        assert outcome.error.startswith("Image generation is not configured")
        assert outcome.error_code == "config_invalid"
        assert mock_api.requests == []

    @pytest.mark.unit
    def test_run_invalid_archetype(self, pipeline, override_for, sample_content):
        """Invalid input is reported as a failure."""
        outcome = pipeline.run(sample_content, "pie_chart", config_override=override_for("together"))
        assert not outcome.success
        assert outcome.error_code == "invalid_input"

    @pytest.mark.unit
    def test_run_exhausted(self, pipeline, mock_api, override_for, sample_content):
        """Exhaustion yields the attempts message."""
        mock_api.add("POST", TOGETHER_URL, 503)
        outcome = pipeline.run(
            sample_content, "executive_summary", config_override=override_for("together")
        )
        assert not outcome.success
        assert outcome.error.startswith("Generation failed after 3 attempts:")
        assert outcome.error_code == "generation_exhausted"

    @pytest.mark.unit
    def test_quick_generate(self, pipeline, mock_api, override_for):
        """Quick generation uses the short prompt."""
        mock_api.add("POST", TOGETHER_URL, TOGETHER_OK)
        outcome = pipeline.quick_generate(
            "Market entry options", "two_by_two_matrix", config_override=override_for("together")
        )
        assert outcome.success
        assert outcome.prompt.guidance_scale == 7.0
        assert outcome.prompt.num_inference_steps == 25
        assert 'Title: "Market entry options"' in outcome.prompt.prompt

    @pytest.mark.unit
    def test_run_variations(self, pipeline, mock_api, override_for, sample_content):
        """Later variations get a numbered title."""
        mock_api.add("POST", TOGETHER_URL, TOGETHER_OK)
        outcomes = pipeline.run_variations(
            sample_content,
            "kpi_dashboard",
            count=3,
            config_override=override_for("together"),
            max_workers=1,
        )

        assert [o.success for o in outcomes] == [True, True, True]
        assert "(Variation" not in outcomes[0].prompt.prompt
        assert "Q3 Revenue Up 23% (Variation 2)" in outcomes[1].prompt.prompt
        assert "Q3 Revenue Up 23% (Variation 3)" in outcomes[2].prompt.prompt
        assert len(mock_api.requests) == 3

    @pytest.mark.unit
    def test_run_variations_unconfigured(self, pipeline, clean_flux_env, sample_content):
        """Every variation reports the configuration error."""
        outcomes = pipeline.run_variations(sample_content, "kpi_dashboard", count=2)
        assert len(outcomes) == 2
        assert all(o.error_code == "config_invalid" for o in outcomes)

    @pytest.mark.unit
    def test_regenerate(self, pipeline, mock_api, override_for, sample_content):
        """Modifications replace title, style and archetype."""
        mock_api.add("POST", TOGETHER_URL, TOGETHER_OK)
        outcome = pipeline.regenerate(
            sample_content,
            "executive_summary",
            title="Q3 Revenue Beats Plan",
            style="bain",
            new_archetype_id="waterfall_chart",
            config_override=override_for("together"),
        )

        assert outcome.success
        assert outcome.archetype_id is ArchetypeId.WATERFALL_CHART
        assert outcome.prompt.style is SlideStyle.BAIN
        assert "Q3 Revenue Beats Plan" in outcome.prompt.prompt
        assert outcome.structured.title == "Q3 Revenue Beats Plan"
        assert outcome.generation_time_ms == outcome.result.generation_time_ms


# =============================================================================
# Live Tests
# =============================================================================


class TestLiveGeneration:
    """Round trip against the provider configured in the environment."""

    @pytest.mark.live
    def test_quick_generate(self):
        """A quick prompt produces an image URL."""
        outcome = SlideImagePipeline().quick_generate("Q3 Revenue Up 23%", "kpi_dashboard")
        assert outcome.success, outcome.error
        assert outcome.result.image_url
        assert outcome.result.generation_time_ms > 0
