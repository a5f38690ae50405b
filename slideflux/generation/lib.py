"""GenerationService: the entry point for Flux slide image generation.

Integrates provider configuration, the adapter registry and the retry
orchestrator to turn an ``ImagePrompt`` into a ``GenerationResult``.
"""

import logging
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import httpx

from slideflux.config import EnvVar, get_environment
from slideflux.content import ArchetypeId
from slideflux.core.cancel import CancellationToken
from slideflux.prompt import ImagePrompt
from slideflux.providers import (
    ClassifiedError,
    ConfigInvalidError,
    ConfigOverride,
    GenerationCancelledError,
    GenerationExhaustedError,
    ProviderConfig,
    UnknownProviderError,
    create_adapter,
    get_provider_spec,
    resolve_provider_config,
    validate_provider_config,
)

from .retry import RetryConfig, RetryOrchestrator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    """A finished slide image.

    Attributes:
        slide_id: Unique id, ``flux_<epoch ms>_<9 hex chars>``.
        image_url: Hosted image URL (or data URL).
        image_base64: Inline image data, when the provider returns it.
        prompt: Prompt the image was generated from.
        archetype_id: Slide archetype.
        generation_time_ms: Wall time from the first attempt's start.
        model_used: "provider:model".
        seed: Seed used, when known.
        attempts: Whole attempts made.
    """

    slide_id: str
    image_url: str
    image_base64: str | None
    prompt: ImagePrompt
    archetype_id: ArchetypeId
    generation_time_ms: int
    model_used: str
    seed: int | None = None
    attempts: int = 1


@dataclass
class VariationResult:
    """Outcome of one call in a batch.

    Attributes:
        index: Position in the batch.
        result: Result on success.
        error: Error on failure.
    """

    index: int
    result: GenerationResult | None = None
    error: ClassifiedError | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


def new_slide_id() -> str:
    """Mint a slide id: ``flux_<epoch ms>_<9 hex chars>``."""
    return f"flux_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def check_prompt_ranges(prompt: ImagePrompt, provider: str) -> list[str]:
    """Compare prompt numerics with the provider's accepted ranges.

    Returns:
        Warning messages; empty when both values are in range.
    """
    spec = get_provider_spec(provider)
    warnings = []
    low, high = spec.guidance_range
    if not low <= prompt.guidance_scale <= high:
        warnings.append(
            f"guidance_scale {prompt.guidance_scale} outside {spec.display_name} range {low}-{high}"
        )
    low, high = spec.steps_range
    if not low <= prompt.num_inference_steps <= high:
        warnings.append(
            f"num_inference_steps {prompt.num_inference_steps} outside "
            f"{spec.display_name} range {low}-{high}"
        )
    return warnings


def user_message(error: BaseException) -> str:
    """Render an error for the person who asked for the slide.

    Configuration problems name what is missing; everything else reports
    how many attempts were made and the final provider message.
    """
    if isinstance(error, (ConfigInvalidError, UnknownProviderError)):
        details = "; ".join(getattr(error, "errors", None) or [error.message])
        return f"Image generation is not configured: {details}"
    if isinstance(error, GenerationCancelledError):
        return error.message
    if isinstance(error, GenerationExhaustedError):
        attempts, message = error.attempts, error.last_error.message
    elif isinstance(error, ClassifiedError):
        attempts, message = error.attempts or 1, error.message
    else:
        return str(error) or "Unknown error"
    noun = "attempt" if attempts == 1 else "attempts"
    return f"Generation failed after {attempts} {noun}: {message}"


class GenerationService:
    """Orchestrates one image generation against the configured provider.

    Pipeline:
        1. Resolve provider config (override > environment > default)
        2. Validate it, without touching the network
        3. Run the provider adapter under the retry orchestrator
        4. Assemble the GenerationResult

    Each call is independent: it resolves its own config and opens its own
    HTTP client, so one service may be shared across threads.

    Example:
        >>> service = GenerationService()
        >>> result = service.generate(prompt, ArchetypeId.KPI_DASHBOARD)
        >>> print(result.image_url)

        >>> # Explicit provider, no environment needed
        >>> override = ConfigOverride(provider="fal", api_key="fal-...")
        >>> result = service.generate(prompt, "trend_line", config_override=override)
    """

    def __init__(
        self,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] | None = None,
        seed_factory: Callable[[], int] | None = None,
        id_factory: Callable[[], str] | None = None,
        retry_config: RetryConfig | None = None,
        max_workers: int | None = None,
    ):
        """Initialize the service.

        Args:
            transport: httpx transport (tests inject a MockTransport).
            sleep: Injected sleep for backoff and polling (tests).
            clock: Monotonic clock in seconds.
            seed_factory: Seed source for providers that take one.
            id_factory: Slide id source.
            retry_config: Backoff configuration.
            max_workers: Thread pool size for batches. Defaults to
                SLIDEFLUX_MAX_WORKERS.
        """
        self._transport = transport
        self._sleep = sleep
        self._clock = clock or time.monotonic
        self._seed_factory = seed_factory
        self._id_factory = id_factory or new_slide_id
        self._retry_config = retry_config or RetryConfig()
        self._max_workers = max_workers or get_environment(EnvVar.SLIDEFLUX_MAX_WORKERS)

    def resolve_config(self, config_override: ConfigOverride | None = None) -> ProviderConfig:
        """Resolve and validate provider configuration.

        Raises:
            UnknownProviderError: If the provider is not supported.
            ConfigInvalidError: If any other validation rule fails.
        """
        config = resolve_provider_config(config_override)
        validation = validate_provider_config(config)
        for warning in validation.warnings:
            logger.warning("%s config: %s", config.provider, warning)

        if not validation.valid:
            if not validation.docs_url:
                raise UnknownProviderError(validation.errors[0], provider=config.provider)
            raise ConfigInvalidError(
                f"Invalid {config.provider} configuration: {'; '.join(validation.errors)}",
                provider=config.provider,
                errors=validation.errors,
            )
        return config

    def generate(
        self,
        prompt: ImagePrompt,
        archetype_id: ArchetypeId | str,
        config_override: ConfigOverride | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> GenerationResult:
        """Generate one slide image.

        Args:
            prompt: Image request, usually from PromptBuilder.
            archetype_id: Slide archetype, recorded on the result.
            config_override: Explicit provider settings.
            cancel_token: Aborts pending sleeps and further requests.

        Returns:
            GenerationResult from the first successful attempt.

        Raises:
            ValueError: ``archetype_id`` is not an ArchetypeId; checked before
                anything else, so no network calls are made.
            UnknownProviderError: Provider not supported (no network calls).
            ConfigInvalidError: Config invalid (no network calls).
            GenerationExhaustedError: Every attempt failed transiently.
            GenerationCancelledError: The token was cancelled.
            ClassifiedError: Any other non-retryable provider failure.
        """
        archetype_id = ArchetypeId(archetype_id)
        config = self.resolve_config(config_override)
        for warning in check_prompt_ranges(prompt, config.provider):
            logger.warning("%s", warning)

        params = config.params
        logger.info(
            "Generating %s slide with %s (model=%s, key=%s)",
            archetype_id.value, config.provider, config.model, config.masked_api_key,
        )

        orchestrator = RetryOrchestrator(
            self._retry_config, sleep=self._sleep, cancel_token=cancel_token
        )
        start = self._clock()
        with httpx.Client(timeout=params.timeout_seconds, transport=self._transport) as client:
            adapter = create_adapter(
                config.provider,
                client,
                params,
                seed_factory=self._seed_factory,
                sleep=self._sleep,
                cancel_token=cancel_token,
            )
            output = orchestrator.with_retries(
                lambda: adapter.generate(prompt, config),
                max_retries=params.max_retries,
                provider=config.provider,
            )
        elapsed_ms = max(0, int((self._clock() - start) * 1000))

        result = GenerationResult(
            slide_id=self._id_factory(),
            image_url=output.image_url,
            image_base64=output.image_base64,
            prompt=prompt,
            archetype_id=archetype_id,
            generation_time_ms=elapsed_ms,
            model_used=output.model_used,
            seed=output.seed,
            attempts=orchestrator.attempts,
        )
        logger.info(
            "Generated %s in %dms after %d attempt(s)",
            result.slide_id, elapsed_ms, result.attempts,
        )
        return result

    def generate_many(
        self,
        prompts: list[ImagePrompt],
        archetype_id: ArchetypeId | str,
        config_override: ConfigOverride | None = None,
        cancel_token: CancellationToken | None = None,
        max_workers: int | None = None,
    ) -> list[VariationResult]:
        """Run one independent generation per prompt on a bounded pool.

        Each call has its own retry and poll budget; one failure does not
        affect the others.

        Returns:
            One VariationResult per prompt, in input order.
        """
        workers = max(1, min(max_workers or self._max_workers, len(prompts) or 1))

        def run(index: int, prompt: ImagePrompt) -> VariationResult:
            try:
                return VariationResult(
                    index, result=self.generate(prompt, archetype_id, config_override, cancel_token)
                )
            except ClassifiedError as e:
                logger.warning("Variation %d failed: %s", index + 1, e.message)
                return VariationResult(index, error=e)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="slideflux") as pool:
            futures = [pool.submit(run, i, p) for i, p in enumerate(prompts)]
            return [f.result() for f in futures]

    def generate_variations(
        self,
        prompt: ImagePrompt,
        archetype_id: ArchetypeId | str,
        count: int = 3,
        config_override: ConfigOverride | None = None,
        cancel_token: CancellationToken | None = None,
        max_workers: int | None = None,
    ) -> list[VariationResult]:
        """Generate ``count`` images from the same prompt.

        Providers that take a seed get a fresh one per call, so the images
        differ.
        """
        return self.generate_many(
            [prompt] * count, archetype_id, config_override, cancel_token, max_workers
        )


__all__ = [
    "GenerationResult",
    "GenerationService",
    "VariationResult",
    "check_prompt_ranges",
    "new_slide_id",
    "user_message",
]
