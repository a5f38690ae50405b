"""Provider specification registry for Flux image backends.

Static, read-only tables describing each supported provider: default
model, endpoint, documentation, known models, request parameter ranges
and the retry/polling budget used when talking to it.
"""

from dataclasses import dataclass
from enum import Enum


class ProviderType(str, Enum):
    """Available Flux image providers."""

    REPLICATE = "replicate"
    FAL = "fal"
    TOGETHER = "together"
    BFL = "bfl"


@dataclass(frozen=True)
class ProviderParams:
    """Retry and polling budget for one provider.

    Attributes:
        max_retries: Whole-generation attempts before giving up.
        timeout_seconds: Per-HTTP-request timeout.
        poll_interval_ms: Delay before each status check.
        max_poll_attempts: Status checks allowed per generation attempt.
    """

    max_retries: int
    timeout_seconds: float
    poll_interval_ms: int
    max_poll_attempts: int

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000.0


@dataclass(frozen=True)
class ProviderSpec:
    """Specification for an image provider.

    Attributes:
        provider: Provider type.
        display_name: Human-readable name for logs and messages.
        default_model: Model used when none is configured.
        base_url: Default endpoint (BFL: API root, model appended).
        model_url_root: When set, the default endpoint is
            ``{model_url_root}/{model}`` (fal.ai).
        docs_url: Provider documentation.
        known_models: Models known to work with this provider.
        params: Retry and polling budget.
        guidance_range: Accepted guidance scale, inclusive.
        steps_range: Accepted inference steps, inclusive.
        key_hint: Example key prefix shown in help text.
        description: One-line summary.
    """

    provider: ProviderType
    display_name: str
    default_model: str
    base_url: str
    docs_url: str
    known_models: tuple[str, ...]
    params: ProviderParams
    guidance_range: tuple[float, float] = (0.0, 10.0)
    steps_range: tuple[int, int] = (1, 50)
    key_hint: str = "xxxxxxxx..."
    description: str = ""
    model_url_root: str = ""

    def endpoint_for(self, model: str) -> str:
        """Default endpoint for a model."""
        if self.model_url_root and model:
            return f"{self.model_url_root}/{model}"
        return self.base_url

    def is_known_model(self, model: str) -> bool:
        """Check if a model is in the known-model list."""
        return model in self.known_models


PROVIDER_SPECS: dict[ProviderType, ProviderSpec] = {
    ProviderType.REPLICATE: ProviderSpec(
        provider=ProviderType.REPLICATE,
        display_name="Replicate",
        default_model="black-forest-labs/flux-schnell",
        base_url="https://api.replicate.com/v1/predictions",
        docs_url="https://replicate.com/docs",
        known_models=(
            "black-forest-labs/flux-schnell",
            "black-forest-labs/flux-dev",
            "black-forest-labs/flux-pro",
            "black-forest-labs/flux-1.1-pro",
        ),
        params=ProviderParams(
            max_retries=3,
            timeout_seconds=120,
            poll_interval_ms=1000,
            max_poll_attempts=120,
        ),
        key_hint="r8_xxxxxxxx...",
        description="Submit-and-wait predictions API (recommended for beginners)",
    ),
    ProviderType.FAL: ProviderSpec(
        provider=ProviderType.FAL,
        display_name="fal.ai",
        default_model="fal-ai/flux/schnell",
        base_url="https://queue.fal.run/fal-ai/flux/schnell",
        docs_url="https://fal.ai/docs",
        known_models=(
            "fal-ai/flux/schnell",
            "fal-ai/flux/dev",
            "fal-ai/flux-pro",
            "fal-ai/flux-lora",
        ),
        params=ProviderParams(
            max_retries=2,
            timeout_seconds=60,
            poll_interval_ms=500,
            max_poll_attempts=120,
        ),
        guidance_range=(1.0, 20.0),
        key_hint="fal-xxxxxxxx...",
        description="Low-latency synchronous queue API (fastest)",
        model_url_root="https://queue.fal.run",
    ),
    ProviderType.TOGETHER: ProviderSpec(
        provider=ProviderType.TOGETHER,
        display_name="Together AI",
        default_model="black-forest-labs/FLUX.1-schnell",
        base_url="https://api.together.xyz/v1/images/generations",
        docs_url="https://docs.together.ai/docs",
        known_models=(
            "black-forest-labs/FLUX.1-schnell",
            "black-forest-labs/FLUX.1-dev",
            "black-forest-labs/FLUX.1-pro",
        ),
        params=ProviderParams(
            max_retries=3,
            timeout_seconds=60,
            poll_interval_ms=1000,
            max_poll_attempts=60,
        ),
        description="OpenAI-style images API",
    ),
    ProviderType.BFL: ProviderSpec(
        provider=ProviderType.BFL,
        display_name="Black Forest Labs",
        default_model="flux-dev",
        base_url="https://api.bfl.ml/v1",
        docs_url="https://docs.bfl.ml/",
        known_models=(
            "flux-dev",
            "flux-pro-1.1",
            "flux-pro",
        ),
        params=ProviderParams(
            max_retries=3,
            timeout_seconds=120,
            poll_interval_ms=1000,
            max_poll_attempts=120,
        ),
        guidance_range=(1.5, 5.0),
        description="Official vendor API, submit then poll",
    ),
}

DEFAULT_PROVIDER = ProviderType.REPLICATE


def get_provider_spec(provider: ProviderType | str) -> ProviderSpec:
    """Get the specification for a provider.

    Args:
        provider: Provider type or its string value.

    Returns:
        ProviderSpec for the provider.

    Raises:
        ValueError: If the provider is not supported.
    """
    try:
        return PROVIDER_SPECS[ProviderType(provider)]
    except ValueError:
        valid = ", ".join(p.value for p in ProviderType)
        raise ValueError(f"Unknown provider: {provider!r}. Must be one of: {valid}") from None


def get_provider_params(provider: ProviderType | str) -> ProviderParams:
    """Get the retry and polling budget for a provider."""
    return get_provider_spec(provider).params


def list_provider_models(provider: ProviderType | str) -> list[str]:
    """List known models for a provider."""
    return list(get_provider_spec(provider).known_models)


def is_valid_provider(provider: str | None) -> bool:
    """Check if a string names a supported provider."""
    return provider in {p.value for p in ProviderType}


__all__ = [
    "DEFAULT_PROVIDER",
    "PROVIDER_SPECS",
    "ProviderParams",
    "ProviderSpec",
    "ProviderType",
    "get_provider_params",
    "get_provider_spec",
    "is_valid_provider",
    "list_provider_models",
]
