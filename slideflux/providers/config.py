"""Provider configuration resolution and validation.

A ``ProviderConfig`` is resolved once per generation call from an
optional explicit override, the environment (``FLUX_*`` variables) and
the provider's defaults, in that order. Validation never touches the
network.
"""

import logging
from dataclasses import dataclass, field

from slideflux.config import EnvVar, get_environment, list_environment_variables, mask_secret

from .spec import (
    DEFAULT_PROVIDER,
    PROVIDER_SPECS,
    ProviderParams,
    ProviderType,
    get_provider_spec,
    is_valid_provider,
)

logger = logging.getLogger(__name__)

MIN_API_KEY_LENGTH = 20
MIN_CONFIGURED_KEY_LENGTH = 10
BFL_TYPICAL_KEY_LENGTH = 40


@dataclass(frozen=True)
class ProviderConfig:
    """Resolved provider settings for one generation call.

    Attributes:
        provider: Provider name (validated separately).
        api_key: Provider API key. Never shown in repr.
        model: Model identifier.
        base_url: Endpoint URL.
    """

    provider: str
    api_key: str = field(repr=False)
    model: str = ""
    base_url: str = ""

    @property
    def masked_api_key(self) -> str:
        """API key safe for logs."""
        return mask_secret(self.api_key)

    @property
    def provider_type(self) -> ProviderType:
        """Provider as an enum member.

        Raises:
            ValueError: If the provider is not supported.
        """
        return ProviderType(self.provider)

    @property
    def params(self) -> ProviderParams:
        """Retry and polling budget for this provider."""
        return get_provider_spec(self.provider).params


@dataclass(frozen=True)
class ConfigOverride:
    """Explicit values that take priority over the environment.

    Any field left as None falls through to the environment, then to the
    provider default.
    """

    provider: str | None = None
    api_key: str | None = field(default=None, repr=False)
    model: str | None = None
    base_url: str | None = None


@dataclass
class ConfigValidation:
    """Outcome of validating a ProviderConfig.

    Attributes:
        valid: True if there are no errors.
        provider: Provider that was validated.
        model: Model that was validated.
        errors: Problems that prevent generation.
        warnings: Problems that may cause provider-side failures.
        docs_url: Provider documentation, empty for unknown providers.
    """

    valid: bool
    provider: str
    model: str
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    docs_url: str = ""


# =============================================================================
# Resolution
# =============================================================================


def resolve_provider_config(override: ConfigOverride | None = None) -> ProviderConfig:
    """Resolve provider settings.

    Resolution priority per field:
        1. Explicit override
        2. Environment variable
        3. Provider default (provider itself defaults to replicate)

    Args:
        override: Optional explicit values.

    Returns:
        ProviderConfig. Not validated; see validate_provider_config().
    """
    override = override or ConfigOverride()

    provider = get_environment(EnvVar.FLUX_PROVIDER, override.provider) or DEFAULT_PROVIDER.value
    api_key = get_environment(EnvVar.FLUX_API_KEY, override.api_key) or ""
    model = get_environment(EnvVar.FLUX_MODEL, override.model)
    base_url = get_environment(EnvVar.FLUX_BASE_URL, override.base_url)

    if is_valid_provider(provider):
        spec = get_provider_spec(provider)
        model = model or spec.default_model
        base_url = base_url or spec.endpoint_for(model)

    return ProviderConfig(
        provider=provider,
        api_key=api_key,
        model=model or "",
        base_url=(base_url or "").rstrip("/"),
    )


# =============================================================================
# Validation
# =============================================================================


def validate_provider_config(config: ProviderConfig) -> ConfigValidation:
    """Validate a resolved configuration without any network access.

    Errors:
        - unknown provider
        - missing API key, or one shorter than 20 characters
        - Replicate model not in "owner/model" form

    Warnings:
        - model not in the provider's known-model list
        - provider-specific key format hints

    Args:
        config: Resolved configuration.

    Returns:
        ConfigValidation with errors and warnings.
    """
    errors: list[str] = []
    warnings: list[str] = []
    provider = config.provider
    api_key = config.api_key

    if not is_valid_provider(provider):
        valid = ", ".join(p.value for p in ProviderType)
        errors.append(f"Invalid provider: {provider}. Must be one of: {valid}")

    if not api_key:
        errors.append(f"{EnvVar.FLUX_API_KEY.value.name} environment variable is required")
    elif len(api_key) < MIN_API_KEY_LENGTH:
        errors.append(f"{EnvVar.FLUX_API_KEY.value.name} appears to be invalid (too short)")

    if not is_valid_provider(provider):
        return ConfigValidation(
            valid=False, provider=provider, model=config.model, errors=errors, warnings=warnings
        )

    spec = get_provider_spec(provider)
    if not spec.is_known_model(config.model):
        warnings.append(
            f'Model "{config.model}" may not be valid for {provider}. '
            f"Valid models: {', '.join(spec.known_models)}"
        )

    ptype = spec.provider
    if ptype is ProviderType.REPLICATE and "/" not in config.model:
        errors.append('Replicate model must be in format "owner/model" or "owner/model:version"')
    elif ptype is ProviderType.FAL and not api_key.startswith("fal-"):
        warnings.append('Fal.ai API keys typically start with "fal-"')
    elif ptype is ProviderType.TOGETHER and api_key.startswith("sk-"):
        warnings.append('Together AI API keys typically do not start with "sk-"')
    elif ptype is ProviderType.BFL and len(api_key) < BFL_TYPICAL_KEY_LENGTH:
        warnings.append(f"BFL API keys are typically longer than {BFL_TYPICAL_KEY_LENGTH} characters")

    return ConfigValidation(
        valid=not errors,
        provider=provider,
        model=config.model,
        errors=errors,
        warnings=warnings,
        docs_url=spec.docs_url,
    )


def is_configured() -> bool:
    """Check that the environment names a provider and a plausible key.

    Returns:
        True if FLUX_PROVIDER is a supported provider and FLUX_API_KEY is
        longer than 10 characters.
    """
    provider = get_environment(EnvVar.FLUX_PROVIDER)
    api_key = get_environment(EnvVar.FLUX_API_KEY)
    if not provider or not api_key:
        return False
    return is_valid_provider(provider) and len(api_key) > MIN_CONFIGURED_KEY_LENGTH


def get_config_help() -> str:
    """Render setup instructions for every provider."""
    lines = ["Flux image generation configuration:", "", "Environment variables:"]
    for var in list_environment_variables("provider"):
        info = var.value
        lines.append(f"  {info.name:<16} - {info.description}")

    lines.extend(["", "Providers:"])
    for i, spec in enumerate(PROVIDER_SPECS.values(), start=1):
        lines.extend(
            [
                f"  {i}. {spec.display_name} ({spec.provider.value}): {spec.description}",
                f"     Docs: {spec.docs_url}",
                f"     Set FLUX_PROVIDER={spec.provider.value}",
                f"     Set FLUX_API_KEY={spec.key_hint}",
                f"     Default model: {spec.default_model}",
            ]
        )

    lines.extend(
        [
            "",
            "Model recommendations:",
            "  - flux-schnell: fastest, good for testing (~2s)",
            "  - flux-dev: balanced quality/speed (~10s)",
            "  - flux-pro: best quality, slowest (~30s)",
        ]
    )
    return "\n".join(lines)


__all__ = [
    "ConfigOverride",
    "ConfigValidation",
    "ProviderConfig",
    "get_config_help",
    "is_configured",
    "resolve_provider_config",
    "validate_provider_config",
]
