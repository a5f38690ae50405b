"""Flux image provider backends.

Provides a unified interface over four unrelated image APIs:
- Replicate (submit-and-wait, polls when needed)
- fal.ai (synchronous, queue fallback)
- Together AI (synchronous images API)
- Black Forest Labs (submit then poll)

Example:
    >>> from slideflux.providers import create_adapter, resolve_provider_config
    >>> config = resolve_provider_config()
    >>> with httpx.Client(timeout=config.params.timeout_seconds) as client:
    ...     output = create_adapter(config.provider, client).generate(prompt, config)
"""

from .base import (
    AdapterOutput,
    AttemptState,
    ClassifiedError,
    ConfigInvalidError,
    ErrorCode,
    GenerationAttempt,
    GenerationCancelledError,
    GenerationExhaustedError,
    HttpStatusError,
    InvalidResponseError,
    JobState,
    JobStatus,
    PollTimeoutError,
    ProviderAdapter,
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
    ConfigValidation,
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
    DEFAULT_PROVIDER,
    PROVIDER_SPECS,
    ProviderParams,
    ProviderSpec,
    ProviderType,
    get_provider_params,
    get_provider_spec,
    is_valid_provider,
    list_provider_models,
)
from .together import TogetherAdapter

__all__ = [
    # Spec
    "DEFAULT_PROVIDER",
    "PROVIDER_SPECS",
    "ProviderParams",
    "ProviderSpec",
    "ProviderType",
    "get_provider_params",
    "get_provider_spec",
    "is_valid_provider",
    "list_provider_models",
    # Config
    "ConfigOverride",
    "ConfigValidation",
    "ProviderConfig",
    "get_config_help",
    "is_configured",
    "resolve_provider_config",
    "validate_provider_config",
    # Base
    "AdapterOutput",
    "AttemptState",
    "GenerationAttempt",
    "JobState",
    "JobStatus",
    "ProviderAdapter",
    "pause",
    # Errors
    "ClassifiedError",
    "ConfigInvalidError",
    "ErrorCode",
    "GenerationCancelledError",
    "GenerationExhaustedError",
    "HttpStatusError",
    "InvalidResponseError",
    "PollTimeoutError",
    "ProviderCanceledError",
    "ProviderReportedFailureError",
    "ProviderTransportError",
    "RequestTimeoutError",
    "UnknownProviderError",
    # Backends
    "ADAPTERS",
    "BFLAdapter",
    "FalAdapter",
    "PollingEngine",
    "ReplicateAdapter",
    "TogetherAdapter",
    "create_adapter",
]
