"""Adapter factory for creating provider backends.

Provides a single entry point that maps a provider name to its adapter
class.
"""

from collections.abc import Callable

import httpx

from slideflux.core.cancel import CancellationToken

from .base import ProviderAdapter, UnknownProviderError
from .bfl import BFLAdapter
from .fal import FalAdapter
from .replicate import ReplicateAdapter
from .spec import ProviderParams, ProviderType, is_valid_provider
from .together import TogetherAdapter

ADAPTERS: dict[ProviderType, type[ProviderAdapter]] = {
    ProviderType.REPLICATE: ReplicateAdapter,
    ProviderType.FAL: FalAdapter,
    ProviderType.TOGETHER: TogetherAdapter,
    ProviderType.BFL: BFLAdapter,
}


def create_adapter(
    provider: ProviderType | str,
    client: httpx.Client,
    params: ProviderParams | None = None,
    *,
    seed_factory: Callable[[], int] | None = None,
    sleep: Callable[[float], None] | None = None,
    cancel_token: CancellationToken | None = None,
    clock: Callable[[], float] | None = None,
) -> ProviderAdapter:
    """Create the adapter registered for a provider.

    Args:
        provider: Provider type or name.
        client: HTTP client the adapter will use.
        params: Polling budget. Defaults to the provider's params.
        seed_factory: Seed source.
        sleep: Injected sleep (tests).
        cancel_token: Optional cancellation token.
        clock: Monotonic clock for request deadlines.

    Returns:
        Configured ProviderAdapter.

    Raises:
        UnknownProviderError: If no adapter is registered for the provider.

    Example:
        >>> with httpx.Client(timeout=60) as client:
        ...     adapter = create_adapter("fal", client)
    """
    if not is_valid_provider(provider):
        raise UnknownProviderError(f"Unknown provider: {provider}", provider=str(provider))

    adapter_cls = ADAPTERS[ProviderType(provider)]
    return adapter_cls(
        client,
        params,
        seed_factory=seed_factory,
        sleep=sleep,
        cancel_token=cancel_token,
        clock=clock,
    )


__all__ = ["ADAPTERS", "create_adapter"]
