"""Root pytest configuration and fixtures.

This module provides:
- Environment setup (loads .env)
- Skipping of live provider tests when no credentials are present
- Shared content and provider fixtures
- Scripted provider HTTP endpoints (httpx.MockTransport) and a sleep recorder
"""

from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING, Generator

import httpx
import pytest
from dotenv import load_dotenv

if TYPE_CHECKING:
    from slideflux.content import StructuredContent
    from slideflux.providers import ProviderConfig

# Load environment variables from .env file
load_dotenv()

FLUX_ENV_VARS = ("FLUX_PROVIDER", "FLUX_API_KEY", "FLUX_MODEL", "FLUX_BASE_URL")

# Syntactically valid keys that pass every validation rule without warnings
VALID_KEYS = {
    "replicate": "r8_" + "a" * 37,
    "fal": "fal-" + "b" * 36,
    "together": "tg_" + "c" * 37,
    "bfl": "d" * 48,
}


# =============================================================================
# Pytest Hooks
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]):
    """Auto-skip tests marked ``live`` unless a provider is configured."""
    configured = bool(os.environ.get("FLUX_PROVIDER") and os.environ.get("FLUX_API_KEY"))
    skip_live = pytest.mark.skip(reason="FLUX_PROVIDER/FLUX_API_KEY not set")

    for item in items:
        if "live" in item.keywords and not configured:
            item.add_marker(skip_live)


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture
def clean_flux_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove all provider variables from the environment.

    Returns:
        The monkeypatch instance, for tests that set variables afterwards.
    """
    for name in FLUX_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def valid_keys() -> dict[str, str]:
    """API keys that pass validation for each provider."""
    return dict(VALID_KEYS)


@pytest.fixture
def provider_config_for():
    """Factory for resolved provider configs with test endpoints.

    Returns:
        Callable taking a provider name and returning a ProviderConfig.
    """
    from slideflux.providers import ProviderConfig, ProviderType, get_provider_spec

    def _make(provider: str, **overrides) -> ProviderConfig:
        spec = get_provider_spec(ProviderType(provider))
        values = {
            "provider": provider,
            "api_key": VALID_KEYS[provider],
            "model": spec.default_model,
            "base_url": spec.base_url,
        }
        values.update(overrides)
        return ProviderConfig(**values)

    return _make


# =============================================================================
# Common Test Fixtures
# =============================================================================


@pytest.fixture
def sample_content() -> StructuredContent:
    """Create a representative StructuredContent for testing.

    Returns:
        Content with three data points and three logical groups.
    """
    from slideflux.content import DataPoint, LogicalGroup, StructuredContent

    return StructuredContent(
        title="Q3 Revenue Up 23%",
        core_message="Growth accelerated on pricing and new logos",
        content_type="financial_update",
        data_points=[
            DataPoint(label="Revenue", value=45, unit="$M", context="+20% YoY"),
            DataPoint(label="Margin", value=12, unit="%"),
            DataPoint(label="Customers", value="+850"),
        ],
        logical_groups=[
            LogicalGroup(
                heading="Drivers",
                bullets=["Pricing uplift", "New logos", "Upsell to enterprise"],
                emphasis="high",
            ),
            LogicalGroup(
                heading="Risks",
                bullets=["FX headwinds", "Churn in SMB"],
            ),
            LogicalGroup(
                heading="Actions",
                bullets=["Expand sales team", "Launch loyalty tier"],
            ),
        ],
        complexity_score=3,
    )


# =============================================================================
# HTTP Mocking
# =============================================================================


class MockProviderAPI:
    """Scripted stand-in for provider HTTP endpoints.

    Responses are registered per (method, url). Each request consumes the
    next scripted response; the last one repeats, so a single "pending"
    response can stand for any number of polls. Every request is recorded.

    A scripted response may be:
        - dict: 200 with that JSON body
        - int: that status code with a short text body
        - httpx.Response: returned as-is
        - Exception: raised from the transport

    Example:
        >>> api = MockProviderAPI()
        >>> api.add("POST", "https://api.example.com/v1/jobs", {"id": "abc"})
        >>> client = httpx.Client(transport=api.transport)
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, *responses) -> "MockProviderAPI":
        self._routes.setdefault((method.upper(), url), []).extend(responses)
        return self

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def calls(self, method: str | None = None, url: str | None = None) -> list[httpx.Request]:
        """Recorded requests, optionally filtered by method and url."""
        return [
            r
            for r in self.requests
            if (method is None or r.method == method.upper())
            and (url is None or _route_url(r) == url)
        ]

    def json_body(self, index: int = 0) -> dict:
        """Decoded JSON body of the index-th recorded request."""
        return json.loads(self.requests[index].content)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, _route_url(request))
        queue = self._routes.get(key)
        if not queue:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")

        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        if isinstance(item, int):
            return httpx.Response(item, text=f"status {item}")
        return httpx.Response(200, json=item)


def _route_url(request: httpx.Request) -> str:
    return str(request.url.copy_with(query=None))


class SleepRecorder:
    """Injected sleep that records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def mock_api() -> MockProviderAPI:
    """Fresh scripted provider API."""
    return MockProviderAPI()


@pytest.fixture
def http_client(mock_api: MockProviderAPI) -> Generator[httpx.Client, None, None]:
    """httpx client wired to the scripted provider API."""
    client = httpx.Client(transport=mock_api.transport)
    yield client
    client.close()


@pytest.fixture
def no_sleep() -> SleepRecorder:
    """Sleep replacement that records delays."""
    return SleepRecorder()
