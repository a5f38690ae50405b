"""Environment-backed settings for slideflux.

Every variable the package reads is declared once as an ``EnvVar`` member
carrying its default, type and help text. Callers go through
``get_environment()``, which applies the same precedence everywhere: an
explicit value from the caller, then the process environment, then the
declared default.

Example:
    >>> from slideflux.config import EnvVar, get_environment
    >>> get_environment(EnvVar.FLUX_PROVIDER)  # "fal", or None when unset
    >>> get_environment(EnvVar.FLUX_PROVIDER, override="bfl")
    'bfl'
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, overload

# =============================================================================
# Variable Registry
# =============================================================================


@dataclass(frozen=True)
class EnvConfig:
    """Declaration of one environment variable.

    Attributes:
        name: Variable name as set in the shell or ``.env``.
        default: Value used when the variable is unset or unparseable.
        var_type: ``str`` or ``int``.
        description: One-line help shown by the ``env`` command.
        category: "provider" or "runtime".
        secret: Never print the value unmasked.
    """

    name: str
    default: Any
    var_type: type
    description: str = ""
    category: str = "general"
    secret: bool = False


class EnvVar(Enum):
    """Registry of the variables slideflux reads.

    Categories:
        - provider: which Flux provider to call and how to reach it
        - runtime: process-wide knobs (log level, thread pool size)
    """

    # -------------------------------------------------------------------------
    # Provider
    # -------------------------------------------------------------------------
    FLUX_PROVIDER = EnvConfig(
        name="FLUX_PROVIDER",
        default=None,
        var_type=str,
        description="Image provider: replicate, fal, together, bfl",
        category="provider",
    )
    FLUX_API_KEY = EnvConfig(
        name="FLUX_API_KEY",
        default=None,
        var_type=str,
        description="API key issued by the selected provider",
        category="provider",
        secret=True,
    )
    FLUX_MODEL = EnvConfig(
        name="FLUX_MODEL",
        default=None,
        var_type=str,
        description="Model override (provider default if unset)",
        category="provider",
    )
    FLUX_BASE_URL = EnvConfig(
        name="FLUX_BASE_URL",
        default=None,
        var_type=str,
        description="Endpoint override (provider default if unset)",
        category="provider",
    )

    # -------------------------------------------------------------------------
    # Runtime
    # -------------------------------------------------------------------------
    SLIDEFLUX_LOG_LEVEL = EnvConfig(
        name="SLIDEFLUX_LOG_LEVEL",
        default="INFO",
        var_type=str,
        description="Log level for the CLI (DEBUG, INFO, WARNING, ERROR)",
        category="runtime",
    )
    SLIDEFLUX_MAX_WORKERS = EnvConfig(
        name="SLIDEFLUX_MAX_WORKERS",
        default=3,
        var_type=int,
        description="Worker threads used when generating variations",
        category="runtime",
    )


# =============================================================================
# Parsing
# =============================================================================


def _parse(raw: str | None, info: EnvConfig) -> Any:
    """Turn a raw environment string into the declared type.

    Blank strings and integers that fail to parse yield the default.
    """
    if raw is None or not raw.strip():
        return info.default
    if info.var_type is int:
        try:
            return int(raw)
        except ValueError:
            return info.default
    return raw.strip()


# =============================================================================
# Lookup
# =============================================================================


@overload
def get_environment(env_var: EnvVar, override: int) -> int: ...
@overload
def get_environment(env_var: EnvVar, override: str) -> str: ...
@overload
def get_environment(env_var: EnvVar, override: None = None) -> Any: ...


def get_environment(env_var: EnvVar, override: Any = None) -> Any:
    """Read a setting.

    Precedence: ``override`` (when not None), then ``os.environ``, then
    the declared default.

    Args:
        env_var: Variable to read.
        override: Value supplied by the caller, e.g. a CLI flag.

    Returns:
        The value as ``str`` or ``int``, or None for unset variables
        without a default.

    Example:
        >>> get_environment(EnvVar.SLIDEFLUX_MAX_WORKERS)
        3
    """
    if override is not None:
        return override
    info: EnvConfig = env_var.value
    return _parse(os.environ.get(info.name), info)


def get_environment_info(env_var: EnvVar) -> EnvConfig:
    """Declaration (name, default, type, help) of a variable."""
    return env_var.value


def list_environment_variables(category: str | None = None) -> list[EnvVar]:
    """Registered variables in declaration order.

    Args:
        category: "provider" or "runtime"; None lists everything.
    """
    return [var for var in EnvVar if category is None or var.value.category == category]


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Render a secret for logs, keeping only the last few characters.

    Args:
        value: Secret value (may be None or empty).
        visible: Number of trailing characters left readable.

    Returns:
        Masked string, e.g. ``"****abcd"``, or ``"<unset>"``.
    """
    if not value:
        return "<unset>"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


__all__ = [
    "EnvConfig",
    "EnvVar",
    "get_environment",
    "get_environment_info",
    "list_environment_variables",
    "mask_secret",
]
