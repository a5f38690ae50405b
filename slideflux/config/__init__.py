"""Environment-backed settings for slideflux.

Example:
    >>> from slideflux.config import EnvVar, get_environment, list_environment_variables
    >>> workers = get_environment(EnvVar.SLIDEFLUX_MAX_WORKERS)  # 3 unless set
    >>> for var in list_environment_variables("provider"):
    ...     print(var.value.name, "-", var.value.description)
"""

from .lib import (
    EnvConfig,
    EnvVar,
    get_environment,
    get_environment_info,
    list_environment_variables,
    mask_secret,
)

__all__ = [
    "EnvConfig",
    "EnvVar",
    "get_environment",
    "get_environment_info",
    "list_environment_variables",
    "mask_secret",
]
