"""Static visual guidance for each slide archetype."""

from .lib import (
    ARCHETYPE_CONFIGS,
    ArchetypeVisualConfig,
    get_visual_config,
    list_archetypes,
)

__all__ = [
    "ARCHETYPE_CONFIGS",
    "ArchetypeVisualConfig",
    "get_visual_config",
    "list_archetypes",
]
