"""Upstream content types (structured content, archetypes, audience)."""

from .lib import (
    ArchetypeId,
    DataPoint,
    DensityMode,
    Emphasis,
    LogicalGroup,
    StructuredContent,
    TargetAudience,
)

__all__ = [
    "ArchetypeId",
    "DataPoint",
    "DensityMode",
    "Emphasis",
    "LogicalGroup",
    "StructuredContent",
    "TargetAudience",
]
