"""Image prompt construction for slide archetypes."""

from .lib import (
    ARCHETYPE_DESCRIBERS,
    AUDIENCE_MODIFIERS,
    BASE_VISUAL_STYLE,
    DENSITY_MODIFIERS,
    NEGATIVE_PROMPT,
    NEGATIVE_TERMS,
    STYLE_MODIFIERS,
    AspectRatio,
    ImagePrompt,
    PromptBuilder,
    PromptConfig,
    PromptContext,
    SlideStyle,
)

__all__ = [
    "ARCHETYPE_DESCRIBERS",
    "AUDIENCE_MODIFIERS",
    "BASE_VISUAL_STYLE",
    "DENSITY_MODIFIERS",
    "NEGATIVE_PROMPT",
    "NEGATIVE_TERMS",
    "STYLE_MODIFIERS",
    "AspectRatio",
    "ImagePrompt",
    "PromptBuilder",
    "PromptConfig",
    "PromptContext",
    "SlideStyle",
]
