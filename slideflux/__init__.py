"""slideflux: Flux image generation for consulting slides.

Turns structured slide content and an archetype into a prompt, sends it
to one of several Flux providers and returns the finished image.

Example:
    >>> from slideflux import SlideImagePipeline, StructuredContent
    >>> content = StructuredContent(title="Q3 Revenue Up 23%")
    >>> outcome = SlideImagePipeline().run(content, "kpi_dashboard")
"""

from slideflux.content import ArchetypeId, DensityMode, StructuredContent, TargetAudience
from slideflux.core.cancel import CancellationToken
from slideflux.generation import (
    GenerationResult,
    GenerationService,
    PipelineResult,
    SlideImagePipeline,
    user_message,
)
from slideflux.prompt import AspectRatio, ImagePrompt, PromptBuilder, SlideStyle
from slideflux.providers import ClassifiedError, ConfigOverride, ProviderType, is_configured

__version__ = "0.1.0"

__all__ = [
    "ArchetypeId",
    "AspectRatio",
    "CancellationToken",
    "ClassifiedError",
    "ConfigOverride",
    "DensityMode",
    "GenerationResult",
    "GenerationService",
    "ImagePrompt",
    "PipelineResult",
    "PromptBuilder",
    "ProviderType",
    "SlideImagePipeline",
    "SlideStyle",
    "StructuredContent",
    "TargetAudience",
    "is_configured",
    "user_message",
]
