"""Slide image generation orchestrator.

Provides GenerationService (config, retries, result assembly) and
SlideImagePipeline (prompt building plus user-facing error shaping).
"""

from .lib import (
    GenerationResult,
    GenerationService,
    VariationResult,
    check_prompt_ranges,
    new_slide_id,
    user_message,
)
from .pipeline import PipelineResult, SlideImagePipeline, detect_style_from_text
from .retry import RetryConfig, RetryOrchestrator

__all__ = [
    "GenerationService",
    "GenerationResult",
    "VariationResult",
    "SlideImagePipeline",
    "PipelineResult",
    "RetryConfig",
    "RetryOrchestrator",
    "check_prompt_ranges",
    "detect_style_from_text",
    "new_slide_id",
    "user_message",
]
