"""Slide image pipeline: content in, finished slide (or a readable error) out.

Wraps PromptBuilder and GenerationService into the flows a caller
actually uses: full generation, quick generation from a title, several
variations, and regeneration with modifications. Failures are reported
on the result instead of raised, with a message meant for end users.
"""

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass

from slideflux.content import ArchetypeId, DensityMode, StructuredContent, TargetAudience
from slideflux.core.cancel import CancellationToken
from slideflux.prompt import ImagePrompt, PromptBuilder, SlideStyle
from slideflux.providers import ClassifiedError, ConfigOverride

from .lib import GenerationResult, GenerationService, user_message

logger = logging.getLogger(__name__)

# First match wins
STYLE_KEYWORDS: list[tuple[SlideStyle, re.Pattern]] = [
    (SlideStyle.BCG, re.compile(r"\bbcg\b|boston consulting", re.IGNORECASE)),
    (SlideStyle.BAIN, re.compile(r"\bbain\b", re.IGNORECASE)),
    (SlideStyle.MCKINSEY, re.compile(r"\bmckinsey\b", re.IGNORECASE)),
    (SlideStyle.MODERN, re.compile(r"\bmodern\b|\bstartup\b|\bminimalist\b", re.IGNORECASE)),
]


def detect_style_from_text(text: str) -> SlideStyle | None:
    """Pick a house style from firm or style names mentioned in free text.

    Returns:
        The first matching style, or None.
    """
    for style, pattern in STYLE_KEYWORDS:
        if pattern.search(text or ""):
            return style
    return None


@dataclass
class PipelineResult:
    """Outcome of a pipeline run.

    Attributes:
        success: True if an image was produced.
        result: Generation result on success.
        structured: Content the prompt was built from.
        archetype_id: Archetype used.
        prompt: Prompt sent to the provider.
        error: User-facing error message on failure.
        error_code: Machine-readable failure category.
        generation_time_ms: Wall time of the run.
    """

    success: bool
    result: GenerationResult | None = None
    structured: StructuredContent | None = None
    archetype_id: ArchetypeId | None = None
    prompt: ImagePrompt | None = None
    error: str | None = None
    error_code: str | None = None
    generation_time_ms: int = 0


class SlideImagePipeline:
    """Builds prompts from structured content and generates slide images.

    Stages:
        1. Build the archetype prompt
        2. Enhance it with the literal text to render
        3. Generate the image

    Example:
        >>> pipeline = SlideImagePipeline()
        >>> outcome = pipeline.run(content, ArchetypeId.EXECUTIVE_SUMMARY)
        >>> if outcome.success:
        ...     print(outcome.result.image_url)
        ... else:
        ...     print(outcome.error)
    """

    def __init__(
        self,
        service: GenerationService | None = None,
        builder: PromptBuilder | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self._service = service or GenerationService()
        self._builder = builder or PromptBuilder()
        self._clock = clock or time.monotonic

    @property
    def service(self) -> GenerationService:
        return self._service

    @property
    def builder(self) -> PromptBuilder:
        return self._builder

    def build_prompt(
        self,
        content: StructuredContent,
        archetype_id: ArchetypeId | str,
        audience: TargetAudience | str = TargetAudience.C_SUITE,
        density: DensityMode | str = DensityMode.PRESENTATION,
        style: SlideStyle | str = SlideStyle.MCKINSEY,
    ) -> ImagePrompt:
        """Build and text-enhance a prompt without generating."""
        prompt = self._builder.build(content, archetype_id, audience, density, style)
        return self._builder.enhance_for_text_accuracy(prompt, content)

    def run(
        self,
        content: StructuredContent,
        archetype_id: ArchetypeId | str,
        audience: TargetAudience | str = TargetAudience.C_SUITE,
        density: DensityMode | str = DensityMode.PRESENTATION,
        style: SlideStyle | str | None = None,
        *,
        source_text: str = "",
        config_override: ConfigOverride | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> PipelineResult:
        """Generate one slide image from structured content.

        Args:
            content: Structured slide content.
            archetype_id: Slide archetype.
            audience: Target audience.
            density: Density mode.
            style: House style. Detected from ``source_text`` when None,
                falling back to McKinsey.
            source_text: The user's original text, used for style detection.
            config_override: Explicit provider settings.
            cancel_token: Cancellation token.

        Returns:
            PipelineResult; never raises for generation failures.
        """
        start = self._clock()
        prompt = None
        try:
            style = self._resolve_style(style, source_text)
            archetype_id = ArchetypeId(archetype_id)
            prompt = self.build_prompt(content, archetype_id, audience, density, style)
            logger.info(
                "Prompt built: %d chars, style=%s, guidance=%.1f",
                len(prompt.prompt), prompt.style.value, prompt.guidance_scale,
            )
            result = self._service.generate(prompt, archetype_id, config_override, cancel_token)
        except (ClassifiedError, ValueError) as e:
            return self._failure(e, start, structured=content, prompt=prompt)

        return PipelineResult(
            success=True,
            result=result,
            structured=content,
            archetype_id=archetype_id,
            prompt=prompt,
            generation_time_ms=self._elapsed_ms(start),
        )

    def run_variations(
        self,
        content: StructuredContent,
        archetype_id: ArchetypeId | str,
        count: int = 3,
        audience: TargetAudience | str = TargetAudience.C_SUITE,
        density: DensityMode | str = DensityMode.PRESENTATION,
        style: SlideStyle | str | None = None,
        *,
        source_text: str = "",
        config_override: ConfigOverride | None = None,
        cancel_token: CancellationToken | None = None,
        max_workers: int | None = None,
    ) -> list[PipelineResult]:
        """Generate several variations of one slide concurrently.

        The first variation uses the content as is; variation ``i`` (1-based,
        i > 1) gets " (Variation i)" appended to its title. Each variation is
        an independent generation with its own retry budget.

        Returns:
            One PipelineResult per variation, in order.
        """
        try:
            style = self._resolve_style(style, source_text)
            archetype_id = ArchetypeId(archetype_id)
            prompts = []
            for i in range(count):
                variant = content
                if i > 0:
                    variant = content.model_copy(
                        update={"title": f"{content.headline} (Variation {i + 1})"}
                    )
                prompt = self._builder.build(variant, archetype_id, audience, density, style)
                prompts.append(self._builder.enhance_for_text_accuracy(prompt, content))
        except ValueError as e:
            start = self._clock()
            return [self._failure(e, start, structured=content) for _ in range(count)]

        outcomes = self._service.generate_many(
            prompts, archetype_id, config_override, cancel_token, max_workers
        )
        results = []
        for outcome, prompt in zip(outcomes, prompts):
            if outcome.ok:
                results.append(
                    PipelineResult(
                        success=True,
                        result=outcome.result,
                        structured=content,
                        archetype_id=archetype_id,
                        prompt=prompt,
                        generation_time_ms=outcome.result.generation_time_ms,
                    )
                )
            else:
                results.append(
                    PipelineResult(
                        success=False,
                        structured=content,
                        archetype_id=archetype_id,
                        prompt=prompt,
                        error=user_message(outcome.error),
                        error_code=outcome.error.code.value,
                    )
                )
        succeeded = sum(r.success for r in results)
        logger.info("Variations complete: %d/%d succeeded", succeeded, count)
        return results

    def quick_generate(
        self,
        title: str,
        archetype_id: ArchetypeId | str,
        style: SlideStyle | str = SlideStyle.MCKINSEY,
        *,
        config_override: ConfigOverride | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> PipelineResult:
        """Generate from a title alone using the archetype's example prompt."""
        start = self._clock()
        prompt = None
        try:
            archetype_id = ArchetypeId(archetype_id)
            prompt = self._builder.build_quick(title, archetype_id, style)
            result = self._service.generate(prompt, archetype_id, config_override, cancel_token)
        except (ClassifiedError, ValueError) as e:
            return self._failure(e, start, prompt=prompt)

        return PipelineResult(
            success=True,
            result=result,
            archetype_id=archetype_id,
            prompt=prompt,
            generation_time_ms=self._elapsed_ms(start),
        )

    def regenerate(
        self,
        content: StructuredContent,
        archetype_id: ArchetypeId | str,
        audience: TargetAudience | str = TargetAudience.C_SUITE,
        density: DensityMode | str = DensityMode.PRESENTATION,
        *,
        title: str | None = None,
        style: SlideStyle | str | None = None,
        new_archetype_id: ArchetypeId | str | None = None,
        source_text: str = "",
        config_override: ConfigOverride | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> PipelineResult:
        """Generate again with a new title, style or archetype.

        Args:
            content: Content of the original slide.
            archetype_id: Archetype of the original slide.
            title: Replacement title.
            style: Replacement style.
            new_archetype_id: Replacement archetype.

        Returns:
            PipelineResult; ``generation_time_ms`` is the generation's own time.
        """
        if title:
            content = content.model_copy(update={"title": title})
        outcome = self.run(
            content,
            new_archetype_id or archetype_id,
            audience,
            density,
            style,
            source_text=source_text,
            config_override=config_override,
            cancel_token=cancel_token,
        )
        if outcome.success:
            outcome.generation_time_ms = outcome.result.generation_time_ms
        return outcome

    def _resolve_style(self, style: SlideStyle | str | None, source_text: str) -> SlideStyle:
        if style is not None:
            return SlideStyle(style)
        return detect_style_from_text(source_text) or SlideStyle.MCKINSEY

    def _elapsed_ms(self, start: float) -> int:
        return max(0, int((self._clock() - start) * 1000))

    def _failure(
        self,
        error: Exception,
        start: float,
        *,
        structured: StructuredContent | None = None,
        prompt: ImagePrompt | None = None,
    ) -> PipelineResult:
        logger.error("Pipeline failed: %r", error)
        code = error.code.value if isinstance(error, ClassifiedError) else "invalid_input"
        return PipelineResult(
            success=False,
            structured=structured,
            prompt=prompt,
            error=user_message(error),
            error_code=code,
            generation_time_ms=self._elapsed_ms(start),
        )


__all__ = [
    "PipelineResult",
    "SlideImagePipeline",
    "detect_style_from_text",
]
