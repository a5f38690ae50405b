"""PromptBuilder for Flux slide image prompts.

Turns structured slide content plus an archetype into a single
``ImagePrompt``: a positive prompt assembled from the content, the
archetype's visual guidance and audience/density modifiers, and a fixed
negative prompt. Everything here is deterministic and free of I/O.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum

from slideflux.catalog import get_visual_config
from slideflux.content import (
    ArchetypeId,
    DensityMode,
    StructuredContent,
    TargetAudience,
)

logger = logging.getLogger(__name__)


class AspectRatio(str, Enum):
    """Slide aspect ratios supported by every provider."""

    WIDESCREEN = "16:9"
    STANDARD = "4:3"


class SlideStyle(str, Enum):
    """Consulting house styles."""

    MCKINSEY = "mckinsey"
    BCG = "bcg"
    BAIN = "bain"
    MODERN = "modern"


@dataclass(frozen=True)
class ImagePrompt:
    """A complete, provider-neutral image request.

    Attributes:
        prompt: Positive prompt text.
        negative_prompt: Comma-separated terms the model should avoid.
        aspect_ratio: Output aspect ratio.
        style: House style the prompt was built for.
        guidance_scale: Classifier-free guidance strength.
        num_inference_steps: Denoising steps.
        text_enhanced: Whether the literal-text block has been appended.
    """

    prompt: str
    negative_prompt: str
    aspect_ratio: AspectRatio = AspectRatio.WIDESCREEN
    style: SlideStyle = SlideStyle.MCKINSEY
    guidance_scale: float = 7.5
    num_inference_steps: int = 28
    text_enhanced: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "aspect_ratio", AspectRatio(self.aspect_ratio))
        object.__setattr__(self, "style", SlideStyle(self.style))


# =============================================================================
# Prompt Vocabulary
# =============================================================================

BASE_VISUAL_STYLE = (
    "Professional McKinsey-style consulting presentation, dark navy blue background (#0F172A), "
    "white text, teal (#14B8A6) accent color for highlights, clean sans-serif typography "
    "(Inter or similar), high contrast, minimal design"
)

AUDIENCE_MODIFIERS: dict[TargetAudience, str] = {
    TargetAudience.C_SUITE: (
        "executive-level, high-level strategic view, minimal detail, bold numbers, "
        "boardroom presentation"
    ),
    TargetAudience.PE_INVESTORS: (
        "financial focus, ROI metrics, exit multiples, investment thesis, deal-focused"
    ),
    TargetAudience.EXTERNAL_CLIENT: (
        "client-friendly, polished, branded elements, professional services aesthetic"
    ),
    TargetAudience.INTERNAL_TEAM: (
        "detailed, operational metrics, actionable insights, implementation-focused"
    ),
}

DENSITY_MODIFIERS: dict[DensityMode, str] = {
    DensityMode.PRESENTATION: "minimal text, large visuals, presenter-supporting, key points only",
    DensityMode.READ_STYLE: (
        "more detailed, self-contained, comprehensive information, readable standalone"
    ),
}

STYLE_MODIFIERS: dict[SlideStyle, str] = {
    SlideStyle.MCKINSEY: "",
    SlideStyle.BCG: "BCG house style, green accent palette, crisp framed charts",
    SlideStyle.BAIN: "Bain house style, red accent highlights, answer-first headline",
    SlideStyle.MODERN: "modern pitch-deck aesthetic, generous whitespace, rounded shapes",
}

NEGATIVE_TERMS: tuple[str, ...] = (
    "blurry text",
    "illegible text",
    "misspelled words",
    "distorted text",
    "low quality",
    "pixelated",
    "watermark",
    "logo",
    "brand name",
    "copyright text",
    "crowded layout",
    "cluttered",
    "too many elements",
    "small text",
    "handwritten",
    "cursive font",
    "decorative font",
    "photorealistic people",
    "faces",
    "photographs",
    "clip art",
    "cartoon",
    "anime",
    "3D render",
    "unrealistic",
    "surreal",
    "abstract art",
)

NEGATIVE_PROMPT = ", ".join(NEGATIVE_TERMS)

TECHNICAL_SPECIFICATIONS: tuple[str, ...] = (
    "High resolution, 4K quality",
    "Sharp, perfectly readable text",
    "Professional color grading",
    "Clean, minimal design aesthetic",
    "No photographs or faces",
    "Vector graphic style",
    "Consulting-grade presentation quality",
)

TEXT_ACCURACY_INSTRUCTION = (
    "CRITICAL: Ensure all text is perfectly legible, correctly spelled, and professionally "
    "formatted. Text accuracy is the most important requirement."
)


# =============================================================================
# Archetype Content Descriptions
# =============================================================================


def _headings(content: StructuredContent, limit: int) -> list[str]:
    return [g.heading for g in content.logical_groups[:limit]]


def _describe_executive_summary(content: StructuredContent) -> str:
    metrics = [dp.formatted(with_context=True) for dp in content.data_points[:4]]
    return f'Executive summary with headline "{content.headline}". Key findings: {"; ".join(metrics)}.'


def _describe_scr(content: StructuredContent) -> str:
    sections = ("Situation", "Complication", "Resolution")
    return ". ".join(
        f"{name}: {group.heading} - {', '.join(group.bullets[:2])}"
        for name, group in zip(sections, content.logical_groups[:3])
    )


def _describe_matrix(content: StructuredContent) -> str:
    items = [b for g in content.logical_groups for b in g.bullets][:8]
    return f"2x2 matrix with items positioned by impact and effort: {', '.join(items)}"


def _describe_comparison(content: StructuredContent) -> str:
    criteria = [g.heading for g in content.logical_groups]
    return f"Comparison table evaluating across criteria: {', '.join(criteria)}"


def _describe_before_after(content: StructuredContent) -> str:
    groups = content.logical_groups[:2]
    if len(groups) < 2:
        return "Before and after transformation comparison"
    before, after = groups
    before_point = before.bullets[0] if before.bullets else ""
    after_point = after.bullets[0] if after.bullets else ""
    return f"Before: {before.heading} - {before_point}. After: {after.heading} - {after_point}"


def _describe_kpis(content: StructuredContent) -> str:
    metrics = [dp.formatted() for dp in content.data_points[:5]]
    return f"KPI dashboard showing: {', '.join(metrics)}"


def _describe_waterfall(content: StructuredContent) -> str:
    values = [f"{dp.label} {dp.value}" for dp in content.data_points[:6]]
    return f"Waterfall chart showing progression: {' → '.join(values)}"


def _describe_trend(content: StructuredContent) -> str:
    trend = [f"{dp.label}: {dp.value}" for dp in content.data_points[:8]]
    return f"Line chart trend over time: {', '.join(trend)}"


def _describe_stacked_bar(content: StructuredContent) -> str:
    categories = [dp.label for dp in content.data_points[:6]]
    return f"Stacked bar chart showing: {', '.join(categories)}"


def _describe_process(content: StructuredContent) -> str:
    steps = [f"Step {i}: {heading}" for i, heading in enumerate(_headings(content, 6), start=1)]
    return f"Process flow: {' → '.join(steps)}"


def _describe_timeline(content: StructuredContent) -> str:
    return f"Timeline with workstreams: {', '.join(_headings(content, 4))}"


def _describe_decision_tree(content: StructuredContent) -> str:
    return f"Decision tree with branches: {', '.join(_headings(content, 4))}"


def _describe_issue_tree(content: StructuredContent) -> str:
    branches = ", ".join(_headings(content, 3))
    return f'Issue tree breaking down "{content.headline}" into: {branches}'


def _describe_pillars(content: StructuredContent) -> str:
    return f"Three strategic pillars: {', '.join(_headings(content, 3))}"


def _describe_grid(content: StructuredContent) -> str:
    return f"Grid of cards showing: {', '.join(_headings(content, 6))}"


def _describe_market_sizing(content: StructuredContent) -> str:
    levels = [f"{dp.label}: {dp.value}" for dp in content.data_points[:3]]
    return f"Market sizing: {' > '.join(levels)}"


def _describe_competitors(content: StructuredContent) -> str:
    return f"Competitive landscape with: {', '.join(_headings(content, 6))}"


def _describe_agenda(content: StructuredContent) -> str:
    return f"Agenda with sections: {', '.join(_headings(content, 6))}"


ARCHETYPE_DESCRIBERS: dict[ArchetypeId, Callable[[StructuredContent], str]] = {
    ArchetypeId.EXECUTIVE_SUMMARY: _describe_executive_summary,
    ArchetypeId.SITUATION_COMPLICATION_RESOLUTION: _describe_scr,
    ArchetypeId.TWO_BY_TWO_MATRIX: _describe_matrix,
    ArchetypeId.COMPARISON_TABLE: _describe_comparison,
    ArchetypeId.BEFORE_AFTER: _describe_before_after,
    ArchetypeId.KPI_DASHBOARD: _describe_kpis,
    ArchetypeId.WATERFALL_CHART: _describe_waterfall,
    ArchetypeId.TREND_LINE: _describe_trend,
    ArchetypeId.STACKED_BAR: _describe_stacked_bar,
    ArchetypeId.PROCESS_FLOW: _describe_process,
    ArchetypeId.TIMELINE_SWIMLANE: _describe_timeline,
    ArchetypeId.DECISION_TREE: _describe_decision_tree,
    ArchetypeId.ISSUE_TREE: _describe_issue_tree,
    ArchetypeId.THREE_PILLAR: _describe_pillars,
    ArchetypeId.GRID_CARDS: _describe_grid,
    ArchetypeId.MARKET_SIZING: _describe_market_sizing,
    ArchetypeId.COMPETITIVE_LANDSCAPE: _describe_competitors,
    ArchetypeId.AGENDA_DIVIDER: _describe_agenda,
}


# =============================================================================
# Builder
# =============================================================================


@dataclass
class PromptConfig:
    """Configuration for prompt building.

    Attributes:
        max_data_points: Data points listed under key metrics.
        max_groups: Logical groups mined for supporting points.
        max_bullets_per_group: Bullets taken from each group.
        guidance_scale: Guidance for a standard prompt.
        num_inference_steps: Steps for a standard prompt.
        enhanced_guidance_scale: Guidance after text enhancement.
        enhanced_inference_steps: Steps after text enhancement.
        quick_guidance_scale: Guidance for a quick prompt.
        quick_inference_steps: Steps for a quick prompt.
        max_text_data_points: Data points listed as required text.
        max_text_groups: Groups listed as required text.
        max_text_bullets: Bullets per group listed as required text.
        max_text_bullet_length: Characters kept of each required bullet.
    """

    max_data_points: int = 4
    max_groups: int = 4
    max_bullets_per_group: int = 3
    guidance_scale: float = 7.5
    num_inference_steps: int = 28
    enhanced_guidance_scale: float = 8.0
    enhanced_inference_steps: int = 30
    quick_guidance_scale: float = 7.0
    quick_inference_steps: int = 25
    max_text_data_points: int = 5
    max_text_groups: int = 3
    max_text_bullets: int = 2
    max_text_bullet_length: int = 60


@dataclass
class PromptContext:
    """What went into a built prompt, for logging and inspection.

    Attributes:
        archetype_id: Archetype the prompt was built for.
        title: Headline used.
        key_metrics: Formatted data points included.
        main_points: Bullet excerpts included.
        description: Archetype-specific content description.
    """

    archetype_id: ArchetypeId
    title: str = ""
    key_metrics: list[str] = field(default_factory=list)
    main_points: list[str] = field(default_factory=list)
    description: str = ""


class PromptBuilder:
    """Builds Flux image prompts from structured slide content.

    Example:
        >>> builder = PromptBuilder()
        >>> prompt = builder.build(
        ...     content,
        ...     ArchetypeId.KPI_DASHBOARD,
        ...     TargetAudience.C_SUITE,
        ...     DensityMode.PRESENTATION,
        ... )
        >>> prompt = builder.enhance_for_text_accuracy(prompt, content)
    """

    def __init__(self, config: PromptConfig | None = None):
        """Initialize PromptBuilder.

        Args:
            config: Prompt building configuration.
        """
        self._config = config or PromptConfig()

    @property
    def config(self) -> PromptConfig:
        return self._config

    def build(
        self,
        content: StructuredContent,
        archetype_id: ArchetypeId | str,
        audience: TargetAudience | str = TargetAudience.C_SUITE,
        density: DensityMode | str = DensityMode.PRESENTATION,
        style: SlideStyle | str = SlideStyle.MCKINSEY,
        aspect_ratio: AspectRatio | str = AspectRatio.WIDESCREEN,
    ) -> ImagePrompt:
        """Build an image prompt for a slide.

        Args:
            content: Structured slide content.
            archetype_id: Slide archetype.
            audience: Target audience.
            density: Presentation or read-style density.
            style: House style.
            aspect_ratio: Output aspect ratio.

        Returns:
            ImagePrompt with the standard guidance and step count.

        Raises:
            ValueError: If the archetype, audience, density, style or
                aspect ratio is not a known value.
        """
        prompt, _ = self.build_with_context(
            content, archetype_id, audience, density, style, aspect_ratio
        )
        return prompt

    def build_with_context(
        self,
        content: StructuredContent,
        archetype_id: ArchetypeId | str,
        audience: TargetAudience | str = TargetAudience.C_SUITE,
        density: DensityMode | str = DensityMode.PRESENTATION,
        style: SlideStyle | str = SlideStyle.MCKINSEY,
        aspect_ratio: AspectRatio | str = AspectRatio.WIDESCREEN,
    ) -> tuple[ImagePrompt, PromptContext]:
        """Build an image prompt and return what went into it.

        Returns:
            Tuple of (ImagePrompt, PromptContext).
        """
        visual = get_visual_config(archetype_id)
        audience = TargetAudience(audience)
        density = DensityMode(density)
        style = SlideStyle(style)
        aspect_ratio = AspectRatio(aspect_ratio)
        cfg = self._config

        context = PromptContext(archetype_id=visual.id, title=content.headline)
        context.key_metrics = [dp.formatted() for dp in content.data_points[: cfg.max_data_points]]
        context.main_points = [
            bullet
            for group in content.logical_groups[: cfg.max_groups]
            for bullet in group.bullets[: cfg.max_bullets_per_group]
        ]
        context.description = ARCHETYPE_DESCRIBERS[visual.id](content)

        parts = [
            f'Professional consulting slide: "{context.title}"',
            "CONTENT",
            context.description,
            f"Key metrics: {', '.join(context.key_metrics)}" if context.key_metrics else "",
            f"Supporting points: {'; '.join(context.main_points)}" if context.main_points else "",
            "LAYOUT AND COMPOSITION",
            visual.visual_style,
            visual.layout_guidance,
            visual.color_palette,
            visual.typography_style,
            "VISUAL STYLE",
            BASE_VISUAL_STYLE,
            STYLE_MODIFIERS[style],
            AUDIENCE_MODIFIERS[audience],
            DENSITY_MODIFIERS[density],
            "TECHNICAL SPECIFICATIONS",
            f"{aspect_ratio.value} aspect ratio presentation slide",
            *TECHNICAL_SPECIFICATIONS,
        ]

        prompt = ImagePrompt(
            prompt=". ".join(p for p in parts if p),
            negative_prompt=NEGATIVE_PROMPT,
            aspect_ratio=aspect_ratio,
            style=style,
            guidance_scale=cfg.guidance_scale,
            num_inference_steps=cfg.num_inference_steps,
        )
        logger.debug(
            "Built %s prompt: %d chars, %d metrics, %d points",
            visual.id.value,
            len(prompt.prompt),
            len(context.key_metrics),
            len(context.main_points),
        )
        return prompt, context

    def enhance_for_text_accuracy(
        self, prompt: ImagePrompt, content: StructuredContent
    ) -> ImagePrompt:
        """Append the literal text the image must render.

        Lists the headline, leading data points and bullet excerpts as
        required text elements and raises guidance and step count. A
        prompt that is already enhanced is returned unchanged.

        Args:
            prompt: Prompt from ``build``.
            content: The content the prompt was built from.

        Returns:
            A new ImagePrompt flagged ``text_enhanced``.
        """
        if prompt.text_enhanced:
            logger.debug("Prompt already text-enhanced, skipping")
            return prompt

        cfg = self._config
        elements = [f'HEADLINE: "{content.headline}"']
        elements.extend(
            f"DATA: {dp.label} = {dp.value}{dp.unit or ''}"
            for dp in content.data_points[: cfg.max_text_data_points]
        )
        for gi, group in enumerate(content.logical_groups[: cfg.max_text_groups], start=1):
            for bi, bullet in enumerate(group.bullets[: cfg.max_text_bullets], start=1):
                elements.append(f"POINT {gi}.{bi}: {bullet[: cfg.max_text_bullet_length]}")

        block = "\n".join(f"- {e}" for e in elements)
        text = (
            f"{prompt.prompt}\n\n"
            "REQUIRED TEXT ELEMENTS (render these clearly and accurately):\n"
            f"{block}\n\n"
            f"{TEXT_ACCURACY_INSTRUCTION}"
        )
        return replace(
            prompt,
            prompt=text,
            guidance_scale=cfg.enhanced_guidance_scale,
            num_inference_steps=cfg.enhanced_inference_steps,
            text_enhanced=True,
        )

    def build_quick(
        self,
        title: str,
        archetype_id: ArchetypeId | str,
        style: SlideStyle | str = SlideStyle.MCKINSEY,
    ) -> ImagePrompt:
        """Build a short prompt from a title and the archetype's example.

        Args:
            title: Slide headline.
            archetype_id: Slide archetype.
            style: House style.

        Returns:
            ImagePrompt with the quick guidance and step count.
        """
        visual = get_visual_config(archetype_id)
        cfg = self._config
        return ImagePrompt(
            prompt=(
                f'{visual.example_prompt}. Title: "{title}". {BASE_VISUAL_STYLE}. '
                "High quality, professional consulting presentation, 16:9."
            ),
            negative_prompt=NEGATIVE_PROMPT,
            aspect_ratio=AspectRatio.WIDESCREEN,
            style=SlideStyle(style),
            guidance_scale=cfg.quick_guidance_scale,
            num_inference_steps=cfg.quick_inference_steps,
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
