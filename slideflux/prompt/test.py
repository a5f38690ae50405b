"""Tests for PromptBuilder module."""

import pytest

from slideflux.catalog import ARCHETYPE_CONFIGS
from slideflux.content import (
    ArchetypeId,
    DataPoint,
    DensityMode,
    LogicalGroup,
    StructuredContent,
    TargetAudience,
)

from .lib import (
    AUDIENCE_MODIFIERS,
    BASE_VISUAL_STYLE,
    DENSITY_MODIFIERS,
    NEGATIVE_PROMPT,
    NEGATIVE_TERMS,
    AspectRatio,
    ImagePrompt,
    PromptBuilder,
    PromptConfig,
    SlideStyle,
)


class TestPromptConfig:
    """Tests for PromptConfig dataclass."""

    @pytest.mark.unit
    def test_default_config(self):
        """Default numeric settings."""
        config = PromptConfig()
        assert config.guidance_scale == 7.5
        assert config.num_inference_steps == 28
        assert config.enhanced_guidance_scale == 8.0
        assert config.enhanced_inference_steps == 30
        assert config.quick_guidance_scale == 7.0
        assert config.quick_inference_steps == 25


class TestBuild:
    """Tests for PromptBuilder.build."""

    @pytest.mark.unit
    def test_defaults(self, sample_content):
        """Built prompt carries the standard settings."""
        prompt = PromptBuilder().build(
            sample_content,
            ArchetypeId.KPI_DASHBOARD,
            TargetAudience.C_SUITE,
            DensityMode.PRESENTATION,
        )
        assert isinstance(prompt, ImagePrompt)
        assert prompt.aspect_ratio is AspectRatio.WIDESCREEN
        assert prompt.style is SlideStyle.MCKINSEY
        assert prompt.guidance_scale == 7.5
        assert prompt.num_inference_steps == 28
        assert prompt.text_enhanced is False

    @pytest.mark.unit
    def test_deterministic(self, sample_content):
        """Same inputs give the same prompt."""
        builder = PromptBuilder()
        first = builder.build(sample_content, "kpi_dashboard", "c_suite", "presentation")
        second = builder.build(sample_content, "kpi_dashboard", "c_suite", "presentation")
        assert first == second

    @pytest.mark.unit
    def test_includes_content_and_guidance(self, sample_content):
        """Title, metrics, points and archetype guidance all appear."""
        prompt = PromptBuilder().build(
            sample_content,
            ArchetypeId.KPI_DASHBOARD,
            TargetAudience.PE_INVESTORS,
            DensityMode.READ_STYLE,
        ).prompt
        visual = ARCHETYPE_CONFIGS[ArchetypeId.KPI_DASHBOARD]

        assert 'Professional consulting slide: "Q3 Revenue Up 23%"' in prompt
        assert "Key metrics: Revenue: 45$M, Margin: 12%" in prompt
        assert "Supporting points: Pricing uplift" in prompt
        assert visual.layout_guidance in prompt
        assert visual.color_palette in prompt
        assert BASE_VISUAL_STYLE in prompt
        assert AUDIENCE_MODIFIERS[TargetAudience.PE_INVESTORS] in prompt
        assert DENSITY_MODIFIERS[DensityMode.READ_STYLE] in prompt
        assert "16:9 aspect ratio presentation slide" in prompt

    @pytest.mark.unit
    def test_caps_data_points_and_bullets(self):
        """At most 4 data points and 4 groups x 3 bullets are used."""
        content = StructuredContent(
            title="Caps",
            data_points=[DataPoint(label=f"M{i}", value=i) for i in range(6)],
            logical_groups=[
                LogicalGroup(heading=f"G{g}", bullets=[f"b{g}{b}" for b in range(5)])
                for g in range(6)
            ],
        )
        _, context = PromptBuilder().build_with_context(content, ArchetypeId.GRID_CARDS)
        assert context.key_metrics == ["M0: 0", "M1: 1", "M2: 2", "M3: 3"]
        assert len(context.main_points) == 12
        assert "b04" not in context.main_points
        assert "b40" not in context.main_points

    @pytest.mark.unit
    def test_title_falls_back_to_core_message(self):
        """Empty title uses the core message."""
        content = StructuredContent(core_message="Costs are rising")
        prompt = PromptBuilder().build(content, ArchetypeId.EXECUTIVE_SUMMARY)
        assert '"Costs are rising"' in prompt.prompt

    @pytest.mark.unit
    def test_no_empty_sections(self):
        """Empty metrics and points are dropped, not rendered blank."""
        content = StructuredContent(title="Sparse")
        prompt = PromptBuilder().build(content, ArchetypeId.AGENDA_DIVIDER).prompt
        assert "Key metrics" not in prompt
        assert "Supporting points" not in prompt
        assert ". . " not in prompt

    @pytest.mark.unit
    def test_negative_prompt_fixed(self, sample_content):
        """Negative prompt is the same for every archetype."""
        builder = PromptBuilder()
        for archetype in ArchetypeId:
            prompt = builder.build(sample_content, archetype)
            assert prompt.negative_prompt == NEGATIVE_PROMPT
        assert len(NEGATIVE_TERMS) == 27
        assert "watermark" in NEGATIVE_PROMPT
        assert "faces" in NEGATIVE_PROMPT

    @pytest.mark.unit
    def test_every_archetype_builds(self, sample_content):
        """Every archetype yields a non-empty description."""
        builder = PromptBuilder()
        for archetype in ArchetypeId:
            _, context = builder.build_with_context(sample_content, archetype)
            assert context.description
            assert context.archetype_id is archetype

    @pytest.mark.unit
    def test_archetype_descriptions(self, sample_content):
        """Archetype-specific descriptions follow their layout."""
        builder = PromptBuilder()

        _, ctx = builder.build_with_context(sample_content, ArchetypeId.PROCESS_FLOW)
        assert ctx.description == "Process flow: Step 1: Drivers → Step 2: Risks → Step 3: Actions"

        _, ctx = builder.build_with_context(
            sample_content, ArchetypeId.SITUATION_COMPLICATION_RESOLUTION
        )
        assert ctx.description.startswith("Situation: Drivers - Pricing uplift, New logos")
        assert "Resolution: Actions" in ctx.description

        _, ctx = builder.build_with_context(sample_content, ArchetypeId.EXECUTIVE_SUMMARY)
        assert "Revenue: 45$M (+20% YoY)" in ctx.description

    @pytest.mark.unit
    def test_before_after_needs_two_groups(self):
        """Fewer than two groups falls back to a generic description."""
        content = StructuredContent(
            title="T", logical_groups=[LogicalGroup(heading="Only", bullets=["x"])]
        )
        _, ctx = PromptBuilder().build_with_context(content, ArchetypeId.BEFORE_AFTER)
        assert ctx.description == "Before and after transformation comparison"

    @pytest.mark.unit
    def test_aspect_ratio_and_style(self, sample_content):
        """Aspect ratio and style are carried through."""
        prompt = PromptBuilder().build(
            sample_content,
            ArchetypeId.TREND_LINE,
            style=SlideStyle.BCG,
            aspect_ratio="4:3",
        )
        assert prompt.aspect_ratio is AspectRatio.STANDARD
        assert prompt.style is SlideStyle.BCG
        assert "4:3 aspect ratio presentation slide" in prompt.prompt
        assert "BCG house style" in prompt.prompt

    @pytest.mark.unit
    def test_unknown_archetype(self, sample_content):
        """Unknown archetype is rejected."""
        with pytest.raises(ValueError):
            PromptBuilder().build(sample_content, "pie_chart")


class TestEnhanceForTextAccuracy:
    """Tests for the literal-text enhancement pass."""

    @pytest.mark.unit
    def test_raises_guidance_and_steps(self, sample_content):
        """Enhancement strictly raises guidance and steps."""
        builder = PromptBuilder()
        base = builder.build(sample_content, ArchetypeId.KPI_DASHBOARD)
        enhanced = builder.enhance_for_text_accuracy(base, sample_content)

        assert enhanced.guidance_scale > base.guidance_scale
        assert enhanced.guidance_scale == 8.0
        assert enhanced.num_inference_steps == 30
        assert enhanced.text_enhanced is True
        assert enhanced.prompt.startswith(base.prompt)
        assert enhanced.negative_prompt == base.negative_prompt

    @pytest.mark.unit
    def test_text_elements(self, sample_content):
        """Headline, data and points are listed as required text."""
        builder = PromptBuilder()
        base = builder.build(sample_content, ArchetypeId.KPI_DASHBOARD)
        text = builder.enhance_for_text_accuracy(base, sample_content).prompt

        assert "REQUIRED TEXT ELEMENTS" in text
        assert '- HEADLINE: "Q3 Revenue Up 23%"' in text
        assert "- DATA: Revenue = 45$M" in text
        assert "- POINT 1.1: Pricing uplift" in text
        assert "- POINT 1.3" not in text
        assert text.endswith("Text accuracy is the most important requirement.")

    @pytest.mark.unit
    def test_bullets_truncated(self):
        """Required bullets are cut to 60 characters."""
        long_bullet = "x" * 100
        content = StructuredContent(
            title="T", logical_groups=[LogicalGroup(heading="H", bullets=[long_bullet])]
        )
        builder = PromptBuilder()
        enhanced = builder.enhance_for_text_accuracy(
            builder.build(content, ArchetypeId.THREE_PILLAR), content
        )
        assert f"POINT 1.1: {'x' * 60}\n" in enhanced.prompt
        assert "x" * 61 not in enhanced.prompt

    @pytest.mark.unit
    def test_idempotent(self, sample_content):
        """A second enhancement returns the prompt unchanged."""
        builder = PromptBuilder()
        once = builder.enhance_for_text_accuracy(
            builder.build(sample_content, ArchetypeId.KPI_DASHBOARD), sample_content
        )
        twice = builder.enhance_for_text_accuracy(once, sample_content)
        assert twice is once
        assert twice.prompt.count("REQUIRED TEXT ELEMENTS") == 1


class TestBuildQuick:
    """Tests for the quick prompt."""

    @pytest.mark.unit
    def test_quick_prompt(self):
        """Quick prompt uses the archetype example and title."""
        prompt = PromptBuilder().build_quick("Market Entry", ArchetypeId.MARKET_SIZING)
        example = ARCHETYPE_CONFIGS[ArchetypeId.MARKET_SIZING].example_prompt

        assert prompt.prompt.startswith(example)
        assert 'Title: "Market Entry"' in prompt.prompt
        assert BASE_VISUAL_STYLE in prompt.prompt
        assert prompt.guidance_scale == 7.0
        assert prompt.num_inference_steps == 25
        assert prompt.negative_prompt == NEGATIVE_PROMPT
