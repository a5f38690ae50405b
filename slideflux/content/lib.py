"""Upstream content model consumed by the prompt builder.

The content-analysis stage (outside this package) turns free text into a
MECE-organised ``StructuredContent`` value, and the archetype classifier
picks an ``ArchetypeId``. Both arrive here as opaque inputs; this module
only defines their shape so they can be parsed from the JSON the
analysis stage emits (camelCase or snake_case keys).
"""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ArchetypeId(str, Enum):
    """Named slide layouts that drive image-prompt visual guidance."""

    EXECUTIVE_SUMMARY = "executive_summary"
    SITUATION_COMPLICATION_RESOLUTION = "situation_complication_resolution"
    TWO_BY_TWO_MATRIX = "two_by_two_matrix"
    COMPARISON_TABLE = "comparison_table"
    BEFORE_AFTER = "before_after"
    KPI_DASHBOARD = "kpi_dashboard"
    WATERFALL_CHART = "waterfall_chart"
    TREND_LINE = "trend_line"
    STACKED_BAR = "stacked_bar"
    PROCESS_FLOW = "process_flow"
    TIMELINE_SWIMLANE = "timeline_swimlane"
    DECISION_TREE = "decision_tree"
    ISSUE_TREE = "issue_tree"
    THREE_PILLAR = "three_pillar"
    GRID_CARDS = "grid_cards"
    MARKET_SIZING = "market_sizing"
    COMPETITIVE_LANDSCAPE = "competitive_landscape"
    AGENDA_DIVIDER = "agenda_divider"


class TargetAudience(str, Enum):
    """Who the slide is written for."""

    C_SUITE = "c_suite"
    PE_INVESTORS = "pe_investors"
    EXTERNAL_CLIENT = "external_client"
    INTERNAL_TEAM = "internal_team"


class DensityMode(str, Enum):
    """How much the slide has to stand on its own.

    - PRESENTATION: Supports a live presenter, key points only
    - READ_STYLE: Self-contained, read without a presenter
    """

    PRESENTATION = "presentation"
    READ_STYLE = "read_style"


class Emphasis(str, Enum):
    """Relative weight of a logical group."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class _ContentModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class DataPoint(_ContentModel):
    """A single quantitative fact, e.g. ``Revenue: 45 $M (+20% YoY)``."""

    label: str
    value: str | int | float
    unit: str | None = None
    context: str | None = Field(None, description='e.g. "+20% YoY", "vs target"')

    def formatted(self, with_context: bool = False) -> str:
        """Render as ``label: value+unit`` with optional ``(context)``."""
        text = f"{self.label}: {self.value}{self.unit or ''}"
        if with_context and self.context:
            text += f" ({self.context})"
        return text


class LogicalGroup(_ContentModel):
    """A heading with its supporting bullets."""

    heading: str
    bullets: list[str] = Field(default_factory=list)
    emphasis: Emphasis | None = None


class StructuredContent(_ContentModel):
    """MECE-organised slide content produced by the analysis stage.

    Attributes:
        title: Slide headline.
        core_message: One-sentence takeaway; used when title is empty.
        content_type: Analyser's content classification (free text).
        data_points: Quantitative facts in priority order.
        logical_groups: Headings with bullets in priority order.
        supporting_evidence: Additional evidence lines.
        recommended_archetype: Analyser's archetype suggestion.
        complexity_score: 1 (simple) to 5 (dense).
        subtitle: Optional subtitle.
        footnote: Optional footnote.
        source: Optional source attribution.
    """

    title: str = ""
    core_message: str = ""
    content_type: str = ""
    data_points: list[DataPoint] = Field(default_factory=list)
    logical_groups: list[LogicalGroup] = Field(default_factory=list)
    supporting_evidence: list[str] = Field(default_factory=list)
    recommended_archetype: ArchetypeId | None = None
    complexity_score: Annotated[int, Field(ge=1, le=5)] = 3
    subtitle: str | None = None
    footnote: str | None = None
    source: str | None = None

    @property
    def headline(self) -> str:
        """Title, falling back to the core message."""
        return self.title or self.core_message


__all__ = [
    "ArchetypeId",
    "DataPoint",
    "DensityMode",
    "Emphasis",
    "LogicalGroup",
    "StructuredContent",
    "TargetAudience",
]
