"""Visual guidance registry for slide archetypes.

Each archetype maps to an ``ArchetypeVisualConfig`` describing how a Flux
model should draw that layout: overall style, layout, palette, typography
and a worked example prompt. The registry is static and read-only.
"""

from dataclasses import dataclass

from slideflux.content import ArchetypeId


@dataclass(frozen=True)
class ArchetypeVisualConfig:
    """Visual guidance for one slide archetype.

    Attributes:
        id: Archetype this guidance applies to.
        visual_style: Overall visual treatment.
        layout_guidance: Placement of the main elements.
        color_palette: Colours, by role.
        typography_style: Type hierarchy.
        example_prompt: A complete reference prompt for this archetype.
    """

    id: ArchetypeId
    visual_style: str
    layout_guidance: str
    color_palette: str
    typography_style: str
    example_prompt: str


# =============================================================================
# Registry
# =============================================================================

ARCHETYPE_CONFIGS: dict[ArchetypeId, ArchetypeVisualConfig] = {
    ArchetypeId.EXECUTIVE_SUMMARY: ArchetypeVisualConfig(
        id=ArchetypeId.EXECUTIVE_SUMMARY,
        visual_style="Clean, minimal, single focal point with 3-4 supporting elements",
        layout_guidance="Title at top, large central insight, supporting points below in horizontal row",
        color_palette="Professional navy blue, white, teal accent, subtle gray",
        typography_style="Bold sans-serif headline, clean body text, data numbers in monospace",
        example_prompt=(
            'Executive summary slide, McKinsey style, dark navy background, large white headline at top '
            'reading "Q3 Revenue Up 23%", three white metric cards below showing "$45M Revenue", '
            '"12% Margin", "+850 Customers", teal accent highlights, clean sans-serif typography, '
            "professional consulting presentation, 16:9 aspect ratio, minimal, high contrast"
        ),
    ),
    ArchetypeId.SITUATION_COMPLICATION_RESOLUTION: ArchetypeVisualConfig(
        id=ArchetypeId.SITUATION_COMPLICATION_RESOLUTION,
        visual_style="Three-panel horizontal layout with clear visual separation",
        layout_guidance="Three equal columns: Situation (green), Complication (amber), Resolution (teal)",
        color_palette="Situation: sage green, Complication: warm amber, Resolution: teal blue",
        typography_style="Section headers bold, body text clean, resolution emphasized",
        example_prompt=(
            'SCR framework slide, three horizontal panels, left panel green titled "Situation", center '
            'panel amber titled "Complication", right panel teal titled "Resolution", McKinsey consulting '
            "style, white text, icons in each panel, connecting arrow between panels, dark background, "
            "professional, 16:9"
        ),
    ),
    ArchetypeId.TWO_BY_TWO_MATRIX: ArchetypeVisualConfig(
        id=ArchetypeId.TWO_BY_TWO_MATRIX,
        visual_style="2x2 grid quadrants with clear axis labels and positioned items",
        layout_guidance="X and Y axes with four distinct quadrants, items as dots or bubbles",
        color_palette="Four distinct quadrant colors, neutral background, accent for selected items",
        typography_style="Axis labels prominent, quadrant titles clear, item labels small",
        example_prompt=(
            '2x2 portfolio matrix, Impact vs Effort axes, four quadrants labeled "Quick Wins", '
            '"Major Projects", "Fill-ins", "Thankless Tasks", scattered colored dots representing '
            "initiatives, McKinsey style, dark navy background, white grid lines, teal and orange "
            "accents, professional consulting chart, 16:9"
        ),
    ),
    ArchetypeId.COMPARISON_TABLE: ArchetypeVisualConfig(
        id=ArchetypeId.COMPARISON_TABLE,
        visual_style="Clean table with alternating rows, clear headers, highlighted recommendation",
        layout_guidance="Header row with option names, criteria in left column, checkmarks/ratings in cells",
        color_palette=(
            "White/light background, dark headers, green checkmarks, red X marks, "
            "yellow highlight for recommended"
        ),
        typography_style="Bold headers, clean data cells, emphasis on recommended column",
        example_prompt=(
            'Comparison table slide, three columns comparing "Option A", "Option B", "Option C", rows '
            'for criteria like "Cost", "Speed", "Quality", green checkmarks and red X marks, recommended '
            "option highlighted in yellow, McKinsey consulting style, professional table design, dark "
            "background, 16:9"
        ),
    ),
    ArchetypeId.BEFORE_AFTER: ArchetypeVisualConfig(
        id=ArchetypeId.BEFORE_AFTER,
        visual_style="Two-column split with transformation arrow",
        layout_guidance=(
            "Left: current state with pain points (muted/red), "
            "Right: future state with benefits (vibrant/green)"
        ),
        color_palette="Before: muted grays and reds, After: vibrant greens and teals",
        typography_style="Clear Before/After headers, bullet points contrasting states",
        example_prompt=(
            'Before and after transformation slide, split screen, left side muted gray "Before: Manual '
            'Processes" with red X icons, right side vibrant teal "After: Automation" with green '
            "checkmarks, large arrow connecting left to right, McKinsey consulting style, professional, "
            "dark background, 16:9"
        ),
    ),
    ArchetypeId.KPI_DASHBOARD: ArchetypeVisualConfig(
        id=ArchetypeId.KPI_DASHBOARD,
        visual_style="Large metric cards, bold numbers, trend indicators",
        layout_guidance="3-5 large metric cards in horizontal row, each with value, label, trend arrow",
        color_palette="Dark background, white large numbers, green up arrows, red down arrows",
        typography_style="Huge bold numbers (60pt+), small labels, trend icons",
        example_prompt=(
            'KPI dashboard slide, four large metric cards showing "$12.5M" with green up arrow, "8.2%" '
            'with green up, "94%" neutral, "$450K" with red down, large bold white numbers on dark navy '
            "background, small labels below each, McKinsey style, professional metrics dashboard, 16:9"
        ),
    ),
    ArchetypeId.WATERFALL_CHART: ArchetypeVisualConfig(
        id=ArchetypeId.WATERFALL_CHART,
        visual_style="Cascading bars showing build-up from start to end",
        layout_guidance="Horizontal waterfall with start bar, intermediate steps, end bar",
        color_palette="Start/end in dark blue, increases in green, decreases in red",
        typography_style="Value labels on each bar, connector lines, total emphasized",
        example_prompt=(
            'Waterfall bridge chart, starting bar "$100M", green bars for "+ Revenue" and "+ New '
            'Products", red bar for "- Costs", ending bar "$127M", connector lines between bars, value '
            "labels on each, McKinsey financial style, dark background, professional chart, 16:9"
        ),
    ),
    ArchetypeId.TREND_LINE: ArchetypeVisualConfig(
        id=ArchetypeId.TREND_LINE,
        visual_style="Line chart with clear time axis, data points, trend line",
        layout_guidance="X-axis time periods, Y-axis values, 1-3 lines with legend",
        color_palette="Dark background, bright line colors (teal, orange, yellow), grid lines subtle",
        typography_style="Axis labels clear, data points annotated, legend positioned",
        example_prompt=(
            "Trend line chart, time series from 2020-2024, teal line showing upward trend from 100 to "
            '245, data points marked with circles, subtle grid lines, Y-axis labeled "Revenue ($M)", '
            "X-axis years, McKinsey chart style, dark navy background, professional data visualization, "
            "16:9"
        ),
    ),
    ArchetypeId.STACKED_BAR: ArchetypeVisualConfig(
        id=ArchetypeId.STACKED_BAR,
        visual_style="Stacked bars showing composition across categories",
        layout_guidance="Multiple bars, each segmented by colored components, legend",
        color_palette="Distinct segment colors, consistent across bars, dark background",
        typography_style="Category labels below bars, segment values inside or above",
        example_prompt=(
            'Stacked bar chart, three bars for Q1 Q2 Q3, each bar segmented into "Product A" (teal), '
            '"Product B" (orange), "Product C" (yellow), percentages labeled on segments, legend on '
            "right, McKinsey style, dark navy background, professional composition chart, 16:9"
        ),
    ),
    ArchetypeId.PROCESS_FLOW: ArchetypeVisualConfig(
        id=ArchetypeId.PROCESS_FLOW,
        visual_style="Horizontal chevron or arrow flow with numbered steps",
        layout_guidance="4-6 steps in horizontal flow, connected by arrows",
        color_palette="Sequential color progression, teal to blue gradient",
        typography_style="Step numbers prominent, titles bold, descriptions small",
        example_prompt=(
            "Process flow diagram, five horizontal chevron shapes connected by arrows, numbered 1-5, "
            "teal gradient from light to dark, icons in each step, text below each chevron, McKinsey "
            "consulting style, dark background, professional process diagram, 16:9"
        ),
    ),
    ArchetypeId.TIMELINE_SWIMLANE: ArchetypeVisualConfig(
        id=ArchetypeId.TIMELINE_SWIMLANE,
        visual_style="Swimlane diagram with time axis and workstream rows",
        layout_guidance="Horizontal timeline, vertical swimlanes for workstreams, milestones marked",
        color_palette="Each swimlane different color, milestone diamonds in accent color",
        typography_style="Time periods in header, workstream names on left, activity labels in bars",
        example_prompt=(
            'Timeline swimlane, four horizontal lanes labeled "Engineering", "Marketing", "Sales", '
            '"Operations", Q1-Q4 time axis across top, colored bars showing activity duration, diamond '
            "milestones, Gantt-style chart, McKinsey project management style, dark background, 16:9"
        ),
    ),
    ArchetypeId.DECISION_TREE: ArchetypeVisualConfig(
        id=ArchetypeId.DECISION_TREE,
        visual_style="Branching tree diagram from root question to outcomes",
        layout_guidance="Root at top, branches downward, outcomes at bottom",
        color_palette="Decision nodes in amber, outcome nodes in teal or red/green",
        typography_style="Questions in nodes, yes/no on branches, outcomes clear",
        example_prompt=(
            "Decision tree diagram, diamond-shaped decision nodes, branching yes/no paths, rectangular "
            "outcome boxes at bottom, amber decision nodes, teal and red outcome nodes, McKinsey "
            "consulting style, dark navy background, professional logic tree, 16:9"
        ),
    ),
    ArchetypeId.ISSUE_TREE: ArchetypeVisualConfig(
        id=ArchetypeId.ISSUE_TREE,
        visual_style="Hierarchical tree breaking down problem into sub-issues",
        layout_guidance="Root problem left, branches rightward into MECE structure",
        color_palette="Hierarchy in shades of same color, darker at root",
        typography_style="Root bold, branches clear hierarchy, sub-issues smaller",
        example_prompt=(
            'Issue tree diagram, root problem on left "Declining Revenue", branching into three main '
            'issues "Volume", "Price", "Mix", each with sub-issues, MECE structure, McKinsey '
            "problem-solving style, dark background, hierarchical tree layout, 16:9"
        ),
    ),
    ArchetypeId.THREE_PILLAR: ArchetypeVisualConfig(
        id=ArchetypeId.THREE_PILLAR,
        visual_style="Three equal vertical pillars with icons",
        layout_guidance="Three columns with icons at top, titles, descriptions",
        color_palette="Each pillar distinct accent color on dark background",
        typography_style="Large icons, bold pillar titles, descriptive text",
        example_prompt=(
            'Three pillar slide, three vertical columns with large icons at top, titles "Strategy", '
            '"Execution", "Results", descriptive text below each, teal orange and blue accents, '
            "McKinsey strategic framework style, dark navy background, professional, 16:9"
        ),
    ),
    ArchetypeId.GRID_CARDS: ArchetypeVisualConfig(
        id=ArchetypeId.GRID_CARDS,
        visual_style="2x2 or 2x3 grid of content cards with icons",
        layout_guidance="Equal-sized cards in grid, each with icon, title, description",
        color_palette="Cards with subtle borders, accent icons, consistent background",
        typography_style="Card titles bold, body text concise, icons large",
        example_prompt=(
            "Grid cards layout, 2x3 grid of six cards, each with icon, title, short description, "
            "subtle card borders, icons in teal, McKinsey capability overview style, dark navy "
            "background, professional grid design, 16:9"
        ),
    ),
    ArchetypeId.MARKET_SIZING: ArchetypeVisualConfig(
        id=ArchetypeId.MARKET_SIZING,
        visual_style="Funnel or nested circles showing TAM/SAM/SOM",
        layout_guidance="Largest to smallest market, each level labeled with size",
        color_palette="Concentric circles or funnel in gradient shades",
        typography_style="Large market size numbers, TAM/SAM/SOM labels",
        example_prompt=(
            "Market sizing slide, three concentric circles labeled TAM $50B, SAM $12B, SOM $800M, "
            "largest circle outer in light teal, smallest inner in dark teal, McKinsey market analysis "
            "style, dark background, professional market visualization, 16:9"
        ),
    ),
    ArchetypeId.COMPETITIVE_LANDSCAPE: ArchetypeVisualConfig(
        id=ArchetypeId.COMPETITIVE_LANDSCAPE,
        visual_style="2D scatter plot positioning competitors on two axes",
        layout_guidance="X and Y axes, competitor bubbles positioned, size indicates scale",
        color_palette="Competitors in gray, our company highlighted in accent color",
        typography_style="Axis labels clear, competitor names near bubbles",
        example_prompt=(
            'Competitive positioning map, X-axis "Price", Y-axis "Quality", scattered bubbles for '
            'competitors labeled "Competitor A", "Competitor B", our company highlighted in bright teal '
            "with glow effect, bubble sizes indicating market share, McKinsey competitive analysis "
            "style, dark background, 16:9"
        ),
    ),
    ArchetypeId.AGENDA_DIVIDER: ArchetypeVisualConfig(
        id=ArchetypeId.AGENDA_DIVIDER,
        visual_style="Section list with current section highlighted",
        layout_guidance="Vertical list or horizontal timeline of sections, one active",
        color_palette="Inactive sections muted, active section bright accent color",
        typography_style="Section numbers prominent, titles clear, active emphasized",
        example_prompt=(
            "Agenda divider slide, vertical list of five sections numbered 1-5, sections 1 and 2 in "
            'muted gray showing completed, section 3 "Market Analysis" highlighted in bright teal with '
            "larger text, sections 4-5 muted, McKinsey section divider style, dark navy background, 16:9"
        ),
    ),
}


def get_visual_config(archetype_id: ArchetypeId | str) -> ArchetypeVisualConfig:
    """Look up visual guidance for an archetype.

    Args:
        archetype_id: Archetype enum member or its string value.

    Returns:
        The registered ArchetypeVisualConfig.

    Raises:
        ValueError: If the archetype id is not known.
    """
    try:
        key = ArchetypeId(archetype_id)
    except ValueError:
        raise ValueError(f"Unknown archetype: {archetype_id!r}") from None
    return ARCHETYPE_CONFIGS[key]


def list_archetypes() -> list[ArchetypeId]:
    """List all archetypes with registered visual guidance."""
    return list(ARCHETYPE_CONFIGS)


__all__ = [
    "ARCHETYPE_CONFIGS",
    "ArchetypeVisualConfig",
    "get_visual_config",
    "list_archetypes",
]
