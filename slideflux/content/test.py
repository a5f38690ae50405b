"""Tests for the upstream content model."""

import pytest
from pydantic import ValidationError

from .lib import (
    ArchetypeId,
    DataPoint,
    Emphasis,
    LogicalGroup,
    StructuredContent,
)


class TestDataPoint:
    """Tests for DataPoint formatting."""

    @pytest.mark.unit
    def test_formatted_with_unit(self):
        """Unit is appended directly after the value."""
        dp = DataPoint(label="Margin", value=12, unit="%")
        assert dp.formatted() == "Margin: 12%"

    @pytest.mark.unit
    def test_formatted_context_optional(self):
        """Context only appears when requested."""
        dp = DataPoint(label="Revenue", value="$45M", context="+20% YoY")
        assert dp.formatted() == "Revenue: $45M"
        assert dp.formatted(with_context=True) == "Revenue: $45M (+20% YoY)"


class TestStructuredContent:
    """Tests for StructuredContent parsing."""

    @pytest.mark.unit
    def test_parses_camel_case_json(self):
        """Keys emitted by the analysis stage use camelCase."""
        content = StructuredContent.model_validate(
            {
                "title": "Q3 Revenue Up 23%",
                "coreMessage": "Growth is accelerating",
                "dataPoints": [{"label": "Revenue", "value": 45, "unit": "M"}],
                "logicalGroups": [
                    {"heading": "Drivers", "bullets": ["Pricing"], "emphasis": "high"}
                ],
                "recommendedArchetype": "kpi_dashboard",
            }
        )
        assert content.core_message == "Growth is accelerating"
        assert content.data_points[0].unit == "M"
        assert content.logical_groups[0].emphasis == Emphasis.HIGH
        assert content.recommended_archetype == ArchetypeId.KPI_DASHBOARD

    @pytest.mark.unit
    def test_accepts_snake_case(self):
        """Field names are accepted as well as aliases."""
        content = StructuredContent(core_message="Only a message")
        assert content.core_message == "Only a message"

    @pytest.mark.unit
    def test_headline_falls_back_to_core_message(self):
        """Empty title uses the core message."""
        assert StructuredContent(core_message="Fallback").headline == "Fallback"
        assert StructuredContent(title="T", core_message="M").headline == "T"

    @pytest.mark.unit
    def test_complexity_score_bounds(self):
        """Complexity score is limited to 1-5."""
        with pytest.raises(ValidationError):
            StructuredContent(complexity_score=9)

    @pytest.mark.unit
    def test_frozen(self):
        """Content values are immutable."""
        group = LogicalGroup(heading="H")
        with pytest.raises(ValidationError):
            group.heading = "changed"
