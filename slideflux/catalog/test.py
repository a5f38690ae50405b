"""Tests for the archetype visual guidance registry."""

import pytest

from slideflux.content import ArchetypeId

from .lib import ARCHETYPE_CONFIGS, ArchetypeVisualConfig, get_visual_config, list_archetypes


class TestArchetypeConfigs:
    """Tests for registry completeness."""

    @pytest.mark.unit
    def test_every_archetype_registered(self):
        """All 18 archetypes have guidance."""
        assert set(ARCHETYPE_CONFIGS) == set(ArchetypeId)
        assert len(ARCHETYPE_CONFIGS) == 18

    @pytest.mark.unit
    def test_ids_match_keys(self):
        """Each config's id matches its registry key."""
        for key, config in ARCHETYPE_CONFIGS.items():
            assert config.id is key

    @pytest.mark.unit
    def test_fields_populated(self):
        """No config has empty guidance."""
        for config in ARCHETYPE_CONFIGS.values():
            assert config.visual_style
            assert config.layout_guidance
            assert config.color_palette
            assert config.typography_style
            assert "16:9" in config.example_prompt


class TestGetVisualConfig:
    """Tests for get_visual_config lookup."""

    @pytest.mark.unit
    def test_lookup_by_enum(self):
        """Enum members resolve directly."""
        config = get_visual_config(ArchetypeId.WATERFALL_CHART)
        assert isinstance(config, ArchetypeVisualConfig)
        assert "Cascading bars" in config.visual_style

    @pytest.mark.unit
    def test_lookup_by_string(self):
        """String values are accepted."""
        assert get_visual_config("issue_tree").id is ArchetypeId.ISSUE_TREE

    @pytest.mark.unit
    def test_unknown_raises(self):
        """Unknown archetype fails loudly."""
        with pytest.raises(ValueError, match="Unknown archetype"):
            get_visual_config("pie_chart")

    @pytest.mark.unit
    def test_list_archetypes(self):
        """Listing returns every archetype."""
        assert len(list_archetypes()) == len(ArchetypeId)
