"""Tests for caamp.core.selector module."""

import pytest

from caamp.core.selector import select_providers_by_minimum_priority, validate_priority


class TestSelectByMinimumPriority:
    """Tests for select_providers_by_minimum_priority."""

    @pytest.fixture
    def providers(self, make_provider):
        return [
            make_provider("low-a", priority="low"),
            make_provider("high-a", priority="high"),
            make_provider("medium-a", priority="medium"),
            make_provider("high-b", priority="high"),
        ]

    def test_low_keeps_all_sorted(self, providers):
        """The low tier keeps everything, highest tier first, stable within a tier."""
        selected = select_providers_by_minimum_priority(providers, "low")

        assert [p.id for p in selected] == ["high-a", "high-b", "medium-a", "low-a"]

    def test_medium_drops_low(self, providers):
        """The medium tier drops low-priority providers."""
        selected = select_providers_by_minimum_priority(providers, "medium")

        assert [p.id for p in selected] == ["high-a", "high-b", "medium-a"]

    def test_high_only(self, providers):
        assert [p.id for p in select_providers_by_minimum_priority(providers, "high")] == ["high-a", "high-b"]

    def test_default_is_low(self, providers):
        assert len(select_providers_by_minimum_priority(providers)) == 4

    def test_empty_input(self):
        assert select_providers_by_minimum_priority([], "high") == []

    def test_invalid_priority(self, providers):
        """Unknown tiers raise ValueError."""
        with pytest.raises(ValueError, match="Invalid priority"):
            select_providers_by_minimum_priority(providers, "urgent")

    def test_validate_priority_returns_value(self):
        assert validate_priority("medium") == "medium"
