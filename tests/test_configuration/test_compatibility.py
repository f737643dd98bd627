"""
Test suite for the option compatibility engine.

Tests cover conflict lookup for exclusive groups and explicit conflict edges,
pairwise selection validation, compatible option filtering, and the symmetry
and self-exclusion properties over the sample catalog.
"""

from decimal import Decimal
from itertools import product
from unittest.mock import patch

import pytest

from configurator.schemas.catalog import ConflictEdge, Option
from configurator.services.configuration.compatibility import (
    CompatibilityEngine,
    ConflictIndex,
)


@pytest.fixture
def engine() -> CompatibilityEngine:
    return CompatibilityEngine()


# ============================================================================
# Unit Tests: conflicts_of
# ============================================================================


class TestConflictsOf:
    """Test suite for conflict lookup."""

    def test_group_members_conflict(self, engine, offered_options):
        conflicts = engine.conflicts_of("hybrid-engine", offered_options)

        assert conflicts == {"sport-engine"}

    def test_group_and_edge_conflicts_are_unioned(
        self, engine, offered_options, conflict_edges
    ):
        conflicts = engine.conflicts_of("sport-engine", offered_options, conflict_edges)

        assert conflicts == {"hybrid-engine", "tow-hitch"}

    def test_edge_is_symmetric(self, engine, offered_options, conflict_edges):
        conflicts = engine.conflicts_of("tow-hitch", offered_options, conflict_edges)

        assert conflicts == {"sport-engine"}

    def test_option_without_group_or_edge_conflicts_with_nothing(
        self, engine, offered_options, conflict_edges
    ):
        conflicts = engine.conflicts_of("premium-sound", offered_options, conflict_edges)

        assert conflicts == frozenset()

    def test_single_member_group_has_no_conflicts(self, engine):
        only = Option(id="solo", category="Wheels", price=100, exclusive_group="wheels")

        assert engine.conflicts_of("solo", [only]) == frozenset()

    def test_unknown_option_only_has_edge_conflicts(self, engine, offered_options):
        edges = [ConflictEdge(from_option_id="ghost", to_option_id="premium-sound")]

        assert engine.conflicts_of("ghost", offered_options, edges) == {"premium-sound"}

    def test_group_is_scoped_to_offered_options(self, engine, hybrid_engine):
        conflicts = engine.conflicts_of("hybrid-engine", [hybrid_engine])

        assert conflicts == frozenset()

    def test_symmetry_over_catalog(self, engine, offered_options, conflict_edges):
        ids = [option.id for option in offered_options]

        for first, second in product(ids, ids):
            first_conflicts = engine.conflicts_of(first, offered_options, conflict_edges)
            second_conflicts = engine.conflicts_of(second, offered_options, conflict_edges)
            assert (second in first_conflicts) == (first in second_conflicts)

    def test_never_conflicts_with_itself(self, engine, offered_options, conflict_edges):
        for option in offered_options:
            assert option.id not in engine.conflicts_of(
                option.id, offered_options, conflict_edges
            )


# ============================================================================
# Unit Tests: validate
# ============================================================================


class TestValidate:
    """Test suite for pairwise selection validation."""

    def test_both_engines_conflict(self, engine, offered_options):
        result = engine.validate(["sport-engine", "hybrid-engine"], offered_options)

        assert result.is_valid is False
        assert result.conflicting_option_ids == {"sport-engine", "hybrid-engine"}
        assert "mutually exclusive" in result.message.lower()
        assert 'Exclusive group "engine"' in result.message

    def test_non_conflicting_selection_is_valid(
        self, engine, offered_options, conflict_edges
    ):
        result = engine.validate(
            ["hybrid-engine", "metallic-paint", "premium-sound", "tow-hitch"],
            offered_options,
            conflict_edges,
        )

        assert result.is_valid is True
        assert result.conflicting_option_ids == frozenset()
        assert result.conflicting_pairs == ()

    @pytest.mark.parametrize("selected", [[], ["sport-engine"], ["premium-sound"]])
    def test_zero_or_one_option_is_consistent(self, engine, offered_options, selected):
        result = engine.validate(selected, offered_options)

        assert result.is_valid is True

    def test_duplicate_ids_do_not_conflict(self, engine, offered_options):
        result = engine.validate(["sport-engine", "sport-engine"], offered_options)

        assert result.is_valid is True

    def test_multiple_group_conflicts_report_all_ids(self, engine, offered_options):
        result = engine.validate(
            ["sport-engine", "hybrid-engine", "metallic-paint", "pearl-paint"],
            offered_options,
        )

        assert result.is_valid is False
        assert len(result.conflicting_option_ids) == 4
        assert {pair.exclusive_group for pair in result.conflicting_pairs} == {
            "engine",
            "paint",
        }

    def test_explicit_edge_conflict(self, engine, offered_options, conflict_edges):
        result = engine.validate(
            ["sport-engine", "tow-hitch"], offered_options, conflict_edges
        )

        assert result.is_valid is False
        assert result.conflicting_option_ids == {"sport-engine", "tow-hitch"}
        (pair,) = result.conflicting_pairs
        assert pair.exclusive_group is None
        assert pair.conflict_type == "incompatible"
        assert "incompatible" in result.message

    def test_edge_between_unoffered_ids_still_reported(self, engine, offered_options):
        edges = [ConflictEdge(from_option_id="x", to_option_id="y")]

        result = engine.validate(["x", "y"], offered_options, edges)

        assert result.conflicting_option_ids == {"x", "y"}

    @patch("configurator.services.configuration.compatibility.logger")
    def test_conflicts_are_logged(self, mock_logger, engine, offered_options):
        engine.validate(["sport-engine", "hybrid-engine"], offered_options)

        mock_logger.warning.assert_called_once()
        args, kwargs = mock_logger.warning.call_args
        assert args[0] == "Option conflicts detected"
        assert kwargs["conflicting_option_ids"] == ["hybrid-engine", "sport-engine"]


# ============================================================================
# Unit Tests: filter_compatible
# ============================================================================


class TestFilterCompatible:
    """Test suite for compatible option filtering."""

    def test_empty_selection_returns_offered_unchanged(
        self, engine, offered_options, conflict_edges
    ):
        compatible = engine.filter_compatible(offered_options, [], conflict_edges)

        assert compatible == offered_options

    def test_filters_other_group_members(self, engine, offered_options):
        compatible = engine.filter_compatible(offered_options, ["sport-engine"])
        ids = [option.id for option in compatible]

        assert "hybrid-engine" not in ids
        assert "sport-engine" in ids
        assert "metallic-paint" in ids
        assert "premium-sound" in ids

    def test_filters_multiple_groups_and_edges(
        self, engine, offered_options, conflict_edges
    ):
        compatible = engine.filter_compatible(
            offered_options, ["sport-engine", "metallic-paint"], conflict_edges
        )

        assert [option.id for option in compatible] == [
            "sport-engine",
            "metallic-paint",
            "premium-sound",
        ]

    def test_selected_option_is_never_hidden(self, engine, offered_options):
        # Conflicting selection: both engines stay visible to the buyer
        compatible = engine.filter_compatible(
            offered_options, ["sport-engine", "hybrid-engine"]
        )
        ids = [option.id for option in compatible]

        assert "sport-engine" in ids
        assert "hybrid-engine" in ids

    def test_preserves_relative_order(self, engine, offered_options):
        compatible = engine.filter_compatible(offered_options, ["pearl-paint"])

        assert [option.id for option in compatible] == [
            "sport-engine",
            "hybrid-engine",
            "pearl-paint",
            "premium-sound",
            "tow-hitch",
        ]

    def test_unknown_selected_id_is_ignored(self, engine, offered_options):
        compatible = engine.filter_compatible(offered_options, ["ghost"])

        assert compatible == offered_options

    def test_idempotent(self, engine, offered_options, conflict_edges):
        selected = ["hybrid-engine"]
        once = engine.filter_compatible(offered_options, selected, conflict_edges)
        twice = engine.filter_compatible(once, selected, conflict_edges)

        assert once == twice


# ============================================================================
# Unit Tests: ConflictIndex
# ============================================================================


class TestConflictIndex:
    """Test suite for conflict lookup tables."""

    def test_explain_group_pair(self, offered_options):
        index = ConflictIndex(offered_options)

        pair = index.explain("sport-engine", "hybrid-engine")

        assert pair is not None
        assert pair.exclusive_group == "engine"
        assert pair.conflict_type is None

    def test_explain_compatible_pair(self, offered_options):
        index = ConflictIndex(offered_options)

        assert index.explain("sport-engine", "metallic-paint") is None
        assert index.explain("sport-engine", "sport-engine") is None

    def test_group_and_edge_on_same_pair(self, offered_options):
        edges = [
            ConflictEdge(
                from_option_id="hybrid-engine",
                to_option_id="sport-engine",
                conflict_type="exclusive",
            )
        ]
        index = ConflictIndex(offered_options, edges)

        pair = index.explain("sport-engine", "hybrid-engine")

        assert pair.exclusive_group == "engine"
        assert pair.conflict_type == "exclusive"
        assert index.conflicts_of("sport-engine") == {"hybrid-engine"}

    def test_group_of(self, offered_options):
        index = ConflictIndex(offered_options)

        assert index.group_of("metallic-paint") == "paint"
        assert index.group_of("premium-sound") is None
        assert index.group_of("ghost") is None

    def test_prices_do_not_affect_conflicts(self):
        cheap = Option(id="a", category="X", price=Decimal("0"), exclusive_group="g")
        dear = Option(id="b", category="X", price=Decimal("99999"), exclusive_group="g")

        assert ConflictIndex([cheap, dear]).conflicts_of("a") == {"b"}
