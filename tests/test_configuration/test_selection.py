"""
Test suite for the selection state machine.

Tests cover the initial selection, add transitions with conflict eviction,
remove transitions refused for the sole pick of a required group, strict
mode and action dispatch.
"""

import pytest

from configurator.services.configuration.required_groups import RequiredGroupResolver
from configurator.services.configuration.selection import (
    RequiredOptionRemovalError,
    SelectionAction,
    SelectionError,
    SelectionReducer,
    SelectionState,
    UnknownSelectionOptionError,
)


@pytest.fixture
def resolver(settings) -> RequiredGroupResolver:
    return RequiredGroupResolver(settings)


@pytest.fixture
def reducer(resolver) -> SelectionReducer:
    return SelectionReducer(resolver=resolver)


@pytest.fixture
def state(car, required_group_specs, conflict_edges, resolver) -> SelectionState:
    return SelectionState.initial(
        car, required_group_specs, conflict_edges, resolver=resolver
    )


# ============================================================================
# Unit Tests: SelectionState
# ============================================================================


class TestSelectionState:
    """Test suite for selection snapshots."""

    def test_initial_state_holds_default_selection(self, state):
        assert state.selected_ids == {"hybrid-engine"}
        assert state.is_selected("hybrid-engine")

    def test_with_selection_returns_new_state(self, state):
        updated = state.with_selection(["premium-sound"])

        assert updated.selected_ids == {"premium-sound"}
        assert state.selected_ids == {"hybrid-engine"}


# ============================================================================
# Unit Tests: add
# ============================================================================


class TestAdd:
    """Test suite for add transitions."""

    def test_add_evicts_group_member(self, reducer, state):
        transition = reducer.add(state, "sport-engine")

        assert transition.applied is True
        assert transition.evicted_option_ids == {"hybrid-engine"}
        assert transition.state.selected_ids == {"sport-engine"}

    def test_add_evicts_edge_neighbour(self, reducer, state):
        with_hitch = reducer.add(state, "tow-hitch").state

        transition = reducer.add(with_hitch, "sport-engine")

        assert transition.evicted_option_ids == {"hybrid-engine", "tow-hitch"}
        assert transition.state.selected_ids == {"sport-engine"}

    def test_add_independent_option_keeps_selection(self, reducer, state):
        transition = reducer.add(state, "premium-sound")

        assert transition.evicted_option_ids == frozenset()
        assert transition.state.selected_ids == {"hybrid-engine", "premium-sound"}

    def test_add_selected_option_is_noop(self, reducer, state):
        transition = reducer.add(state, "hybrid-engine")

        assert transition.applied is False
        assert transition.state == state
        assert transition.reason == "Option is already selected"

    def test_add_unknown_option_rejected(self, reducer, state):
        with pytest.raises(UnknownSelectionOptionError) as exc_info:
            reducer.add(state, "ghost")

        assert exc_info.value.option_id == "ghost"
        assert exc_info.value.context["car_id"] == "roadster"

    def test_add_keeps_selection_conflict_free(self, reducer, state, car):
        for option in car.offered_options:
            state = reducer.add(state, option.id).state

        engine = reducer.compatibility
        result = engine.validate(
            state.selected_ids, car.offered_options, state.conflict_edges
        )
        assert result.is_valid is True


# ============================================================================
# Unit Tests: remove
# ============================================================================


class TestRemove:
    """Test suite for remove transitions."""

    def test_remove_optional_option(self, reducer, state):
        with_paint = reducer.add(state, "metallic-paint").state

        transition = reducer.remove(with_paint, "metallic-paint")

        assert transition.applied is True
        assert transition.state.selected_ids == {"hybrid-engine"}

    def test_remove_sole_required_pick_is_refused(self, reducer, state):
        transition = reducer.remove(state, "hybrid-engine")

        assert transition.applied is False
        assert transition.state.selected_ids == {"hybrid-engine"}
        assert "only selection in required group" in transition.reason

    def test_remove_unselected_option_is_noop(self, reducer, state):
        transition = reducer.remove(state, "premium-sound")

        assert transition.applied is False
        assert transition.reason == "Option is not selected"

    def test_remove_one_of_two_required_picks(self, reducer, state):
        # Both engines can only be selected together outside the reducer
        both = state.with_selection({"sport-engine", "hybrid-engine"})

        transition = reducer.remove(both, "sport-engine")

        assert transition.applied is True
        assert transition.state.selected_ids == {"hybrid-engine"}

    def test_strict_mode_raises(self, resolver, state):
        reducer = SelectionReducer(resolver=resolver, strict=True)

        with pytest.raises(RequiredOptionRemovalError) as exc_info:
            reducer.remove(state, "hybrid-engine")

        assert exc_info.value.context["exclusive_group"] == "engine"
        assert isinstance(exc_info.value, SelectionError)

    def test_can_remove(self, reducer, state):
        assert reducer.can_remove(state, "hybrid-engine") is False
        assert reducer.can_remove(state, "premium-sound") is True


# ============================================================================
# Unit Tests: apply / toggle
# ============================================================================


class TestDispatch:
    """Test suite for named transitions."""

    @pytest.mark.parametrize("action", [SelectionAction.ADD, "add", "ADD"])
    def test_apply_add(self, reducer, state, action):
        transition = reducer.apply(state, action, "premium-sound")

        assert transition.action == SelectionAction.ADD
        assert transition.applied is True

    def test_apply_remove(self, reducer, state):
        transition = reducer.apply(state, "remove", "hybrid-engine")

        assert transition.action == SelectionAction.REMOVE
        assert transition.applied is False

    def test_apply_invalid_action(self, reducer, state):
        with pytest.raises(ValueError, match="Invalid selection action"):
            reducer.apply(state, "replace", "premium-sound")

    def test_toggle(self, reducer, state):
        added = reducer.toggle(state, "premium-sound")
        removed = reducer.toggle(added.state, "premium-sound")

        assert added.action == SelectionAction.ADD
        assert removed.action == SelectionAction.REMOVE
        assert removed.state.selected_ids == {"hybrid-engine"}


def test_swapping_engine_then_removing_keeps_required_group(reducer, state):
    swapped = reducer.add(state, "sport-engine").state

    transition = reducer.remove(swapped, "sport-engine")

    assert transition.applied is False
    assert transition.state.selected_ids == {"sport-engine"}
