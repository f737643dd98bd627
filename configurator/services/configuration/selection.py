"""
Selection state machine for interactive configuration.

This module implements the SelectionReducer which owns the only two legal
transitions of a buyer's selection: adding an option, which first evicts every
selected option it conflicts with, and removing an option, which is refused
when the option is the sole pick of a required group. UI handlers and API
endpoints go through the reducer so compatibility rules cannot be bypassed.
"""

from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from configurator.core.logging import get_logger
from configurator.schemas.catalog import Car, ConflictEdge, RequiredGroupSpec
from configurator.services.configuration.compatibility import CompatibilityEngine
from configurator.services.configuration.required_groups import RequiredGroupResolver

logger = get_logger(__name__)


class SelectionAction(str, Enum):
    """Legal selection transitions."""

    ADD = "add"
    REMOVE = "remove"

    @classmethod
    def from_string(cls, value: str) -> "SelectionAction":
        """
        Convert string to SelectionAction enum.

        Raises:
            ValueError: If value is not a valid action
        """
        try:
            return cls(value.lower())
        except ValueError:
            valid_values = ", ".join([a.value for a in cls])
            raise ValueError(
                f"Invalid selection action: {value}. "
                f"Valid values are: {valid_values}"
            )


class SelectionError(Exception):
    """Base exception for selection transition errors."""

    def __init__(self, message: str, option_id: str, **context: Any):
        super().__init__(message)
        self.option_id = option_id
        self.context = context


class UnknownSelectionOptionError(SelectionError):
    """Raised when adding an option the car does not offer."""

    pass


class RequiredOptionRemovalError(SelectionError):
    """Raised in strict mode when removing the sole pick of a required group."""

    pass


class SelectionState(BaseModel):
    """Immutable snapshot of a buyer's selection for one car."""

    model_config = ConfigDict(frozen=True)

    car: Car
    required_group_specs: tuple[RequiredGroupSpec, ...] = Field(default_factory=tuple)
    conflict_edges: tuple[ConflictEdge, ...] = Field(default_factory=tuple)
    selected_ids: frozenset[str] = Field(default_factory=frozenset)
    session_id: Optional[str] = None

    @classmethod
    def initial(
        cls,
        car: Car,
        required_group_specs: Iterable[RequiredGroupSpec] = (),
        conflict_edges: Iterable[ConflictEdge] = (),
        resolver: Optional[RequiredGroupResolver] = None,
        session_id: Optional[str] = None,
    ) -> "SelectionState":
        """
        Start a selection pre-filled with the default pick of every required group.

        Args:
            car: Car being configured
            required_group_specs: Global required group specifications
            conflict_edges: Explicit conflict edges
            resolver: Resolver used to compute the defaults
            session_id: Configuration session the selection belongs to

        Returns:
            Initial selection state
        """
        specs = tuple(required_group_specs)
        resolver = resolver or RequiredGroupResolver()
        return cls(
            car=car,
            required_group_specs=specs,
            conflict_edges=tuple(conflict_edges),
            selected_ids=resolver.default_selection(car.offered_options, specs),
            session_id=session_id,
        )

    def is_selected(self, option_id: str) -> bool:
        return option_id in self.selected_ids

    def with_selection(self, selected_ids: Iterable[str]) -> "SelectionState":
        return self.model_copy(update={"selected_ids": frozenset(selected_ids)})


class SelectionTransition(BaseModel):
    """Outcome of one add or remove request."""

    model_config = ConfigDict(frozen=True)

    action: SelectionAction
    option_id: str
    applied: bool
    evicted_option_ids: frozenset[str] = Field(default_factory=frozenset)
    reason: Optional[str] = None
    state: SelectionState


class SelectionReducer:
    """
    Reducer applying add/remove transitions to a SelectionState.

    Attributes:
        compatibility: Engine resolving which options an added option evicts
        resolver: Resolver deciding whether an option may be removed
        strict: Raise instead of ignoring a refused removal
    """

    def __init__(
        self,
        compatibility: Optional[CompatibilityEngine] = None,
        resolver: Optional[RequiredGroupResolver] = None,
        strict: bool = False,
    ):
        self.compatibility = compatibility or CompatibilityEngine()
        self.resolver = resolver or RequiredGroupResolver()
        self.strict = strict
        self._handlers: dict[
            SelectionAction, Callable[[SelectionState, str], SelectionTransition]
        ] = {
            SelectionAction.ADD: self.add,
            SelectionAction.REMOVE: self.remove,
        }

    def apply(
        self, state: SelectionState, action: Union[SelectionAction, str], option_id: str
    ) -> SelectionTransition:
        """
        Apply a named transition.

        Args:
            state: Current selection
            action: Transition to apply
            option_id: Option the transition refers to

        Returns:
            SelectionTransition with the resulting state
        """
        if not isinstance(action, SelectionAction):
            action = SelectionAction.from_string(action)
        return self._handlers[action](state, option_id)

    def add(self, state: SelectionState, option_id: str) -> SelectionTransition:
        """
        Select an option, evicting every selected option it conflicts with.

        Adding an already selected option leaves the state unchanged.

        Raises:
            UnknownSelectionOptionError: If the car does not offer the option
        """
        if not state.car.offers(option_id):
            logger.warning(
                "Rejected selection of option not offered by car",
                car_id=state.car.id,
                option_id=option_id,
            )
            raise UnknownSelectionOptionError(
                f"Option {option_id} is not offered by car {state.car.id}",
                option_id=option_id,
                car_id=state.car.id,
            )

        if state.is_selected(option_id):
            return SelectionTransition(
                action=SelectionAction.ADD,
                option_id=option_id,
                applied=False,
                reason="Option is already selected",
                state=state,
            )

        conflicts = self.compatibility.conflicts_of(
            option_id, state.car.offered_options, state.conflict_edges
        )
        evicted = frozenset(state.selected_ids & conflicts)
        new_state = state.with_selection((state.selected_ids - evicted) | {option_id})

        logger.info(
            "Option added to selection",
            car_id=state.car.id,
            option_id=option_id,
            evicted_option_ids=sorted(evicted),
        )

        return SelectionTransition(
            action=SelectionAction.ADD,
            option_id=option_id,
            applied=True,
            evicted_option_ids=evicted,
            state=new_state,
        )

    def remove(self, state: SelectionState, option_id: str) -> SelectionTransition:
        """
        Deselect an option unless it is the sole pick of a required group.

        Removing an option that is not selected leaves the state unchanged.

        Raises:
            RequiredOptionRemovalError: In strict mode, if removal is refused
        """
        if not state.is_selected(option_id):
            return SelectionTransition(
                action=SelectionAction.REMOVE,
                option_id=option_id,
                applied=False,
                reason="Option is not selected",
                state=state,
            )

        if not self.can_remove(state, option_id):
            option = state.car.get_option(option_id)
            group = option.exclusive_group if option is not None else None
            reason = (
                f"Option {option_id} is the only selection in required group "
                f"\"{group}\""
            )
            logger.warning(
                "Refused removal of required option",
                car_id=state.car.id,
                option_id=option_id,
                exclusive_group=group,
            )
            if self.strict:
                raise RequiredOptionRemovalError(
                    reason,
                    option_id=option_id,
                    exclusive_group=group,
                )
            return SelectionTransition(
                action=SelectionAction.REMOVE,
                option_id=option_id,
                applied=False,
                reason=reason,
                state=state,
            )

        new_state = state.with_selection(state.selected_ids - {option_id})

        logger.info(
            "Option removed from selection",
            car_id=state.car.id,
            option_id=option_id,
        )

        return SelectionTransition(
            action=SelectionAction.REMOVE,
            option_id=option_id,
            applied=True,
            state=new_state,
        )

    def toggle(self, state: SelectionState, option_id: str) -> SelectionTransition:
        """Remove the option if selected, add it otherwise."""
        if state.is_selected(option_id):
            return self.remove(state, option_id)
        return self.add(state, option_id)

    def can_remove(self, state: SelectionState, option_id: str) -> bool:
        """Check whether removing the option would be applied."""
        return self.resolver.is_option_removable(
            option_id,
            state.selected_ids,
            state.required_group_specs,
            state.car.offered_options,
        )
