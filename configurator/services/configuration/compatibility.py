"""
Option compatibility engine.

This module implements the CompatibilityEngine which decides which options
exclude each other. Two independent mechanisms are combined: implicit
exclusivity between members of the same exclusive group (radio-button
semantics) and explicit, symmetric conflict edges between two specific
options. Options with neither conflict with nothing (checkbox semantics).
"""

from collections import defaultdict
from itertools import combinations
from typing import Iterable, Optional, Sequence

from configurator.core.logging import get_logger
from configurator.schemas.catalog import ConflictEdge, Option
from configurator.schemas.validation import ConflictCheckResult, ConflictPair

logger = get_logger(__name__)


class ConflictIndex:
    """
    Lookup tables over one car's offered options and the conflict edges.

    Built once per engine call so every conflict lookup is a dictionary access
    instead of a scan over the catalog.
    """

    def __init__(
        self,
        offered_options: Sequence[Option],
        conflict_edges: Iterable[ConflictEdge] = (),
    ):
        self.options: dict[str, Option] = {}
        self.group_members: dict[str, list[str]] = defaultdict(list)
        self.edge_neighbours: dict[str, dict[str, str]] = defaultdict(dict)

        for option in offered_options:
            self.options[option.id] = option
            if option.exclusive_group is not None:
                self.group_members[option.exclusive_group].append(option.id)

        for edge in conflict_edges:
            self.edge_neighbours[edge.from_option_id][edge.to_option_id] = edge.conflict_type
            self.edge_neighbours[edge.to_option_id][edge.from_option_id] = edge.conflict_type

    def group_of(self, option_id: str) -> Optional[str]:
        option = self.options.get(option_id)
        return option.exclusive_group if option is not None else None

    def conflicts_of(self, option_id: str) -> frozenset[str]:
        conflicts: set[str] = set()

        group = self.group_of(option_id)
        if group is not None:
            conflicts.update(self.group_members[group])

        conflicts.update(self.edge_neighbours.get(option_id, {}))
        conflicts.discard(option_id)
        return frozenset(conflicts)

    def explain(self, first_id: str, second_id: str) -> Optional[ConflictPair]:
        """
        Describe why two options conflict.

        Returns:
            ConflictPair for the two options, or None if they are compatible
        """
        if first_id == second_id:
            return None

        group = self.group_of(first_id)
        shares_group = group is not None and group == self.group_of(second_id)
        conflict_type = self.edge_neighbours.get(first_id, {}).get(second_id)

        if not shares_group and conflict_type is None:
            return None

        return ConflictPair(
            first_option_id=first_id,
            second_option_id=second_id,
            exclusive_group=group if shares_group else None,
            conflict_type=conflict_type,
        )


class CompatibilityEngine:
    """
    Compatibility rules for option selections.

    Stateless; every method works on the catalog snapshot passed in, so one
    instance can be shared across concurrent configuration sessions.
    """

    CONFLICT_MESSAGE_PREFIX = "Mutually exclusive options selected"

    def conflicts_of(
        self,
        option_id: str,
        offered_options: Sequence[Option],
        conflict_edges: Iterable[ConflictEdge] = (),
    ) -> frozenset[str]:
        """
        Get every option that cannot be selected together with option_id.

        Returns the other offered members of the option's exclusive group plus
        every option joined to it by a conflict edge in either direction. An
        option never conflicts with itself.

        Args:
            option_id: Option to look up
            offered_options: Options offered by the car
            conflict_edges: Explicit conflict edges

        Returns:
            Ids of conflicting options
        """
        index = ConflictIndex(offered_options, conflict_edges)
        conflicts = index.conflicts_of(option_id)

        logger.debug(
            "Resolved option conflicts",
            option_id=option_id,
            exclusive_group=index.group_of(option_id),
            conflict_count=len(conflicts),
        )

        return conflicts

    def validate(
        self,
        selected_ids: Iterable[str],
        offered_options: Sequence[Option],
        conflict_edges: Iterable[ConflictEdge] = (),
    ) -> ConflictCheckResult:
        """
        Check a selection for mutually exclusive options.

        Every unordered pair of distinct selected ids is compared; both ids of
        a conflicting pair are reported. Empty and single-option selections
        are always consistent.

        Args:
            selected_ids: Selected option ids
            offered_options: Options offered by the car
            conflict_edges: Explicit conflict edges

        Returns:
            ConflictCheckResult with conflicting ids, pairs and a summary
        """
        selected = sorted(set(selected_ids))
        index = ConflictIndex(offered_options, conflict_edges)

        pairs: list[ConflictPair] = []
        for first_id, second_id in combinations(selected, 2):
            pair = index.explain(first_id, second_id)
            if pair is not None:
                pairs.append(pair)

        conflicting_ids = frozenset(
            option_id for pair in pairs for option_id in pair.option_ids
        )

        if not pairs:
            logger.debug(
                "No option conflicts detected",
                selected_count=len(selected),
            )
            return ConflictCheckResult(
                is_valid=True,
                message="No conflicting options selected",
            )

        message = self._build_conflict_message(pairs)

        logger.warning(
            "Option conflicts detected",
            selected_count=len(selected),
            conflict_count=len(pairs),
            conflicting_option_ids=sorted(conflicting_ids),
        )

        return ConflictCheckResult(
            is_valid=False,
            conflicting_option_ids=conflicting_ids,
            conflicting_pairs=tuple(pairs),
            message=message,
        )

    def filter_compatible(
        self,
        offered_options: Sequence[Option],
        selected_ids: Iterable[str],
        conflict_edges: Iterable[ConflictEdge] = (),
    ) -> list[Option]:
        """
        Get the offered options that are still pickable.

        Removes every option conflicting with a current selection, but never
        hides an option that is itself selected. Relative order of the offered
        options is preserved, so an empty selection returns them unchanged.

        Args:
            offered_options: Options offered by the car
            selected_ids: Currently selected option ids
            conflict_edges: Explicit conflict edges

        Returns:
            Compatible options in offered order
        """
        selected = set(selected_ids)
        if not selected:
            return list(offered_options)

        index = ConflictIndex(offered_options, conflict_edges)

        blocked: set[str] = set()
        for option_id in selected:
            blocked.update(index.conflicts_of(option_id))
        blocked -= selected

        compatible = [option for option in offered_options if option.id not in blocked]

        logger.debug(
            "Filtered compatible options",
            offered_count=len(offered_options),
            selected_count=len(selected),
            compatible_count=len(compatible),
        )

        return compatible

    def _build_conflict_message(self, pairs: Sequence[ConflictPair]) -> str:
        grouped: dict[str, set[str]] = defaultdict(set)
        explicit: list[ConflictPair] = []
        for pair in pairs:
            if pair.exclusive_group is not None:
                grouped[pair.exclusive_group].update(pair.option_ids)
            else:
                explicit.append(pair)

        parts = [
            f"Exclusive group \"{group}\": {', '.join(sorted(option_ids))}"
            for group, option_ids in sorted(grouped.items())
        ]
        parts.extend(pair.describe() for pair in explicit)

        return f"{self.CONFLICT_MESSAGE_PREFIX}: {'; '.join(parts)}"
