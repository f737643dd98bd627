"""
Required exclusive group resolution.

This module implements the RequiredGroupResolver which determines, for every
exclusive group flagged as required, the default (cheapest) pick and checks
that a selection contains exactly one member of each required group the car
offers. Required group specs are authoritative; an option's own is_required
flag is only a display hint unless the legacy behaviour is switched on in
settings.
"""

from collections import defaultdict
from typing import Iterable, Optional, Sequence

from configurator.core.config import Settings, get_settings
from configurator.core.logging import get_logger
from configurator.schemas.catalog import Option, RequiredGroupSpec
from configurator.schemas.validation import RequiredCheckResult

logger = get_logger(__name__)


class RequiredGroupResolver:
    """
    Required group rules for option selections.

    Attributes:
        settings: Engine settings controlling the legacy required hint
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def required_groups(
        self,
        required_group_specs: Iterable[RequiredGroupSpec],
        offered_options: Sequence[Option] = (),
    ) -> list[str]:
        """
        Get the names of all required exclusive groups.

        Args:
            required_group_specs: Global required group specifications
            offered_options: Offered options, consulted only for the legacy
                per-option required hint

        Returns:
            Required group names, in spec order, without duplicates
        """
        groups: list[str] = []
        for spec in required_group_specs:
            if spec.is_required and spec.exclusive_group not in groups:
                groups.append(spec.exclusive_group)

        if self.settings.allow_option_required_hint:
            for option in offered_options:
                if (
                    option.is_required
                    and option.exclusive_group is not None
                    and option.exclusive_group not in groups
                ):
                    groups.append(option.exclusive_group)

        return groups

    def group_options(
        self, exclusive_group: str, offered_options: Sequence[Option]
    ) -> list[Option]:
        """Get the offered members of a group, in offered order."""
        return [
            option
            for option in offered_options
            if option.exclusive_group == exclusive_group
        ]

    def cheapest_option(
        self, exclusive_group: str, offered_options: Sequence[Option]
    ) -> Optional[Option]:
        """
        Get the cheapest offered member of a group.

        Ties go to the option that comes first in offered order.

        Args:
            exclusive_group: Group name
            offered_options: Options offered by the car

        Returns:
            Cheapest member, or None if the car offers no member of the group
        """
        members = self.group_options(exclusive_group, offered_options)
        if not members:
            return None
        # min() keeps the first of equal keys
        return min(members, key=lambda option: option.price)

    def default_selection(
        self,
        offered_options: Sequence[Option],
        required_group_specs: Iterable[RequiredGroupSpec],
    ) -> frozenset[str]:
        """
        Pick the cheapest offered option of every required group.

        Required groups the car does not offer are skipped.

        Args:
            offered_options: Options offered by the car
            required_group_specs: Global required group specifications

        Returns:
            Ids of the default picks
        """
        selection: set[str] = set()
        skipped: list[str] = []

        for group in self.required_groups(required_group_specs, offered_options):
            cheapest = self.cheapest_option(group, offered_options)
            if cheapest is None:
                skipped.append(group)
                continue
            selection.add(cheapest.id)

        logger.debug(
            "Resolved default selection",
            default_option_ids=sorted(selection),
            skipped_groups=skipped,
        )

        return frozenset(selection)

    def validate_required(
        self,
        selected_ids: Iterable[str],
        offered_options: Sequence[Option],
        required_group_specs: Iterable[RequiredGroupSpec],
    ) -> RequiredCheckResult:
        """
        Check that every offered required group has exactly one selection.

        A group with two or more selected members is treated like a group
        with none: it is reported as missing and also as over-selected.

        Args:
            selected_ids: Selected option ids
            offered_options: Options offered by the car
            required_group_specs: Global required group specifications

        Returns:
            RequiredCheckResult with missing and over-selected groups
        """
        selected = set(selected_ids)
        selected_per_group: dict[str, int] = defaultdict(int)
        offered_groups: set[str] = set()

        for option in offered_options:
            if option.exclusive_group is None:
                continue
            offered_groups.add(option.exclusive_group)
            if option.id in selected:
                selected_per_group[option.exclusive_group] += 1

        missing: set[str] = set()
        over_selected: set[str] = set()
        for group in self.required_groups(required_group_specs, offered_options):
            if group not in offered_groups:
                continue
            count = selected_per_group[group]
            if count == 0:
                missing.add(group)
            elif count > 1:
                missing.add(group)
                over_selected.add(group)

        if not missing:
            return RequiredCheckResult(
                is_valid=True,
                message="All required groups are satisfied",
            )

        message = "Required option groups not satisfied: " + ", ".join(sorted(missing))
        if over_selected:
            message += (
                " (more than one option selected in: "
                + ", ".join(sorted(over_selected))
                + ")"
            )

        logger.warning(
            "Required groups not satisfied",
            missing_required_groups=sorted(missing),
            over_selected_groups=sorted(over_selected),
        )

        return RequiredCheckResult(
            is_valid=False,
            missing_required_groups=frozenset(missing),
            over_selected_groups=frozenset(over_selected),
            message=message,
        )

    def is_option_removable(
        self,
        option_id: str,
        current_selection: Iterable[str],
        required_group_specs: Iterable[RequiredGroupSpec],
        offered_options: Sequence[Option],
    ) -> bool:
        """
        Check whether an option may be deselected.

        False exactly when the option is the only selected member of a
        required group.

        Args:
            option_id: Option the buyer wants to remove
            current_selection: Currently selected option ids
            required_group_specs: Global required group specifications
            offered_options: Options offered by the car

        Returns:
            True if removing the option keeps the required groups satisfied
        """
        selected = set(current_selection)
        if option_id not in selected:
            return True

        option = next((opt for opt in offered_options if opt.id == option_id), None)
        if option is None or option.exclusive_group is None:
            return True

        group = option.exclusive_group
        if group not in self.required_groups(required_group_specs, offered_options):
            return True

        selected_members = [
            member.id
            for member in self.group_options(group, offered_options)
            if member.id in selected
        ]
        removable = selected_members != [option_id]

        if not removable:
            logger.debug(
                "Option is the sole pick of a required group",
                option_id=option_id,
                exclusive_group=group,
            )

        return removable
