"""
Derived views over offered options.

Options are always stored as one flat, ordered sequence. Grouping by category
or by exclusive group is computed on demand from that sequence for display.
"""

from typing import Iterable, Optional, Sequence

from configurator.schemas.catalog import Option, RequiredGroupSpec


def group_by_category(options: Sequence[Option]) -> dict[str, list[Option]]:
    """
    Group options by category.

    Categories appear in order of their first option; options keep their
    relative order within a category.

    Args:
        options: Flat option sequence

    Returns:
        Mapping of category to options
    """
    grouped: dict[str, list[Option]] = {}
    for option in options:
        grouped.setdefault(option.category, []).append(option)
    return grouped


def group_by_exclusive_group(
    options: Sequence[Option],
) -> tuple[dict[str, list[Option]], list[Option]]:
    """
    Split options into exclusive groups and independent options.

    Args:
        options: Flat option sequence

    Returns:
        Tuple of (group name to member options, options without a group)
    """
    exclusive_groups: dict[str, list[Option]] = {}
    independent: list[Option] = []
    for option in options:
        if option.exclusive_group is None:
            independent.append(option)
        else:
            exclusive_groups.setdefault(option.exclusive_group, []).append(option)
    return exclusive_groups, independent


def is_exclusive_group_selected(
    exclusive_group: str,
    selected_ids: Iterable[str],
    options: Sequence[Option],
    except_option_id: Optional[str] = None,
) -> bool:
    """
    Check whether some member of a group is selected.

    Args:
        exclusive_group: Group name
        selected_ids: Currently selected option ids
        options: Offered options
        except_option_id: Member to ignore, typically the option being rendered

    Returns:
        True if another member of the group is selected
    """
    selected = set(selected_ids)
    return any(
        option.exclusive_group == exclusive_group
        and option.id in selected
        and option.id != except_option_id
        for option in options
    )


def required_group_names(required_group_specs: Iterable[RequiredGroupSpec]) -> list[str]:
    """Get the names of the required groups, in spec order."""
    return [spec.exclusive_group for spec in required_group_specs if spec.is_required]
