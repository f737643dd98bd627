"""
Read-only catalog contract consumed by the configuration engine.

The engine never queries a data source itself. Callers supply a CatalogView
implementation that returns immutable snapshots of cars, required group
specifications and conflict edges; one snapshot is taken per engine call.
"""

from typing import Any, Iterable, Optional, Protocol, Sequence, runtime_checkable

from configurator.schemas.catalog import Car, ConflictEdge, Option, RequiredGroupSpec


class CatalogError(Exception):
    """Base exception for catalog access errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class CarNotFoundError(CatalogError):
    """Exception raised when a car is not present in the catalog."""

    def __init__(self, car_id: str, **context: Any):
        super().__init__(f"Car {car_id} not found", car_id=car_id, **context)
        self.car_id = car_id


class OptionNotFoundError(CatalogError):
    """Exception raised when an option is not present in the catalog."""

    def __init__(self, option_id: str, **context: Any):
        super().__init__(f"Option {option_id} not found", option_id=option_id, **context)
        self.option_id = option_id


class CatalogDataError(CatalogError):
    """Exception raised when the catalog supplies malformed data."""

    pass


@runtime_checkable
class CatalogView(Protocol):
    """Snapshot access to cars, required groups and conflict edges."""

    def get_car_with_options(self, car_id: str) -> Car:
        """
        Get a car including its offered options.

        Raises:
            CarNotFoundError: If the car does not exist
        """
        ...

    def get_options(self) -> Sequence[Option]:
        """Get the global option catalog, independent of any car."""
        ...

    def get_required_group_specs(self) -> Sequence[RequiredGroupSpec]:
        """Get the required flag of every known exclusive group."""
        ...

    def get_conflict_edges(
        self, option_ids: Optional[Iterable[str]] = None
    ) -> Sequence[ConflictEdge]:
        """
        Get explicit conflict edges.

        Args:
            option_ids: If given, only edges touching one of these ids
        """
        ...
