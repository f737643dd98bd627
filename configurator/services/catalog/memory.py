"""
In-memory catalog implementation.

Holds a fixed catalog snapshot and serves it through the CatalogView contract.
Used by batch jobs that load the catalog once and by the test suite.
"""

from typing import Iterable, Optional, Sequence

from configurator.core.logging import get_logger
from configurator.schemas.catalog import Car, ConflictEdge, Option, RequiredGroupSpec
from configurator.services.catalog.view import CarNotFoundError, CatalogDataError

logger = get_logger(__name__)


class InMemoryCatalogView:
    """
    CatalogView over cars, required group specs and conflict edges held in memory.

    - Cars are looked up by id
    - The global option catalog defaults to every option offered by any car,
      first occurrence wins
    - Required group specs and conflict edges keep insertion order; edges can
      be filtered to those touching any of the given option ids
    """

    def __init__(
        self,
        cars: Iterable[Car],
        required_group_specs: Iterable[RequiredGroupSpec] = (),
        conflict_edges: Iterable[ConflictEdge] = (),
        options: Optional[Iterable[Option]] = None,
    ) -> None:
        self._cars: dict[str, Car] = {}
        for car in cars:
            if car.id in self._cars:
                raise CatalogDataError(
                    f"Duplicate car id {car.id} in catalog", car_id=car.id
                )
            self._cars[car.id] = car

        self._required_group_specs: dict[str, RequiredGroupSpec] = {}
        for spec in required_group_specs:
            if spec.exclusive_group in self._required_group_specs:
                raise CatalogDataError(
                    f"Duplicate required group spec for '{spec.exclusive_group}'",
                    exclusive_group=spec.exclusive_group,
                )
            self._required_group_specs[spec.exclusive_group] = spec

        self._conflict_edges = tuple(conflict_edges)

        self._options: dict[str, Option] = {}
        if options is None:
            options = (
                option for car in self._cars.values() for option in car.offered_options
            )
        for option in options:
            self._options.setdefault(option.id, option)

        logger.debug(
            "In-memory catalog loaded",
            car_count=len(self._cars),
            option_count=len(self._options),
            required_group_count=len(self._required_group_specs),
            conflict_edge_count=len(self._conflict_edges),
        )

    def get_car_with_options(self, car_id: str) -> Car:
        car = self._cars.get(car_id)
        if car is None:
            logger.warning("Car not found", car_id=car_id)
            raise CarNotFoundError(car_id)
        return car

    def get_options(self) -> Sequence[Option]:
        return tuple(self._options.values())

    def get_required_group_specs(self) -> Sequence[RequiredGroupSpec]:
        return tuple(self._required_group_specs.values())

    def get_conflict_edges(
        self, option_ids: Optional[Iterable[str]] = None
    ) -> Sequence[ConflictEdge]:
        if option_ids is None:
            return self._conflict_edges

        wanted = set(option_ids)
        return tuple(
            edge
            for edge in self._conflict_edges
            if edge.from_option_id in wanted or edge.to_option_id in wanted
        )

    def list_cars(self) -> list[Car]:
        """Get every car in insertion order."""
        return list(self._cars.values())
