"""
Configuration service exposing the engine to its callers.

This module implements the ConfigurationService class, the entry point used by
HTTP handlers, UI event handlers and batch jobs. Each call takes one snapshot
of the catalog (car, required group specs, conflict edges) through the
CatalogView and delegates to the pure compatibility, required group, pricing
and validation components. The service holds no mutable state, so one
instance can serve concurrent configuration sessions.
"""

from decimal import Decimal
from typing import Any, Iterable, NamedTuple, Optional, Sequence, Union

from configurator.core.config import Settings, get_settings
from configurator.core.logging import (
    get_logger,
    log_performance,
    new_session_id,
    session_context,
)
from configurator.schemas.catalog import Car, ConflictEdge, Option, RequiredGroupSpec
from configurator.schemas.pricing import PriceBreakdown
from configurator.schemas.validation import ValidationVerdict
from configurator.services.catalog.view import (
    CatalogError,
    CatalogView,
    OptionNotFoundError,
)
from configurator.services.configuration.business_rules import (
    ConfigurationValidationError,
    ConfigurationValidator,
)
from configurator.services.configuration.compatibility import CompatibilityEngine
from configurator.services.configuration.pricing_engine import PricingEngine, PricingError
from configurator.services.configuration.required_groups import RequiredGroupResolver
from configurator.services.configuration.selection import (
    SelectionAction,
    SelectionError,
    SelectionReducer,
    SelectionState,
    SelectionTransition,
)
from configurator.services.configuration.views import group_by_category

logger = get_logger(__name__)


class ConfigurationServiceError(Exception):
    """Base exception for unexpected configuration service failures."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class CatalogSnapshot(NamedTuple):
    """Catalog data read once for a single engine call."""

    car: Car
    required_group_specs: tuple[RequiredGroupSpec, ...]
    conflict_edges: tuple[ConflictEdge, ...]


class ConfigurationService:
    """
    Configuration service orchestrating the engine components.

    Attributes:
        catalog: Read-only catalog collaborator
        settings: Engine settings
        compatibility: Compatibility engine
        resolver: Required group resolver
        pricing_engine: Pricing engine
        validator: Configuration validator
        reducer: Selection state machine
    """

    # Errors callers are expected to handle themselves
    PASSTHROUGH_ERRORS = (CatalogError, PricingError, SelectionError)

    def __init__(
        self,
        catalog: CatalogView,
        settings: Optional[Settings] = None,
        strict_selection: bool = False,
    ):
        """
        Initialize configuration service.

        Args:
            catalog: Read-only catalog collaborator
            settings: Engine settings, defaults to the cached settings
            strict_selection: Raise when a required option removal is refused
        """
        self.catalog = catalog
        self.settings = settings or get_settings()
        self.compatibility = CompatibilityEngine()
        self.resolver = RequiredGroupResolver(self.settings)
        self.pricing_engine = PricingEngine(self.settings, self.resolver)
        self.validator = ConfigurationValidator(self.compatibility, self.resolver)
        self.reducer = SelectionReducer(
            self.compatibility, self.resolver, strict=strict_selection
        )

        logger.info(
            "Configuration service initialized",
            strict_selection=strict_selection,
            allow_option_required_hint=self.settings.allow_option_required_hint,
        )

    def _load_snapshot(self, car_id: str) -> CatalogSnapshot:
        """
        Read car, required group specs and relevant conflict edges once.

        Args:
            car_id: Car identifier

        Returns:
            CatalogSnapshot for the car

        Raises:
            CarNotFoundError: If the car does not exist
        """
        car = self.catalog.get_car_with_options(car_id)
        specs = tuple(self.catalog.get_required_group_specs())
        edges = tuple(self.catalog.get_conflict_edges(car.offered_option_ids))

        logger.debug(
            "Loaded catalog snapshot",
            car_id=car.id,
            option_count=len(car.offered_options),
            required_group_count=len(specs),
            conflict_edge_count=len(edges),
        )

        return CatalogSnapshot(car, specs, edges)

    def _service_error(
        self, operation: str, error: Exception, **context: Any
    ) -> ConfigurationServiceError:
        """
        Log an unexpected failure and build the error raised to the caller.

        Args:
            operation: Failed operation name
            error: Original exception
            **context: Additional error context

        Returns:
            ConfigurationServiceError to raise from the original exception
        """
        message = f"Failed to {operation.replace('_', ' ')}"
        logger.error(
            message,
            error=str(error),
            error_type=type(error).__name__,
            **context,
        )
        return ConfigurationServiceError(message, operation=operation, **context)

    def validate_configuration(
        self, car_id: str, selected_option_ids: Iterable[str]
    ) -> ValidationVerdict:
        """
        Validate a buyer's selection for a car.

        Args:
            car_id: Car identifier
            selected_option_ids: Selected option ids

        Returns:
            ValidationVerdict reporting every rule violation

        Raises:
            CarNotFoundError: If the car does not exist
            ConfigurationServiceError: If validation fails unexpectedly
        """
        selected = list(selected_option_ids)
        try:
            with log_performance(logger, "validate_configuration", car_id=car_id):
                snapshot = self._load_snapshot(car_id)
                return self.validator.validate(
                    snapshot.car,
                    snapshot.required_group_specs,
                    snapshot.conflict_edges,
                    selected,
                )
        except self.PASSTHROUGH_ERRORS:
            raise
        except Exception as e:
            raise self._service_error("validate_configuration", e, car_id=car_id) from e

    def ensure_valid(
        self, car_id: str, selected_option_ids: Iterable[str]
    ) -> ValidationVerdict:
        """
        Validate a selection and raise if it cannot be saved.

        Persistence collaborators call this against the freshest catalog
        snapshot immediately before committing a configuration.

        Raises:
            ConfigurationValidationError: If the verdict is invalid
        """
        verdict = self.validate_configuration(car_id, selected_option_ids)
        if not verdict.is_valid:
            raise ConfigurationValidationError(
                f"Configuration for car {car_id} is invalid: {verdict.message}",
                verdict=verdict,
                car_id=car_id,
            )
        return verdict

    def get_conflicting_options(
        self, option_id: str, car_id: Optional[str] = None
    ) -> frozenset[str]:
        """
        Get the options that become unavailable when option_id is picked.

        Args:
            option_id: Option identifier
            car_id: Restrict group exclusivity to this car's offered options;
                the global option catalog is used when omitted

        Returns:
            Ids of conflicting options

        Raises:
            OptionNotFoundError: If the option is unknown in that scope
            CarNotFoundError: If car_id is given and the car does not exist
        """
        try:
            if car_id is not None:
                options: Sequence[Option] = self.catalog.get_car_with_options(
                    car_id
                ).offered_options
            else:
                options = self.catalog.get_options()

            if not any(option.id == option_id for option in options):
                raise OptionNotFoundError(option_id, car_id=car_id)

            edges = self.catalog.get_conflict_edges([option_id])
            conflicts = self.compatibility.conflicts_of(option_id, options, edges)

            logger.info(
                "Retrieved conflicting options",
                option_id=option_id,
                car_id=car_id,
                conflict_count=len(conflicts),
            )

            return conflicts
        except self.PASSTHROUGH_ERRORS:
            raise
        except Exception as e:
            raise self._service_error(
                "get_conflicting_options", e, option_id=option_id, car_id=car_id
            ) from e

    def filter_compatible_options(
        self,
        offered_options: Sequence[Option],
        selected_option_ids: Iterable[str],
        conflict_edges: Optional[Iterable[ConflictEdge]] = None,
    ) -> list[Option]:
        """
        Get the options that can still be picked next to the selection.

        Args:
            offered_options: Options to filter, in display order
            selected_option_ids: Currently selected option ids
            conflict_edges: Explicit conflict edges; fetched from the catalog
                for the given options when omitted

        Returns:
            Compatible options in their original order
        """
        if conflict_edges is None:
            conflict_edges = self.catalog.get_conflict_edges(
                [option.id for option in offered_options]
            )
        return self.compatibility.filter_compatible(
            offered_options, selected_option_ids, conflict_edges
        )

    def compute_minimum_price(self, car_id: str) -> Decimal:
        """
        Get the "from" price of a car.

        Raises:
            CarNotFoundError: If the car does not exist
        """
        try:
            snapshot = self._load_snapshot(car_id)
            price = self.pricing_engine.minimum_price(
                snapshot.car, snapshot.required_group_specs
            )
            logger.info(
                "Computed minimum price",
                car_id=car_id,
                minimum_price=str(price),
            )
            return price
        except self.PASSTHROUGH_ERRORS:
            raise
        except Exception as e:
            raise self._service_error("compute_minimum_price", e, car_id=car_id) from e

    def compute_total_price(
        self, car_id: str, selected_option_ids: Iterable[str]
    ) -> Decimal:
        """
        Get the total price of a selection.

        Raises:
            CarNotFoundError: If the car does not exist
        """
        return self.price_breakdown(car_id, selected_option_ids).total_price

    def price_breakdown(
        self, car_id: str, selected_option_ids: Iterable[str]
    ) -> PriceBreakdown:
        """
        Get the itemized price of a selection.

        Raises:
            CarNotFoundError: If the car does not exist
        """
        selected = list(selected_option_ids)
        try:
            car = self.catalog.get_car_with_options(car_id)
            breakdown = self.pricing_engine.price_breakdown(car, selected)
            logger.info(
                "Computed price breakdown",
                car_id=car_id,
                total_price=str(breakdown.total_price),
                option_count=len(breakdown.option_prices),
            )
            return breakdown
        except self.PASSTHROUGH_ERRORS:
            raise
        except Exception as e:
            raise self._service_error("price_breakdown", e, car_id=car_id) from e

    def compute_default_selection(self, car_id: str) -> frozenset[str]:
        """
        Get the cheapest pick of every required group the car offers.

        Raises:
            CarNotFoundError: If the car does not exist
        """
        try:
            snapshot = self._load_snapshot(car_id)
            selection = self.resolver.default_selection(
                snapshot.car.offered_options, snapshot.required_group_specs
            )
            logger.info(
                "Computed default selection",
                car_id=car_id,
                default_option_ids=sorted(selection),
            )
            return selection
        except self.PASSTHROUGH_ERRORS:
            raise
        except Exception as e:
            raise self._service_error("compute_default_selection", e, car_id=car_id) from e

    def start_selection(
        self, car_id: str, session_id: Optional[str] = None
    ) -> SelectionState:
        """
        Open a selection for a car, pre-filled with the default picks.

        Args:
            car_id: Car identifier
            session_id: Configuration session id; the id bound by the caller
                or a new one is used when omitted

        Returns:
            SelectionState carrying the session id

        Raises:
            CarNotFoundError: If the car does not exist
        """
        session_id = new_session_id(session_id)
        with session_context(session_id):
            snapshot = self._load_snapshot(car_id)
            state = SelectionState.initial(
                snapshot.car,
                snapshot.required_group_specs,
                snapshot.conflict_edges,
                resolver=self.resolver,
                session_id=session_id,
            )
            logger.info(
                "Started selection",
                car_id=car_id,
                selected_option_ids=sorted(state.selected_ids),
            )
        return state

    def apply_selection(
        self,
        state: SelectionState,
        action: Union[SelectionAction, str],
        option_id: str,
    ) -> SelectionTransition:
        """
        Apply an add or remove request to a selection.

        Raises:
            UnknownSelectionOptionError: If adding an option the car does not offer
            RequiredOptionRemovalError: If strict and the removal is refused
        """
        with session_context(state.session_id):
            return self.reducer.apply(state, action, option_id)

    def group_options_by_category(self, car_id: str) -> dict[str, list[Option]]:
        """
        Get a car's offered options grouped by category for display.

        Raises:
            CarNotFoundError: If the car does not exist
        """
        car = self.catalog.get_car_with_options(car_id)
        return group_by_category(car.offered_options)
