"""
Pricing calculation engine for car configurations.

This module implements the PricingEngine class for calculating the price of a
concrete option selection and the minimum achievable price of a car (base
price plus the cheapest option of every required group). All arithmetic uses
Decimal; catalog prices are summed exactly and only the final total is
quantized to the configured precision.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from configurator.core.config import Settings, get_settings
from configurator.core.logging import get_logger
from configurator.schemas.catalog import Car, Option, RequiredGroupSpec
from configurator.schemas.pricing import OptionPrice, PriceBreakdown
from configurator.services.configuration.required_groups import RequiredGroupResolver

logger = get_logger(__name__)


class PricingError(Exception):
    """Base exception for pricing calculation errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class PricingValidationError(PricingError):
    """Exception raised when catalog prices are malformed."""

    pass


class PricingEngine:
    """
    Pricing calculation engine.

    Attributes:
        settings: Engine settings (precision and price bounds)
        resolver: Required group resolver used for minimum prices
    """

    MIN_PRICE = Decimal("0.00")

    def __init__(
        self,
        settings: Optional[Settings] = None,
        resolver: Optional[RequiredGroupResolver] = None,
    ):
        self.settings = settings or get_settings()
        self.resolver = resolver or RequiredGroupResolver(self.settings)

    def _validate_price(self, price: Decimal, field_name: str, **context: Any) -> None:
        """
        Validate price value.

        Args:
            price: Price to validate
            field_name: Field name for error messages
            **context: Additional error context

        Raises:
            PricingValidationError: If price is invalid
        """
        if price < self.MIN_PRICE:
            raise PricingValidationError(
                f"{field_name} cannot be negative",
                field=field_name,
                value=str(price),
                **context,
            )

        if price > self.settings.max_price:
            raise PricingValidationError(
                f"{field_name} exceeds maximum allowed value",
                field=field_name,
                value=str(price),
                max_value=str(self.settings.max_price),
                **context,
            )

    def _quantize(self, amount: Decimal) -> Decimal:
        return amount.quantize(self.settings.price_quantum, rounding=ROUND_HALF_UP)

    def _require_car(self, car: Optional[Car]) -> Car:
        if car is None:
            raise PricingValidationError("Car is required for price calculation")
        return car

    def calculate_base_price(self, car: Car) -> Decimal:
        """
        Calculate car base price.

        Raises:
            PricingValidationError: If base price is invalid
        """
        self._validate_price(car.base_price, "base_price", car_id=car.id)
        return car.base_price

    def calculate_option_price(self, option: Option) -> Decimal:
        """
        Calculate single option price.

        Raises:
            PricingValidationError: If option price is invalid
        """
        self._validate_price(option.price, "option_price", option_id=option.id)
        return option.price

    def price_breakdown(self, car: Car, selected_ids: Iterable[str]) -> PriceBreakdown:
        """
        Calculate the itemized price of a selection.

        Selected ids the car does not offer are ignored and listed in
        ignored_option_ids; this method never fails on unknown ids.

        Lines and options_total carry exact catalog prices; total_price is
        their exact sum rounded once to the configured precision.

        Args:
            car: Car with offered options
            selected_ids: Selected option ids

        Returns:
            PriceBreakdown with one line per priced option

        Raises:
            PricingValidationError: If the car or a price is malformed
        """
        car = self._require_car(car)
        selected = set(selected_ids)

        base_price = self.calculate_base_price(car)
        lines = [
            OptionPrice(
                option_id=option.id,
                name=option.name,
                price=self.calculate_option_price(option),
            )
            for option in car.offered_options
            if option.id in selected
        ]
        options_total = sum((line.price for line in lines), start=Decimal("0"))
        exact_total = base_price + options_total
        self._validate_price(exact_total, "total_price", car_id=car.id)
        total = self._quantize(exact_total)

        ignored = frozenset(selected - car.offered_option_ids)
        if ignored:
            logger.warning(
                "Ignoring options not offered by car",
                car_id=car.id,
                ignored_option_ids=sorted(ignored),
            )

        logger.debug(
            "Calculated price breakdown",
            car_id=car.id,
            base_price=str(base_price),
            options_total=str(options_total),
            total_price=str(total),
            option_count=len(lines),
        )

        return PriceBreakdown(
            car_id=car.id,
            base_price=base_price,
            option_prices=tuple(lines),
            options_total=options_total,
            exact_total=exact_total,
            total_price=total,
            ignored_option_ids=ignored,
        )

    def total_price(self, car: Car, selected_ids: Iterable[str]) -> Decimal:
        """
        Calculate base price plus the prices of the selected offered options.

        Args:
            car: Car with offered options
            selected_ids: Selected option ids

        Returns:
            Total price
        """
        return self.price_breakdown(car, selected_ids).total_price

    def minimum_price(
        self, car: Car, required_group_specs: Iterable[RequiredGroupSpec]
    ) -> Decimal:
        """
        Calculate the "from" price shown before any option is chosen.

        Base price plus the cheapest offered option of every required group,
        summed exactly and rounded once, so it equals the total price of the
        default selection.

        Args:
            car: Car with offered options
            required_group_specs: Global required group specifications

        Returns:
            Minimum achievable price
        """
        car = self._require_car(car)
        specs = list(required_group_specs)

        total = self.calculate_base_price(car)
        for group in self.resolver.required_groups(specs, car.offered_options):
            cheapest = self.resolver.cheapest_option(group, car.offered_options)
            if cheapest is not None:
                total += self.calculate_option_price(cheapest)

        self._validate_price(total, "minimum_price", car_id=car.id)
        total = self._quantize(total)

        logger.debug(
            "Calculated minimum price",
            car_id=car.id,
            minimum_price=str(total),
        )

        return total
