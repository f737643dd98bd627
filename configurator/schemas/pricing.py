"""
Pricing breakdown schemas.

Defines the itemized price result returned for a concrete selection.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OptionPrice(BaseModel):
    """Price line for one selected option."""

    model_config = ConfigDict(frozen=True)

    option_id: str
    name: str
    price: Decimal = Field(..., ge=0)


class PriceBreakdown(BaseModel):
    """Itemized price of a car with a concrete option selection."""

    model_config = ConfigDict(frozen=True)

    car_id: str
    base_price: Decimal = Field(..., ge=0)
    option_prices: tuple[OptionPrice, ...] = Field(default_factory=tuple)
    options_total: Decimal = Field(..., ge=0)
    exact_total: Decimal = Field(
        ...,
        description="Unrounded sum of base price and option prices",
        ge=0,
    )
    total_price: Decimal = Field(
        ...,
        description="Exact total rounded to the reporting precision",
        ge=0,
    )
    ignored_option_ids: frozenset[str] = Field(
        default_factory=frozenset,
        description="Selected ids the car does not offer, excluded from pricing",
    )

    @model_validator(mode="after")
    def validate_totals(self) -> "PriceBreakdown":
        """Validate that the lines add up."""
        expected_options = sum(
            (line.price for line in self.option_prices), start=Decimal("0")
        )
        if expected_options != self.options_total:
            raise ValueError(
                f"Options total mismatch: expected {expected_options}, "
                f"got {self.options_total}"
            )
        if self.base_price + self.options_total != self.exact_total:
            raise ValueError(
                f"Total mismatch: expected {self.base_price + self.options_total}, "
                f"got {self.exact_total}"
            )
        return self
