"""
Catalog snapshot schemas for the configuration engine.

This module defines immutable Pydantic models for the catalog data the engine
reads: options, cars with their offered options, explicit conflict edges and
required group specifications. Malformed collaborator data (negative prices,
duplicate offered options, self-referencing conflict edges) is rejected at
construction time.
"""

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from configurator.core.config import get_settings


def _default_conflict_type() -> str:
    return get_settings().default_conflict_type


class Option(BaseModel):
    """Schema for a single piece of optional equipment."""

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        ...,
        description="Unique identifier for the option",
        min_length=1,
        max_length=100,
    )
    name: str = Field(
        default="",
        description="Display name of the option (defaults to the id)",
        max_length=200,
    )
    category: str = Field(
        ...,
        description="Category of the option (e.g., 'engine', 'paint')",
        min_length=1,
        max_length=100,
    )
    price: Decimal = Field(
        ...,
        description="Price of the option",
        ge=0,
    )
    exclusive_group: Optional[str] = Field(
        None,
        description="Options sharing this label exclude each other",
        max_length=100,
    )
    is_required: bool = Field(
        default=False,
        description="Legacy per-option required hint, display only",
    )
    description: Optional[str] = Field(
        None,
        description="Option description",
        max_length=2000,
    )

    @field_validator("exclusive_group", mode="before")
    @classmethod
    def normalize_exclusive_group(cls, v: Any) -> Optional[str]:
        """Treat a blank exclusive group as no group."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="before")
    @classmethod
    def default_name_to_id(cls, data: Any) -> Any:
        """Fall back to the id when no display name is given."""
        if isinstance(data, dict) and not data.get("name") and data.get("id"):
            data = {**data, "name": data["id"]}
        return data

    @property
    def is_exclusive(self) -> bool:
        """Radio-button semantics: option belongs to an exclusive group."""
        return self.exclusive_group is not None


class Car(BaseModel):
    """Schema for a car and the options it offers for configuration."""

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        ...,
        description="Unique identifier for the car",
        min_length=1,
        max_length=100,
    )
    name: str = Field(
        default="",
        description="Display name of the car",
        max_length=200,
    )
    category: Optional[str] = Field(
        None,
        description="Car category (e.g., 'suv', 'sedan')",
        max_length=100,
    )
    base_price: Decimal = Field(
        ...,
        description="Base price before options",
        ge=0,
    )
    offered_options: tuple[Option, ...] = Field(
        default_factory=tuple,
        description="Options this car exposes, in display order",
    )

    @model_validator(mode="after")
    def validate_unique_options(self) -> "Car":
        """Reject cars offering the same option id twice."""
        seen: set[str] = set()
        duplicates = []
        for option in self.offered_options:
            if option.id in seen:
                duplicates.append(option.id)
            seen.add(option.id)
        if duplicates:
            raise ValueError(
                f"Car offers duplicate option ids: {', '.join(sorted(set(duplicates)))}"
            )
        return self

    @property
    def offered_option_ids(self) -> frozenset[str]:
        """Ids of every option offered by this car."""
        return frozenset(option.id for option in self.offered_options)

    def get_option(self, option_id: str) -> Optional[Option]:
        """
        Look up an offered option by id.

        Args:
            option_id: Option identifier

        Returns:
            The offered option or None if the car does not offer it
        """
        for option in self.offered_options:
            if option.id == option_id:
                return option
        return None

    def offers(self, option_id: str) -> bool:
        """Check whether the car offers the given option."""
        return self.get_option(option_id) is not None


class ConflictEdge(BaseModel):
    """Schema for an explicit, symmetric exclusion between two options."""

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    from_option_id: str = Field(
        ...,
        description="First option of the conflicting pair",
        min_length=1,
    )
    to_option_id: str = Field(
        ...,
        description="Second option of the conflicting pair",
        min_length=1,
    )
    conflict_type: str = Field(
        default_factory=_default_conflict_type,
        description="Kind of conflict, informational only",
        min_length=1,
    )

    @model_validator(mode="after")
    def validate_distinct_endpoints(self) -> "ConflictEdge":
        """An option cannot conflict with itself."""
        if self.from_option_id == self.to_option_id:
            raise ValueError(
                f"Conflict edge cannot join option '{self.from_option_id}' to itself"
            )
        return self

    def touches(self, option_id: str) -> bool:
        """Check whether either endpoint is the given option."""
        return option_id in (self.from_option_id, self.to_option_id)

    def other(self, option_id: str) -> Optional[str]:
        """
        Get the opposite endpoint of the edge.

        Args:
            option_id: One endpoint of the edge

        Returns:
            The other endpoint, or None if the edge does not touch option_id
        """
        if option_id == self.from_option_id:
            return self.to_option_id
        if option_id == self.to_option_id:
            return self.from_option_id
        return None


class RequiredGroupSpec(BaseModel):
    """Schema for the global required flag of an exclusive group."""

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    exclusive_group: str = Field(
        ...,
        description="Exclusive group name",
        min_length=1,
        max_length=100,
    )
    is_required: bool = Field(
        default=False,
        description="Whether a finalized selection needs one member of the group",
    )
    display_name: Optional[str] = Field(
        None,
        description="Human readable group name",
        max_length=200,
    )
    description: Optional[str] = Field(
        None,
        description="Group description",
        max_length=1000,
    )
