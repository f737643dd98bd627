"""
Validation result schemas for the configuration engine.

This module defines the error taxonomy and the result models returned by the
compatibility check, the required group check and the orchestrating
configuration validator. Rule violations are reported as data in these models,
never raised as exceptions.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ValidationErrorKind(str, Enum):
    """Kinds of rule violations a selection can have."""

    UNKNOWN_OPTION = "unknown_option"
    EXCLUSIVE_GROUP_CONFLICT = "exclusive_group_conflict"
    MISSING_REQUIRED_GROUP = "missing_required_group"


class ValidationIssue(BaseModel):
    """Single rule violation with the ids or groups involved."""

    model_config = ConfigDict(frozen=True)

    kind: ValidationErrorKind = Field(
        ...,
        description="Violated rule",
    )
    message: str = Field(
        ...,
        description="Human readable description of the violation",
    )
    option_ids: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Option ids involved in the violation",
    )
    groups: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Exclusive groups involved in the violation",
    )


class ConflictPair(BaseModel):
    """Two selected options that exclude each other."""

    model_config = ConfigDict(frozen=True)

    first_option_id: str
    second_option_id: str
    exclusive_group: Optional[str] = Field(
        None,
        description="Shared exclusive group, if the conflict is group based",
    )
    conflict_type: Optional[str] = Field(
        None,
        description="Conflict edge type, if the conflict is an explicit edge",
    )

    @property
    def option_ids(self) -> frozenset[str]:
        return frozenset((self.first_option_id, self.second_option_id))

    def describe(self) -> str:
        """Render the pair for messages."""
        if self.exclusive_group is not None:
            return (
                f"'{self.first_option_id}' and '{self.second_option_id}' "
                f"(exclusive group \"{self.exclusive_group}\")"
            )
        return (
            f"'{self.first_option_id}' and '{self.second_option_id}' "
            f"(conflict: {self.conflict_type})"
        )


class ConflictCheckResult(BaseModel):
    """Outcome of the pairwise compatibility check."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    conflicting_option_ids: frozenset[str] = Field(default_factory=frozenset)
    conflicting_pairs: tuple[ConflictPair, ...] = Field(default_factory=tuple)
    message: str = ""


class RequiredCheckResult(BaseModel):
    """Outcome of the required group completeness check."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    missing_required_groups: frozenset[str] = Field(default_factory=frozenset)
    over_selected_groups: frozenset[str] = Field(
        default_factory=frozenset,
        description="Required groups with more than one selected member",
    )
    message: str = ""


class ValidationVerdict(BaseModel):
    """Aggregate pass/fail verdict for a configuration."""

    model_config = ConfigDict(frozen=True)

    car_id: Optional[str] = None
    is_valid: bool
    conflicting_option_ids: frozenset[str] = Field(default_factory=frozenset)
    missing_required_groups: frozenset[str] = Field(default_factory=frozenset)
    unknown_option_ids: frozenset[str] = Field(default_factory=frozenset)
    issues: tuple[ValidationIssue, ...] = Field(default_factory=tuple)
    message: str = ""

    def errors_of(self, kind: ValidationErrorKind) -> list[ValidationIssue]:
        """
        Get issues of a single kind.

        Args:
            kind: Error kind to filter by

        Returns:
            Issues of that kind, in reporting order
        """
        return [issue for issue in self.issues if issue.kind == kind]

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues]
