"""
Business rules engine for configuration validation.

This module implements the ConfigurationValidator which orchestrates the
membership check, the compatibility check and the required group check into a
single verdict consumed before a configuration is saved. All checks run on
every call so one verdict reports every problem at once.
"""

from typing import Any, Iterable, Optional, Sequence

from configurator.core.logging import get_logger
from configurator.schemas.catalog import Car, ConflictEdge, RequiredGroupSpec
from configurator.schemas.validation import (
    ValidationErrorKind,
    ValidationIssue,
    ValidationVerdict,
)
from configurator.services.catalog.view import CatalogDataError
from configurator.services.configuration.compatibility import CompatibilityEngine
from configurator.services.configuration.required_groups import RequiredGroupResolver

logger = get_logger(__name__)


class ConfigurationValidationError(Exception):
    """Exception raised when a configuration must be valid but is not."""

    def __init__(
        self,
        message: str,
        verdict: ValidationVerdict,
        **context: Any
    ):
        """
        Initialize configuration validation error.

        Args:
            message: Error message
            verdict: Failed validation verdict
            **context: Additional error context
        """
        super().__init__(message)
        self.verdict = verdict
        self.errors = verdict.error_messages
        self.context = context


class ConfigurationValidator:
    """
    Orchestrates all configuration rules into one verdict.

    Attributes:
        compatibility: Engine for mutually exclusive options
        resolver: Resolver for required groups
    """

    VALID_MESSAGE = "Configuration is valid"

    def __init__(
        self,
        compatibility: Optional[CompatibilityEngine] = None,
        resolver: Optional[RequiredGroupResolver] = None,
    ):
        self.compatibility = compatibility or CompatibilityEngine()
        self.resolver = resolver or RequiredGroupResolver()

    def validate(
        self,
        car: Car,
        required_group_specs: Iterable[RequiredGroupSpec],
        conflict_edges: Iterable[ConflictEdge],
        selected_ids: Iterable[str],
    ) -> ValidationVerdict:
        """
        Validate a selection against a car.

        Runs, in order, the membership check, the compatibility check and the
        required group check. Options the car does not offer are reported as
        unknown and left out of the other two checks.

        Args:
            car: Car with offered options
            required_group_specs: Global required group specifications
            conflict_edges: Explicit conflict edges
            selected_ids: Selected option ids

        Returns:
            ValidationVerdict; is_valid is the conjunction of all three checks

        Raises:
            CatalogDataError: If no car is supplied
        """
        if car is None:
            raise CatalogDataError("Car is required for configuration validation")

        selected = set(selected_ids)
        specs = list(required_group_specs)
        edges = list(conflict_edges)

        logger.info(
            "Validating configuration",
            car_id=car.id,
            option_count=len(selected),
        )

        issues: list[ValidationIssue] = []

        # Membership
        unknown_ids = frozenset(selected - car.offered_option_ids)
        if unknown_ids:
            issues.append(self._unknown_option_issue(car, unknown_ids))
        known_ids = selected - unknown_ids

        # Compatibility
        conflict_result = self.compatibility.validate(
            known_ids, car.offered_options, edges
        )
        if not conflict_result.is_valid:
            issues.append(
                ValidationIssue(
                    kind=ValidationErrorKind.EXCLUSIVE_GROUP_CONFLICT,
                    message=conflict_result.message,
                    option_ids=tuple(sorted(conflict_result.conflicting_option_ids)),
                    groups=tuple(
                        sorted(
                            {
                                pair.exclusive_group
                                for pair in conflict_result.conflicting_pairs
                                if pair.exclusive_group is not None
                            }
                        )
                    ),
                )
            )

        # Required groups
        required_result = self.resolver.validate_required(
            known_ids, car.offered_options, specs
        )
        if not required_result.is_valid:
            issues.append(
                ValidationIssue(
                    kind=ValidationErrorKind.MISSING_REQUIRED_GROUP,
                    message=required_result.message,
                    groups=tuple(sorted(required_result.missing_required_groups)),
                )
            )

        is_valid = not issues
        verdict = ValidationVerdict(
            car_id=car.id,
            is_valid=is_valid,
            conflicting_option_ids=conflict_result.conflicting_option_ids,
            missing_required_groups=required_result.missing_required_groups,
            unknown_option_ids=unknown_ids,
            issues=tuple(issues),
            message=self._build_message(issues),
        )

        if is_valid:
            logger.info(
                "Configuration validation successful",
                car_id=car.id,
                option_count=len(selected),
            )
        else:
            logger.warning(
                "Configuration validation failed",
                car_id=car.id,
                error_count=len(issues),
                errors=verdict.error_messages,
            )

        return verdict

    def _unknown_option_issue(
        self, car: Car, unknown_ids: frozenset[str]
    ) -> ValidationIssue:
        ordered = tuple(sorted(unknown_ids))
        logger.warning(
            "Options not offered by car",
            car_id=car.id,
            unknown_option_ids=list(ordered),
        )
        return ValidationIssue(
            kind=ValidationErrorKind.UNKNOWN_OPTION,
            message=(
                f"Options not offered by car {car.id}: {', '.join(ordered)}"
            ),
            option_ids=ordered,
        )

    def _build_message(self, issues: Sequence[ValidationIssue]) -> str:
        if not issues:
            return self.VALID_MESSAGE
        return "; ".join(issue.message for issue in issues)
