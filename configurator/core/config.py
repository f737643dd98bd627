"""
Engine configuration management with environment variables.

This module provides centralized configuration management using Pydantic
BaseSettings for type-safe environment variable handling with validation
and default values.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Engine settings with environment variable support.

    All settings can be overridden via environment variables with the
    CONFIGURATOR_ prefix (e.g., CONFIGURATOR_LOG_LEVEL, CONFIGURATOR_MAX_PRICE).
    """

    model_config = SettingsConfigDict(
        env_prefix="CONFIGURATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Configuration
    app_name: str = Field(
        default="Configurator Engine",
        description="Application name",
    )

    app_version: str = Field(
        default="1.0.0",
        description="Application version",
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Environment Configuration
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application logging level",
    )

    # Pricing Configuration
    price_decimal_places: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Decimal places used when reporting computed prices",
    )

    max_price: Decimal = Field(
        default=Decimal("10000000.00"),
        gt=0,
        description="Upper bound for catalog prices and computed totals",
    )

    # Rule Configuration
    allow_option_required_hint: bool = Field(
        default=False,
        description=(
            "Treat an option's own is_required flag as marking its exclusive "
            "group required, in addition to the required group specs"
        ),
    )

    default_conflict_type: str = Field(
        default="exclusive",
        min_length=1,
        description="Conflict type assigned to conflict edges that omit one",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """
        Normalize log level to upper case.

        Args:
            v: Log level value

        Returns:
            Upper-cased log level
        """
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("default_conflict_type")
    @classmethod
    def validate_default_conflict_type(cls, v: str) -> str:
        """
        Validate default conflict type.

        Args:
            v: Conflict type value

        Returns:
            Stripped conflict type

        Raises:
            ValueError: If conflict type is blank
        """
        if not v.strip():
            raise ValueError("Default conflict type cannot be blank")
        return v.strip()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_staging(self) -> bool:
        """Check if running in staging environment."""
        return self.environment == "staging"

    @property
    def price_quantum(self) -> Decimal:
        """Smallest reported price unit, e.g. Decimal('0.01')."""
        return Decimal(1).scaleb(-self.price_decimal_places)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached engine settings instance.

    This function uses lru_cache to ensure settings are loaded only once
    and reused across the engine lifecycle.

    Returns:
        Settings: Engine settings instance
    """
    return Settings()
