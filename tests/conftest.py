"""
Pytest configuration and shared test fixtures.

This module provides the shared catalog used across the engine tests: a car
offering two engines (required group), two paints (optional group), a
non-exclusive sound system and a tow hitch joined by an explicit conflict
edge, plus settings helpers that keep tests independent of the environment.
"""

from decimal import Decimal

import pytest

from configurator.core.config import Settings, get_settings
from configurator.schemas.catalog import Car, ConflictEdge, Option, RequiredGroupSpec
from configurator.services.catalog.memory import InMemoryCatalogView


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """
    Reset cached settings between tests.

    Ensures environment overrides made through monkeypatch in one test do
    not leak into another.

    Yields:
        None: Control returns to test after setup
    """
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Create default engine settings for testing."""
    return Settings(_env_file=None)


@pytest.fixture
def sport_engine() -> Option:
    return Option(
        id="sport-engine",
        name="Sport Engine",
        category="Engine",
        price=Decimal("5000.00"),
        exclusive_group="engine",
    )


@pytest.fixture
def hybrid_engine() -> Option:
    return Option(
        id="hybrid-engine",
        name="Hybrid Engine",
        category="Engine",
        price=Decimal("3000.00"),
        exclusive_group="engine",
    )


@pytest.fixture
def metallic_paint() -> Option:
    return Option(
        id="metallic-paint",
        name="Metallic Paint",
        category="Paint",
        price=Decimal("1000.00"),
        exclusive_group="paint",
    )


@pytest.fixture
def pearl_paint() -> Option:
    return Option(
        id="pearl-paint",
        name="Pearl Paint",
        category="Paint",
        price=Decimal("1500.00"),
        exclusive_group="paint",
    )


@pytest.fixture
def premium_sound() -> Option:
    return Option(
        id="premium-sound",
        name="Premium Sound",
        category="Comfort",
        price=Decimal("800.00"),
    )


@pytest.fixture
def tow_hitch() -> Option:
    return Option(
        id="tow-hitch",
        name="Tow Hitch",
        category="Exterior",
        price=Decimal("650.00"),
    )


@pytest.fixture
def offered_options(
    sport_engine, hybrid_engine, metallic_paint, pearl_paint, premium_sound, tow_hitch
) -> list[Option]:
    """Offered options in display order."""
    return [sport_engine, hybrid_engine, metallic_paint, pearl_paint, premium_sound, tow_hitch]


@pytest.fixture
def car(offered_options) -> Car:
    """Create sample car with base price 45000."""
    return Car(
        id="roadster",
        name="Roadster",
        category="Sports",
        base_price=Decimal("45000.00"),
        offered_options=offered_options,
    )


@pytest.fixture
def required_group_specs() -> list[RequiredGroupSpec]:
    """Engine required, paint optional, wheels required but not offered."""
    return [
        RequiredGroupSpec(exclusive_group="engine", is_required=True, display_name="Engine"),
        RequiredGroupSpec(exclusive_group="paint", is_required=False, display_name="Paint"),
        RequiredGroupSpec(exclusive_group="wheels", is_required=True, display_name="Wheels"),
    ]


@pytest.fixture
def conflict_edges() -> list[ConflictEdge]:
    """Sport engine cannot be combined with the tow hitch."""
    return [
        ConflictEdge(
            from_option_id="sport-engine",
            to_option_id="tow-hitch",
            conflict_type="incompatible",
        )
    ]


@pytest.fixture
def catalog(car, required_group_specs, conflict_edges) -> InMemoryCatalogView:
    """Create in-memory catalog holding the sample car."""
    return InMemoryCatalogView(
        cars=[car],
        required_group_specs=required_group_specs,
        conflict_edges=conflict_edges,
    )
