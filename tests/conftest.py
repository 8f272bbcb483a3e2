"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

from underwriter.main import app
from underwriter.schemas import (
    PropertyFacts,
    RentRoll,
    RentRollUnit,
    UnderwritingAssumptions,
    UnitStatus,
)


@pytest.fixture
def assumptions():
    """Default underwriting assumption set."""
    return UnderwritingAssumptions()


@pytest.fixture
def facts():
    """75 units at $1,500 with an $15M whisper price."""
    return PropertyFacts(
        property_name="Maple Court Apartments",
        whisper_price=15_000_000,
        units=75,
        occupancy=0.95,
        avg_monthly_rent=1500,
        market_cap_rate=0.06,
    )


@pytest.fixture
def rent_roll():
    """80 units, 76 occupied, $90,000 a month in place."""
    return RentRoll(
        total_units=80,
        occupied_units=76,
        vacant_units=4,
        total_monthly_rent=90_000,
        average_monthly_rent=1125,
        occupancy_rate=0.95,
    )


@pytest.fixture
def small_rent_roll():
    """Three unit lines, one vacant."""
    return RentRoll.from_units(
        [
            RentRollUnit(unit_number="1A", unit_type="1BR", monthly_rent=1000),
            RentRollUnit(unit_number="1B", unit_type="1BR", monthly_rent=1100),
            RentRollUnit(
                unit_number="2A",
                unit_type="2BR",
                monthly_rent=1300,
                status=UnitStatus.vacant,
            ),
        ]
    )


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)
