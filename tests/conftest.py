"""Pytest configuration and fixtures."""

from datetime import date

import pytest

from models import Property, new_property
from policy import CalculatorPolicy


@pytest.fixture
def loan_start() -> date:
    """Fixed first-drawdown date so month counts are reproducible."""
    return date(2026, 1, 1)


@pytest.fixture
def default_policy() -> CalculatorPolicy:
    return CalculatorPolicy()


@pytest.fixture
def buc_property() -> Property:
    """$1M BUC at 75% LTV, 1.94% over 30 years, no TOP date yet."""
    return new_property(
        "Sky Residences",
        property_type="BUC",
        purchase_price=1_000_000,
        interest_rate=1.94,
        loan_tenure=30,
    )


@pytest.fixture
def resale_property() -> Property:
    """$2.5M resale at 75% LTV, 1.94% over 30 years."""
    return new_property(
        "Orchard Court",
        property_type="Resale",
        purchase_price=2_500_000,
        interest_rate=1.94,
        loan_tenure=30,
    )
