"""
Singapore Property Comparison Calculator - Models

Property records compared side by side, the shared buyer tax profile, and
the single entry point used to edit a property field by field.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Optional

from constants import (
    COMMISSION_NONE,
    DEFAULT_CITIZENSHIP,
    DEFAULT_PROPERTY,
    DEFAULT_PROPERTY_COUNT,
    INTEREST_RATE_MAX_PCT,
    INTEREST_RATE_MIN_PCT,
    LTV_LIMIT_PCT,
    MAX_ANNUAL_GROWTH_PCT,
    MAX_HOLDING_YEARS,
    MAX_TENURE_YEARS,
    MAX_VACANCY_MONTHS,
    MIN_TENURE_YEARS,
)
from exceptions import InvalidFieldError

logger = logging.getLogger(__name__)


class PropertyType(str, Enum):
    BUC = "BUC"
    RESALE = "Resale"


class Mode(str, Enum):
    OWN = "own"
    INVESTMENT = "investment"


class Citizenship(str, Enum):
    SC = "SC"
    PR = "PR"
    FOREIGNER = "Foreigner"
    COMPANY = "Company"


@dataclass(frozen=True)
class CommissionConfig:
    """Agent commission selection: a preset rate, "other" for a custom amount, or "none"."""
    rate: str = COMMISSION_NONE
    custom_amount: float = 0.0
    gst_enabled: bool = False


@dataclass(frozen=True)
class TaxProfile:
    """Buyer profile driving ABSD. Shared by every property being compared."""
    citizenship: Citizenship = Citizenship(DEFAULT_CITIZENSHIP)
    property_count: int = DEFAULT_PROPERTY_COUNT


@dataclass(frozen=True)
class Property:
    """A property scenario. Never mutated; edits go through update_property."""
    id: str
    name: str
    property_type: PropertyType
    purchase_price: float
    ltv: float
    bank_loan: float
    interest_rate: float
    loan_tenure: int
    completion_date: Optional[date]
    holding_period: int
    annual_growth: float
    monthly_rental: float
    vacancy_months: int
    monthly_maintenance: float
    monthly_rent_while_waiting: float
    property_tax: float
    minor_renovation: float
    furniture_fittings: float
    other_expenses: float
    rental_commission: CommissionConfig = field(default_factory=CommissionConfig)
    sales_commission: CommissionConfig = field(default_factory=CommissionConfig)

    @property
    def is_buc(self) -> bool:
        return self.property_type == PropertyType.BUC

    @property
    def loan_amount(self) -> float:
        """Bank loan actually used by the engine, re-clipped to the LTV ceiling."""
        return min(clean_amount(self.bank_loan), max_loan_for_price(self.purchase_price))

    @property
    def tenure_months(self) -> int:
        return int(clean_amount(self.loan_tenure)) * 12


# =============================================================================
# INPUT CLEANING
# =============================================================================

def clean_amount(value: Any) -> float:
    """
    Coerce a user-entered number to a safe non-negative float.

    None, non-numeric, non-finite and negative values all become 0 so data
    entry never interrupts a calculation.
    """
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def clamp(value: float, lower: float, upper: float) -> float:
    return min(max(value, lower), upper)


def max_loan_for_price(purchase_price: float) -> float:
    """Largest loan allowed for a price under the LTV cap."""
    return clean_amount(purchase_price) * LTV_LIMIT_PCT / 100


def loan_from_ltv(purchase_price: float, ltv: float) -> float:
    return clean_amount(purchase_price) * clamp(clean_amount(ltv), 0, LTV_LIMIT_PCT) / 100


def ltv_from_loan(purchase_price: float, bank_loan: float) -> float:
    """LTV % for a loan, after clipping the loan to the cap. Zero price gives 0%."""
    price = clean_amount(purchase_price)
    if price <= 0:
        return 0.0
    loan = min(clean_amount(bank_loan), max_loan_for_price(price))
    return loan / price * 100


# =============================================================================
# PROPERTY LIFECYCLE
# =============================================================================

_MONEY_FIELDS = {
    "monthly_rental",
    "monthly_maintenance",
    "monthly_rent_while_waiting",
    "property_tax",
    "minor_renovation",
    "furniture_fittings",
    "other_expenses",
}

# Fields applied first when several are set at once, so the loan/LTV pair
# is derived from the final price
_UPDATE_ORDER = ["property_type", "purchase_price", "ltv", "bank_loan"]


def update_property(prop: Property, field_name: str, value: Any) -> Property:
    """
    Return a copy of the property with one field changed.

    Editing the price or LTV recomputes the bank loan; editing the bank loan
    recomputes the LTV. Both directions respect the 75% LTV ceiling.
    """
    if field_name == "purchase_price":
        price = clean_amount(value)
        return replace(prop, purchase_price=price, bank_loan=loan_from_ltv(price, prop.ltv))

    if field_name == "ltv":
        ltv = clamp(clean_amount(value), 0, LTV_LIMIT_PCT)
        return replace(prop, ltv=ltv, bank_loan=loan_from_ltv(prop.purchase_price, ltv))

    if field_name == "bank_loan":
        loan = min(clean_amount(value), max_loan_for_price(prop.purchase_price))
        return replace(prop, bank_loan=loan, ltv=ltv_from_loan(prop.purchase_price, loan))

    if field_name == "interest_rate":
        rate = clamp(clean_amount(value), INTEREST_RATE_MIN_PCT, INTEREST_RATE_MAX_PCT)
        return replace(prop, interest_rate=rate)

    if field_name == "loan_tenure":
        tenure = int(clamp(clean_amount(value), MIN_TENURE_YEARS, MAX_TENURE_YEARS))
        return replace(prop, loan_tenure=tenure)

    if field_name == "holding_period":
        return replace(prop, holding_period=int(min(clean_amount(value), MAX_HOLDING_YEARS)))

    if field_name == "annual_growth":
        return replace(prop, annual_growth=min(clean_amount(value), MAX_ANNUAL_GROWTH_PCT))

    if field_name == "vacancy_months":
        return replace(prop, vacancy_months=int(clamp(clean_amount(value), 0, MAX_VACANCY_MONTHS)))

    if field_name == "property_type":
        property_type = PropertyType(value)
        # Resale properties are already completed
        completion = prop.completion_date if property_type == PropertyType.BUC else None
        return replace(prop, property_type=property_type, completion_date=completion)

    if field_name == "completion_date":
        if value is not None and not isinstance(value, date):
            raise InvalidFieldError(f"completion_date must be a date, got {type(value).__name__}")
        return replace(prop, completion_date=value)

    if field_name == "name":
        return replace(prop, name=str(value or "").strip())

    if field_name in ("rental_commission", "sales_commission"):
        if not isinstance(value, CommissionConfig):
            raise InvalidFieldError(f"{field_name} must be a CommissionConfig")
        return replace(prop, **{field_name: replace(value, custom_amount=clean_amount(value.custom_amount))})

    if field_name in _MONEY_FIELDS:
        return replace(prop, **{field_name: clean_amount(value)})

    raise InvalidFieldError(f"Unknown or read-only property field: {field_name}")


def new_property(name: str = "", **overrides: Any) -> Property:
    """Create a property from the default template, then apply any overrides."""
    template = dict(DEFAULT_PROPERTY)
    template["property_type"] = PropertyType(template["property_type"])
    prop = Property(id=str(uuid.uuid4()), **template)
    prop = update_property(prop, "name", name)

    ordered = sorted(
        overrides.items(),
        key=lambda item: _UPDATE_ORDER.index(item[0]) if item[0] in _UPDATE_ORDER else len(_UPDATE_ORDER),
    )
    for field_name, value in ordered:
        prop = update_property(prop, field_name, value)

    logger.debug("Created property %s (%s)", prop.id, prop.property_type.value)
    return prop
