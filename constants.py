"""
Singapore Property Comparison Calculator - Constants

Published stamp duty rates, income tax brackets, the Progressive Payment
Scheme for properties under construction, and defaults for the UI.
Last updated: October 2026
"""

from datetime import date

# =============================================================================
# LOAN PARAMETERS
# =============================================================================

# Loan-to-Value hard cap (%). Bank loan can never exceed 75% of price.
LTV_LIMIT_PCT = 75.0

# Default bank rate used when a property has none entered
DEFAULT_INTEREST_RATE_PCT = 2.84

INTEREST_RATE_MIN_PCT = 0.01
INTEREST_RATE_MAX_PCT = 5.0

DEFAULT_TENURE_YEARS = 30
MIN_TENURE_YEARS = 1
MAX_TENURE_YEARS = 35

# Holding horizon used for every projection unless overridden
DEFAULT_HOLDING_YEARS = 4
MAX_HOLDING_YEARS = 30

# Upper bound on projected annual capital growth (%)
MAX_ANNUAL_GROWTH_PCT = 30.0

MAX_VACANCY_MONTHS = 24

# Maximum number of properties compared side by side
MAX_PROPERTIES = 3


# =============================================================================
# PROGRESSIVE PAYMENT SCHEME (BUC)
# =============================================================================

# Cumulative share of the purchase price paid before construction starts:
# 5% booking fee + 15% on signing the S&P agreement. Always paid in cash/CPF
# since LTV is capped at 75%.
UPFRONT_PAYMENT_PCT = 0.20

# Construction milestones before completion.
# Format: (stage name, month offset from loan start, cumulative % of price)
# Month 1 is the month of the first loan drawdown.
CONSTRUCTION_STAGES = [
    ("Foundation", 1, 0.30),             # +10%
    ("Reinforced Concrete", 7, 0.40),    # +10%
    ("Brick Walls", 13, 0.45),           # +5%
    ("Ceiling/Roofing", 16, 0.50),       # +5%
    ("Electrical/Plumbing", 19, 0.55),   # +5% (incl. door & window frames)
    ("Roads/Car Parks", 22, 0.60),       # +5% (incl. drainage)
]

# Temporary Occupation Permit: +25%, anchored to the estimated TOP date
TOP_STAGE_NAME = "TOP"
TOP_CUMULATIVE_PCT = 0.85

# Certificate of Statutory Completion: final 15%, fixed months after TOP
CSC_STAGE_NAME = "CSC"
CSC_OFFSET_MONTHS = 12


# =============================================================================
# STAMP DUTIES
# =============================================================================

# Buyer's Stamp Duty (BSD) rates for residential property
# Effective from 15 Feb 2023 (Source: IRAS)
# Format: (band size, marginal rate); None = remaining amount
BSD_BRACKETS = [
    (180000, 0.01),      # First $180,000: 1%
    (180000, 0.02),      # Next $180,000: 2%
    (640000, 0.03),      # Next $640,000: 3%
    (500000, 0.04),      # Next $500,000: 4%
    (1500000, 0.05),     # Next $1,500,000: 5%
    (None, 0.06),        # Remaining amount: 6%
]

# Additional Buyer's Stamp Duty (ABSD) on the full price
# Effective from 27 Apr 2023 (Source: IRAS)
# Format: citizenship -> (1st property, 2nd property, 3rd and subsequent)
ABSD_RATES = {
    "SC": (0.0, 0.20, 0.30),
    "PR": (0.05, 0.30, 0.35),
    "Foreigner": (0.60, 0.60, 0.60),
    "Company": (0.65, 0.65, 0.65),
}

# Seller's Stamp Duty (SSD) by year of sale, for property bought on or after
# 4 Jul 2025. Selling in year 5 or later is not liable.
SSD_RATES = {
    1: 0.16,
    2: 0.12,
    3: 0.08,
    4: 0.04,
}

# SSD only applies while the holding period is shorter than this
SSD_HOLDING_THRESHOLD_YEARS = 4

GST_RATE = 0.09  # 9% GST (as of 2024)


def get_absd_rate(citizenship: str, property_count: int, rates: dict = None) -> float:
    """Get the ABSD rate for a buyer profile. Property count is clamped to 1, 2, 3+."""
    table = rates if rates is not None else ABSD_RATES
    # Unknown profiles fall back to the foreigner rates
    tiers = table.get(citizenship) or table["Foreigner"]
    index = min(max(int(property_count), 1), 3) - 1
    return tiers[index]


def get_ssd_rate(selling_year: int, rates: dict = None) -> float:
    """Get the SSD rate for the year of sale (1 = within the first year)."""
    table = rates if rates is not None else SSD_RATES
    return table.get(int(selling_year), 0.0)


# =============================================================================
# PERSONAL INCOME TAX (for rental income)
# =============================================================================

# Marginal rate for each chargeable income band, YA 2024 onwards
# Source: IRAS resident tax rates
TAX_BRACKETS = [
    {"id": "0-20k", "range": "$0 - $20k", "rate": 0},
    {"id": "20-30k", "range": "$20k - $30k", "rate": 2},
    {"id": "30-40k", "range": "$30k - $40k", "rate": 3.5},
    {"id": "40-80k", "range": "$40k - $80k", "rate": 7},
    {"id": "80-120k", "range": "$80k - $120k", "rate": 11.5},
    {"id": "120-160k", "range": "$120k - $160k", "rate": 15},
    {"id": "160-200k", "range": "$160k - $200k", "rate": 18},
    {"id": "200-240k", "range": "$200k - $240k", "rate": 19},
    {"id": "240-280k", "range": "$240k - $280k", "rate": 19.5},
    {"id": "280-320k", "range": "$280k - $320k", "rate": 20},
    {"id": "320-500k", "range": "$320k - $500k", "rate": 22},
    {"id": "500k-1m", "range": "$500k - $1m", "rate": 23},
    {"id": "above-1m", "range": "Above $1m", "rate": 24},
]


def get_tax_bracket_rate(bracket_id: str) -> float:
    """Get the marginal rate (%) for a tax bracket id. Unknown ids are taxed at 0%."""
    for bracket in TAX_BRACKETS:
        if bracket["id"] == bracket_id:
            return bracket["rate"]
    return 0.0


# =============================================================================
# COMMISSIONS
# =============================================================================

# Rental agent commission: months of rent per year of tenancy
RENTAL_COMMISSION_OPTIONS = ["0.5", "1", "1.5", "2", "none", "other"]

# Sales agent commission: % of sale price
SALES_COMMISSION_OPTIONS = [
    "0.50", "0.75", "1.00", "1.25", "1.50", "1.75",
    "2.00", "2.50", "3.00", "3.50", "none", "other",
]

COMMISSION_NONE = "none"
COMMISSION_OTHER = "other"


# =============================================================================
# DEFAULT VALUES FOR UI
# =============================================================================

DEFAULT_PROPERTY = {
    "name": "",
    "property_type": "BUC",
    "purchase_price": 1_000_000,
    "ltv": LTV_LIMIT_PCT,
    "bank_loan": 750_000,
    "interest_rate": DEFAULT_INTEREST_RATE_PCT,
    "loan_tenure": DEFAULT_TENURE_YEARS,
    "completion_date": None,
    "holding_period": DEFAULT_HOLDING_YEARS,
    "annual_growth": 5.0,
    "monthly_rental": 0,
    "vacancy_months": 0,
    "monthly_maintenance": 0,
    "monthly_rent_while_waiting": 0,
    "property_tax": 0,
    "minor_renovation": 0,
    "furniture_fittings": 0,
    "other_expenses": 0,
}

DEFAULT_TAX_BRACKET_ID = "80-120k"
DEFAULT_CITIZENSHIP = "SC"
DEFAULT_PROPERTY_COUNT = 1

# Default TOP shown in the date picker for new BUC entries
DEFAULT_COMPLETION_DATE = date(2029, 6, 30)

# Price range for inputs
PRICE_MIN = 0
PRICE_MAX = 50_000_000
PRICE_STEP = 10_000
