"""
Singapore Property Comparison Calculator - Calculations

Core financial engine: mortgage instalments (including progressive
disbursement for properties under construction), stamp duties, and the
holding-period projection used to compare properties side by side.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from constants import (
    BSD_BRACKETS,
    COMMISSION_NONE,
    COMMISSION_OTHER,
    CSC_STAGE_NAME,
    LTV_LIMIT_PCT,
    MAX_ANNUAL_GROWTH_PCT,
    MAX_HOLDING_YEARS,
    MAX_VACANCY_MONTHS,
    SSD_HOLDING_THRESHOLD_YEARS,
    TOP_STAGE_NAME,
    get_absd_rate,
    get_ssd_rate,
)
from models import CommissionConfig, Mode, Property, TaxProfile, clean_amount
from policy import CalculatorPolicy, resolve_policy

logger = logging.getLogger(__name__)

# Number of years shown in the "Year 1 .. Year N" instalment breakdown
INSTALMENT_BREAKDOWN_YEARS = 5

RESALE_STAGE_NAME = "Full Disbursement"


@dataclass(frozen=True)
class DisbursementStage:
    """Loan drawn down by a construction milestone (cumulative)."""
    month_offset: int  # 1 = first month of the loan
    cumulative_loan_amount: float
    name: str = ""


@dataclass(frozen=True)
class StageInfo:
    """Where the holding period sits relative to completion (TOP)."""
    months_to_top: Optional[int]  # None = BUC without a completion date
    balance_months_after_top: int  # Months of the holding period after TOP


@dataclass(frozen=True)
class DutyBreakdown:
    """Stamp duties payable on a purchase and its eventual sale."""
    bsd: float
    absd: float
    ssd: float
    ssd_rate: float
    selling_year: int

    @property
    def total(self) -> float:
        return self.bsd + self.absd + self.ssd


@dataclass
class CalculationResult:
    """Projected outcome of holding one property over the holding period."""
    loan_percentage: float
    projected_growth: float
    rental_income: float
    vacancy_deduction: float
    gross_profit: float
    bank_interest: float
    maintenance_total: float
    property_tax: float
    tax_on_rental: float
    rent_while_waiting_total: float
    minor_renovation: float
    furniture_fittings: float
    other_expenses: float
    bsd: float
    absd: float
    ssd: float
    ssd_rate: float
    agent_commission: float
    sales_commission: float
    total_other_expenses: float
    projected_valuation: float
    net_profit: float
    equity: float
    roe: float
    total_cash_return: float
    not_applicable: frozenset = field(default_factory=frozenset)

    def is_applicable(self, field_id: str) -> bool:
        return field_id not in self.not_applicable


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def round_currency(amount: float) -> int:
    """Round to whole dollars, halves away from zero."""
    if amount < 0:
        return -int(math.floor(-amount + 0.5))
    return int(math.floor(amount + 0.5))


def months_between_dates(start_date: date, end_date: date) -> int:
    """Whole months from start_date to end_date (negative if end is earlier)."""
    months = (end_date.year - start_date.year) * 12 + (end_date.month - start_date.month)
    # A month only counts once its day of the month is reached
    if end_date.day < start_date.day:
        months -= 1
    return months


def _enum_value(value) -> str:
    return getattr(value, "value", value)


def format_currency(amount: float) -> str:
    """Format amount as Singapore dollars."""
    if amount >= 0:
        return f"${amount:,.0f}"
    else:
        return f"-${abs(amount):,.0f}"


# =============================================================================
# LOAN CALCULATIONS
# =============================================================================

def amortize(
    principal: float,
    annual_rate_pct: float,
    remaining_months: int
) -> float:
    """
    Calculate the level monthly instalment using the PMT formula.

    PMT = P * r / [1 - (1+r)^-n]
    where:
        P = Principal outstanding
        r = Monthly interest rate (annual % / 100 / 12)
        n = Remaining months

    Returns 0 for a non-positive principal or term (tranche not yet drawn,
    or loan already run its course).
    """
    principal = clean_amount(principal)
    if principal <= 0 or remaining_months <= 0:
        return 0.0

    r = clean_amount(annual_rate_pct) / 100 / 12
    n = remaining_months

    if r == 0:
        return principal / n

    # (1+r)^-n underflows to 0 for very long terms
    denominator = 1 - (1 + r) ** -n
    if denominator <= 0:
        return principal / n
    return principal * r / denominator


def calculate_bank_interest(loan_amount: float, annual_rate_pct: float, holding_years: int) -> float:
    """
    Simplified total interest over the holding period: loan x rate x years.

    This is a headline cost figure, separate from the instalment breakdown.
    """
    return clean_amount(loan_amount) * clean_amount(annual_rate_pct) / 100 * clean_amount(holding_years)


# =============================================================================
# PROGRESSIVE DISBURSEMENT (BUC)
# =============================================================================

def build_disbursement_schedule(
    total_loan: float,
    completion_date: Optional[date] = None,
    loan_start: Optional[date] = None,
    purchase_price: Optional[float] = None,
    policy: Optional[CalculatorPolicy] = None,
) -> list[DisbursementStage]:
    """
    Build the loan drawdown schedule for a property under construction.

    Each construction milestone bills a cumulative share of the purchase
    price. The buyer's own equity (price - loan) pays the earliest bills;
    the bank draws the rest. Milestones that draw nothing from the loan are
    left out.

    TOP is anchored to the completion date and CSC follows a fixed number of
    months later, releasing the final tranche. Without a completion date
    both are omitted and the loan is never fully drawn.

    Args:
        total_loan: Bank loan amount
        completion_date: Estimated TOP date, or None if unknown
        loan_start: Date of the first drawdown (month 1). Defaults to today.
        purchase_price: Price of the property. Defaults to the price at
            which total_loan sits at the LTV cap.
        policy: Rate tables; defaults from constants.py

    Returns:
        Stages strictly increasing in month offset and cumulative amount
    """
    policy = resolve_policy(policy)
    loan = clean_amount(total_loan)
    if loan <= 0:
        return []

    price = clean_amount(purchase_price)
    if price < loan:
        price = loan * 100 / LTV_LIMIT_PCT
    equity = price - loan

    top_month = None
    if completion_date is not None:
        start = loan_start or date.today()
        top_month = max(1, months_between_dates(start, completion_date) + 1)

    schedule: list[DisbursementStage] = []

    def add_stage(name: str, month: int, amount: float) -> None:
        amount = min(max(amount, 0.0), loan)
        drawn = schedule[-1].cumulative_loan_amount if schedule else 0.0
        if amount > drawn:
            schedule.append(DisbursementStage(month, amount, name))

    for name, month, cumulative_pct in policy.construction_stages:
        # Milestones falling on or after TOP are billed together with it
        if top_month is not None and month >= top_month:
            break
        add_stage(name, month, price * cumulative_pct - equity)

    if top_month is not None:
        add_stage(TOP_STAGE_NAME, top_month, price * policy.top_cumulative_pct - equity)
        add_stage(CSC_STAGE_NAME, top_month + policy.csc_offset_months, loan)

    logger.debug(
        "Built %d-stage disbursement schedule for loan %.0f (TOP month: %s)",
        len(schedule), loan, top_month,
    )
    return schedule


def property_schedule(
    prop: Property,
    completion_date: Optional[date] = None,
    loan_start: Optional[date] = None,
    policy: Optional[CalculatorPolicy] = None,
) -> list[DisbursementStage]:
    """Drawdown schedule for any property. Resale loans are drawn in full at month 1."""
    loan = prop.loan_amount
    if not prop.is_buc:
        return [DisbursementStage(1, loan, RESALE_STAGE_NAME)] if loan > 0 else []

    return build_disbursement_schedule(
        loan,
        completion_date,
        loan_start=loan_start,
        purchase_price=prop.purchase_price,
        policy=policy,
    )


# =============================================================================
# INSTALMENT BREAKDOWN
# =============================================================================

def active_stage(schedule: list[DisbursementStage], month: int) -> Optional[DisbursementStage]:
    """Latest stage triggered on or before the given month."""
    current = None
    for stage in schedule:
        if stage.month_offset <= month:
            current = stage
        else:
            break
    return current


def instalment_for_month(
    schedule: list[DisbursementStage],
    annual_rate_pct: float,
    total_tenure_months: int,
    month: int
) -> float:
    """
    Instalment due in a given loan month.

    The tenure clock starts at month 1 regardless of when principal is
    drawn. At each drawdown the bank re-amortizes the cumulative amount over
    the term then remaining; the payment stays level until the next one.
    """
    if total_tenure_months - (month - 1) <= 0:
        return 0.0

    stage = active_stage(schedule, month)
    if stage is None:
        return 0.0

    remaining_at_drawdown = total_tenure_months - (stage.month_offset - 1)
    return amortize(stage.cumulative_loan_amount, annual_rate_pct, remaining_at_drawdown)


def yearly_average(
    schedule: list[DisbursementStage],
    annual_rate_pct: float,
    total_tenure_months: int,
    target_year: int
) -> int:
    """Average monthly instalment over the 12 months of a projection year, in whole dollars."""
    if target_year < 1:
        return 0

    first_month = (target_year - 1) * 12 + 1
    total = sum(
        instalment_for_month(schedule, annual_rate_pct, total_tenure_months, month)
        for month in range(first_month, first_month + 12)
    )
    return round_currency(total / 12)


def yearly_instalment(
    prop: Property,
    completion_date: Optional[date],
    year: int,
    loan_start: Optional[date] = None,
    policy: Optional[CalculatorPolicy] = None,
) -> int:
    """Average monthly instalment for one year of a property's loan."""
    schedule = property_schedule(prop, completion_date, loan_start, policy)
    return yearly_average(schedule, prop.interest_rate, prop.tenure_months, year)


def instalment_breakdown(
    prop: Property,
    years: int = INSTALMENT_BREAKDOWN_YEARS,
    loan_start: Optional[date] = None,
    policy: Optional[CalculatorPolicy] = None,
) -> list[int]:
    """Average monthly instalment for Year 1 .. Year N, using the property's own TOP date."""
    schedule = property_schedule(prop, prop.completion_date, loan_start, policy)
    return [
        yearly_average(schedule, prop.interest_rate, prop.tenure_months, year)
        for year in range(1, years + 1)
    ]


# =============================================================================
# STAMP DUTIES & TAX
# =============================================================================

def calculate_bsd(purchase_price: float, brackets: list = None) -> float:
    """
    Calculate Buyer's Stamp Duty (BSD) on residential property.

    Each band's slice of the price is taxed at that band's rate:
    - First $180,000: 1%
    - Next $180,000: 2%
    - Next $640,000: 3%
    - Next $500,000: 4%
    - Next $1,500,000: 5%
    - Remaining amount: 6%

    Returns:
        Duty rounded down to the nearest dollar, minimum $1 when any is due
    """
    price = clean_amount(purchase_price)
    if price <= 0:
        return 0.0

    if brackets is None:
        brackets = BSD_BRACKETS

    total_duty = 0.0
    remaining = price

    for band_amount, rate in brackets:
        if remaining <= 0:
            break

        taxable_amount = remaining if band_amount is None else min(remaining, band_amount)
        total_duty += taxable_amount * rate
        remaining -= taxable_amount

    if total_duty <= 0:
        return 0.0
    return max(1.0, float(math.floor(total_duty)))


def calculate_absd(
    purchase_price: float,
    citizenship: str,
    property_count: int,
    rates: dict = None
) -> float:
    """Additional Buyer's Stamp Duty: one flat rate on the full price."""
    rate = get_absd_rate(_enum_value(citizenship), property_count, rates)
    return float(round_currency(clean_amount(purchase_price) * rate))


def calculate_ssd(base_amount: float, selling_year: int, rates: dict = None) -> float:
    """
    Seller's Stamp Duty on the sale price.

    selling_year is the year of sale counted from purchase: 1 = within the
    first 12 months. Rates 16% / 12% / 8% / 4%, nothing from year 5.
    """
    return clean_amount(base_amount) * get_ssd_rate(selling_year, rates)


def calculate_rental_income_tax(rental_income: float, bracket_rate: float) -> float:
    """Income tax on rental at the caller's marginal bracket rate (%)."""
    return clean_amount(rental_income) * clean_amount(bracket_rate) / 100


def compute_duties(
    purchase_price: float,
    profile: TaxProfile,
    selling_year: int,
    sale_price: Optional[float] = None,
    policy: Optional[CalculatorPolicy] = None,
) -> DutyBreakdown:
    """
    All stamp duties for one purchase.

    SSD is charged on sale_price when given (the projected valuation),
    otherwise on the purchase price.
    """
    policy = resolve_policy(policy)
    ssd_base = sale_price if sale_price is not None else purchase_price
    ssd_rate = get_ssd_rate(selling_year, policy.ssd_rates)

    return DutyBreakdown(
        bsd=calculate_bsd(purchase_price, policy.bsd_brackets),
        absd=calculate_absd(purchase_price, profile.citizenship, profile.property_count, policy.absd_rates),
        ssd=calculate_ssd(ssd_base, selling_year, policy.ssd_rates),
        ssd_rate=ssd_rate,
        selling_year=int(selling_year),
    )


# =============================================================================
# COMMISSIONS
# =============================================================================

def _commission_rate(config: CommissionConfig) -> Optional[float]:
    """Numeric preset rate, or None for "none", unset or unparseable selections."""
    if not config.rate or config.rate == COMMISSION_NONE:
        return None
    try:
        return float(config.rate)
    except ValueError:
        logger.debug("Ignoring unknown commission rate %r", config.rate)
        return None


def calculate_rental_commission(
    config: CommissionConfig,
    monthly_rental: float,
    rental_months: int,
    gst_rate: float
) -> float:
    """
    Rental agent commission over the rented months.

    Preset rates are months of rent per year of tenancy (e.g. "1" = one
    month's rent for every 12 months rented).
    """
    if config.rate == COMMISSION_OTHER:
        return clean_amount(config.custom_amount)

    rate = _commission_rate(config)
    if rate is None:
        return 0.0

    commission = clean_amount(monthly_rental) * rate * clean_amount(rental_months) / 12
    if config.gst_enabled:
        commission *= 1 + gst_rate
    return float(round_currency(commission))


def calculate_sales_commission(config: CommissionConfig, sale_price: float, gst_rate: float) -> float:
    """Sales agent commission: a percentage of the sale price."""
    if config.rate == COMMISSION_OTHER:
        return clean_amount(config.custom_amount)

    rate = _commission_rate(config)
    if rate is None:
        return 0.0

    commission = clean_amount(sale_price) * rate / 100
    if config.gst_enabled:
        commission *= 1 + gst_rate
    return float(round_currency(commission))


# =============================================================================
# FIELD APPLICABILITY (N/A gating)
# =============================================================================

RENTAL_INCOME = "rental_income"
VACANCY_DEDUCTION = "vacancy_deduction"
TAX_ON_RENTAL = "tax_on_rental"
AGENT_COMMISSION = "agent_commission"
MAINTENANCE_TOTAL = "maintenance_total"
PROPERTY_TAX = "property_tax"
MINOR_RENOVATION = "minor_renovation"
FURNITURE_FITTINGS = "furniture_fittings"
RENT_WHILE_WAITING = "rent_while_waiting_total"
SSD = "ssd"

_RENTAL_FIELDS = {RENTAL_INCOME, VACANCY_DEDUCTION, TAX_ON_RENTAL, AGENT_COMMISSION}
_COMPLETED_FIELDS = {MAINTENANCE_TOTAL, PROPERTY_TAX, MINOR_RENOVATION, FURNITURE_FITTINGS}

GATED_FIELDS = sorted(_RENTAL_FIELDS | _COMPLETED_FIELDS | {RENT_WHILE_WAITING, SSD})


def stage_info(prop: Property, loan_start: Optional[date] = None) -> StageInfo:
    """
    Months until TOP and months of the holding period left after it.

    Resale properties are already completed, so the whole holding period
    counts as after TOP.
    """
    holding_months = int(min(clean_amount(prop.holding_period), MAX_HOLDING_YEARS)) * 12
    if not prop.is_buc:
        return StageInfo(months_to_top=0, balance_months_after_top=holding_months)

    if prop.completion_date is None:
        return StageInfo(months_to_top=None, balance_months_after_top=0)

    start = loan_start or date.today()
    months_to_top = max(0, months_between_dates(start, prop.completion_date))
    return StageInfo(
        months_to_top=months_to_top,
        balance_months_after_top=max(0, holding_months - months_to_top),
    )


def is_applicable(field_id: str, prop: Property, mode: Mode, info: StageInfo) -> bool:
    """Whether a result field applies to this property, mode and construction stage."""
    completed = not prop.is_buc or info.balance_months_after_top > 0

    if field_id in _RENTAL_FIELDS:
        return Mode(mode) == Mode.INVESTMENT and completed
    if field_id in _COMPLETED_FIELDS:
        return completed
    if field_id == RENT_WHILE_WAITING:
        return Mode(mode) == Mode.OWN and prop.is_buc
    if field_id == SSD:
        return int(clean_amount(prop.holding_period)) < SSD_HOLDING_THRESHOLD_YEARS
    return True


# =============================================================================
# PROJECTION
# =============================================================================

def project(
    prop: Property,
    mode: Mode,
    tax_bracket_rate: float,
    vacancy_months: Optional[int] = None,
    profile: Optional[TaxProfile] = None,
    loan_start: Optional[date] = None,
    policy: Optional[CalculatorPolicy] = None,
) -> CalculationResult:
    """
    Project the outcome of holding a property for its holding period.

    Args:
        prop: Property to project
        mode: Own stay or investment
        tax_bracket_rate: Marginal income tax rate (%) for rental income
        vacancy_months: Months without a tenant; defaults to the property's own
        profile: Buyer profile for ABSD, shared across compared properties
        loan_start: Reference date for months to TOP. Defaults to today.
        policy: Rate tables; defaults from constants.py

    Returns:
        CalculationResult; fields that do not apply are 0 and listed in
        not_applicable
    """
    policy = resolve_policy(policy)
    profile = profile or TaxProfile()
    mode = Mode(mode)

    years = int(min(clean_amount(prop.holding_period), MAX_HOLDING_YEARS))
    holding_months = years * 12
    price = clean_amount(prop.purchase_price)
    loan = prop.loan_amount
    info = stage_info(prop, loan_start)

    not_applicable = frozenset(
        field_id for field_id in GATED_FIELDS if not is_applicable(field_id, prop, mode, info)
    )

    def applies(field_id: str) -> bool:
        return field_id not in not_applicable

    # Growth
    loan_percentage = loan / max(1.0, price) * 100
    growth_pct = min(clean_amount(prop.annual_growth), MAX_ANNUAL_GROWTH_PCT)
    projected_growth = price * (1 + growth_pct / 100) ** years - price
    projected_valuation = price + projected_growth

    # Rental
    monthly_rental = clean_amount(prop.monthly_rental)
    rental_months = info.balance_months_after_top
    if vacancy_months is None:
        vacancy_months = prop.vacancy_months
    vacancy = min(clean_amount(vacancy_months), MAX_VACANCY_MONTHS)

    rental_income = monthly_rental * rental_months if applies(RENTAL_INCOME) else 0.0
    vacancy_deduction = vacancy * monthly_rental if applies(VACANCY_DEDUCTION) else 0.0
    gross_profit = projected_growth + rental_income - vacancy_deduction

    # Holding costs
    bank_interest = calculate_bank_interest(loan, prop.interest_rate, years)
    maintenance_total = (
        clean_amount(prop.monthly_maintenance) * info.balance_months_after_top
        if applies(MAINTENANCE_TOTAL) else 0.0
    )
    property_tax = clean_amount(prop.property_tax) if applies(PROPERTY_TAX) else 0.0
    tax_on_rental = (
        calculate_rental_income_tax(rental_income, tax_bracket_rate)
        if applies(TAX_ON_RENTAL) else 0.0
    )

    rent_while_waiting_total = 0.0
    if applies(RENT_WHILE_WAITING):
        # No TOP date: renting elsewhere for the whole holding period. Otherwise
        # charged until TOP but never beyond the sale at the end of the holding period.
        waiting_months = holding_months if info.months_to_top is None else min(info.months_to_top, holding_months)
        rent_while_waiting_total = clean_amount(prop.monthly_rent_while_waiting) * waiting_months

    minor_renovation = clean_amount(prop.minor_renovation) if applies(MINOR_RENOVATION) else 0.0
    furniture_fittings = clean_amount(prop.furniture_fittings) if applies(FURNITURE_FITTINGS) else 0.0
    other_expenses = clean_amount(prop.other_expenses)

    agent_commission = (
        calculate_rental_commission(prop.rental_commission, monthly_rental, rental_months, policy.gst_rate)
        if applies(AGENT_COMMISSION) else 0.0
    )
    sales_commission = calculate_sales_commission(prop.sales_commission, projected_valuation, policy.gst_rate)

    # Duties: selling happens in the year after the holding period ends
    duties = compute_duties(price, profile, years + 1, projected_valuation, policy)
    ssd = duties.ssd if applies(SSD) else 0.0

    total_other_expenses = (
        bank_interest
        + maintenance_total
        + property_tax
        + tax_on_rental
        + rent_while_waiting_total
        + minor_renovation
        + furniture_fittings
        + agent_commission
        + sales_commission
        + other_expenses
        + duties.bsd
        + duties.absd
        + ssd
    )

    net_profit = gross_profit - total_other_expenses
    equity = price - loan
    roe = net_profit / equity * 100 if equity > 0 else 0.0
    total_cash_return = net_profit + (projected_valuation - loan)

    logger.debug(
        "Projected %s over %d years: net profit %.0f, ROE %.2f%%",
        prop.name or prop.id, years, net_profit, roe,
    )

    return CalculationResult(
        loan_percentage=loan_percentage,
        projected_growth=projected_growth,
        rental_income=rental_income,
        vacancy_deduction=vacancy_deduction,
        gross_profit=gross_profit,
        bank_interest=bank_interest,
        maintenance_total=maintenance_total,
        property_tax=property_tax,
        tax_on_rental=tax_on_rental,
        rent_while_waiting_total=rent_while_waiting_total,
        minor_renovation=minor_renovation,
        furniture_fittings=furniture_fittings,
        other_expenses=other_expenses,
        bsd=duties.bsd,
        absd=duties.absd,
        ssd=ssd,
        ssd_rate=duties.ssd_rate if applies(SSD) else 0.0,
        agent_commission=agent_commission,
        sales_commission=sales_commission,
        total_other_expenses=total_other_expenses,
        projected_valuation=projected_valuation,
        net_profit=net_profit,
        equity=equity,
        roe=roe,
        total_cash_return=total_cash_return,
        not_applicable=not_applicable,
    )
