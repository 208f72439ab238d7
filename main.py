"""
Singapore Property Comparison Calculator

A Streamlit app to compare up to three properties, under construction (BUC)
or resale, over a holding period.

Features:
- Progressive loan disbursement for BUC properties (Year 1..Year 5 instalments)
- BSD, ABSD and SSD for the buyer's profile
- Own stay vs investment projections with rental income tax
- Net profit, ROE and total cash return side by side

Run with: streamlit run main.py
"""

import logging
import os

import streamlit as st
from datetime import date
from dateutil.relativedelta import relativedelta

from constants import (
    DEFAULT_COMPLETION_DATE,
    DEFAULT_HOLDING_YEARS,
    DEFAULT_TAX_BRACKET_ID,
    INTEREST_RATE_MAX_PCT,
    INTEREST_RATE_MIN_PCT,
    LTV_LIMIT_PCT,
    MAX_ANNUAL_GROWTH_PCT,
    MAX_HOLDING_YEARS,
    MAX_PROPERTIES,
    MAX_TENURE_YEARS,
    MAX_VACANCY_MONTHS,
    MIN_TENURE_YEARS,
    PRICE_MAX,
    PRICE_MIN,
    PRICE_STEP,
    RENTAL_COMMISSION_OPTIONS,
    SALES_COMMISSION_OPTIONS,
    SSD_HOLDING_THRESHOLD_YEARS,
    TAX_BRACKETS,
    get_tax_bracket_rate,
)
from calculations import (
    instalment_breakdown,
    instalment_for_month,
    project,
    property_schedule,
    stage_info,
    format_currency,
)
from charts import (
    create_comparison_table,
    create_disbursement_chart,
    create_expense_breakdown_chart,
    create_instalment_breakdown_chart,
    create_profit_comparison_chart,
)
from exceptions import ConfigurationError
from log_config import setup_logging
from models import (
    Citizenship,
    CommissionConfig,
    Mode,
    PropertyType,
    TaxProfile,
    new_property,
    update_property,
)
from policy import CalculatorPolicy

logger = logging.getLogger(__name__)


# =============================================================================
# PAGE CONFIG
# =============================================================================

st.set_page_config(
    page_title="Property Comparison Calculator",
    page_icon="🏢",
    layout="wide",
    initial_sidebar_state="expanded",
)


@st.cache_resource
def load_app_policy() -> CalculatorPolicy:
    """Rate tables for this session, from PROPERTY_CALC_POLICY if set."""
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    policy = CalculatorPolicy.from_env()
    logger.info("Property calculator started")
    return policy


# =============================================================================
# SESSION STATE
# =============================================================================

def init_state():
    """Seed the comparison with one default BUC property."""
    if "properties" not in st.session_state:
        st.session_state.properties = [new_property("Property 1")]


def find_index(prop_id: str) -> int:
    for i, prop in enumerate(st.session_state.properties):
        if prop.id == prop_id:
            return i
    raise KeyError(prop_id)


def widget_key(prop_id: str, field_name: str) -> str:
    return f"{prop_id}_{field_name}"


def on_field_change(prop_id: str, field_name: str):
    """Apply one widget edit and push the derived loan/LTV back to their widgets."""
    index = find_index(prop_id)
    updated = update_property(
        st.session_state.properties[index],
        field_name,
        st.session_state[widget_key(prop_id, field_name)],
    )
    st.session_state.properties[index] = updated

    st.session_state[widget_key(prop_id, "ltv")] = float(updated.ltv)
    st.session_state[widget_key(prop_id, "bank_loan")] = float(updated.bank_loan)


def on_commission_change(prop_id: str, field_name: str):
    key = widget_key(prop_id, field_name)
    config = CommissionConfig(
        rate=st.session_state[f"{key}_rate"],
        custom_amount=st.session_state[f"{key}_custom"],
        gst_enabled=st.session_state[f"{key}_gst"],
    )
    index = find_index(prop_id)
    st.session_state.properties[index] = update_property(
        st.session_state.properties[index], field_name, config
    )


def add_property():
    count = len(st.session_state.properties)
    if count < MAX_PROPERTIES:
        st.session_state.properties.append(new_property(f"Property {count + 1}"))


def remove_property(prop_id: str):
    st.session_state.properties.pop(find_index(prop_id))


def seed_widget(prop_id: str, field_name: str, value):
    key = widget_key(prop_id, field_name)
    if key not in st.session_state:
        st.session_state[key] = value
    return key


# =============================================================================
# SIDEBAR - GLOBAL SETTINGS
# =============================================================================

def render_sidebar() -> dict:
    """Render settings shared by every property."""
    st.sidebar.title("🏢 Property Comparison")
    st.sidebar.markdown("---")

    mode_label = st.sidebar.radio(
        "Purpose",
        ["Own Stay", "Investment"],
        horizontal=True,
        help="Rental income, vacancy and rental tax only apply to investment properties",
    )
    mode = Mode.OWN if mode_label == "Own Stay" else Mode.INVESTMENT

    holding_period = st.sidebar.number_input(
        "Holding Period (years)",
        min_value=0,
        max_value=MAX_HOLDING_YEARS,
        value=DEFAULT_HOLDING_YEARS,
        step=1,
        help="SSD applies if you sell within 4 years",
    )
    for i, prop in enumerate(st.session_state.properties):
        if prop.holding_period != holding_period:
            st.session_state.properties[i] = update_property(prop, "holding_period", holding_period)

    # =========================================================================
    # Buyer profile (ABSD)
    # =========================================================================
    st.sidebar.markdown("---")
    st.sidebar.header("👤 Buyer Profile")
    st.sidebar.caption("Applied to all properties")

    citizenship = st.sidebar.selectbox(
        "Citizenship",
        [c.value for c in Citizenship],
        format_func=lambda v: {
            "SC": "Singapore Citizen",
            "PR": "Permanent Resident",
            "Foreigner": "Foreigner",
            "Company": "Company / Entity",
        }[v],
    )
    property_count = st.sidebar.selectbox(
        "This property will be your",
        [1, 2, 3],
        format_func=lambda n: {1: "1st property", 2: "2nd property", 3: "3rd or subsequent"}[n],
    )
    profile = TaxProfile(citizenship=Citizenship(citizenship), property_count=property_count)

    # =========================================================================
    # Income tax
    # =========================================================================
    tax_bracket_rate = 0.0
    if mode == Mode.INVESTMENT:
        st.sidebar.markdown("---")
        st.sidebar.header("🧾 Income Tax")
        bracket_ids = [b["id"] for b in TAX_BRACKETS]
        bracket_id = st.sidebar.selectbox(
            "Chargeable Income Bracket",
            bracket_ids,
            index=bracket_ids.index(DEFAULT_TAX_BRACKET_ID),
            format_func=lambda i: next(
                f"{b['range']} ({b['rate']}%)" for b in TAX_BRACKETS if b["id"] == i
            ),
            help="Rental income is taxed at your marginal rate",
        )
        tax_bracket_rate = get_tax_bracket_rate(bracket_id)

    return {
        "mode": mode,
        "holding_period": holding_period,
        "profile": profile,
        "tax_bracket_rate": tax_bracket_rate,
    }


# =============================================================================
# PROPERTY INPUTS
# =============================================================================

def render_property_inputs(prop, mode: Mode):
    """Input column for one property."""
    pid = prop.id

    col1, col2 = st.columns([4, 1])
    with col1:
        st.text_input(
            "Name",
            key=seed_widget(pid, "name", prop.name),
            on_change=on_field_change, args=(pid, "name"),
        )
    with col2:
        st.write("")
        st.button("✖", key=f"{pid}_remove", on_click=remove_property, args=(pid,),
                  disabled=len(st.session_state.properties) == 1, help="Remove property")

    st.radio(
        "Type",
        [t.value for t in PropertyType],
        horizontal=True,
        key=seed_widget(pid, "property_type", prop.property_type.value),
        on_change=on_field_change, args=(pid, "property_type"),
    )

    st.number_input(
        "Purchase Price",
        min_value=float(PRICE_MIN), max_value=float(PRICE_MAX), step=float(PRICE_STEP),
        key=seed_widget(pid, "purchase_price", float(prop.purchase_price)),
        on_change=on_field_change, args=(pid, "purchase_price"),
    )

    col1, col2 = st.columns(2)
    with col1:
        st.number_input(
            "LTV %",
            min_value=0.0, max_value=LTV_LIMIT_PCT, step=1.0,
            key=seed_widget(pid, "ltv", float(prop.ltv)),
            on_change=on_field_change, args=(pid, "ltv"),
            help="Maximum 75%",
        )
    with col2:
        st.number_input(
            "Bank Loan",
            min_value=0.0, step=float(PRICE_STEP),
            key=seed_widget(pid, "bank_loan", float(prop.bank_loan)),
            on_change=on_field_change, args=(pid, "bank_loan"),
        )

    col1, col2 = st.columns(2)
    with col1:
        st.number_input(
            "Interest Rate %",
            min_value=INTEREST_RATE_MIN_PCT, max_value=INTEREST_RATE_MAX_PCT, step=0.01,
            key=seed_widget(pid, "interest_rate", float(prop.interest_rate)),
            on_change=on_field_change, args=(pid, "interest_rate"),
        )
    with col2:
        st.number_input(
            "Tenure (years)",
            min_value=MIN_TENURE_YEARS, max_value=MAX_TENURE_YEARS, step=1,
            key=seed_widget(pid, "loan_tenure", int(prop.loan_tenure)),
            on_change=on_field_change, args=(pid, "loan_tenure"),
        )

    if prop.is_buc:
        has_top = st.checkbox("TOP date known", value=prop.completion_date is not None, key=f"{pid}_has_top")
        if has_top:
            today = date.today()
            completion = st.date_input(
                "Est. TOP",
                value=prop.completion_date or DEFAULT_COMPLETION_DATE,
                min_value=today - relativedelta(years=1),
                max_value=today + relativedelta(years=8),
                key=f"{pid}_top_picker",
            )
        else:
            completion = None
        if completion != prop.completion_date:
            st.session_state.properties[find_index(pid)] = update_property(prop, "completion_date", completion)
            prop = st.session_state.properties[find_index(pid)]

        info = stage_info(prop)
        if info.months_to_top is not None:
            st.caption(f"{info.balance_months_after_top} months of the holding period after TOP")

    st.number_input(
        "Annual Growth %", min_value=0.0, max_value=MAX_ANNUAL_GROWTH_PCT, step=0.5,
        key=seed_widget(pid, "annual_growth", float(prop.annual_growth)),
        on_change=on_field_change, args=(pid, "annual_growth"),
    )

    if mode == Mode.INVESTMENT:
        col1, col2 = st.columns(2)
        with col1:
            st.number_input(
                "Monthly Rental", min_value=0.0, step=100.0,
                key=seed_widget(pid, "monthly_rental", float(prop.monthly_rental)),
                on_change=on_field_change, args=(pid, "monthly_rental"),
            )
        with col2:
            st.number_input(
                "Vacancy (months)", min_value=0, max_value=MAX_VACANCY_MONTHS, step=1,
                key=seed_widget(pid, "vacancy_months", int(prop.vacancy_months)),
                on_change=on_field_change, args=(pid, "vacancy_months"),
            )
        render_commission_inputs(prop, "rental_commission", "Rental Agent Commission", RENTAL_COMMISSION_OPTIONS)
    elif prop.is_buc:
        st.number_input(
            "Monthly Rent While Waiting", min_value=0.0, step=100.0,
            key=seed_widget(pid, "monthly_rent_while_waiting", float(prop.monthly_rent_while_waiting)),
            on_change=on_field_change, args=(pid, "monthly_rent_while_waiting"),
        )

    with st.expander("💸 Expenses"):
        for field_name, label in (
            ("monthly_maintenance", "Monthly Maintenance"),
            ("property_tax", "Est. Property Tax (total)"),
            ("minor_renovation", "Minor Renovation"),
            ("furniture_fittings", "Furniture & Fittings"),
            ("other_expenses", "Other Expenses"),
        ):
            st.number_input(
                label, min_value=0.0, step=100.0,
                key=seed_widget(pid, field_name, float(getattr(prop, field_name))),
                on_change=on_field_change, args=(pid, field_name),
            )
        render_commission_inputs(prop, "sales_commission", "Sales Agent Commission (%)", SALES_COMMISSION_OPTIONS)


def render_commission_inputs(prop, field_name: str, label: str, options: list[str]):
    pid = prop.id
    config = getattr(prop, field_name)

    rate = st.selectbox(
        label, options,
        key=seed_widget(pid, f"{field_name}_rate", config.rate if config.rate in options else "none"),
        on_change=on_commission_change, args=(pid, field_name),
    )
    st.number_input(
        "Custom Amount", min_value=0.0, step=100.0,
        key=seed_widget(pid, f"{field_name}_custom", float(config.custom_amount)),
        on_change=on_commission_change, args=(pid, field_name),
        disabled=rate != "other",
        label_visibility="collapsed" if rate != "other" else "visible",
    )
    st.checkbox(
        "GST is payable",
        key=seed_widget(pid, f"{field_name}_gst", config.gst_enabled),
        on_change=on_commission_change, args=(pid, field_name),
        disabled=rate in ("none", "other"),
    )


# =============================================================================
# MAIN CONTENT - TABS
# =============================================================================

def render_comparison_tab(results: dict, breakdowns: dict, settings: dict):
    """Tab 1: Side-by-side comparison table."""
    st.header("📊 Comparison")

    cols = st.columns(len(results))
    for col, (name, result) in zip(cols, results.items()):
        with col:
            st.metric(
                name,
                format_currency(result.net_profit),
                delta=f"ROE {result.roe:.1f}%",
                delta_color="normal" if result.net_profit >= 0 else "inverse",
                help="Net profit over the holding period",
            )

    table = create_comparison_table(
        results,
        breakdowns,
        hide_ssd=settings["holding_period"] >= SSD_HOLDING_THRESHOLD_YEARS,
    )
    st.dataframe(table, use_container_width=True)


def render_instalment_tab(breakdowns: dict, policy: CalculatorPolicy):
    """Tab 2: Instalments and progressive disbursement."""
    st.header("🏦 Monthly Instalments")
    st.plotly_chart(create_instalment_breakdown_chart(breakdowns), use_container_width=True)

    for prop in st.session_state.properties:
        if not prop.is_buc:
            continue
        st.subheader(f"{prop.name or 'Unnamed'} - Loan Drawdown")
        schedule = property_schedule(prop, prop.completion_date, policy=policy)
        if prop.completion_date is None:
            st.warning(
                "No TOP date set: the loan is never fully drawn within the projection, "
                "so instalments stay at the last construction milestone."
            )
        months = 5 * 12
        instalments = [
            instalment_for_month(schedule, prop.interest_rate, prop.tenure_months, m)
            for m in range(1, months + 1)
        ]
        st.plotly_chart(
            create_disbursement_chart(schedule, prop.loan_amount, instalments),
            use_container_width=True,
        )


def render_profit_tab(results: dict):
    """Tab 3: Profitability and expense charts."""
    st.header("📈 Profitability")
    st.plotly_chart(create_profit_comparison_chart(results), use_container_width=True)

    cols = st.columns(len(results))
    for col, (name, result) in zip(cols, results.items()):
        with col:
            st.plotly_chart(create_expense_breakdown_chart(result, name), use_container_width=True)


# =============================================================================
# MAIN
# =============================================================================

def main():
    try:
        policy = load_app_policy()
    except ConfigurationError as e:
        logger.error("Invalid calculator policy: %s", e)
        st.error(f"Invalid calculator policy: {e}")
        st.stop()
    init_state()
    settings = render_sidebar()

    st.title("🏢 Property Comparison Calculator")
    st.caption("Compare up to three BUC or resale properties over your holding period")

    cols = st.columns(len(st.session_state.properties) + 1)
    for col, prop in zip(cols, list(st.session_state.properties)):
        with col:
            render_property_inputs(prop, settings["mode"])
    with cols[-1]:
        st.button(
            "➕ Add Property",
            on_click=add_property,
            disabled=len(st.session_state.properties) >= MAX_PROPERTIES,
        )

    st.markdown("---")

    results = {}
    breakdowns = {}
    for i, prop in enumerate(st.session_state.properties):
        name = prop.name or f"Property {i + 1}"
        if name in results:
            name = f"{name} ({i + 1})"
        results[name] = project(
            prop,
            settings["mode"],
            settings["tax_bracket_rate"],
            profile=settings["profile"],
            policy=policy,
        )
        breakdowns[name] = instalment_breakdown(prop, policy=policy)

    tab1, tab2, tab3 = st.tabs(["📊 Comparison", "🏦 Instalments", "📈 Profitability"])
    with tab1:
        render_comparison_tab(results, breakdowns, settings)
    with tab2:
        render_instalment_tab(breakdowns, policy)
    with tab3:
        render_profit_tab(results)

    st.markdown("---")
    st.caption(
        "Estimates only. Stamp duty and progressive payment rates follow published IRAS "
        "and developer schedules; verify with your bank and lawyer before committing."
    )


main()
