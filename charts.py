"""
Singapore Property Comparison Calculator - Charts

Plotly chart generators and table builders for comparing projected
outcomes, instalments and loan drawdown across properties.
"""

import plotly.graph_objects as go
import pandas as pd
from plotly.subplots import make_subplots

from calculations import (
    AGENT_COMMISSION,
    FURNITURE_FITTINGS,
    MAINTENANCE_TOTAL,
    MINOR_RENOVATION,
    PROPERTY_TAX,
    RENT_WHILE_WAITING,
    RENTAL_INCOME,
    SSD,
    TAX_ON_RENTAL,
    VACANCY_DEDUCTION,
    CalculationResult,
    DisbursementStage,
    format_currency,
)


# =============================================================================
# COLOR SCHEME
# =============================================================================

COLORS = {
    "primary": "#1f77b4",      # Blue
    "secondary": "#ff7f0e",    # Orange
    "success": "#2ca02c",      # Green
    "danger": "#d62728",       # Red
    "warning": "#ffbb33",      # Yellow
    "info": "#17becf",         # Cyan
    "duty": "#9467bd",         # Purple (for stamp duties)
    "interest": "#8c564b",     # Brown (for bank interest)
}

# One colour per compared property, in column order
PROPERTY_COLORS = ["#1f77b4", "#ff7f0e", "#2ca02c"]

NOT_APPLICABLE = "N/A"


# =============================================================================
# INSTALMENT BREAKDOWN CHART
# =============================================================================

def create_instalment_breakdown_chart(breakdowns: dict[str, list[int]]) -> go.Figure:
    """
    Grouped bar chart of average monthly instalment per year.

    Args:
        breakdowns: Property name -> [Year 1, Year 2, ...] instalments
    """
    fig = go.Figure()

    for i, (name, instalments) in enumerate(breakdowns.items()):
        years = [f"Year {y}" for y in range(1, len(instalments) + 1)]
        fig.add_trace(go.Bar(
            x=years,
            y=instalments,
            name=name,
            marker_color=PROPERTY_COLORS[i % len(PROPERTY_COLORS)],
            hovertemplate=f"{name}<br>%{{x}}: $%{{y:,.0f}}/month<extra></extra>",
        ))

    fig.update_layout(
        title="Average Monthly Instalment by Year",
        barmode="group",
        yaxis_title="Monthly Instalment ($)",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        height=400,
    )
    fig.update_yaxes(tickformat="$,.0f")

    return fig


# =============================================================================
# DISBURSEMENT SCHEDULE CHART
# =============================================================================

def create_disbursement_chart(
    schedule: list[DisbursementStage],
    total_loan: float,
    instalments: list[float] = None,
) -> go.Figure:
    """
    Step chart of the cumulative loan drawn at each construction milestone.

    When monthly instalments are supplied they are plotted on a second axis.
    Shows a dashed line at the full loan amount so an incomplete schedule
    (no TOP date) stands out.
    """
    fig = make_subplots(specs=[[{"secondary_y": True}]])

    if schedule:
        months = [0] + [stage.month_offset for stage in schedule]
        drawn = [0.0] + [stage.cumulative_loan_amount for stage in schedule]
        labels = ["Start"] + [stage.name for stage in schedule]

        fig.add_trace(
            go.Scatter(
                x=months,
                y=drawn,
                name="Loan Drawn",
                mode="lines+markers",
                line=dict(color=COLORS["primary"], width=3, shape="hv"),
                text=labels,
                hovertemplate="%{text}<br>Month %{x}<br>Drawn: $%{y:,.0f}<extra></extra>",
            ),
            secondary_y=False,
        )

    if instalments:
        fig.add_trace(
            go.Scatter(
                x=list(range(1, len(instalments) + 1)),
                y=instalments,
                name="Monthly Instalment",
                line=dict(color=COLORS["secondary"], width=2),
                hovertemplate="Month %{x}<br>Instalment: $%{y:,.0f}<extra></extra>",
            ),
            secondary_y=True,
        )

    fig.add_hline(
        y=total_loan,
        line=dict(color=COLORS["danger"], width=2, dash="dash"),
        annotation_text=f"Full Loan: {format_currency(total_loan)}",
        annotation_position="right",
        secondary_y=False,
    )

    fig.update_layout(
        title="Progressive Loan Disbursement",
        xaxis_title="Months from First Drawdown",
        hovermode="x unified",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        height=400,
    )
    fig.update_yaxes(title_text="Cumulative Loan ($)", tickformat="$,.0f", secondary_y=False)
    fig.update_yaxes(title_text="Instalment ($)", tickformat="$,.0f", secondary_y=True)

    return fig


# =============================================================================
# PROFIT COMPARISON CHART
# =============================================================================

def create_profit_comparison_chart(results: dict[str, CalculationResult]) -> go.Figure:
    """Grouped bars of gross profit, expenses, net profit and cash return per property."""
    metrics = [
        ("Gross Profit", "gross_profit", COLORS["info"]),
        ("Total Expenses", "total_other_expenses", COLORS["danger"]),
        ("Net Profit", "net_profit", COLORS["success"]),
        ("Total Cash Return", "total_cash_return", COLORS["primary"]),
    ]
    names = list(results.keys())

    fig = go.Figure()
    for label, attr, color in metrics:
        fig.add_trace(go.Bar(
            x=names,
            y=[getattr(result, attr) for result in results.values()],
            name=label,
            marker_color=color,
            hovertemplate=f"%{{x}}<br>{label}: $%{{y:,.0f}}<extra></extra>",
        ))

    fig.update_layout(
        title="Profitability Comparison",
        barmode="group",
        yaxis_title="Amount ($)",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        height=420,
    )
    fig.update_yaxes(tickformat="$,.0f")

    return fig


# =============================================================================
# EXPENSE BREAKDOWN CHART
# =============================================================================

EXPENSE_COMPONENTS = [
    ("Bank Interest", "bank_interest", COLORS["interest"]),
    ("BSD", "bsd", COLORS["duty"]),
    ("ABSD", "absd", "#c5b0d5"),
    ("SSD", "ssd", "#e377c2"),
    ("Maintenance", "maintenance_total", COLORS["info"]),
    ("Property Tax", "property_tax", "#bcbd22"),
    ("Tax on Rental", "tax_on_rental", COLORS["warning"]),
    ("Rent While Waiting", "rent_while_waiting_total", "#7f7f7f"),
    ("Renovation", "minor_renovation", "#aec7e8"),
    ("Furniture & Fittings", "furniture_fittings", "#ffbb78"),
    ("Agent Commission", "agent_commission", "#98df8a"),
    ("Sales Commission", "sales_commission", COLORS["success"]),
    ("Other Expenses", "other_expenses", "#ff9896"),
]


def create_expense_breakdown_chart(result: CalculationResult, name: str = "") -> go.Figure:
    """Donut chart of the expenses making up total other expenses."""
    values = []
    labels = []
    colors = []

    for label, attr, color in EXPENSE_COMPONENTS:
        amount = getattr(result, attr)
        if amount > 0:
            values.append(amount)
            labels.append(f"{label}<br>{format_currency(amount)}")
            colors.append(color)

    fig = go.Figure(data=[go.Pie(
        labels=labels,
        values=values,
        marker_colors=colors,
        hole=0.4,
        textinfo="percent",
        textposition="outside",
        hovertemplate="%{label}<br>%{percent}<extra></extra>",
    )])

    title = f"Expenses: {format_currency(result.total_other_expenses)}"
    fig.update_layout(
        title=f"{name} - {title}" if name else title,
        height=380,
        showlegend=True,
        legend=dict(orientation="h", yanchor="top", y=-0.1),
    )

    return fig


# =============================================================================
# COMPARISON TABLE
# =============================================================================

# (row label, result attribute, applicability field id or None, is percentage)
COMPARISON_ROWS = [
    ("Loan %", "loan_percentage", None, True),
    ("Projected Growth", "projected_growth", None, False),
    ("Rental Income", "rental_income", RENTAL_INCOME, False),
    ("Vacancy Deduction", "vacancy_deduction", VACANCY_DEDUCTION, False),
    ("Gross Profit", "gross_profit", None, False),
    ("Bank Interest", "bank_interest", None, False),
    ("Maintenance", "maintenance_total", MAINTENANCE_TOTAL, False),
    ("Property Tax", "property_tax", PROPERTY_TAX, False),
    ("Tax on Rental", "tax_on_rental", TAX_ON_RENTAL, False),
    ("Rent While Waiting", "rent_while_waiting_total", RENT_WHILE_WAITING, False),
    ("Minor Renovation", "minor_renovation", MINOR_RENOVATION, False),
    ("Furniture & Fittings", "furniture_fittings", FURNITURE_FITTINGS, False),
    ("Agent Commission", "agent_commission", AGENT_COMMISSION, False),
    ("Sales Commission", "sales_commission", None, False),
    ("Other Expenses", "other_expenses", None, False),
    ("BSD", "bsd", None, False),
    ("ABSD", "absd", None, False),
    ("SSD Payable", "ssd", SSD, False),
    ("Total Other Expenses", "total_other_expenses", None, False),
    ("Projected Valuation", "projected_valuation", None, False),
    ("Net Profit", "net_profit", None, False),
    ("ROE", "roe", None, True),
    ("Total Cash Return", "total_cash_return", None, False),
]


def format_result_value(result: CalculationResult, attr: str, field_id: str = None, percent: bool = False) -> str:
    """Format one result cell, or N/A when the field does not apply."""
    if field_id is not None and not result.is_applicable(field_id):
        return NOT_APPLICABLE
    value = getattr(result, attr)
    if percent:
        return f"{value:.2f}%"
    return format_currency(value)


def create_comparison_table(
    results: dict[str, CalculationResult],
    breakdowns: dict[str, list[int]] = None,
    hide_ssd: bool = False,
) -> pd.DataFrame:
    """
    Side-by-side comparison table: one column per property.

    SSD is dropped entirely when hide_ssd is set (holding period of 4 years
    or more). Instalment breakdown rows are appended when supplied.
    """
    rows = {}
    for label, attr, field_id, percent in COMPARISON_ROWS:
        if hide_ssd and field_id == SSD:
            continue
        rows[label] = [
            format_result_value(result, attr, field_id, percent)
            for result in results.values()
        ]

    if breakdowns:
        years = max(len(values) for values in breakdowns.values())
        for year in range(years):
            rows[f"Monthly Instalment Year {year + 1}"] = [
                format_currency(breakdowns[name][year]) if year < len(breakdowns.get(name, [])) else NOT_APPLICABLE
                for name in results
            ]

    return pd.DataFrame.from_dict(rows, orient="index", columns=list(results.keys()))
