"""Tests for chart and table builders."""

from datetime import date

import plotly.graph_objects as go
import pytest

from calculations import build_disbursement_schedule, instalment_breakdown, project
from charts import (
    NOT_APPLICABLE,
    create_comparison_table,
    create_disbursement_chart,
    create_expense_breakdown_chart,
    create_instalment_breakdown_chart,
    create_profit_comparison_chart,
    format_result_value,
)
from models import Mode, update_property


@pytest.fixture
def results(buc_property, resale_property):
    resale = update_property(resale_property, "monthly_rental", 6_000)
    return {
        "Sky Residences": project(buc_property, Mode.INVESTMENT, 11.5),
        "Orchard Court": project(resale, Mode.INVESTMENT, 11.5),
    }


@pytest.fixture
def breakdowns(buc_property, resale_property):
    return {
        "Sky Residences": instalment_breakdown(buc_property),
        "Orchard Court": instalment_breakdown(resale_property),
    }


class TestCharts:
    """Tests for the plotly figures."""

    def test_instalment_breakdown(self, breakdowns) -> None:
        fig = create_instalment_breakdown_chart(breakdowns)

        assert isinstance(fig, go.Figure)
        assert len(fig.data) == 2
        assert list(fig.data[0].x) == ["Year 1", "Year 2", "Year 3", "Year 4", "Year 5"]

    def test_disbursement(self) -> None:
        schedule = build_disbursement_schedule(
            750_000, date(2028, 1, 1), loan_start=date(2026, 1, 1), purchase_price=1_000_000
        )
        fig = create_disbursement_chart(schedule, 750_000, instalments=[100.0] * 60)

        assert len(fig.data) == 2
        # Starts from zero before the first drawdown
        assert fig.data[0].y[0] == 0
        assert fig.data[0].y[-1] == 750_000

    def test_disbursement_empty(self) -> None:
        fig = create_disbursement_chart([], 0)

        assert len(fig.data) == 0

    def test_profit_comparison(self, results) -> None:
        fig = create_profit_comparison_chart(results)

        assert len(fig.data) == 4
        assert list(fig.data[0].x) == list(results)

    def test_expense_breakdown_skips_zero(self, results) -> None:
        fig = create_expense_breakdown_chart(results["Sky Residences"], "Sky Residences")
        labels = fig.data[0].labels

        assert any(label.startswith("BSD") for label in labels)
        assert not any(label.startswith("Maintenance") for label in labels)


class TestComparisonTable:
    """Tests for the side-by-side table."""

    def test_shape(self, results) -> None:
        table = create_comparison_table(results)

        assert list(table.columns) == ["Sky Residences", "Orchard Court"]
        assert "Net Profit" in table.index
        assert "SSD Payable" in table.index

    def test_not_applicable_cells(self, results) -> None:
        table = create_comparison_table(results)

        assert table.loc["Rental Income", "Sky Residences"] == NOT_APPLICABLE
        assert table.loc["Rental Income", "Orchard Court"] == "$288,000"

    def test_hide_ssd(self, results) -> None:
        table = create_comparison_table(results, hide_ssd=True)

        assert "SSD Payable" not in table.index

    def test_instalment_rows(self, results, breakdowns) -> None:
        table = create_comparison_table(results, breakdowns)

        assert "Monthly Instalment Year 5" in table.index
        assert table.loc["Monthly Instalment Year 1", "Orchard Court"].startswith("$")

    def test_format_percent(self, results) -> None:
        assert format_result_value(results["Orchard Court"], "loan_percentage", percent=True) == "75.00%"
