"""Tests for the holding-period projection and field applicability."""

import dataclasses
from datetime import date

import pytest

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
    StageInfo,
    is_applicable,
    project,
    stage_info,
)
from models import Citizenship, CommissionConfig, Mode, TaxProfile, update_property
from policy import CalculatorPolicy

TAX_RATE = 11.5

EXPENSE_FIELDS = [
    "bank_interest",
    "maintenance_total",
    "property_tax",
    "tax_on_rental",
    "rent_while_waiting_total",
    "minor_renovation",
    "furniture_fittings",
    "agent_commission",
    "sales_commission",
    "other_expenses",
    "bsd",
    "absd",
    "ssd",
]


def with_fields(prop, **values):
    for field_name, value in values.items():
        prop = update_property(prop, field_name, value)
    return prop


class TestStageInfo:
    """Tests for months to TOP and months after TOP."""

    def test_resale(self, resale_property) -> None:
        assert stage_info(resale_property) == StageInfo(0, 48)

    def test_buc_without_completion(self, buc_property) -> None:
        assert stage_info(buc_property) == StageInfo(None, 0)

    def test_buc_completing_within_holding(self, buc_property, loan_start: date) -> None:
        prop = update_property(buc_property, "completion_date", date(2028, 1, 1))
        assert stage_info(prop, loan_start) == StageInfo(24, 24)

    def test_buc_completing_after_holding(self, buc_property, loan_start: date) -> None:
        prop = update_property(buc_property, "completion_date", date(2031, 1, 1))
        assert stage_info(prop, loan_start) == StageInfo(60, 0)

    def test_buc_partial_month_to_top(self, buc_property) -> None:
        prop = update_property(buc_property, "completion_date", date(2028, 2, 28))
        assert stage_info(prop, date(2026, 1, 31)) == StageInfo(24, 24)

    def test_buc_already_completed(self, buc_property, loan_start: date) -> None:
        prop = update_property(buc_property, "completion_date", date(2025, 1, 1))
        assert stage_info(prop, loan_start) == StageInfo(0, 48)


class TestIsApplicable:
    """Tests for the N/A predicate."""

    def test_resale_investment(self, resale_property) -> None:
        info = stage_info(resale_property)
        for field_id in (RENTAL_INCOME, VACANCY_DEDUCTION, TAX_ON_RENTAL, AGENT_COMMISSION,
                         MAINTENANCE_TOTAL, PROPERTY_TAX, MINOR_RENOVATION, FURNITURE_FITTINGS):
            assert is_applicable(field_id, resale_property, Mode.INVESTMENT, info)
        assert not is_applicable(RENT_WHILE_WAITING, resale_property, Mode.INVESTMENT, info)

    def test_rental_fields_need_investment_mode(self, resale_property) -> None:
        info = stage_info(resale_property)
        assert not is_applicable(RENTAL_INCOME, resale_property, Mode.OWN, info)
        assert is_applicable(PROPERTY_TAX, resale_property, Mode.OWN, info)

    def test_buc_before_top(self, buc_property) -> None:
        info = StageInfo(None, 0)
        assert not is_applicable(RENTAL_INCOME, buc_property, Mode.INVESTMENT, info)
        assert not is_applicable(MINOR_RENOVATION, buc_property, Mode.OWN, info)
        assert is_applicable(RENT_WHILE_WAITING, buc_property, Mode.OWN, info)
        assert not is_applicable(RENT_WHILE_WAITING, buc_property, Mode.INVESTMENT, info)

    def test_ssd_depends_on_holding_period(self, buc_property) -> None:
        info = StageInfo(None, 0)
        assert not is_applicable(SSD, buc_property, Mode.OWN, info)
        short = update_property(buc_property, "holding_period", 3)
        assert is_applicable(SSD, short, Mode.OWN, info)

    def test_ungated_field(self, buc_property) -> None:
        assert is_applicable("bank_interest", buc_property, "own", StageInfo(None, 0))


class TestProjectOwnStay:
    """Own-stay projections."""

    def test_buc_without_completion(self, buc_property) -> None:
        result = project(buc_property, Mode.OWN, TAX_RATE)

        for field_id in (RENTAL_INCOME, VACANCY_DEDUCTION, MINOR_RENOVATION, FURNITURE_FITTINGS,
                         MAINTENANCE_TOTAL, PROPERTY_TAX, SSD):
            assert not result.is_applicable(field_id)
        assert result.is_applicable(RENT_WHILE_WAITING)

        assert result.rental_income == 0
        assert result.loan_percentage == pytest.approx(75)
        assert result.projected_growth == pytest.approx(215_506.25)
        assert result.gross_profit == pytest.approx(215_506.25)
        assert result.bank_interest == pytest.approx(58_200)
        assert result.bsd == 24_600
        assert result.absd == 0
        assert result.ssd == 0
        assert result.total_other_expenses == pytest.approx(82_800)
        assert result.net_profit == pytest.approx(132_706.25)
        assert result.equity == pytest.approx(250_000)
        assert result.roe == pytest.approx(53.0825)
        assert result.projected_valuation == pytest.approx(1_215_506.25)
        assert result.total_cash_return == pytest.approx(598_212.5)

    def test_rent_while_waiting_without_top(self, buc_property) -> None:
        prop = with_fields(buc_property, monthly_rent_while_waiting=3_000, minor_renovation=20_000)
        result = project(prop, Mode.OWN, TAX_RATE)

        assert result.rent_while_waiting_total == pytest.approx(144_000)
        assert result.minor_renovation == 0

    def test_rent_while_waiting_until_top(self, buc_property, loan_start: date) -> None:
        prop = with_fields(
            buc_property,
            completion_date=date(2028, 1, 1),
            monthly_rent_while_waiting=2_500,
            monthly_maintenance=300,
            minor_renovation=20_000,
        )
        result = project(prop, Mode.OWN, TAX_RATE, loan_start=loan_start)

        assert result.rent_while_waiting_total == pytest.approx(60_000)
        assert result.maintenance_total == pytest.approx(7_200)
        assert result.minor_renovation == 20_000

    def test_rent_while_waiting_capped_at_holding(self, buc_property, loan_start: date) -> None:
        """TOP after the sale: rent is paid for the holding period only."""
        prop = with_fields(
            buc_property,
            completion_date=date(2031, 1, 1),
            monthly_rent_while_waiting=2_500,
        )
        result = project(prop, Mode.OWN, TAX_RATE, loan_start=loan_start)

        assert result.rent_while_waiting_total == pytest.approx(120_000)

    def test_commission_ignored_for_own_stay(self, resale_property) -> None:
        prop = with_fields(
            resale_property,
            monthly_rental=6_000,
            rental_commission=CommissionConfig("1", gst_enabled=True),
        )
        result = project(prop, "own", TAX_RATE)

        assert result.agent_commission == 0
        assert not result.is_applicable(AGENT_COMMISSION)


class TestProjectInvestment:
    """Investment projections."""

    def test_resale_rental(self, resale_property) -> None:
        prop = with_fields(
            resale_property,
            monthly_rental=6_000,
            vacancy_months=2,
            rental_commission=CommissionConfig("1", gst_enabled=True),
        )
        result = project(prop, Mode.INVESTMENT, TAX_RATE)

        assert result.rental_income == pytest.approx(288_000)
        assert result.vacancy_deduction == pytest.approx(12_000)
        assert result.tax_on_rental == pytest.approx(33_120)
        assert result.agent_commission == 26_160
        assert result.gross_profit == pytest.approx(result.projected_growth + 276_000)

    def test_vacancy_override(self, resale_property) -> None:
        prop = with_fields(resale_property, monthly_rental=6_000, vacancy_months=2)
        result = project(prop, Mode.INVESTMENT, TAX_RATE, vacancy_months=3)

        assert result.vacancy_deduction == pytest.approx(18_000)

    def test_buc_rents_after_top(self, buc_property, loan_start: date) -> None:
        prop = with_fields(
            buc_property,
            completion_date=date(2028, 1, 1),
            monthly_rental=3_000,
            monthly_maintenance=300,
        )
        result = project(prop, Mode.INVESTMENT, TAX_RATE, loan_start=loan_start)

        assert result.rental_income == pytest.approx(72_000)
        assert result.maintenance_total == pytest.approx(7_200)
        assert not result.is_applicable(RENT_WHILE_WAITING)

    def test_buc_completing_after_holding(self, buc_property, loan_start: date) -> None:
        prop = with_fields(buc_property, completion_date=date(2031, 1, 1), monthly_rental=3_000)
        result = project(prop, Mode.INVESTMENT, TAX_RATE, loan_start=loan_start)

        assert result.rental_income == 0
        assert not result.is_applicable(RENTAL_INCOME)
        assert not result.is_applicable(MAINTENANCE_TOTAL)


class TestProjectCostsAndReturns:
    """Duties, commissions and return metrics."""

    def test_sales_commission(self, buc_property) -> None:
        plain = with_fields(buc_property, sales_commission=CommissionConfig("2.00"))
        with_gst = with_fields(buc_property, sales_commission=CommissionConfig("2.00", gst_enabled=True))

        assert project(plain, Mode.OWN, TAX_RATE).sales_commission == 24_310
        assert project(with_gst, Mode.OWN, TAX_RATE).sales_commission == 26_498

    def test_custom_commission_has_no_gst(self, buc_property) -> None:
        prop = with_fields(
            buc_property,
            sales_commission=CommissionConfig("other", custom_amount=5_000, gst_enabled=True),
        )
        assert project(prop, Mode.OWN, TAX_RATE).sales_commission == 5_000

    def test_gst_from_policy(self, buc_property) -> None:
        prop = with_fields(buc_property, sales_commission=CommissionConfig("2.00", gst_enabled=True))
        policy = CalculatorPolicy(gst_rate=0.0)

        assert project(prop, Mode.OWN, TAX_RATE, policy=policy).sales_commission == 24_310

    def test_ssd_on_short_holding(self, buc_property) -> None:
        prop = update_property(buc_property, "holding_period", 2)
        result = project(prop, Mode.OWN, TAX_RATE)

        assert result.is_applicable(SSD)
        assert result.ssd_rate == 0.08
        assert result.ssd == pytest.approx(88_200)

    def test_zero_holding_period(self, buc_property) -> None:
        prop = update_property(buc_property, "holding_period", 0)
        result = project(prop, Mode.OWN, TAX_RATE)

        assert result.projected_growth == 0
        assert result.bank_interest == 0
        assert result.ssd == pytest.approx(160_000)

    def test_absd_from_profile(self, buc_property) -> None:
        result = project(buc_property, Mode.OWN, TAX_RATE, profile=TaxProfile(Citizenship.PR, 2))

        assert result.absd == 300_000

    def test_total_is_sum_of_expenses(self, resale_property) -> None:
        prop = with_fields(
            resale_property,
            monthly_rental=6_000,
            vacancy_months=1,
            monthly_maintenance=400,
            property_tax=8_000,
            minor_renovation=15_000,
            furniture_fittings=10_000,
            other_expenses=2_500,
            holding_period=3,
            rental_commission=CommissionConfig("0.5"),
            sales_commission=CommissionConfig("1.00", gst_enabled=True),
        )
        result = project(prop, Mode.INVESTMENT, TAX_RATE, profile=TaxProfile(Citizenship.SC, 2))

        assert result.total_other_expenses == pytest.approx(
            sum(getattr(result, name) for name in EXPENSE_FIELDS)
        )
        assert result.net_profit == pytest.approx(result.gross_profit - result.total_other_expenses)
        assert result.total_cash_return == pytest.approx(
            result.net_profit + result.projected_valuation - 1_875_000
        )
        assert result.roe == pytest.approx(result.net_profit / 625_000 * 100)

    def test_roe_zero_without_equity(self, buc_property) -> None:
        prop = with_fields(buc_property, purchase_price=0, other_expenses=1_000)
        result = project(prop, Mode.OWN, TAX_RATE)

        assert result.equity == 0
        assert result.net_profit == pytest.approx(-1_000)
        assert result.roe == 0

    def test_negative_growth_treated_as_zero(self, buc_property) -> None:
        prop = update_property(buc_property, "annual_growth", -3)
        result = project(prop, Mode.OWN, TAX_RATE)

        assert result.projected_growth == 0
        assert result.projected_valuation == 1_000_000

    def test_growth_capped(self, buc_property) -> None:
        prop = update_property(buc_property, "annual_growth", 1e100)
        result = project(prop, Mode.OWN, TAX_RATE)

        assert result.projected_growth == pytest.approx(1_000_000 * 1.3 ** 4 - 1_000_000)

    def test_extreme_record_values(self, buc_property) -> None:
        """Records built without update_property still project."""
        prop = dataclasses.replace(buc_property, annual_growth=1e100, holding_period=10 ** 9)
        result = project(prop, Mode.OWN, TAX_RATE)

        assert result.projected_growth == pytest.approx(1_000_000 * 1.3 ** 30 - 1_000_000)
        assert result.bank_interest == pytest.approx(750_000 * 0.0194 * 30)

    def test_invalid_mode(self, buc_property) -> None:
        with pytest.raises(ValueError):
            project(buc_property, "flip", TAX_RATE)
