"""
Tests for the underwriting and recalculation entry points.
"""

import math

import pytest

from underwriter.calculations.amortization import calculate_annual_debt_service
from underwriter.engine import (
    InvalidInputError,
    recalculate,
    resolve_price,
    underwrite,
)
from underwriter.schemas import (
    PriceBasis,
    PropertyFacts,
    UnderwritingAssumptions,
)


class TestUnderwrite:
    """Initial underwriting at market valuation."""

    def test_end_to_end_scenario(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)

        assert deal.gross_potential_income == pytest.approx(1_350_000)
        assert deal.effective_gross_income == pytest.approx(1_282_500)
        assert deal.operating_expenses == pytest.approx(448_875)
        assert deal.noi == pytest.approx(833_625)
        assert deal.purchase_price == pytest.approx(13_893_750)
        assert deal.cap_rate_valuation == pytest.approx(13_893_750)
        assert deal.market_valuation == pytest.approx(13_893_750)
        assert deal.loan_amount == pytest.approx(9_030_937.5)
        assert deal.equity == pytest.approx(4_862_812.5)
        assert deal.price_basis == PriceBasis.market

        assert -0.5 <= deal.levered_irr <= 2.0
        assert -0.5 <= deal.unlevered_irr <= 2.0
        assert deal.fallbacks == []

    def test_financing_metrics(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)
        debt_service = calculate_annual_debt_service(9_030_937.5, 0.06, 30)

        assert deal.debt_service == pytest.approx(debt_service)
        assert deal.dscr == pytest.approx(833_625 / debt_service)
        assert deal.cash_on_cash_return == pytest.approx(
            (833_625 - debt_service) / 4_862_812.5
        )

    def test_breakdown_shape(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)
        assert len(deal.irr_breakdown) == assumptions.analysis_term + 1
        assert deal.irr_breakdown[0].cash_flow_after_debt == pytest.approx(-deal.equity)

        exit_equity = [row.exit_equity for row in deal.irr_breakdown]
        assert all(value == 0 for value in exit_equity[:-1])
        assert exit_equity[-1] > 0

    def test_analysis_term_sets_projection_length(self, facts):
        deal = underwrite(facts, None, UnderwritingAssumptions(analysis_term=10))
        assert len(deal.irr_breakdown) == 11
        assert deal.irr_breakdown[-1].year == 10

    def test_whisper_price_difference(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)
        assert deal.price_difference == pytest.approx(15_000_000 - 13_893_750)

    def test_no_whisper_price(self, assumptions):
        facts = PropertyFacts(units=75, avg_monthly_rent=1500)
        deal = underwrite(facts, None, assumptions)

        assert deal.price_difference == 0
        assert not math.isnan(deal.price_difference)

    def test_rent_roll_overrides_facts(self, rent_roll, assumptions):
        facts = PropertyFacts(units=100, avg_monthly_rent=1000, noi=2_000_000)
        deal = underwrite(facts, rent_roll, assumptions)

        assert deal.units == 80
        assert deal.avg_monthly_rent == pytest.approx(1125)
        assert deal.occupancy == pytest.approx(0.95)
        assert deal.gross_potential_income == pytest.approx(1_080_000)
        assert deal.noi == pytest.approx(1_080_000 * 0.95 * 0.65)
        assert deal.parsed_noi == 2_000_000
        assert deal.rent_roll_data == rent_roll

    def test_noi_fallback_is_recorded(self, assumptions):
        facts = PropertyFacts(
            units=10, avg_monthly_rent=1000, annual_operating_expenses=2_000_000
        )
        deal = underwrite(facts, None, assumptions)

        assert deal.noi > 0
        assert "noi_fallback" in deal.fallbacks

    def test_zero_interest_rate(self, facts):
        deal = underwrite(facts, None, UnderwritingAssumptions(interest_rate=0.0))
        assert deal.debt_service == pytest.approx(9_030_937.5 / 30)
        assert math.isfinite(deal.levered_irr)

    def test_all_cash_purchase(self, facts):
        deal = underwrite(facts, None, UnderwritingAssumptions(loan_to_value=0.0))

        assert deal.loan_amount == 0
        assert deal.dscr is None
        assert deal.levered_irr == pytest.approx(deal.unlevered_irr)

    def test_market_cap_rate_is_the_one_used(self, assumptions):
        facts = PropertyFacts(units=75, avg_monthly_rent=1500, market_cap_rate=0.08)
        deal = underwrite(facts, None, assumptions)

        assert deal.market_cap_rate == assumptions.market_cap_rate
        assert deal.market_valuation == pytest.approx(deal.noi / 0.06)

    def test_snapshot_is_immutable(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)
        with pytest.raises(Exception):
            deal.noi = 1


class TestInvalidInput:
    """Inputs that must be rejected before projection."""

    @pytest.mark.parametrize(
        "facts_kwargs,field",
        [
            ({"units": 0, "avg_monthly_rent": 1500}, "units"),
            ({"units": 10, "avg_monthly_rent": 0}, "avg_monthly_rent"),
            ({"units": -5, "avg_monthly_rent": 1500}, "units"),
        ],
    )
    def test_bad_facts(self, facts_kwargs, field, assumptions):
        with pytest.raises(InvalidInputError) as exc_info:
            underwrite(PropertyFacts(**facts_kwargs), None, assumptions)
        assert field in exc_info.value.fields

    @pytest.mark.parametrize(
        "assumption_kwargs,field",
        [
            ({"market_cap_rate": 0.0}, "market_cap_rate"),
            ({"exit_cap_rate": 0.0}, "exit_cap_rate"),
            ({"analysis_term": 0}, "analysis_term"),
            ({"amortization_years": 0}, "amortization_years"),
            ({"expense_ratio": 1.0}, "expense_ratio"),
            ({"loan_to_value": 1.0}, "loan_to_value"),
        ],
    )
    def test_bad_assumptions(self, assumption_kwargs, field, facts):
        with pytest.raises(InvalidInputError) as exc_info:
            underwrite(facts, None, UnderwritingAssumptions(**assumption_kwargs))
        assert field in exc_info.value.fields

    @pytest.mark.parametrize(
        "facts_kwargs,field",
        [
            ({"units": 10, "avg_monthly_rent": float("nan")}, "avg_monthly_rent"),
            ({"units": 10, "avg_monthly_rent": float("inf")}, "avg_monthly_rent"),
            (
                {"units": 10, "avg_monthly_rent": 1500, "noi": float("nan")},
                "noi",
            ),
            (
                {"units": 10, "avg_monthly_rent": 1500, "whisper_price": float("inf")},
                "whisper_price",
            ),
        ],
    )
    def test_non_finite_facts(self, facts_kwargs, field, assumptions):
        with pytest.raises(InvalidInputError) as exc_info:
            underwrite(PropertyFacts(**facts_kwargs), None, assumptions)
        assert field in exc_info.value.fields

    @pytest.mark.parametrize(
        "assumption_kwargs,field",
        [
            ({"rent_growth_rate": float("inf")}, "rent_growth_rate"),
            ({"expense_growth_rate": float("nan")}, "expense_growth_rate"),
        ],
    )
    def test_non_finite_assumptions(self, assumption_kwargs, field, facts):
        with pytest.raises(InvalidInputError) as exc_info:
            underwrite(facts, None, UnderwritingAssumptions(**assumption_kwargs))
        assert field in exc_info.value.fields

    def test_non_finite_price_override(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)
        with pytest.raises(InvalidInputError) as exc_info:
            recalculate(deal, assumptions, price=float("nan"))
        assert exc_info.value.fields == ["price"]

    def test_reports_every_field(self, assumptions):
        bad = UnderwritingAssumptions(market_cap_rate=0.0, analysis_term=0)
        with pytest.raises(InvalidInputError) as exc_info:
            underwrite(PropertyFacts(units=0, avg_monthly_rent=0), None, bad)
        assert set(exc_info.value.fields) == {
            "units",
            "avg_monthly_rent",
            "market_cap_rate",
            "analysis_term",
        }

    def test_is_a_value_error(self, assumptions):
        with pytest.raises(ValueError):
            underwrite(PropertyFacts(units=0, avg_monthly_rent=1), None, assumptions)


class TestResolvePrice:
    """Price basis selection."""

    def test_market_by_default(self):
        basis, price, difference = resolve_price(10_000_000, 11_000_000)
        assert basis == PriceBasis.market
        assert price == 10_000_000
        assert difference == 1_000_000

    def test_whisper_inferred_from_price(self):
        basis, price, difference = resolve_price(10_000_000, 11_000_000, 11_000_000)
        assert basis == PriceBasis.whisper
        assert price == 11_000_000
        assert difference == 0

    def test_custom_price(self):
        basis, price, difference = resolve_price(10_000_000, 11_000_000, 9_500_000)
        assert basis == PriceBasis.custom
        assert difference == -500_000

    def test_whisper_basis_without_whisper(self):
        with pytest.raises(InvalidInputError):
            resolve_price(10_000_000, None, basis=PriceBasis.whisper)

    def test_market_basis_rejects_price(self):
        with pytest.raises(InvalidInputError) as exc_info:
            resolve_price(10_000_000, None, 9_000_000, PriceBasis.market)
        assert exc_info.value.fields == ["price"]

    def test_infinite_price(self):
        with pytest.raises(InvalidInputError):
            resolve_price(10_000_000, None, float("inf"))

    def test_custom_basis_needs_positive_price(self):
        with pytest.raises(InvalidInputError):
            resolve_price(10_000_000, None, 0, PriceBasis.custom)


class TestRecalculate:
    """Recalculation is a fresh derivation from the carried facts."""

    def test_same_assumptions_reproduce_result(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)
        again = recalculate(deal, assumptions)

        assert again.noi == pytest.approx(deal.noi)
        assert again.purchase_price == pytest.approx(deal.purchase_price)
        assert again.levered_irr == pytest.approx(deal.levered_irr)
        assert again.irr_breakdown == deal.irr_breakdown

    def test_new_expense_ratio(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)
        revised = recalculate(deal, assumptions.model_copy(update={"expense_ratio": 0.40}))

        assert revised.operating_expenses == pytest.approx(1_282_500 * 0.40)
        assert revised.noi == pytest.approx(1_282_500 * 0.60)
        assert revised.expense_ratio == 0.40
        # Previous snapshot untouched
        assert deal.noi == pytest.approx(833_625)

    def test_whisper_price_basis(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)
        revised = recalculate(deal, assumptions, basis=PriceBasis.whisper)

        assert revised.price_basis == PriceBasis.whisper
        assert revised.purchase_price == 15_000_000
        assert revised.price_difference == 0
        assert revised.loan_amount == pytest.approx(9_750_000)
        assert revised.cap_rate_valuation == 15_000_000
        assert revised.market_valuation == pytest.approx(13_893_750)
        assert revised.irr_breakdown[0].cash_flow_before_debt == -15_000_000

    def test_custom_price(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)
        revised = recalculate(deal, assumptions, price=12_000_000)

        assert revised.price_basis == PriceBasis.custom
        assert revised.price_difference == pytest.approx(12_000_000 - 13_893_750)
        assert revised.equity == pytest.approx(12_000_000 * 0.35)
        assert revised.cap_rate_valuation == revised.purchase_price
        assert revised.market_valuation == pytest.approx(13_893_750)

    def test_cheaper_price_improves_returns(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)
        revised = recalculate(deal, assumptions, price=12_000_000)
        assert revised.levered_irr > deal.levered_irr

    def test_rent_roll_carried_forward(self, rent_roll, assumptions):
        facts = PropertyFacts(units=100, avg_monthly_rent=1000)
        deal = underwrite(facts, rent_roll, assumptions)
        revised = recalculate(deal, assumptions.model_copy(update={"loan_to_value": 0.5}))

        assert revised.rent_roll_data == rent_roll
        assert revised.units == 80
        assert revised.noi == pytest.approx(deal.noi)
        assert revised.loan_amount == pytest.approx(deal.purchase_price * 0.5)

    def test_parsed_figures_survive_recalculation(self, assumptions):
        facts = PropertyFacts(units=75, avg_monthly_rent=1500, noi=900_000)
        deal = underwrite(facts, None, assumptions)
        revised = recalculate(deal, assumptions.model_copy(update={"vacancy": 0.10}))

        assert revised.noi == 900_000
        assert revised.effective_gross_income == pytest.approx(1_350_000 * 0.90)

    def test_invalid_revision_rejected(self, facts, assumptions):
        deal = underwrite(facts, None, assumptions)
        with pytest.raises(InvalidInputError):
            recalculate(deal, assumptions.model_copy(update={"analysis_term": 0}))
