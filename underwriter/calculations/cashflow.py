"""
Cash Flow Calculations

Generates the annual hold-period projection for an acquisition.
Year 0 is the purchase; years 1..analysis_term are operating years and
the final year carries the exit valuation.
"""

import logging
from typing import List, Optional

from underwriter.calculations.proforma import has_rent_roll
from underwriter.schemas import RentRoll, UnderwritingAssumptions, YearRow

logger = logging.getLogger(__name__)


def calculate_escalation_factor(annual_rate: float, year: int) -> float:
    """Annual compounding factor for a given projection year."""
    return (1 + annual_rate) ** year


def calculate_annual_principal(loan_amount: float, amortization_years: int) -> float:
    """
    Straight-line principal reduction per year.

    An approximation of the amortization schedule, applied the same way in
    the initial underwriting and every recalculation.
    """
    if amortization_years <= 0:
        return loan_amount
    return loan_amount / amortization_years


def initial_year(purchase_price: float, equity: float, loan_amount: float) -> YearRow:
    """Year 0: the unlevered outlay is the full price, the levered one is equity."""
    return YearRow(
        year=0,
        cash_flow_before_debt=-purchase_price,
        cash_flow_after_debt=-equity,
        cumulative_cash_flow_before_debt=-purchase_price,
        cumulative_cash_flow_after_debt=-equity,
        remaining_debt=loan_amount,
        property_value=purchase_price,
        total_return_unlevered=-purchase_price,
        total_return_levered=-equity,
    )


def project_cash_flows(
    purchase_price: float,
    equity: float,
    loan_amount: float,
    initial_noi: float,
    initial_debt_service: float,
    assumptions: UnderwritingAssumptions,
    rent_roll: Optional[RentRoll] = None,
) -> List[YearRow]:
    """
    Project operating cash flows over the analysis term.

    With a rent roll, gross income grows from the roll's in-place annual
    rent and expenses are the expense ratio of it. Otherwise NOI grows from
    the year-one figure and gross income is backed out of the expense ratio.
    Debt service is constant (fixed-rate loan). Intermediate years are
    valued at the market cap rate, the final year at the exit cap rate.
    Sale proceeds are not folded into the rows' operating cash flows.

    Returns:
        analysis_term + 1 rows, year 0 first
    """
    term = assumptions.analysis_term
    annual_principal = calculate_annual_principal(
        loan_amount, assumptions.amortization_years
    )
    use_rent_roll = has_rent_roll(rent_roll)

    rows = [initial_year(purchase_price, equity, loan_amount)]
    remaining_debt = loan_amount

    for year in range(1, term + 1):
        rent_growth = calculate_escalation_factor(assumptions.rent_growth_rate, year)

        if use_rent_roll:
            base_annual_rent = rent_roll.total_monthly_rent * 12
            gross_income = base_annual_rent * rent_growth
            operating_expenses = gross_income * assumptions.expense_ratio
            noi = gross_income - operating_expenses
        else:
            noi = initial_noi * rent_growth
            gross_income = noi / (1 - assumptions.expense_ratio)
            operating_expenses = gross_income - noi

        debt_service = initial_debt_service
        remaining_debt = max(0.0, remaining_debt - annual_principal)

        cash_flow_before_debt = noi
        cash_flow_after_debt = noi - debt_service

        previous = rows[-1]
        cumulative_before_debt = (
            previous.cumulative_cash_flow_before_debt + cash_flow_before_debt
        )
        cumulative_after_debt = (
            previous.cumulative_cash_flow_after_debt + cash_flow_after_debt
        )

        is_exit_year = year == term
        if is_exit_year:
            property_value = noi / assumptions.exit_cap_rate
            exit_equity = property_value - remaining_debt
        else:
            property_value = noi / assumptions.market_cap_rate
            exit_equity = 0.0

        annual_cash_on_cash = cash_flow_after_debt / equity if equity > 0 else 0.0

        rows.append(
            YearRow(
                year=year,
                gross_income=gross_income,
                operating_expenses=operating_expenses,
                noi=noi,
                debt_service=debt_service,
                cash_flow_before_debt=cash_flow_before_debt,
                cash_flow_after_debt=cash_flow_after_debt,
                cumulative_cash_flow_before_debt=cumulative_before_debt,
                cumulative_cash_flow_after_debt=cumulative_after_debt,
                remaining_debt=remaining_debt,
                property_value=property_value,
                exit_equity=exit_equity,
                total_return_unlevered=cumulative_before_debt + exit_equity,
                total_return_levered=cumulative_after_debt + exit_equity,
                annual_cash_on_cash=annual_cash_on_cash,
            )
        )

    exit_row = rows[-1]
    logger.debug(
        f"Year {term} exit: value {exit_row.property_value:,.2f}, "
        f"remaining debt {exit_row.remaining_debt:,.2f}, "
        f"exit equity {exit_row.exit_equity:,.2f}"
    )

    return rows

