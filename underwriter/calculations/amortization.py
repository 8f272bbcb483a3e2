"""
Loan Amortization Calculations

Fixed-rate, fully amortizing acquisition debt. Payments are monthly and
level; debt service is reported annually.
"""

import logging
from typing import Dict, List

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12


def _growth(monthly_rate: float, months: int) -> float:
    return (1 + monthly_rate) ** months


def calculate_payment(
    principal: float, annual_rate: float, amortization_months: int
) -> float:
    """
    Level monthly payment on a loan (Excel PMT, sign flipped).

    Args:
        principal: Loan amount
        annual_rate: Annual interest rate as decimal (0.06 = 6%)
        amortization_months: Months to full repayment

    Returns:
        Monthly payment, 0 for an empty loan or term. At a zero rate the
        principal is repaid in equal instalments.
    """
    if principal <= 0 or amortization_months <= 0:
        return 0.0

    monthly_rate = annual_rate / MONTHS_PER_YEAR
    if monthly_rate == 0:
        logger.debug("Zero interest rate, repaying principal in equal instalments")
        return principal / amortization_months

    growth = _growth(monthly_rate, amortization_months)
    return principal * monthly_rate * growth / (growth - 1)


def calculate_annual_debt_service(
    principal: float, annual_rate: float, amortization_years: int
) -> float:
    """Twelve level monthly payments."""
    months = amortization_years * MONTHS_PER_YEAR
    return MONTHS_PER_YEAR * calculate_payment(principal, annual_rate, months)


def calculate_remaining_balance(
    principal: float,
    annual_rate: float,
    amortization_months: int,
    payments_completed: int,
) -> float:
    """Outstanding principal after a number of monthly payments, floored at 0."""
    payment = calculate_payment(principal, annual_rate, amortization_months)
    monthly_rate = annual_rate / MONTHS_PER_YEAR

    if monthly_rate == 0:
        balance = principal - payment * payments_completed
    else:
        growth = _growth(monthly_rate, payments_completed)
        balance = principal * growth - payment * (growth - 1) / monthly_rate

    return max(0.0, balance)


def year_end_balances(
    principal: float, annual_rate: float, amortization_years: int, years: int
) -> List[Dict]:
    """True amortized balance at the end of each of the first `years` years."""
    months = amortization_years * MONTHS_PER_YEAR
    return [
        {
            "year": year,
            "balance": calculate_remaining_balance(
                principal, annual_rate, months, year * MONTHS_PER_YEAR
            ),
        }
        for year in range(1, min(years, amortization_years) + 1)
    ]


def calculate_dscr(noi: float, debt_service: float) -> float:
    """
    Debt service coverage ratio.

    Args:
        noi: Net operating income for the period
        debt_service: Debt service for the same period

    Returns:
        NOI / debt service, infinite when there is no debt service
    """
    if debt_service == 0:
        return float("inf")
    return noi / debt_service


def calculate_loan_constant(
    principal: float, annual_rate: float, amortization_years: int
) -> float:
    """Annual debt service per dollar of loan."""
    if principal <= 0:
        return 0.0
    debt_service = calculate_annual_debt_service(principal, annual_rate, amortization_years)
    return debt_service / principal
