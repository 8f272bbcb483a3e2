"""
Financing Calculations

Loan sizing, equity and coverage metrics for a resolved purchase price.
"""

from dataclasses import dataclass
from typing import Optional

from underwriter.calculations.amortization import (
    calculate_annual_debt_service,
    calculate_dscr,
)
from underwriter.schemas import UnderwritingAssumptions


@dataclass(frozen=True)
class Financing:
    loan_amount: float
    equity: float
    debt_service: float  # annual
    dscr: Optional[float]
    cash_on_cash_return: float


def derive_financing(
    price: float, noi: float, assumptions: UnderwritingAssumptions
) -> Financing:
    """
    Size the loan off the selected price.

    The price basis (market, whisper or custom) is resolved by the caller.

    Args:
        price: Purchase price the deal is financed on
        noi: Year-one net operating income
        assumptions: LTV, rate and amortization come from here

    Returns:
        Financing with annual debt service and coverage ratios
    """
    loan_amount = price * assumptions.loan_to_value
    equity = price - loan_amount

    debt_service = calculate_annual_debt_service(
        loan_amount, assumptions.interest_rate, assumptions.amortization_years
    )

    dscr = calculate_dscr(noi, debt_service) if debt_service > 0 else None
    cash_on_cash = (noi - debt_service) / equity if equity > 0 else 0.0

    return Financing(
        loan_amount=loan_amount,
        equity=equity,
        debt_service=debt_service,
        dscr=dscr,
        cash_on_cash_return=cash_on_cash,
    )
