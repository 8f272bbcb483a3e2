"""
Financial calculation API endpoints.

Stateless primitives: IRR for an arbitrary cash-flow vector and level
payment loan figures.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import List

from underwriter.calculations import amortization, irr

router = APIRouter()


class IRRInput(BaseModel):
    """Input for IRR calculation."""

    cash_flows: List[float]


class IRRResponse(BaseModel):
    """Response with IRR calculation."""

    irr: float
    converged: bool
    iterations: int
    multiple: float
    profit: float
    npv_at_10_percent: float


@router.post("/irr", response_model=IRRResponse)
async def calculate_irr_endpoint(inputs: IRRInput):
    """Calculate IRR for given cash flows."""
    if not irr.is_investment_profile(inputs.cash_flows):
        raise HTTPException(
            status_code=400,
            detail="Cash flows must start with an investment followed by an inflow",
        )

    solution = irr.solve_irr(inputs.cash_flows)

    return IRRResponse(
        irr=solution.rate,
        converged=solution.converged,
        iterations=solution.iterations,
        multiple=irr.calculate_multiple(inputs.cash_flows),
        profit=irr.calculate_profit(inputs.cash_flows),
        npv_at_10_percent=irr.calculate_npv(inputs.cash_flows, 0.10),
    )


class AmortizationInput(BaseModel):
    """Input for amortization calculation."""

    principal: float = Field(ge=0)
    annual_rate: float = Field(ge=0)
    amortization_years: int = Field(gt=0)
    balance_years: int = Field(default=10, ge=0)


@router.post("/amortization")
async def calculate_amortization(inputs: AmortizationInput):
    """Level payment, annual debt service and year-end balances for a loan."""
    months = inputs.amortization_years * 12

    return {
        "monthly_payment": amortization.calculate_payment(
            inputs.principal, inputs.annual_rate, months
        ),
        "annual_debt_service": amortization.calculate_annual_debt_service(
            inputs.principal, inputs.annual_rate, inputs.amortization_years
        ),
        "loan_constant": amortization.calculate_loan_constant(
            inputs.principal, inputs.annual_rate, inputs.amortization_years
        ),
        "remaining_balances": amortization.year_end_balances(
            inputs.principal,
            inputs.annual_rate,
            inputs.amortization_years,
            inputs.balance_years,
        ),
    }
