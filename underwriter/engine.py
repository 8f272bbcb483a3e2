"""
Underwriting Engine

Runs the pro forma, financing, projection and return stages in order and
assembles a DealMetrics snapshot. Every call is a fresh derivation.
"""

import logging
import math
from typing import List, Optional, Tuple

from underwriter.calculations.cashflow import project_cash_flows
from underwriter.calculations.financing import derive_financing
from underwriter.calculations.proforma import (
    calculate_cap_rate_valuation,
    calculate_price_difference,
    derive_pro_forma,
)
from underwriter.calculations.returns import resolve_irrs
from underwriter.schemas import (
    DealMetrics,
    PriceBasis,
    PropertyFacts,
    RentRoll,
    UnderwritingAssumptions,
)

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Facts or assumptions that cannot produce a meaningful underwriting."""

    def __init__(self, fields: List[str]):
        self.fields = fields
        super().__init__(f"Invalid underwriting inputs: {', '.join(fields)}")


def _positive(value: float) -> bool:
    return math.isfinite(value) and value > 0


def validate_inputs(
    facts: PropertyFacts,
    rent_roll: Optional[RentRoll],
    assumptions: UnderwritingAssumptions,
) -> None:
    """Raise InvalidInputError listing every offending field."""
    invalid = []

    rent_roll_drives_units = rent_roll is not None and rent_roll.total_units > 0
    if rent_roll_drives_units:
        if not _positive(rent_roll.total_monthly_rent):
            invalid.append("rent_roll")
    else:
        if not _positive(facts.units):
            invalid.append("units")
        if not _positive(facts.avg_monthly_rent):
            invalid.append("avg_monthly_rent")
        if not math.isfinite(facts.occupancy):
            invalid.append("occupancy")

    # Optional parsed figures are ignored when absent, never when non-finite
    for field in ("whisper_price", "annual_operating_expenses", "noi"):
        value = getattr(facts, field)
        if value is not None and not math.isfinite(value):
            invalid.append(field)

    for field in (
        "vacancy",
        "interest_rate",
        "rent_growth_rate",
        "expense_growth_rate",
    ):
        if not math.isfinite(getattr(assumptions, field)):
            invalid.append(field)

    if not _positive(assumptions.market_cap_rate):
        invalid.append("market_cap_rate")
    if not _positive(assumptions.exit_cap_rate):
        invalid.append("exit_cap_rate")
    if not math.isfinite(assumptions.expense_ratio) or assumptions.expense_ratio >= 1:
        invalid.append("expense_ratio")
    if not math.isfinite(assumptions.loan_to_value) or assumptions.loan_to_value >= 1:
        invalid.append("loan_to_value")
    if assumptions.amortization_years < 1:
        invalid.append("amortization_years")
    if assumptions.analysis_term < 1:
        invalid.append("analysis_term")

    if invalid:
        raise InvalidInputError(invalid)


def resolve_price(
    market_value: float,
    whisper_price: Optional[float],
    price: Optional[float] = None,
    basis: Optional[PriceBasis] = None,
) -> Tuple[PriceBasis, float, float]:
    """
    Pick the price the deal is financed on.

    Returns:
        (basis, purchase price, price difference)
    """
    if basis is None:
        if price is None:
            basis = PriceBasis.market
        elif whisper_price and price == whisper_price:
            basis = PriceBasis.whisper
        else:
            basis = PriceBasis.custom

    if price is not None and not _positive(price):
        raise InvalidInputError(["price"])

    if basis == PriceBasis.market:
        if price is not None:
            raise InvalidInputError(["price"])
        difference = calculate_price_difference(whisper_price, market_value)
        return basis, market_value, difference

    if basis == PriceBasis.whisper:
        if price is None:
            price = whisper_price
        if price is None or not _positive(price):
            raise InvalidInputError(["whisper_price"])
        return basis, price, 0.0

    if price is None:
        raise InvalidInputError(["price"])
    return basis, price, price - market_value


def _run(
    facts: PropertyFacts,
    rent_roll: Optional[RentRoll],
    assumptions: UnderwritingAssumptions,
    price: Optional[float] = None,
    basis: Optional[PriceBasis] = None,
) -> DealMetrics:
    validate_inputs(facts, rent_roll, assumptions)

    pro_forma = derive_pro_forma(facts, rent_roll, assumptions)
    if not _positive(pro_forma.noi):
        raise InvalidInputError(["noi"])

    market_value = calculate_cap_rate_valuation(pro_forma.noi, assumptions.market_cap_rate)
    basis, purchase_price, price_difference = resolve_price(
        market_value, facts.whisper_price, price, basis
    )

    financing = derive_financing(purchase_price, pro_forma.noi, assumptions)

    rows = project_cash_flows(
        purchase_price=purchase_price,
        equity=financing.equity,
        loan_amount=financing.loan_amount,
        initial_noi=pro_forma.noi,
        initial_debt_service=financing.debt_service,
        assumptions=assumptions,
        rent_roll=rent_roll,
    )

    returns = resolve_irrs(rows, financing.equity, purchase_price)

    metrics = DealMetrics(
        property_name=facts.property_name,
        whisper_price=facts.whisper_price,
        units=pro_forma.units,
        occupancy=pro_forma.occupancy,
        avg_monthly_rent=pro_forma.avg_monthly_rent,
        annual_operating_expenses=facts.annual_operating_expenses,
        parsed_noi=facts.noi,
        market_cap_rate=assumptions.market_cap_rate,
        gross_potential_income=pro_forma.gross_potential_income,
        effective_gross_income=pro_forma.effective_gross_income,
        operating_expenses=pro_forma.operating_expenses,
        noi=pro_forma.noi,
        vacancy=pro_forma.vacancy_used,
        expense_ratio=assumptions.expense_ratio,
        purchase_price=purchase_price,
        price_difference=price_difference,
        cap_rate_valuation=purchase_price,
        market_valuation=market_value,
        price_basis=basis,
        loan_amount=financing.loan_amount,
        equity=financing.equity,
        debt_service=financing.debt_service,
        dscr=financing.dscr,
        cash_on_cash_return=financing.cash_on_cash_return,
        levered_irr=returns.levered_irr,
        unlevered_irr=returns.unlevered_irr,
        equity_multiple=returns.equity_multiple,
        irr_breakdown=rows,
        assumptions=assumptions,
        rent_roll_data=rent_roll,
        fallbacks=pro_forma.fallbacks + returns.fallbacks,
    )

    logger.info(
        f"Underwrote {metrics.property_name}: price {purchase_price:,.0f} ({basis.value}), "
        f"NOI {metrics.noi:,.0f}, levered IRR {metrics.levered_irr:.2%}, "
        f"unlevered IRR {metrics.unlevered_irr:.2%}"
    )
    if metrics.fallbacks:
        logger.warning(f"Fallbacks applied for {metrics.property_name}: {metrics.fallbacks}")

    return metrics


def underwrite(
    facts: PropertyFacts,
    rent_roll: Optional[RentRoll],
    assumptions: UnderwritingAssumptions,
) -> DealMetrics:
    """
    Underwrite a property at its market (cap-rate) valuation.

    Raises:
        InvalidInputError: If facts or assumptions are unusable
    """
    return _run(facts, rent_roll, assumptions)


def recalculate(
    previous: DealMetrics,
    assumptions: UnderwritingAssumptions,
    price: Optional[float] = None,
    basis: Optional[PriceBasis] = None,
) -> DealMetrics:
    """
    Re-derive a deal under new assumptions and/or a different price basis.

    The pro forma is rebuilt from the facts and rent roll carried on the
    previous snapshot; none of its derived figures are reused.

    Args:
        previous: An earlier underwriting result
        assumptions: Revised assumption set
        price: Whisper or custom price to finance on
        basis: Explicit price basis; inferred from price when omitted

    Raises:
        InvalidInputError: If the revised inputs are unusable
    """
    return _run(previous.to_facts(), previous.rent_roll_data, assumptions, price, basis)
