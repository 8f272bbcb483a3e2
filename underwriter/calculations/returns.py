"""
Return Metrics

Builds the levered and unlevered cash-flow vectors from a projection and
solves them for IRR, replacing implausible results with the simple-return
heuristic.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from underwriter.calculations.irr import (
    calculate_multiple,
    simple_irr_fallback,
    solve_irr,
)
from underwriter.schemas import YearRow

logger = logging.getLogger(__name__)

PLAUSIBLE_MIN_IRR = -0.5
PLAUSIBLE_MAX_IRR = 2.0


@dataclass(frozen=True)
class Returns:
    levered_irr: float
    unlevered_irr: float
    equity_multiple: float
    fallbacks: List[str] = field(default_factory=list)


def levered_cash_flows(rows: List[YearRow], equity: float) -> List[float]:
    """Equity outlay, after-debt flows, net sale proceeds in the final year."""
    flows = [-equity] + [row.cash_flow_after_debt for row in rows[1:]]
    exit_row = rows[-1]
    flows[-1] += exit_row.property_value - exit_row.remaining_debt
    return flows


def unlevered_cash_flows(rows: List[YearRow], purchase_price: float) -> List[float]:
    """Full price outlay, before-debt flows, gross sale value in the final year."""
    flows = [-purchase_price] + [row.cash_flow_before_debt for row in rows[1:]]
    flows[-1] += rows[-1].property_value
    return flows


def _resolve(
    name: str,
    cash_flows: List[float],
    outlay: float,
    term: int,
    fallbacks: List[str],
) -> float:
    solution = solve_irr(cash_flows)
    rate = solution.rate

    if not solution.converged:
        fallbacks.append(f"{name}_irr_unconverged")

    if rate < PLAUSIBLE_MIN_IRR or rate > PLAUSIBLE_MAX_IRR:
        fallback = simple_irr_fallback(cash_flows, outlay, term)
        logger.warning(
            f"{name.capitalize()} IRR {rate:.4f} outside plausible range, "
            f"using simple return {fallback:.4f}"
        )
        fallbacks.append(f"{name}_irr_fallback")
        rate = fallback

    return rate


def resolve_irrs(rows: List[YearRow], equity: float, purchase_price: float) -> Returns:
    """
    Solve levered and unlevered IRR for a projection.

    Args:
        rows: Projection rows, year 0 first
        equity: Levered initial outlay
        purchase_price: Unlevered initial outlay

    Returns:
        Returns with both IRRs as finite decimal fractions
    """
    term = len(rows) - 1
    fallbacks: List[str] = []

    levered = levered_cash_flows(rows, equity)
    unlevered = unlevered_cash_flows(rows, purchase_price)

    logger.debug(f"Levered cash flows: {levered}")
    logger.debug(f"Unlevered cash flows: {unlevered}")

    levered_irr = _resolve("levered", levered, equity, term, fallbacks)
    unlevered_irr = _resolve("unlevered", unlevered, purchase_price, term, fallbacks)

    equity_multiple = calculate_multiple(levered) if equity > 0 else 0.0

    return Returns(
        levered_irr=levered_irr,
        unlevered_irr=unlevered_irr,
        equity_multiple=equity_multiple,
        fallbacks=fallbacks,
    )
