"""
IRR and NPV Calculations

Implements IRR using Newton-Raphson method with a guarded restart and
a simple-return heuristic for results outside a plausible range.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 100
DEFAULT_GUESS = 0.15
NPV_TOLERANCE = 1e-6
RATE_TOLERANCE = 1e-10
DERIVATIVE_FLOOR = 1e-10

# Guesses outside this domain are discarded and the solver restarts
MIN_RATE = -0.9
MAX_RATE = 10.0

FALLBACK_FLOOR = 0.05
FALLBACK_CAP = 0.30


@dataclass(frozen=True)
class IRRSolution:
    """Outcome of a Newton-Raphson run."""

    rate: float
    converged: bool
    iterations: int


def calculate_npv(cash_flows: Sequence[float], discount_rate: float) -> float:
    """
    Calculate NPV (Net Present Value) of cash flows.

    Args:
        cash_flows: Array of cash flows (negative = outflow, positive = inflow)
        discount_rate: Annual discount rate (e.g., 0.10 for 10%)

    Returns:
        NPV value
    """
    flows = np.asarray(cash_flows, dtype=float)
    if flows.size == 0:
        return 0.0
    periods = np.arange(flows.size)
    return float(np.sum(flows / (1 + discount_rate) ** periods))


def npv_derivative(cash_flows: Sequence[float], rate: float) -> float:
    """Derivative of NPV with respect to rate (period 0 contributes nothing)."""
    flows = np.asarray(cash_flows, dtype=float)
    if flows.size < 2:
        return 0.0
    periods = np.arange(1, flows.size)
    return float(np.sum(-periods * flows[1:] / (1 + rate) ** (periods + 1)))


def is_investment_profile(cash_flows: Sequence[float]) -> bool:
    """True when flows start with an outlay followed by at least one inflow."""
    if len(cash_flows) < 2:
        return False
    if cash_flows[0] >= 0:
        return False
    return any(cf > 0 for cf in cash_flows[1:])


def solve_irr(cash_flows: Sequence[float], guess: float = DEFAULT_GUESS) -> IRRSolution:
    """
    Solve for IRR using Newton-Raphson.

    A vanishing derivative or a step outside [MIN_RATE, MAX_RATE] resets the
    guess to DEFAULT_GUESS and the iteration continues. Flows that are not an
    investment (outlay first, some later inflow) short-circuit to the default
    guess without iterating.

    Args:
        cash_flows: Periodic cash flows, index 0 is the initial investment
        guess: Starting rate

    Returns:
        IRRSolution with the rate, whether it converged and iterations used
    """
    if not is_investment_profile(cash_flows):
        logger.warning(
            f"Cash flows are not an investment profile, using default rate {DEFAULT_GUESS}"
        )
        return IRRSolution(rate=DEFAULT_GUESS, converged=False, iterations=0)

    rate = guess

    for iteration in range(1, MAX_ITERATIONS + 1):
        npv = calculate_npv(cash_flows, rate)

        if abs(npv) < NPV_TOLERANCE:
            return IRRSolution(rate=rate, converged=True, iterations=iteration)

        dnpv = npv_derivative(cash_flows, rate)

        if abs(dnpv) < DERIVATIVE_FLOOR:
            logger.debug(f"Derivative too small at rate {rate:.6f}, resetting guess")
            rate = DEFAULT_GUESS
            continue

        new_rate = rate - npv / dnpv

        if not np.isfinite(new_rate) or new_rate < MIN_RATE or new_rate > MAX_RATE:
            logger.debug(f"Guess {new_rate:.4f} out of bounds, resetting guess")
            rate = DEFAULT_GUESS
            continue

        if abs(new_rate - rate) < RATE_TOLERANCE:
            return IRRSolution(rate=new_rate, converged=True, iterations=iteration)

        rate = new_rate

    logger.warning(f"IRR did not converge after {MAX_ITERATIONS} iterations")
    if not np.isfinite(rate) or rate < MIN_RATE or rate > MAX_RATE:
        rate = DEFAULT_GUESS
    return IRRSolution(rate=rate, converged=False, iterations=MAX_ITERATIONS)


def calculate_irr(cash_flows: Sequence[float], guess: float = DEFAULT_GUESS) -> float:
    """
    Calculate IRR (Internal Rate of Return) for periodic cash flows.

    Returns:
        Annual IRR as decimal (e.g., 0.15 for 15%)
    """
    return solve_irr(cash_flows, guess).rate


def simple_irr_fallback(
    cash_flows: Sequence[float], initial_outlay: float, analysis_term: int
) -> float:
    """
    Approximate IRR from the average annual return on the initial outlay.

    Used when Newton-Raphson lands outside the plausible range. The result
    is always within [FALLBACK_FLOOR, FALLBACK_CAP].
    """
    total_return = sum(cash_flows) + initial_outlay

    if total_return <= 0 or initial_outlay <= 0 or analysis_term <= 0:
        return FALLBACK_FLOOR

    avg_annual_return = total_return / analysis_term
    simple_irr = avg_annual_return / initial_outlay

    return min(max(simple_irr, FALLBACK_FLOOR), FALLBACK_CAP)


def calculate_multiple(cash_flows: List[float]) -> float:
    """
    Calculate equity multiple.

    Args:
        cash_flows: Array of cash flows (investments are negative)

    Returns:
        Multiple (e.g., 2.0 = 2.0x return)
    """
    total_inflows = sum(cf for cf in cash_flows if cf > 0)
    total_outflows = abs(sum(cf for cf in cash_flows if cf < 0))

    if total_outflows == 0:
        raise ValueError("No investment (outflows) found")

    return total_inflows / total_outflows


def calculate_profit(cash_flows: List[float]) -> float:
    """Calculate profit (total inflows minus total outflows)."""
    return sum(cash_flows)
