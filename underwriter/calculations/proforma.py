"""
Pro Forma Calculations

Derives income, expenses, NOI and the cap-rate valuation from property
facts. A rent roll, when present, is authoritative over extracted facts.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from underwriter.schemas import PropertyFacts, RentRoll, UnderwritingAssumptions

logger = logging.getLogger(__name__)

NOI_FALLBACK = "noi_fallback"


@dataclass(frozen=True)
class ProForma:
    """Year-one operating statement plus the facts that drove it."""

    units: int
    occupancy: float
    avg_monthly_rent: float
    gross_potential_income: float
    effective_gross_income: float
    operating_expenses: float
    noi: float
    vacancy_used: float
    fallbacks: List[str] = field(default_factory=list)


def has_rent_roll(rent_roll: Optional[RentRoll]) -> bool:
    return rent_roll is not None and rent_roll.total_units > 0


def derive_pro_forma(
    facts: PropertyFacts,
    rent_roll: Optional[RentRoll],
    assumptions: UnderwritingAssumptions,
) -> ProForma:
    """
    Build the year-one pro forma.

    With a rent roll, units, occupancy and average rent come from the roll,
    vacancy is the occupancy complement and NOI is recomputed from the roll's
    annual rent, discarding any extracted NOI. Without one, extracted
    expenses and NOI are used when positive and the assumption ratios fill
    the gaps. A non-positive NOI is replaced by EGI x (1 - expense ratio).
    """
    fallbacks: List[str] = []
    use_rent_roll = has_rent_roll(rent_roll)

    if use_rent_roll:
        units = rent_roll.total_units
        occupancy = rent_roll.occupancy_rate
        avg_rent = rent_roll.average_monthly_rent
        vacancy = 1 - occupancy
    else:
        units = facts.units
        occupancy = facts.occupancy
        avg_rent = facts.avg_monthly_rent
        vacancy = assumptions.vacancy

    gross_potential_income = units * avg_rent * 12
    effective_gross_income = gross_potential_income * (1 - vacancy)

    if use_rent_roll:
        annual_rent = rent_roll.total_monthly_rent * 12
        collected_rent = annual_rent * (1 - vacancy)
        operating_expenses = collected_rent * assumptions.expense_ratio
        noi = collected_rent - operating_expenses
        logger.debug(
            f"NOI from rent roll: annual rent {annual_rent:,.2f}, "
            f"vacancy {vacancy:.4f}, NOI {noi:,.2f}"
        )
    else:
        if facts.annual_operating_expenses and facts.annual_operating_expenses > 0:
            operating_expenses = facts.annual_operating_expenses
        else:
            operating_expenses = effective_gross_income * assumptions.expense_ratio

        if facts.noi and facts.noi > 0:
            noi = facts.noi
        else:
            noi = effective_gross_income - operating_expenses

    if noi <= 0:
        fallback_noi = effective_gross_income * (1 - assumptions.expense_ratio)
        logger.warning(
            f"Non-positive NOI {noi:,.2f} for {facts.property_name}, "
            f"using fallback {fallback_noi:,.2f}"
        )
        noi = fallback_noi
        fallbacks.append(NOI_FALLBACK)

    return ProForma(
        units=units,
        occupancy=occupancy,
        avg_monthly_rent=avg_rent,
        gross_potential_income=gross_potential_income,
        effective_gross_income=effective_gross_income,
        operating_expenses=operating_expenses,
        noi=noi,
        vacancy_used=vacancy,
        fallbacks=fallbacks,
    )


def calculate_cap_rate_valuation(noi: float, cap_rate: float) -> float:
    """Direct capitalization: value = NOI / cap rate."""
    if cap_rate <= 0:
        raise ValueError("Cap rate must be positive")
    return noi / cap_rate


def calculate_price_difference(
    whisper_price: Optional[float], market_value: float
) -> float:
    """Whisper price minus market valuation, 0 without a whisper price."""
    if whisper_price and whisper_price > 0:
        return whisper_price - market_value
    return 0.0
