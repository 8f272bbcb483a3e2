"""
Data models shared by the underwriting engine and the API.

All rates are decimal fractions (0.06 = 6%), money is USD.
"""

import enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PriceBasis(str, enum.Enum):
    """Which price the financing and projection are built on."""

    market = "market"
    whisper = "whisper"
    custom = "custom"


class UnitStatus(str, enum.Enum):
    occupied = "occupied"
    vacant = "vacant"


class PropertyFacts(BaseModel):
    """Property facts as extracted from an offering memorandum."""

    model_config = ConfigDict(frozen=True)

    property_name: str = "Unknown Property"
    whisper_price: Optional[float] = None
    units: int
    occupancy: float = Field(default=0.95, ge=0, le=1)
    avg_monthly_rent: float
    annual_operating_expenses: Optional[float] = None
    noi: Optional[float] = None
    market_cap_rate: float = Field(default=0.06, ge=0, le=1)


class RentRollUnit(BaseModel):
    """A single unit line from a rent roll."""

    model_config = ConfigDict(frozen=True)

    unit_number: str
    unit_type: str = "Unknown"
    monthly_rent: float
    status: UnitStatus = UnitStatus.occupied
    tenant_name: Optional[str] = None


class RentRoll(BaseModel):
    """Tenant-by-tenant schedule; authoritative over extracted facts."""

    model_config = ConfigDict(frozen=True)

    total_units: int = Field(ge=0)
    occupied_units: int = Field(ge=0)
    vacant_units: int = Field(ge=0)
    total_monthly_rent: float = Field(ge=0)
    average_monthly_rent: float = Field(ge=0)
    occupancy_rate: float = Field(ge=0, le=1)
    units: List[RentRollUnit] = []

    @classmethod
    def from_units(cls, units: List[RentRollUnit]) -> "RentRoll":
        """Build the summary statistics from unit lines."""
        kept = [unit for unit in units if unit.monthly_rent > 0]
        total_units = len(kept)
        vacant_units = sum(1 for unit in kept if unit.status == UnitStatus.vacant)
        occupied_units = total_units - vacant_units
        total_monthly_rent = sum(unit.monthly_rent for unit in kept)

        return cls(
            total_units=total_units,
            occupied_units=occupied_units,
            vacant_units=vacant_units,
            total_monthly_rent=total_monthly_rent,
            average_monthly_rent=total_monthly_rent / total_units if total_units else 0.0,
            occupancy_rate=occupied_units / total_units if total_units else 0.0,
            units=kept,
        )


class UnderwritingAssumptions(BaseModel):
    """Underwriting assumption set."""

    model_config = ConfigDict(frozen=True)

    vacancy: float = Field(default=0.05, ge=0, le=1)
    expense_ratio: float = Field(default=0.35, ge=0, le=1)
    market_cap_rate: float = Field(default=0.06, ge=0, le=1)
    loan_to_value: float = Field(default=0.65, ge=0, le=1)
    interest_rate: float = Field(default=0.06, ge=0, le=1)
    amortization_years: int = 30
    rent_growth_rate: float = 0.03
    expense_growth_rate: float = 0.02
    exit_cap_rate: float = Field(default=0.065, ge=0, le=1)
    analysis_term: int = 5


class YearRow(BaseModel):
    """One year of the hold-period projection (year 0 is acquisition)."""

    model_config = ConfigDict(frozen=True)

    year: int
    gross_income: float = 0.0
    operating_expenses: float = 0.0
    noi: float = 0.0
    debt_service: float = 0.0
    cash_flow_before_debt: float = 0.0
    cash_flow_after_debt: float = 0.0
    cumulative_cash_flow_before_debt: float = 0.0
    cumulative_cash_flow_after_debt: float = 0.0
    remaining_debt: float = 0.0
    property_value: float = 0.0
    exit_equity: float = 0.0
    total_return_unlevered: float = 0.0
    total_return_levered: float = 0.0
    annual_cash_on_cash: float = 0.0


class DealMetrics(BaseModel):
    """Snapshot of one underwriting run. Always derived fresh, never patched."""

    model_config = ConfigDict(frozen=True)

    # Facts (units / occupancy / rent reflect the rent roll when one drove them)
    property_name: str
    whisper_price: Optional[float] = None
    units: int
    occupancy: float
    avg_monthly_rent: float
    annual_operating_expenses: Optional[float] = None
    parsed_noi: Optional[float] = None
    market_cap_rate: float

    # Pro forma
    gross_potential_income: float
    effective_gross_income: float
    operating_expenses: float
    noi: float
    vacancy: float
    expense_ratio: float

    # Valuation
    purchase_price: float
    price_difference: float
    cap_rate_valuation: float  # equals purchase_price
    market_valuation: float  # NOI / market cap rate
    price_basis: PriceBasis = PriceBasis.market

    # Financing
    loan_amount: float
    equity: float
    debt_service: float
    dscr: Optional[float] = None  # None when there is no debt
    cash_on_cash_return: float

    # Returns
    levered_irr: float
    unlevered_irr: float
    equity_multiple: float
    irr_breakdown: List[YearRow]

    assumptions: UnderwritingAssumptions
    rent_roll_data: Optional[RentRoll] = None
    fallbacks: List[str] = []

    def to_facts(self) -> PropertyFacts:
        """Property facts this snapshot was derived from."""
        return PropertyFacts(
            property_name=self.property_name,
            whisper_price=self.whisper_price,
            units=self.units,
            occupancy=self.occupancy,
            avg_monthly_rent=self.avg_monthly_rent,
            annual_operating_expenses=self.annual_operating_expenses,
            noi=self.parsed_noi,
            market_cap_rate=self.market_cap_rate,
        )
