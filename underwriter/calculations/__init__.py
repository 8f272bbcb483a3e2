"""
Financial Calculation Engine

Core calculation modules for real estate investment underwriting.
"""

from underwriter.calculations import (
    amortization,
    cashflow,
    financing,
    irr,
    proforma,
    returns,
)

__all__ = ["amortization", "cashflow", "financing", "irr", "proforma", "returns"]
