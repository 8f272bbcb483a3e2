"""
Rent roll parsing.

Reads a CSV or Excel rent roll and resolves each semantic column from a
list of header spellings, once per document.
"""

import io
import logging
import numbers
from typing import BinaryIO, Dict, List, Optional, Union

import pandas as pd

from underwriter.ingest import RentRollParseError
from underwriter.schemas import RentRoll, RentRollUnit, UnitStatus

logger = logging.getLogger(__name__)

# Ordered, case-insensitive; first match wins
HEADER_ALIASES: Dict[str, List[str]] = {
    "unit_number": [
        "unit",
        "unit #",
        "unit number",
        "unitnumber",
        "unit_number",
        "unit no",
    ],
    "unit_type": ["type", "unit type", "unittype", "unit_type", "bed/bath"],
    "monthly_rent": [
        "monthly rent",
        "rent",
        "monthlyrent",
        "monthly_rent",
        "current rent",
        "contract rent",
    ],
    "status": ["status", "occupancy", "occupancy status"],
    "tenant_name": [
        "tenant",
        "tenant name",
        "tenantname",
        "tenant_name",
        "resident",
    ],
}

VACANT_MARKERS = ("vacant", "empty")


def resolve_columns(columns: List[str]) -> Dict[str, Optional[str]]:
    """Map each field to the first matching header in the document."""
    normalized = {str(col).strip().lower(): col for col in columns}
    resolved: Dict[str, Optional[str]] = {}

    for field, aliases in HEADER_ALIASES.items():
        resolved[field] = next(
            (normalized[alias] for alias in aliases if alias in normalized), None
        )

    return resolved


def parse_rent(value) -> float:
    """Parse a rent cell, tolerating currency symbols and separators."""
    if value is None or pd.isna(value):
        return 0.0
    if isinstance(value, numbers.Number):
        return float(value)
    cleaned = str(value).replace("$", "").replace(",", "").strip()
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _cell(row: pd.Series, column: Optional[str]) -> str:
    if column is None:
        return ""
    value = row[column]
    if value is None or pd.isna(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def read_table(source: Union[bytes, BinaryIO], filename: str) -> pd.DataFrame:
    """Load a CSV, or the first sheet of a spreadsheet."""
    if isinstance(source, bytes):
        source = io.BytesIO(source)

    try:
        if filename.lower().endswith(".csv"):
            return pd.read_csv(source, skip_blank_lines=True)
        return pd.read_excel(source, sheet_name=0, engine="openpyxl")
    except Exception as e:
        raise RentRollParseError(f"Failed to parse rent roll: {e}") from e


def rent_roll_from_frame(df: pd.DataFrame) -> RentRoll:
    """Build a RentRoll from a loaded table."""
    if df.empty:
        raise RentRollParseError("No data found in rent roll file")

    columns = resolve_columns(list(df.columns))
    logger.debug(f"Rent roll columns resolved: {columns}")

    units: List[RentRollUnit] = []
    skipped = 0

    for _, row in df.iterrows():
        unit_number = _cell(row, columns["unit_number"])
        monthly_rent = (
            parse_rent(row[columns["monthly_rent"]]) if columns["monthly_rent"] else 0.0
        )

        if not unit_number or monthly_rent <= 0:
            skipped += 1
            continue

        status_text = _cell(row, columns["status"]).lower()
        status = (
            UnitStatus.vacant
            if any(marker in status_text for marker in VACANT_MARKERS)
            else UnitStatus.occupied
        )

        units.append(
            RentRollUnit(
                unit_number=unit_number,
                unit_type=_cell(row, columns["unit_type"]) or "Unknown",
                monthly_rent=monthly_rent,
                status=status,
                tenant_name=_cell(row, columns["tenant_name"]) or None,
            )
        )

    if skipped:
        logger.info(f"Skipped {skipped} rent roll rows without a unit number or rent")

    rent_roll = RentRoll.from_units(units)
    logger.info(
        f"Parsed rent roll: {rent_roll.total_units} units, "
        f"{rent_roll.occupancy_rate:.1%} occupied, "
        f"${rent_roll.total_monthly_rent:,.2f}/month"
    )
    return rent_roll


def parse_rent_roll(source: Union[bytes, BinaryIO], filename: str) -> RentRoll:
    """
    Parse a rent roll file.

    Args:
        source: File contents or a binary file object
        filename: Used to tell CSV from Excel

    Returns:
        RentRoll with summary statistics over the kept unit lines

    Raises:
        RentRollParseError: If the file cannot be read or has no rows
    """
    return rent_roll_from_frame(read_table(source, filename))
