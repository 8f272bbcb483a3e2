"""
Property fact extraction from offering memorandum text.

Asks an OpenAI chat model for a JSON object of property facts, then
reconciles the model's field names and units into one PropertyFacts.
"""

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from underwriter.config import Settings
from underwriter.ingest import ExtractionServiceError, FieldExtractionError
from underwriter.schemas import PropertyFacts, RentRoll

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a commercial real estate analyst. You MUST return ONLY valid JSON "
    "with proper quotes around all property names and string values. Numbers "
    "should be unquoted. Do not include any explanatory text before or after "
    "the JSON."
)

# Canonical field -> spellings seen in model output, in priority order
FIELD_ALIASES: Dict[str, List[str]] = {
    "property_name": ["propertyName", "property_name", "name"],
    "whisper_price": [
        "whisperPrice",
        "whisper_price",
        "purchasePrice",
        "purchase_price",
        "askingPrice",
        "asking_price",
    ],
    "units": ["units", "totalUnits", "total_units", "unitCount"],
    "occupancy": ["occupancy", "occupancyRate", "occupancy_rate"],
    "avg_monthly_rent": [
        "avgRent",
        "avg_rent",
        "averageRent",
        "average_rent",
        "avgMonthlyRent",
        "avg_monthly_rent",
    ],
    "annual_operating_expenses": [
        "expenses",
        "operatingExpenses",
        "operating_expenses",
        "annualOperatingExpenses",
    ],
    "noi": ["NOI", "noi", "netOperatingIncome", "net_operating_income"],
    "market_cap_rate": ["marketCapRate", "market_cap_rate", "capRate", "cap_rate"],
}

FRACTION_FIELDS = ("occupancy", "market_cap_rate")


@dataclass(frozen=True)
class ExtractionConfig:
    """Everything the extraction call needs, passed explicitly per call."""

    api_key: str
    model: str = "gpt-4o-mini"
    max_chars: int = 4000
    temperature: float = 0.1
    max_tokens: int = 500
    timeout_seconds: float = 60.0
    default_property_name: str = "Unknown Property"
    default_units: int = 100
    default_avg_rent: float = 1500.0
    default_occupancy: float = 0.95
    default_market_cap_rate: float = 0.06

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExtractionConfig":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            max_chars=settings.extraction_max_chars,
            temperature=settings.extraction_temperature,
            max_tokens=settings.extraction_max_tokens,
            timeout_seconds=settings.extraction_timeout_seconds,
            default_property_name=settings.default_property_name,
            default_units=settings.default_units,
            default_avg_rent=settings.default_avg_rent,
            default_occupancy=settings.default_occupancy,
            default_market_cap_rate=settings.default_market_cap_rate,
        )


def build_extraction_prompt(
    text: str, rent_roll: Optional[RentRoll] = None, max_chars: int = 4000
) -> str:
    """Analyst prompt naming the JSON fields to return."""
    rent_roll_context = ""
    if rent_roll is not None and rent_roll.total_units > 0:
        rent_roll_context = f"""
IMPORTANT: You have access to actual rent roll data. Use this data to override OM estimates:
- Total Units: {rent_roll.total_units}
- Occupied Units: {rent_roll.occupied_units}
- Vacant Units: {rent_roll.vacant_units}
- Total Monthly Rent: ${rent_roll.total_monthly_rent:,.2f}
- Average Monthly Rent: ${rent_roll.average_monthly_rent:,.2f}
- Actual Occupancy Rate: {rent_roll.occupancy_rate * 100:.1f}%

Use the rent roll data for units, occupancy, and avgRent instead of the OM text.
"""

    return f"""
Extract the following information from this Offering Memorandum text and return ONLY a valid JSON object with these exact field names:

{{
  "propertyName": "string - name of the property",
  "whisperPrice": number - asking or suggested price in USD (no commas or symbols), or null if none is mentioned,
  "units": number - total number of units,
  "occupancy": number - occupancy rate as decimal (e.g., 0.95 for 95%),
  "avgRent": number - average monthly rent per unit in USD. If only total annual income is given, divide by (units x 12),
  "expenses": number - annual operating expenses in USD,
  "NOI": number - Net Operating Income in USD,
  "marketCapRate": number - market cap rate as decimal (e.g., 0.06 for 6%)
}}
{rent_roll_context}
Use null for any value the text does not state.

Text to analyze:
{text[:max_chars]}
"""


def parse_completion(response_text: str) -> Dict[str, Any]:
    """Load the first JSON object found in a completion."""
    match = re.search(r"\{[\s\S]*\}", response_text or "")
    if not match:
        raise FieldExtractionError("No JSON found in extraction response")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise FieldExtractionError(f"Failed to parse extraction response: {e}") from e

    if not isinstance(data, dict):
        raise FieldExtractionError("Extraction response is not a JSON object")
    return data


def to_number(value: Any) -> Optional[float]:
    """
    Parse numbers that may arrive as strings with $, commas or %.

    NaN and infinities count as missing.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = str(value).replace("$", "").replace(",", "").replace("%", "").strip()
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None

    return number if math.isfinite(number) else None


def _first_present(raw: Dict[str, Any], aliases: List[str]) -> Any:
    for alias in aliases:
        value = raw.get(alias)
        if value not in (None, ""):
            return value
    return None


def reconcile_fields(raw: Dict[str, Any], config: ExtractionConfig) -> PropertyFacts:
    """
    Collapse the model's field spellings into canonical PropertyFacts.

    Missing name, units or rent are replaced by configured defaults;
    percentages are turned into fractions.
    """
    values: Dict[str, Any] = {
        field: _first_present(raw, aliases) for field, aliases in FIELD_ALIASES.items()
    }

    numbers = {
        field: to_number(values[field])
        for field in FIELD_ALIASES
        if field != "property_name"
    }

    for field in FRACTION_FIELDS:
        value = numbers[field]
        if value is not None and value > 1:
            numbers[field] = value / 100

    missing = []
    property_name = str(values["property_name"] or "").strip()
    if not property_name:
        missing.append("property_name")
        property_name = config.default_property_name

    units = numbers["units"]
    if not units or units <= 0:
        missing.append("units")
        units = config.default_units

    avg_rent = numbers["avg_monthly_rent"]
    if not avg_rent or avg_rent <= 0:
        missing.append("avg_monthly_rent")
        avg_rent = config.default_avg_rent

    if missing:
        logger.warning(f"Extraction missing {missing}, using defaults")

    occupancy = numbers["occupancy"]
    if occupancy is None or not 0 <= occupancy <= 1:
        occupancy = config.default_occupancy

    cap_rate = numbers["market_cap_rate"]
    if cap_rate is None or not 0 < cap_rate <= 1:
        cap_rate = config.default_market_cap_rate

    whisper_price = numbers["whisper_price"]

    return PropertyFacts(
        property_name=property_name,
        whisper_price=whisper_price if whisper_price and whisper_price > 0 else None,
        units=int(round(units)),
        occupancy=occupancy,
        avg_monthly_rent=avg_rent,
        annual_operating_expenses=numbers["annual_operating_expenses"],
        noi=numbers["noi"],
        market_cap_rate=cap_rate,
    )


def extract_property_facts(
    text: str,
    rent_roll: Optional[RentRoll],
    config: ExtractionConfig,
    client: Optional[OpenAI] = None,
) -> PropertyFacts:
    """
    Extract property facts from OM text with an OpenAI chat model.

    Args:
        text: Offering memorandum text
        rent_roll: Parsed rent roll, given to the model as context
        config: API key, model and defaults for this call
        client: Pre-built client; one is created from config when omitted

    Raises:
        ExtractionServiceError: If the service is not configured or fails
        FieldExtractionError: If the response holds no usable JSON
    """
    if client is None:
        if not config.api_key:
            raise ExtractionServiceError("OpenAI API key is not configured")
        client = OpenAI(api_key=config.api_key, timeout=config.timeout_seconds)

    prompt = build_extraction_prompt(text, rent_roll, config.max_chars)

    try:
        completion = client.chat.completions.create(
            model=config.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )
    except OpenAIError as e:
        logger.error(f"Extraction request failed: {str(e)}")
        raise ExtractionServiceError(f"Extraction service unavailable: {e}") from e

    response_text = completion.choices[0].message.content if completion.choices else None
    if not response_text:
        raise FieldExtractionError("No response from extraction service")

    logger.debug(f"Extraction response: {response_text}")
    facts = reconcile_fields(parse_completion(response_text), config)
    logger.info(
        f"Extracted facts for {facts.property_name}: {facts.units} units, "
        f"${facts.avg_monthly_rent:,.0f} avg rent"
    )
    return facts
