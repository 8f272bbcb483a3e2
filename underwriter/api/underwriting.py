"""
Underwriting API endpoints.

Initial underwriting from property facts or uploaded documents, and
recalculation of an earlier result under new assumptions or price.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from underwriter.config import get_settings
from underwriter.engine import InvalidInputError, recalculate, underwrite
from underwriter.ingest import (
    DocumentExtractionError,
    ExtractionServiceError,
    FieldExtractionError,
    RentRollParseError,
)
from underwriter.ingest.documents import extract_text
from underwriter.ingest.extraction import ExtractionConfig, extract_property_facts
from underwriter.ingest.rent_roll import parse_rent_roll
from underwriter.schemas import (
    DealMetrics,
    PriceBasis,
    PropertyFacts,
    RentRoll,
    UnderwritingAssumptions,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class UnderwriteRequest(BaseModel):
    """Facts for a first-pass underwriting."""

    facts: PropertyFacts
    rent_roll: Optional[RentRoll] = None
    assumptions: Optional[UnderwritingAssumptions] = None


class RecalculateRequest(BaseModel):
    """An earlier result plus what changed."""

    deal: DealMetrics
    assumptions: UnderwritingAssumptions
    price: Optional[float] = None
    basis: Optional[PriceBasis] = None


def get_extraction_client():
    """Completion client override point; None builds one from settings."""
    return None


@router.get("/defaults", response_model=UnderwritingAssumptions)
async def default_assumptions():
    """Default assumption set."""
    return get_settings().default_assumptions()


@router.post("/underwrite", response_model=DealMetrics)
async def underwrite_endpoint(request: UnderwriteRequest):
    """Underwrite a property from already-resolved facts."""
    assumptions = request.assumptions or get_settings().default_assumptions()

    try:
        return underwrite(request.facts, request.rent_roll, assumptions)
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/recalculate", response_model=DealMetrics)
async def recalculate_endpoint(request: RecalculateRequest):
    """Re-derive a deal with revised assumptions and/or price basis."""
    try:
        return recalculate(
            request.deal, request.assumptions, request.price, request.basis
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/parse-om", response_model=DealMetrics)
def parse_offering_memorandum(
    pdf: UploadFile = File(...),
    rent_roll: Optional[UploadFile] = File(None),
    client=Depends(get_extraction_client),
):
    """Extract facts from an offering memorandum (and rent roll) and underwrite."""
    settings = get_settings()

    if pdf.content_type != "application/pdf":
        raise HTTPException(status_code=400, detail="File must be a PDF")

    try:
        text = extract_text(pdf.file.read())
    except DocumentExtractionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    parsed_rent_roll = None
    if rent_roll is not None and rent_roll.filename:
        try:
            parsed_rent_roll = parse_rent_roll(rent_roll.file.read(), rent_roll.filename)
        except RentRollParseError as e:
            logger.warning(f"Failed to parse rent roll, continuing with OM only: {e}")

    config = ExtractionConfig.from_settings(settings)
    try:
        facts = extract_property_facts(text, parsed_rent_roll, config, client=client)
    except ExtractionServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except FieldExtractionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        return underwrite(facts, parsed_rent_roll, settings.default_assumptions())
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
