"""
API routes for the underwriting engine.
"""

from fastapi import APIRouter

from underwriter.api import calculations, underwriting

router = APIRouter()

# Include sub-routers
router.include_router(underwriting.router, prefix="/underwriting", tags=["underwriting"])
router.include_router(calculations.router, prefix="/calculate", tags=["calculations"])
