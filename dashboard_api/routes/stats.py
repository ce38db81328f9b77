"""
Statistics API route handlers.
"""
import logging
from fastapi import APIRouter, HTTPException

from ..models import StatsOut, StatsResponse
from ..database import get_statistics

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["statistics"])

@router.get("/stats", response_model=StatsResponse)
async def get_api_stats():
    """Dashboard statistics: price, mileage, makes, body types, years."""
    try:
        return StatsResponse(data=StatsOut(**get_statistics()))

    except Exception as e:
        logger.error(f"Error fetching statistics: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
