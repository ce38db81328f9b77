"""
API route handlers for listings endpoints.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Query, HTTPException, Depends
from fastapi.responses import StreamingResponse
import pandas as pd

from ..models import ListingOut, ListingsResponse, PricePoint
from ..database import get_listings_count, get_listings, get_listing_by_id, get_price_history
from ..config import config

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["listings"])

EXPORT_COLUMNS = ['external_id', 'title', 'make', 'model', 'year', 'mileage', 'price', 'currency']

def get_listing_filters(
    q: Optional[str] = None,
    make: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    year: Optional[int] = None,
) -> dict:
    """Dependency to extract listing filters."""
    return {
        'q': q,
        'make': make,
        'min_price': min_price,
        'max_price': max_price,
        'year': year,
    }

@router.get("/listings", response_model=ListingsResponse)
async def get_api_listings(
    filters: dict = Depends(get_listing_filters),
    limit: int = Query(config.DEFAULT_API_LIMIT, ge=1, le=config.MAX_API_LIMIT),
    offset: int = Query(0, ge=0)
):
    """Active listings, newest first."""
    try:
        total = get_listings_count(filters)
        items = [ListingOut(**item) for item in get_listings(filters, limit, offset)]
        return ListingsResponse(data=items, total=total)

    except Exception as e:
        logger.error(f"Error fetching listings: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

@router.get("/listings/{external_id}", response_model=ListingOut)
async def get_api_listing(external_id: str):
    """Get a specific listing by external id."""
    try:
        listing_data = get_listing_by_id(external_id)
        if not listing_data:
            raise HTTPException(status_code=404, detail="Listing not found")

        return ListingOut(**listing_data)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching listing {external_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

@router.get("/listings/{external_id}/price-history", response_model=List[PricePoint])
async def get_api_price_history(external_id: str):
    """Get price history for a specific listing."""
    try:
        if not get_listing_by_id(external_id):
            raise HTTPException(status_code=404, detail="Listing not found")

        return [PricePoint(**point) for point in get_price_history(external_id)]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching price history for {external_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

@router.get("/export/csv")
async def export_listings_csv(filters: dict = Depends(get_listing_filters)):
    """Export filtered listings as CSV."""
    try:
        listings_data = get_listings(filters, limit=config.MAX_API_LIMIT, offset=0)

        if not listings_data:
            df = pd.DataFrame(columns=EXPORT_COLUMNS)
        else:
            df = pd.DataFrame(listings_data)
            df['images'] = df['images'].apply(lambda urls: '|'.join(urls))

        csv_content = df.to_csv(index=False).encode('utf-8')

        return StreamingResponse(
            iter([csv_content]),
            media_type='text/csv',
            headers={'Content-Disposition': 'attachment; filename="ecaytracker_listings.csv"'}
        )

    except Exception as e:
        logger.error(f"Error exporting CSV: {e}")
        raise HTTPException(status_code=500, detail="Error generating CSV export")
