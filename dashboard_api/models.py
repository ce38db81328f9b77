"""
Pydantic models for API request/response serialization.
"""
from typing import List, Optional

from pydantic import BaseModel


class ListingOut(BaseModel):
    """Output model for listing data."""
    external_id: str
    url: str = ""
    title: str = ""
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    mileage: Optional[int] = None
    price: float = 0.0
    currency: Optional[str] = None
    condition: Optional[str] = None
    transmission: Optional[str] = None
    fuel_type: Optional[str] = None
    color: Optional[str] = None
    body_type: Optional[str] = None
    drive: Optional[str] = None
    cylinders: Optional[str] = None
    steering: Optional[str] = None
    interior_color: Optional[str] = None
    doors: Optional[str] = None
    location: Optional[str] = None
    on_island: Optional[bool] = None
    images: List[str] = []
    is_active: bool = True
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None


class ListingsResponse(BaseModel):
    """Envelope for the listings collection."""
    data: List[ListingOut]
    total: int
    error: Optional[str] = None


class PricePoint(BaseModel):
    """Model for price history data point."""
    ts: str
    price: float
    currency: Optional[str] = None


class BrandStat(BaseModel):
    name: str
    count: int
    avg_price: float


class BodyTypeStat(BaseModel):
    type: str
    count: int
    avg_price: float


class YearStat(BaseModel):
    year: int
    count: int


class StatsOut(BaseModel):
    """Pre-computed dashboard statistics."""
    total_listings: int
    avg_price: float
    median_price: float
    new_this_week: int
    avg_mileage: float
    top_brands: List[BrandStat]
    body_types: List[BodyTypeStat]
    year_distribution: List[YearStat]


class StatsResponse(BaseModel):
    data: StatsOut
    error: Optional[str] = None
