"""
ecaytrade vehicle listing tracker
"""
from .models import Listing, RawCard, DetailPage, ScrapeResult, UpsertResult
from .extractors import (
    parse_card,
    parse_price,
    extract_year,
    extract_location,
    extract_mileage,
    extract_title,
    split_make_model
)
from .reconciler import reconcile
from .core import run_scrape, scrape_site, check_acceptance
from .config import ScraperConfig
from .pacing import Pacing
from .database import (
    db_connect,
    db_init,
    upsert_listing,
    db_get_listing
)
from .utils import init_logger, now_iso

__version__ = "1.0.0"

__all__ = [
    "Listing",
    "RawCard",
    "DetailPage",
    "ScrapeResult",
    "UpsertResult",
    "parse_card",
    "parse_price",
    "extract_year",
    "extract_location",
    "extract_mileage",
    "extract_title",
    "split_make_model",
    "reconcile",
    "run_scrape",
    "scrape_site",
    "check_acceptance",
    "ScraperConfig",
    "Pacing",
    "db_connect",
    "db_init",
    "upsert_listing",
    "db_get_listing",
    "init_logger",
    "now_iso"
]
