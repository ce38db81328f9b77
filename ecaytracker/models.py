"""
Data models for the ecaytrade vehicle listing tracker.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


@dataclass
class RawCard:
    """One result card as read from the listing page DOM."""
    url: str
    text: str
    image_url: str = ""


@dataclass
class Listing:
    """Represents a vehicle listing with all extracted data."""

    # Identity
    external_id: str
    url: str = ""

    # Summary fields (card pass)
    title: str = ""
    make: str = ""
    model: str = ""
    year: Optional[int] = None
    mileage: Optional[int] = None
    price: float = 0.0
    currency: str = ""

    # Descriptive attributes (card or detail pass)
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

    # Location
    location: Optional[str] = None
    on_island: Optional[bool] = None

    # Media and status
    images: List[str] = field(default_factory=list)
    is_active: bool = True

    # Owned by the persistence layer
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None


# Descriptive attributes filled by the reconciler, in merge order.
ATTRIBUTE_FIELDS: Tuple[str, ...] = (
    "condition",
    "transmission",
    "fuel_type",
    "color",
    "body_type",
    "drive",
    "cylinders",
    "steering",
    "interior_color",
    "doors",
)


class DetailField(Enum):
    """Fields recognised in the detail page attribute section."""
    YEAR = "year"
    MILEAGE = "mileage"
    LOCATION = "location"
    ON_ISLAND = "on_island"
    CONDITION = "condition"
    TRANSMISSION = "transmission"
    FUEL_TYPE = "fuel_type"
    COLOR = "color"
    BODY_TYPE = "body_type"
    DRIVE = "drive"
    CYLINDERS = "cylinders"
    STEERING = "steering"
    INTERIOR_COLOR = "interior_color"
    DOORS = "doors"


# Accepted label synonyms per field, tried in order (lowercase).
DETAIL_LABEL_SYNONYMS: Dict[DetailField, Tuple[str, ...]] = {
    DetailField.YEAR: ("year", "model year"),
    DetailField.MILEAGE: ("mileage", "odometer", "kilometers", "kilometres", "miles"),
    DetailField.LOCATION: ("location", "district", "area"),
    DetailField.ON_ISLAND: ("on island", "on-island", "on island?"),
    DetailField.CONDITION: ("condition",),
    DetailField.TRANSMISSION: ("transmission", "gearbox"),
    DetailField.FUEL_TYPE: ("fuel type", "fuel"),
    DetailField.COLOR: ("color", "colour", "exterior color", "exterior colour"),
    DetailField.BODY_TYPE: ("body type", "body", "body style"),
    DetailField.DRIVE: ("drive", "drive type", "drivetrain"),
    DetailField.CYLINDERS: ("cylinders", "engine cylinders"),
    DetailField.STEERING: ("steering", "steering side", "steering wheel"),
    DetailField.INTERIOR_COLOR: ("interior color", "interior colour", "interior"),
    DetailField.DOORS: ("doors", "number of doors"),
}


@dataclass
class DetailPage:
    """Label/value pairs and body text harvested from a listing's own page."""
    labels: Dict[str, str] = field(default_factory=dict)
    text: str = ""

    def lookup(self, detail_field: DetailField) -> List[str]:
        """Return non-empty raw values for a field, in synonym order.

        Labels are matched case-insensitively; unknown labels are ignored.
        """
        normalised = {k.strip().lower(): v for k, v in self.labels.items()}
        values = []
        for key in DETAIL_LABEL_SYNONYMS[detail_field]:
            value = (normalised.get(key) or "").strip()
            if value:
                values.append(value)
        return values


@dataclass
class PageSnapshot:
    """What one results page yielded: its raw cards and pagination hint."""
    cards: List[RawCard] = field(default_factory=list)
    has_next: bool = False


@dataclass
class CardError:
    """A card that could not be turned into a listing."""
    page_num: int
    index: int
    url: str
    reason: str


@dataclass
class PageResult:
    """Outcome of processing one results page."""
    page_num: int
    raw_count: int
    has_next: bool
    listings: List[Listing] = field(default_factory=list)
    rejected: int = 0
    errors: List[CardError] = field(default_factory=list)


@dataclass
class ScrapeResult:
    """Outcome of a full traversal pass."""
    listings: List[Listing] = field(default_factory=list)
    pages_visited: int = 0
    card_errors: List[CardError] = field(default_factory=list)
    stop_reason: str = ""


@dataclass
class UpsertResult:
    """What the persistence gateway did with one listing."""
    inserted: bool
    price_changed: bool


@dataclass
class RunSummary:
    """Counts reported at the end of a batch run."""
    scraped: int = 0
    inserted: int = 0
    updated: int = 0
    price_changed: int = 0
    errors: int = 0
