"""
Field extraction from listing card and detail page text.

Every extractor is a pure function over a block of text. Patterns are compiled
once at import time and never mutated, so extractors can be called from any
number of cards or pages concurrently.
"""
import re
from typing import Optional, Tuple

from .models import Listing, RawCard
from .utils import clean_text, digits_to_int, title_case


# Sanity band for odometer readings; anything outside is treated as unparsed.
MILEAGE_MIN = 100
MILEAGE_MAX = 2_000_000

TITLE_FALLBACK_LEN = 60
PRICE_FRAGMENT_MAX_LEN = 20
DETAIL_CHIP_SEP = "·"

# "CI$ 5,000", "KYD$6,000", "US$ 16,000", "kyd 4500", "CI$5000"
PRICE_RE = re.compile(r"\b(CI\$?|KYD\$?|US\$?)\s*(\d[\d,]*(?:\.\d+)?)", re.I)

YEAR_RE = re.compile(r"\b((?:19|20)\d{2})\b")

ADVERT_ID_RE = re.compile(r"/advert/(\d+)/?(?:[?#].*)?$")

LOCATION_RE = re.compile(
    r"(on island|off island|grand cayman|cayman brac|little cayman|"
    r"george town|bodden town|west bay|north side|east end)",
    re.I,
)

_NUM = r"(\d[\d,]*)"
_UNIT = r"(?:kilometers|kilometres|kms|km|miles|mi)\b"

# Tier 1: labelled reading. Unit words only count as a label with a separator,
# and never when they close a preceding number ("85,600 km - 2015 ...").
MILEAGE_LABELLED_RE = re.compile(
    rf"(?:\b(?:mileage|odometer)\b\s*[:\-]?|(?<![\d,])(?<![\d,]\s)\b(?:kms?|miles)\s*[:\-])"
    rf"\s*{_NUM}(?:\s*{_UNIT})?",
    re.I,
)
# Tier 2: bare number with a distance unit.
MILEAGE_UNIT_RE = re.compile(rf"\b{_NUM}\s*{_UNIT}", re.I)
# Tier 3: approximate qualifier.
MILEAGE_APPROX_RE = re.compile(
    rf"(?:\b(?:over|under|approximately|approx\.?|about)|~)\s*{_NUM}", re.I
)
MILEAGE_TIERS = (MILEAGE_LABELLED_RE, MILEAGE_UNIT_RE, MILEAGE_APPROX_RE)

TRANSMISSION_RE = re.compile(r"^(automatic|manual|cvt|tiptronic)$", re.I)
FUEL_RE = re.compile(r"^(gasoline|petrol|diesel|hybrid|electric)$", re.I)

# Longer names precede names that are their prefix.
KNOWN_MAKES = (
    "Acura", "Alfa Romeo", "Aston Martin", "Audi", "Bentley", "BMW", "Bugatti",
    "Buick", "Cadillac", "Chevrolet", "Chrysler", "Citroën", "Dodge", "Ferrari",
    "Fiat", "Ford", "Genesis", "GMC", "Honda", "Hyundai", "Infiniti", "Jaguar",
    "Jeep", "Kia", "Lamborghini", "Land Rover", "Lexus", "Lincoln", "Lotus",
    "Maserati", "Mazda", "McLaren", "Mercedes-Benz", "Mercedes", "MINI",
    "Mitsubishi", "Nissan", "Peugeot", "Pontiac", "Porsche", "Ram", "Rolls-Royce",
    "Subaru", "Suzuki", "Tesla", "Toyota", "Volkswagen", "Volvo",
)


def normalise_currency(token: str) -> str:
    """Map a price marker to an ISO-ish code; unknown markers pass through."""
    s = token.strip().upper()
    if s.startswith("CI") or s.startswith("KYD"):
        return "KYD"  # CI$ is the Cayman Islands dollar
    if s.startswith("US"):
        return "USD"
    return s


def parse_price(text: str) -> Tuple[Optional[float], Optional[str]]:
    """
    Parse the first currency-marked amount in the text.

    Returns (value, currency), or (None, None) when nothing parses.
    """
    if not text:
        return (None, None)
    m = PRICE_RE.search(text)
    if not m:
        return (None, None)
    try:
        value = float(m.group(2).replace(",", ""))
    except ValueError:
        return (None, None)
    return (value, normalise_currency(m.group(1)))


def extract_year(text: str) -> Optional[int]:
    """Return the last 19xx/20xx token in reading order."""
    years = YEAR_RE.findall(text or "")
    if not years:
        return None
    # Titles lead with the year; a trailing mention is usually the model year.
    return int(years[-1])


def extract_location(text: str) -> Optional[str]:
    m = LOCATION_RE.search(text or "")
    if not m:
        return None
    return title_case(m.group(1))


def bounded_mileage(raw: str) -> Optional[int]:
    """Parse a digit run and keep it only if it is a plausible odometer value."""
    value = digits_to_int(raw)
    if value is None or not (MILEAGE_MIN <= value <= MILEAGE_MAX):
        return None
    return value


def extract_mileage(text: str) -> Optional[int]:
    """
    Find an odometer reading using three tiers in strict priority order:

    1. a label ("Mileage: 45,000", "Odometer 80000 km", "Km: 12,000")
    2. a number with a unit ("85,600 km", "60000 miles")
    3. an approximate qualifier ("over 100,000", "approx. 90000", "~ 75,000")

    The first tier that yields an in-band value wins. Out-of-band candidates
    are discarded, never clamped.
    """
    if not text:
        return None
    for pattern in MILEAGE_TIERS:
        for m in pattern.finditer(text):
            value = bounded_mileage(m.group(1))
            if value is not None:
                return value
    return None


def extract_title(text: str) -> str:
    """Pick the first line that is neither a bare price nor a detail-chip row."""
    text = (text or "").replace("\t", " ")
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            continue
        if PRICE_RE.search(line) and len(line) < PRICE_FRAGMENT_MAX_LEN:
            continue
        # "Automatic · 2018 · On Island"
        if DETAIL_CHIP_SEP in line:
            continue
        return line
    return clean_text(text)[:TITLE_FALLBACK_LEN]


def split_make_model(title: str) -> Tuple[str, str]:
    """
    Split a title into (make, model).

    "2018 Toyota Camry SE" -> ("Toyota", "Camry SE")
    "Custom Buggy Thing"   -> ("Custom", "Buggy Thing")
    """
    stripped = YEAR_RE.sub("", title or "").strip()
    upper = stripped.upper()
    for make in KNOWN_MAKES:
        if upper.startswith(make.upper()):
            return make, stripped[len(make):].strip()

    parts = stripped.split()
    if not parts:
        return "", title
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], " ".join(parts[1:])


def extract_external_id(url: str) -> str:
    m = ADVERT_ID_RE.search(url or "")
    return m.group(1) if m else ""


def extract_chip_attributes(text: str) -> Tuple[Optional[str], Optional[str]]:
    """Read transmission and fuel type from "A · B · C" chip rows."""
    transmission = None
    fuel_type = None
    for line in (text or "").split("\n"):
        if DETAIL_CHIP_SEP not in line:
            continue
        for chip in line.split(DETAIL_CHIP_SEP):
            chip = chip.strip()
            if transmission is None and TRANSMISSION_RE.match(chip):
                transmission = title_case(chip) if chip.lower() != "cvt" else "CVT"
            elif fuel_type is None and FUEL_RE.match(chip):
                fuel_type = title_case(chip)
    return transmission, fuel_type


def parse_card(card: RawCard) -> Listing:
    """Build a provisional Listing from a result card."""
    text = card.text or ""
    listing = Listing(
        external_id=extract_external_id(card.url),
        url=card.url,
        images=[card.image_url] if card.image_url else [],
        is_active=True,
    )

    price, currency = parse_price(text)
    if price is not None:
        listing.price = price
        listing.currency = currency

    listing.year = extract_year(text)
    listing.location = extract_location(text)
    listing.mileage = extract_mileage(text)
    listing.transmission, listing.fuel_type = extract_chip_attributes(text)

    listing.title = extract_title(text)
    listing.make, listing.model = split_make_model(listing.title)
    return listing
