"""
Merge detail page attributes into a card-derived listing.

Fields already set on the listing are never overwritten. A detail value that
itself reads like another attribute's "Label: value" pair is treated as absent:
the page walker sometimes attaches a neighbouring element's text to a label.
A value prefixed with its own field's label ("Color: Red") is kept, minus
the label.
"""
import logging
import re
from typing import Optional

from .extractors import bounded_mileage, extract_mileage
from .models import ATTRIBUTE_FIELDS, DETAIL_LABEL_SYNONYMS, DetailField, DetailPage, Listing
from .utils import clean_text, title_case

logger = logging.getLogger(__name__)

YEAR_MIN = 1900
YEAR_MAX = 2100

TRUTHY_VALUES = {"yes", "true"}


def _contamination_pattern():
    labels = sorted(
        {label for synonyms in DETAIL_LABEL_SYNONYMS.values() for label in synonyms},
        key=len,
        reverse=True,
    )
    alternation = "|".join(re.escape(label) for label in labels)
    return re.compile(rf"\b({alternation})\s*:", re.I)


def _own_label_pattern(detail_field: DetailField):
    labels = sorted(DETAIL_LABEL_SYNONYMS[detail_field], key=len, reverse=True)
    alternation = "|".join(re.escape(label) for label in labels)
    return re.compile(rf"^\s*(?:{alternation})\s*:\s*", re.I)


CONTAMINATION_RE = _contamination_pattern()
OWN_LABEL_RE = {f: _own_label_pattern(f) for f in DetailField}


def is_contaminated(value: str, own_field: Optional[DetailField] = None) -> bool:
    """True when a value contains another field's label followed by a colon."""
    own = set(DETAIL_LABEL_SYNONYMS[own_field]) if own_field else set()
    return any(m.group(1).lower() not in own for m in CONTAMINATION_RE.finditer(value or ""))


def first_clean_value(detail: DetailPage, detail_field: DetailField) -> Optional[str]:
    """First synonym value for a field that is not contaminated."""
    for value in detail.lookup(detail_field):
        if is_contaminated(value, detail_field):
            logger.debug(f"Rejected contaminated {detail_field.value} value: {value!r}")
            continue
        value = clean_text(OWN_LABEL_RE[detail_field].sub("", value, count=1))
        if value:
            return value
    return None


def parse_year_value(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    m = re.search(r"\b(\d{4})\b", value)
    if not m:
        return None
    year = int(m.group(1))
    if YEAR_MIN <= year <= YEAR_MAX:
        return year
    return None


def parse_mileage_value(value: Optional[str]) -> Optional[int]:
    """Mileage from a labelled value such as "85,600 km" or "85600"."""
    if not value:
        return None
    mileage = extract_mileage(value)
    if mileage is not None:
        return mileage
    m = re.match(r"\s*(\d[\d,]*)", value)
    return bounded_mileage(m.group(1)) if m else None


def parse_on_island(value: Optional[str]) -> Optional[bool]:
    # Any present value other than yes/true reads as False, not unknown.
    if value is None:
        return None
    return value.strip().lower() in TRUTHY_VALUES


def reconcile(listing: Listing, detail: DetailPage) -> Listing:
    """
    Fill unset optional fields on the listing from a detail page.

    The listing is enriched in place and returned. Title, make, model, price,
    currency and external id are never touched.
    """
    if listing.year is None:
        listing.year = parse_year_value(first_clean_value(detail, DetailField.YEAR))

    if listing.mileage is None:
        listing.mileage = parse_mileage_value(first_clean_value(detail, DetailField.MILEAGE))
    if listing.mileage is None and detail.text:
        listing.mileage = extract_mileage(detail.text)

    if listing.location is None:
        location = first_clean_value(detail, DetailField.LOCATION)
        if location:
            listing.location = title_case(location)

    if listing.on_island is None:
        listing.on_island = parse_on_island(first_clean_value(detail, DetailField.ON_ISLAND))

    for attr in ATTRIBUTE_FIELDS:
        if getattr(listing, attr) is not None:
            continue
        value = first_clean_value(detail, DetailField(attr))
        if value:
            setattr(listing, attr, value)

    return listing
