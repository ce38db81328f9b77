"""
SQLite persistence for listings and their price history.
"""
import json
import logging
import os
import sqlite3
from typing import Dict, Optional

from .errors import GatewayError
from .models import Listing, UpsertResult
from .utils import now_iso

logger = logging.getLogger(__name__)


# Schema definitions
DDL_LISTINGS = """
CREATE TABLE IF NOT EXISTS listings (
  external_id TEXT PRIMARY KEY,
  url TEXT,
  title TEXT,
  make TEXT,
  model TEXT,
  year INTEGER,
  mileage INTEGER,
  price REAL NOT NULL DEFAULT 0,
  currency TEXT,
  condition TEXT,
  transmission TEXT,
  fuel_type TEXT,
  color TEXT,
  body_type TEXT,
  drive TEXT,
  cylinders TEXT,
  steering TEXT,
  interior_color TEXT,
  doors TEXT,
  location TEXT,
  on_island INTEGER,
  images TEXT,
  is_active INTEGER NOT NULL DEFAULT 1,
  first_seen TEXT,
  last_seen TEXT,
  updated_at TEXT
);
"""

DDL_PRICE_HISTORY = """
CREATE TABLE IF NOT EXISTS price_history (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  external_id TEXT NOT NULL REFERENCES listings(external_id),
  price REAL NOT NULL,
  currency TEXT,
  ts TEXT NOT NULL
);
"""

DDL_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_listings_last_seen ON listings(last_seen);",
    "CREATE INDEX IF NOT EXISTS idx_listings_make ON listings(make);",
    "CREATE INDEX IF NOT EXISTS idx_price_history_listing ON price_history(external_id);"
]

LISTING_COLUMNS = (
    "external_id", "url", "title", "make", "model", "year", "mileage", "price",
    "currency", "condition", "transmission", "fuel_type", "color", "body_type",
    "drive", "cylinders", "steering", "interior_color", "doors", "location",
    "on_island", "images",
)


def db_connect(path: str) -> sqlite3.Connection:
    """Create database connection with optimized settings."""
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        conn = sqlite3.connect(path)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
    except (OSError, sqlite3.Error) as e:
        raise GatewayError(f"cannot open database {path}: {e}") from e
    return conn


def db_init(conn: sqlite3.Connection):
    """Initialize database schema with tables and indexes."""
    conn.execute(DDL_LISTINGS)
    conn.execute(DDL_PRICE_HISTORY)
    for ddl in DDL_INDEXES:
        conn.execute(ddl)
    conn.commit()


def row_to_dict(cur, row):
    """Convert a result row to dictionary."""
    return {desc[0]: row[i] for i, desc in enumerate(cur.description)}


def _on_island_to_db(value: Optional[bool]) -> Optional[int]:
    if value is None:
        return None
    return 1 if value else 0


def listing_row(lst: Listing) -> tuple:
    """Column values for a listing, in LISTING_COLUMNS order."""
    return (
        lst.external_id, lst.url, lst.title, lst.make, lst.model, lst.year, lst.mileage,
        float(lst.price), lst.currency, lst.condition, lst.transmission, lst.fuel_type,
        lst.color, lst.body_type, lst.drive, lst.cylinders, lst.steering,
        lst.interior_color, lst.doors, lst.location, _on_island_to_db(lst.on_island),
        json.dumps(lst.images, ensure_ascii=False),
    )


def db_get_listing(conn: sqlite3.Connection, external_id: str) -> Optional[Dict]:
    """Retrieve existing listing by external id."""
    cur = conn.cursor()
    cur.execute("SELECT * FROM listings WHERE external_id = ?", (external_id,))
    r = cur.fetchone()
    if not r:
        return None
    return row_to_dict(cur, r)


def db_insert_price_event(conn: sqlite3.Connection, external_id: str, price: float, currency: Optional[str]):
    """Record a price observation."""
    conn.execute(
        "INSERT INTO price_history (external_id, price, currency, ts) VALUES (?, ?, ?, ?)",
        (external_id, price, currency, now_iso()),
    )


def upsert_listing(conn: sqlite3.Connection, lst: Listing) -> UpsertResult:
    """
    Insert or update a listing keyed by external id and track price changes.

    price_changed is True only when a stored row existed, its price differs
    from the new one, and the new price is positive. New listings get an
    initial price history point when their price is positive.
    """
    if not lst.external_id:
        raise ValueError("listing has no external id")

    existing = db_get_listing(conn, lst.external_id)
    ts = now_iso()
    placeholders = ",".join("?" for _ in LISTING_COLUMNS)
    updates = ", ".join(f"{c} = excluded.{c}" for c in LISTING_COLUMNS if c != "external_id")

    with conn:
        conn.execute(f"""
        INSERT INTO listings ({",".join(LISTING_COLUMNS)}, is_active, first_seen, last_seen, updated_at)
        VALUES ({placeholders}, 1, ?, ?, ?)
        ON CONFLICT(external_id) DO UPDATE SET
          {updates},
          is_active = 1,
          last_seen = excluded.last_seen,
          updated_at = excluded.updated_at
        """, listing_row(lst) + (ts, ts, ts))

        if existing is None:
            if lst.price > 0:
                db_insert_price_event(conn, lst.external_id, lst.price, lst.currency)
            return UpsertResult(inserted=True, price_changed=False)

        old_price = existing.get("price")
        price_changed = (
            lst.price > 0 and
            (old_price is None or float(old_price) != float(lst.price))
        )
        if price_changed:
            db_insert_price_event(conn, lst.external_id, lst.price, lst.currency)
        return UpsertResult(inserted=False, price_changed=price_changed)


def db_price_history(conn: sqlite3.Connection, external_id: str):
    """Price points for one listing, oldest first."""
    cur = conn.execute(
        "SELECT ts, price, currency FROM price_history WHERE external_id = ? ORDER BY id ASC",
        (external_id,),
    )
    return [{"ts": r[0], "price": r[1], "currency": r[2]} for r in cur.fetchall()]
