"""
Database operations and connection management.
"""
import json
import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .config import config

logger = logging.getLogger(__name__)

@contextmanager
def get_db_connection():
    """Get a database connection with proper error handling."""
    conn = None
    try:
        if not config.DB_PATH:
            raise ValueError("Database path not configured")

        conn = sqlite3.connect(config.DB_PATH)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        yield conn
    except sqlite3.Error as e:
        logger.error(f"Database error: {e}")
        raise
    finally:
        if conn is not None:
            conn.close()

def row_to_listing(row: Dict[str, Any]) -> Dict[str, Any]:
    """Decode stored columns into API field values."""
    item = dict(row)
    try:
        item['images'] = json.loads(item.get('images') or '[]')
    except ValueError:
        item['images'] = []
    if item.get('on_island') is not None:
        item['on_island'] = bool(item['on_island'])
    item['is_active'] = bool(item.get('is_active', 1))
    return item

def build_where_clause(filters: Dict[str, Any]) -> Tuple[str, List[Any]]:
    """Build WHERE clause and parameters from filters. Only active listings match."""
    where_conditions = ['is_active = 1']
    parameters = []

    # Text search
    q = filters.get('q')
    if q:
        where_conditions.append('(lower(title) LIKE ? OR lower(make) LIKE ? OR lower(model) LIKE ?)')
        search_term = f'%{q.lower()}%'
        parameters.extend([search_term, search_term, search_term])

    make = filters.get('make')
    if make:
        where_conditions.append('lower(make) = ?')
        parameters.append(make.lower())

    # Price range
    min_price = filters.get('min_price')
    if min_price is not None:
        where_conditions.append('price >= ?')
        parameters.append(min_price)

    max_price = filters.get('max_price')
    if max_price is not None:
        where_conditions.append('price <= ?')
        parameters.append(max_price)

    # Year filter
    year = filters.get('year')
    if year is not None:
        where_conditions.append('year = ?')
        parameters.append(year)

    where_clause = ' WHERE ' + ' AND '.join(where_conditions)
    return where_clause, parameters

def get_listings_count(filters: Dict[str, Any]) -> int:
    """Get total count of listings matching filters."""
    with get_db_connection() as conn:
        where_clause, parameters = build_where_clause(filters)
        result = conn.execute(f'SELECT COUNT(*) FROM listings {where_clause}', parameters).fetchone()
        return result[0] if result else 0

def get_listings(filters: Dict[str, Any], limit: int = 500, offset: int = 0) -> List[Dict]:
    """Get active listings, newest first."""
    with get_db_connection() as conn:
        where_clause, parameters = build_where_clause(filters)
        sql = f'SELECT * FROM listings {where_clause} ORDER BY first_seen DESC LIMIT ? OFFSET ?'
        parameters.extend([limit, offset])
        return [row_to_listing(row) for row in conn.execute(sql, parameters).fetchall()]

def get_listing_by_id(external_id: str) -> Optional[Dict]:
    """Get a single listing by external id."""
    with get_db_connection() as conn:
        row = conn.execute('SELECT * FROM listings WHERE external_id = ?', (external_id,)).fetchone()
        return row_to_listing(row) if row else None

def get_price_history(external_id: str) -> List[Dict]:
    """Get price history for a specific listing."""
    with get_db_connection() as conn:
        cursor = conn.execute(
            'SELECT ts, price, currency FROM price_history WHERE external_id = ? ORDER BY id ASC',
            (external_id,)
        )
        return [{'ts': row[0], 'price': row[1], 'currency': row[2]} for row in cursor.fetchall()]

def get_statistics() -> Dict[str, Any]:
    """Dashboard statistics over active listings."""
    week_ago = (datetime.now(timezone.utc) - timedelta(days=config.NEW_LISTING_DAYS)).isoformat()

    with get_db_connection() as conn:
        total, avg_price, new_this_week, avg_mileage = conn.execute(
            '''SELECT
                 COUNT(*),
                 COALESCE(AVG(price), 0),
                 COALESCE(SUM(CASE WHEN first_seen >= ? THEN 1 ELSE 0 END), 0),
                 COALESCE(AVG(mileage), 0)
               FROM listings WHERE is_active = 1''',
            (week_ago,)
        ).fetchone()

        prices = pd.Series(
            [r[0] for r in conn.execute('SELECT price FROM listings WHERE is_active = 1').fetchall()],
            dtype=float
        )
        median_price = float(prices.median()) if not prices.empty else 0.0

        top_makes = conn.execute(
            '''SELECT make, COUNT(*), COALESCE(AVG(price), 0) FROM listings
               WHERE is_active = 1 AND make IS NOT NULL AND make != ''
               GROUP BY make ORDER BY COUNT(*) DESC, make ASC LIMIT ?''',
            (config.TOP_MAKES,)
        ).fetchall()

        body_types = conn.execute(
            '''SELECT COALESCE(NULLIF(TRIM(body_type), ''), 'Other') AS bt, COUNT(*), COALESCE(AVG(price), 0)
               FROM listings WHERE is_active = 1
               GROUP BY bt ORDER BY COUNT(*) DESC, bt ASC'''
        ).fetchall()

        years = conn.execute(
            '''SELECT year, COUNT(*) FROM listings
               WHERE is_active = 1 AND year IS NOT NULL
               GROUP BY year ORDER BY year ASC'''
        ).fetchall()

    return {
        'total_listings': total,
        'avg_price': float(avg_price),
        'median_price': median_price,
        'new_this_week': new_this_week,
        'avg_mileage': float(avg_mileage),
        'top_brands': [{'name': r[0], 'count': r[1], 'avg_price': float(r[2])} for r in top_makes],
        'body_types': [{'type': r[0], 'count': r[1], 'avg_price': float(r[2])} for r in body_types],
        'year_distribution': [{'year': r[0], 'count': r[1]} for r in years],
    }
