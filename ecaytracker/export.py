"""
Export utilities: run results and stored data to CSV or Excel.
"""
import logging
import sqlite3
from dataclasses import asdict
from typing import List, Optional

import pandas as pd

from .models import Listing

logger = logging.getLogger(__name__)


def export_new_since_run(conn: sqlite3.Connection, run_started_iso: str) -> pd.DataFrame:
    """Export listings that were first seen since the given timestamp."""
    q = """
    SELECT *
    FROM listings
    WHERE first_seen >= ?
    ORDER BY first_seen DESC
    """
    return pd.read_sql_query(q, conn, params=(run_started_iso,))


def export_price_history(conn: sqlite3.Connection, external_id: Optional[str] = None) -> pd.DataFrame:
    """Export price history for all listings or a single one."""
    if external_id:
        q = "SELECT * FROM price_history WHERE external_id=? ORDER BY id ASC"
        return pd.read_sql_query(q, conn, params=(external_id,))
    q = "SELECT * FROM price_history ORDER BY external_id, id ASC"
    return pd.read_sql_query(q, conn)


def listings_frame(listings: List[Listing]) -> pd.DataFrame:
    """One row per listing; images joined with '|'."""
    rows = []
    for x in listings:
        row = asdict(x)
        row["images"] = "|".join(x.images)
        rows.append(row)
    return pd.DataFrame(rows)


def write_frame(df: pd.DataFrame, out_path: str) -> None:
    """Write to .xlsx when the path says so, otherwise CSV."""
    if out_path.lower().endswith(".xlsx"):
        df.to_excel(out_path, index=False)
    else:
        df.to_csv(out_path, index=False)


def save_output_rows(listings: List[Listing], out_path: str) -> int:
    """Save listings to CSV or Excel file; returns the row count."""
    df = listings_frame(listings)
    write_frame(df, out_path)
    logger.info(f">>> Saved {len(df)} rows to {out_path}")
    return len(df)
