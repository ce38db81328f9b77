"""
Command line entry point: scrape, persist, report, export.
"""
import argparse
import asyncio
import logging
import os
import sqlite3
from typing import List, Optional

from .config import ScraperConfig
from .core import scrape_site
from .database import db_connect, db_init, upsert_listing
from .errors import ConfigError, GatewayError
from .export import export_new_since_run, export_price_history, save_output_rows, write_frame
from .models import Listing, RunSummary
from .utils import init_logger, now_iso

logger = logging.getLogger("ecaytracker")

EXIT_OK = 0
EXIT_NO_LISTINGS = 1
EXIT_FATAL = 2


def parse_args(argv: Optional[List[str]] = None):
    ap = argparse.ArgumentParser(description="ecaytrade vehicle listing tracker with SQLite price history")
    ap.add_argument("--base-url", type=str, default=None, help="First results page URL (env BASE_URL)")
    ap.add_argument("--max-pages", type=int, default=None, help="Stop after N pages, 0 = no limit (env MAX_PAGES)")
    ap.add_argument("--min-price", type=float, default=None, help="Reject listings priced below this (env MIN_PRICE)")
    ap.add_argument("--headless", action="store_true", default=None, help="Run without UI (env HEADLESS)")
    ap.add_argument("--no-pacing", action="store_true", help="Disable randomized delays (testing only)")
    ap.add_argument("--detail-concurrency", type=int, default=None,
                    help="Parallel detail page fetches per results page (env DETAIL_CONCURRENCY)")
    ap.add_argument("--db", type=str, default=None, help="Path to SQLite DB (env ECAY_DB)")
    ap.add_argument("--env-file", type=str, default=".env", help="Optional .env file to load")
    ap.add_argument("--export-new", action="store_true", help="Export only listings first seen in this run")
    ap.add_argument("--export-prices", action="store_true", help="Export price_history (uses --out)")
    ap.add_argument("--export-prices-item", type=str, default="", help="Filter price_history by external id")
    ap.add_argument("--out", type=str, default="", help="CSV/XLSX output path; nothing is written when empty")
    # Logging
    lvl_choices = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    ap.add_argument("--log-level", choices=lvl_choices, default=None,
                    help="Global log level for both console and file (overrides --log-console/--log-file).")
    ap.add_argument("--log-console", choices=lvl_choices, default=os.getenv("LOG_CONSOLE", "INFO"),
                    help="Console log level (default from env LOG_CONSOLE or INFO).")
    ap.add_argument("--log-file", choices=lvl_choices, default=os.getenv("LOG_FILE", "DEBUG"),
                    help="File log level (default from env LOG_FILE or DEBUG).")
    ap.add_argument("--log-file-path", default=os.getenv("LOG_FILE_PATH", "ecaytracker.log"),
                    help="Path to log file (default from env LOG_FILE_PATH or ecaytracker.log).")
    ap.add_argument("--no-file-log", action="store_true",
                    help="Disable file logging (only console output).")
    return ap.parse_args(argv)


def build_config(args) -> ScraperConfig:
    """Environment settings with command line overrides applied."""
    config = ScraperConfig.from_env(args.env_file)
    if args.base_url:
        config.base_url = args.base_url
    if args.max_pages is not None:
        config.max_pages = args.max_pages
    if args.min_price is not None:
        config.min_price = args.min_price
    if args.headless:
        config.headless = True
    if args.no_pacing:
        config.pacing = False
    if args.detail_concurrency is not None:
        config.detail_concurrency = args.detail_concurrency
    if args.db:
        config.db_path = args.db
    config.validate()
    return config


def persist_listings(conn: sqlite3.Connection, listings: List[Listing]) -> RunSummary:
    """Upsert every listing; a failed upsert is logged and counted, not fatal."""
    summary = RunSummary(scraped=len(listings))
    for lst in listings:
        try:
            result = upsert_listing(conn, lst)
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"ERROR upserting {lst.external_id} ({lst.title}): {e}")
            summary.errors += 1
            continue
        if result.inserted:
            summary.inserted += 1
        else:
            summary.updated += 1
            if result.price_changed:
                summary.price_changed += 1
    return summary


def run_exports(args, conn: sqlite3.Connection, listings: List[Listing], run_started_iso: str) -> None:
    if not args.out:
        return
    if args.export_prices:
        dfp = export_price_history(conn, external_id=args.export_prices_item or None)
        write_frame(dfp, args.out)
        logger.info(f">>> Export price_history: {len(dfp)} rows -> {args.out}")
    elif args.export_new:
        dfn = export_new_since_run(conn, run_started_iso)
        write_frame(dfn, args.out)
        logger.info(f">>> Export only new items: {len(dfn)} rows -> {args.out}")
    else:
        save_output_rows(listings, args.out)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    eff_console = args.log_level or args.log_console
    eff_file = args.log_level or args.log_file
    init_logger(
        console_level=eff_console,
        file_level=eff_file,
        log_file=None if args.no_file_log else args.log_file_path
    )
    logger.info(
        f"Logger initialized: console={eff_console}, "
        f"file={'DISABLED' if args.no_file_log else eff_file}, "
        f"path={'N/A' if args.no_file_log else args.log_file_path}"
    )

    try:
        config = build_config(args)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FATAL

    try:
        conn = db_connect(config.db_path)
        db_init(conn)
    except (GatewayError, sqlite3.Error) as e:
        logger.error(f"Failed to open database: {e}")
        return EXIT_FATAL
    logger.info(f"Database ready: {config.db_path}")

    try:
        run_started_iso = now_iso()
        logger.info(f">>> Run started at {run_started_iso} (maxPages={config.max_pages}, minPrice={config.min_price})")

        try:
            result = asyncio.run(scrape_site(config))
        except Exception as e:
            logger.error(f"Scrape pass failed: {e}", exc_info=True)
            return EXIT_FATAL
        if not result.listings:
            logger.error(
                "No listings extracted; selectors may need updating or the site blocked the request "
                f"(stop reason: {result.stop_reason})"
            )
            return EXIT_NO_LISTINGS
        logger.info(f"Scraped {len(result.listings)} listing(s). Upserting to database...")

        summary = persist_listings(conn, result.listings)
        logger.info(
            f"Done: inserted {summary.inserted} | updated {summary.updated} "
            f"(price changed: {summary.price_changed}) | errors {summary.errors} "
            f"| card errors {len(result.card_errors)}"
        )

        run_exports(args, conn, result.listings, run_started_iso)
    finally:
        conn.close()
    return EXIT_OK
