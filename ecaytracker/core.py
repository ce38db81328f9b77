"""
Page traversal: pagination, acceptance filtering, and detail page escalation.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from .browser import PlaywrightSource, open_browser
from .config import ScraperConfig
from .extractors import parse_card
from .models import CardError, DetailPage, Listing, PageResult, PageSnapshot, RawCard, ScrapeResult
from .pacing import Pacing
from .reconciler import reconcile

logger = logging.getLogger(__name__)

PRICE_UPON_REQUEST = "price upon request"


class PageSource(Protocol):
    """Anything that can render results pages and detail pages."""

    async def fetch_page(self, page_num: int) -> PageSnapshot:
        ...

    async def fetch_detail(self, url: str) -> DetailPage:
        ...


@dataclass
class CardOutcome:
    """Per-card result: exactly one of listing, rejected or error is set."""
    listing: Optional[Listing] = None
    rejected: Optional[str] = None
    error: Optional[CardError] = None


def check_acceptance(listing: Listing, min_price: float) -> Optional[str]:
    """
    Apply the business rules in order.

    Returns the rejection reason of the first failing rule, or None when the
    listing is accepted.
    """
    if not listing.title and listing.price == 0:
        return "no title or price"
    # Year-less adverts are parts and accessories, not vehicles.
    if listing.year is None:
        return "no year"
    if listing.price < min_price:
        return "price below floor"
    if PRICE_UPON_REQUEST in listing.title.lower():
        return "price upon request"
    if not listing.external_id:
        return "no external id"
    return None


async def enrich_from_detail(
    source: PageSource,
    listing: Listing,
    page_num: int,
    index: int,
    pacing: Pacing,
    timeout: Optional[float] = None,
) -> None:
    """Reconcile a listing with its own page. Failures and timeouts leave it unchanged."""
    try:
        detail = await asyncio.wait_for(source.fetch_detail(listing.url), timeout=timeout)
        reconcile(listing, detail)
        if listing.mileage is not None:
            logger.debug(f"[page {page_num} / card {index}] detail mileage: {listing.mileage}")
        else:
            logger.debug(f"[page {page_num} / card {index}] detail mileage: not found")
    except asyncio.TimeoutError:
        logger.warning(f"[page {page_num} / card {index}] detail fetch for {listing.url} hit the pass deadline")
    except Exception as e:
        logger.warning(f"[page {page_num} / card {index}] detail fetch failed for {listing.url}: {e}")
    finally:
        await pacing.pause_after_detail()


async def process_card(
    source: PageSource,
    card: RawCard,
    page_num: int,
    index: int,
    min_price: float,
    pacing: Pacing,
    detail_slots: asyncio.Semaphore,
    deadline: Optional[float] = None,
) -> CardOutcome:
    """Turn one raw card into an accepted listing, a rejection, or an error."""
    try:
        listing = parse_card(card)
        reason = check_acceptance(listing, min_price)
        if reason:
            logger.info(f"[page {page_num} / card {index}] skip ({reason}): {listing.title}")
            return CardOutcome(rejected=reason)
    except Exception as e:
        logger.warning(f"[page {page_num} / card {index}] extraction failed for {card.url}: {e}")
        return CardOutcome(error=CardError(page_num, index, card.url, str(e)))

    if listing.mileage is None:
        async with detail_slots:
            timeout = None
            if deadline is not None:
                timeout = deadline - asyncio.get_running_loop().time()
                if timeout <= 0:
                    logger.info(f"[page {page_num} / card {index}] pass deadline reached; detail page skipped")
                    return CardOutcome(listing=listing)
            await enrich_from_detail(source, listing, page_num, index, pacing, timeout=timeout)
    return CardOutcome(listing=listing)


async def process_page(
    source: PageSource,
    page_num: int,
    snapshot: PageSnapshot,
    config: ScraperConfig,
    pacing: Pacing,
    deadline: Optional[float] = None,
) -> PageResult:
    """
    Filter and enrich every card of a results page, in card order.

    Detail fetches share the pass deadline (a loop time); once it passes,
    remaining cards keep whatever the results page gave them.
    """
    result = PageResult(page_num=page_num, raw_count=len(snapshot.cards), has_next=snapshot.has_next)
    detail_slots = asyncio.Semaphore(max(1, config.detail_concurrency))

    outcomes = await asyncio.gather(*(
        process_card(source, card, page_num, i, config.min_price, pacing, detail_slots, deadline)
        for i, card in enumerate(snapshot.cards)
    ))

    for outcome in outcomes:
        if outcome.listing is not None:
            result.listings.append(outcome.listing)
        elif outcome.error is not None:
            result.errors.append(outcome.error)
        else:
            result.rejected += 1
    return result


async def run_scrape(
    source: PageSource,
    config: ScraperConfig,
    pacing: Optional[Pacing] = None,
) -> ScrapeResult:
    """
    Visit results pages in order until a stopping condition.

    Stops when max_pages is reached, when a page yields zero raw cards, when no
    next page link exists, when a page fails to load, or when the pass
    deadline passes. Pages whose cards were all rejected do not stop the pass.
    Listings accumulated before a failure are still returned.
    """
    pacing = pacing or Pacing(enabled=config.pacing)
    loop = asyncio.get_running_loop()
    deadline = loop.time() + config.pass_timeout_s if config.pass_timeout_s else None

    result = ScrapeResult()
    seen: Dict[str, Listing] = {}
    page_num = 1

    while True:
        if config.max_pages and page_num > config.max_pages:
            result.stop_reason = f"reached max pages ({config.max_pages})"
            break

        timeout = None
        if deadline is not None:
            timeout = deadline - loop.time()
            if timeout <= 0:
                result.stop_reason = "pass deadline reached"
                break

        try:
            snapshot = await asyncio.wait_for(source.fetch_page(page_num), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"[page {page_num}] timed out against the pass deadline")
            result.stop_reason = f"page {page_num} timed out"
            break
        except Exception as e:
            logger.error(f"[page {page_num}] error: {e}; stopping pagination")
            result.stop_reason = f"page {page_num} failed: {e}"
            break

        result.pages_visited += 1
        if not snapshot.cards:
            logger.info(f"[page {page_num}] no raw cards found; end of listings")
            result.stop_reason = "no raw cards"
            break

        page_result = await process_page(source, page_num, snapshot, config, pacing, deadline)
        for listing in page_result.listings:
            if listing.external_id in seen:
                logger.debug(f"[page {page_num}] duplicate advert {listing.external_id} ignored")
                continue
            seen[listing.external_id] = listing
            result.listings.append(listing)
        result.card_errors.extend(page_result.errors)
        logger.info(
            f"[page {page_num}] accepted {len(page_result.listings)} listing(s), "
            f"rejected {page_result.rejected}, errors {len(page_result.errors)}; "
            f"total so far: {len(result.listings)}"
        )

        if not snapshot.has_next:
            logger.info(f"[page {page_num}] no next page found; done")
            result.stop_reason = "no next page"
            break

        page_num += 1
        delay = await pacing.pause_between_pages()
        logger.debug(f"Waited {delay:.2f}s before page {page_num}")

    logger.info(
        f"Scrape complete: {result.pages_visited} page(s), {len(result.listings)} listing(s), "
        f"stop reason: {result.stop_reason}"
    )
    return result


async def scrape_site(config: ScraperConfig, pacing: Optional[Pacing] = None) -> ScrapeResult:
    """Run a full pass against the live site in a fresh browser."""
    pacing = pacing or Pacing(enabled=config.pacing)
    async with open_browser(config) as context:
        source = PlaywrightSource(context, config, pacing)
        return await run_scrape(source, config, pacing)
