"""
Playwright-based page source for ecaytrade result and detail pages.
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from playwright.async_api import (
    BrowserContext,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeout,
    async_playwright,
)

from .config import ScraperConfig
from .errors import NavigationError
from .models import DetailPage, PageSnapshot, RawCard
from .pacing import Pacing
from .utils import truncate

logger = logging.getLogger(__name__)

CARD_SELECTOR = 'a[href*="/advert/"]'
LOAD_WAIT_MS = 20_000
HTML_DUMP_CHARS = 3000

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)

# Hide the most obvious automation markers before any page script runs.
STEALTH_INIT_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
window.chrome = window.chrome || { runtime: {} };
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
"""

# One query for every advert anchor, deduplicated by URL.
EXTRACT_CARDS_JS = """
() => {
  const seen = new Set();
  return [...document.querySelectorAll('a[href*="/advert/"]')]
    .filter(a => {
      if (!/\\/advert\\/\\d+$/.test(a.href)) return false;
      if (seen.has(a.href)) return false;
      seen.add(a.href);
      return true;
    })
    .map(a => {
      const img = a.querySelector('img');
      return { url: a.href, text: a.innerText.trim(), imageUrl: img ? img.src : '' };
    });
}
"""

HAS_NEXT_JS = """
(nextPage) => {
  for (const a of document.querySelectorAll('a[href]')) {
    const href = a.href || '';
    if (href.includes('page=' + nextPage)) return true;
    if (a.getAttribute('aria-label') === 'Next page') return true;
    if (a.rel === 'next') return true;
  }
  return false;
}
"""

# Label -> value pairs from definition lists, two-cell rows and label/value
# sibling pairs, plus the full body text.
DETAIL_JS = """
() => {
  const labels = {};
  const norm = s => (s || '').replace(/\\s+/g, ' ').trim();
  const add = (k, v) => {
    k = norm(k).replace(/:$/, '');
    v = norm(v);
    if (k && v && k.length <= 40 && v.length <= 200 && !(k in labels)) labels[k] = v;
  };
  document.querySelectorAll('dt').forEach(dt => {
    const dd = dt.nextElementSibling;
    if (dd && dd.tagName === 'DD') add(dt.innerText, dd.innerText);
  });
  document.querySelectorAll('tr').forEach(tr => {
    const cells = tr.querySelectorAll('th, td');
    if (cells.length === 2) add(cells[0].innerText, cells[1].innerText);
  });
  document.querySelectorAll('li, div, p').forEach(el => {
    if (el.children.length !== 2) return;
    add(el.children[0].innerText, el.children[1].innerText);
  });
  return { labels, text: document.body ? document.body.innerText : '' };
}
"""


@asynccontextmanager
async def open_browser(config: ScraperConfig) -> AsyncIterator[BrowserContext]:
    """Launch Chromium and yield a configured browser context."""
    launch_args = ["--disable-blink-features=AutomationControlled"]
    if config.headless:
        launch_args += ["--disable-dev-shm-usage", "--no-sandbox", "--disable-gpu"]

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=config.headless, args=launch_args)
        logger.info(f"Launched browser (headless={config.headless})")

        ctx_kwargs = {}
        if config.storage_state_path and os.path.exists(config.storage_state_path):
            ctx_kwargs["storage_state"] = config.storage_state_path
            logger.info(f"Using existing storage state: {config.storage_state_path}")

        context = await browser.new_context(
            **ctx_kwargs,
            viewport={"width": 1280, "height": 900},
            user_agent=USER_AGENT,
            locale="en-US",
        )
        context.set_default_timeout(config.card_timeout_ms)
        context.set_default_navigation_timeout(config.nav_timeout_ms)
        await context.add_init_script(STEALTH_INIT_JS)

        try:
            yield context
        finally:
            await context.close()
            await browser.close()


class PlaywrightSource:
    """Reads result cards and detail pages through a browser context.

    Each fetch uses its own tab, so detail fetches may run concurrently.
    """

    def __init__(self, context: BrowserContext, config: ScraperConfig, pacing: Pacing):
        self.context = context
        self.config = config
        self.pacing = pacing

    async def fetch_page(self, page_num: int) -> PageSnapshot:
        url = self.config.page_url(page_num)
        page = await self.context.new_page()
        try:
            logger.info(f"[page {page_num}] navigating to {url}")
            try:
                await page.goto(url, timeout=self.config.nav_timeout_ms, wait_until="domcontentloaded")
            except PlaywrightError as e:
                raise NavigationError(url, str(e)) from e

            try:
                await page.wait_for_load_state("load", timeout=LOAD_WAIT_MS)
            except PlaywrightTimeout:
                logger.debug(f"[page {page_num}] load event timed out, continuing")

            try:
                await page.wait_for_selector(
                    CARD_SELECTOR, timeout=self.config.card_timeout_ms, state="attached"
                )
            except PlaywrightTimeout:
                html = await page.content()
                logger.warning(
                    f"[page {page_num}] listing cards never appeared; HTML dump:\n"
                    f"{truncate(html, HTML_DUMP_CHARS)}"
                )
                return PageSnapshot()

            delay = await self.pacing.pause_before_extract()
            logger.debug(f"[page {page_num}] paused {delay:.2f}s before extraction")

            try:
                raw = await page.evaluate(EXTRACT_CARDS_JS)
            except PlaywrightError as e:
                raise NavigationError(url, f"card extraction failed: {e}") from e
            if raw is None:
                raise NavigationError(url, "card extraction returned nothing")

            cards: List[RawCard] = [
                RawCard(url=c.get("url", ""), text=c.get("text", ""), image_url=c.get("imageUrl", ""))
                for c in raw
            ]

            try:
                has_next = bool(await page.evaluate(HAS_NEXT_JS, page_num + 1))
            except PlaywrightError:
                has_next = False

            logger.info(f"[page {page_num}] found {len(cards)} raw card(s), has_next={has_next}")
            return PageSnapshot(cards=cards, has_next=has_next)
        finally:
            await page.close()

    async def fetch_detail(self, url: str) -> DetailPage:
        page = await self.context.new_page()
        try:
            try:
                await page.goto(url, timeout=self.config.detail_timeout_ms, wait_until="domcontentloaded")
            except PlaywrightError as e:
                raise NavigationError(url, str(e)) from e

            try:
                await page.wait_for_load_state("load", timeout=self.config.detail_timeout_ms // 2)
            except PlaywrightTimeout:
                logger.debug(f"Detail load event timed out for {url}, continuing")

            try:
                raw = await page.evaluate(DETAIL_JS)
            except PlaywrightError as e:
                raise NavigationError(url, f"detail extraction failed: {e}") from e

            raw = raw or {}
            return DetailPage(labels=dict(raw.get("labels") or {}), text=raw.get("text") or "")
        finally:
            await page.close()
