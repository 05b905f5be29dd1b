"""Tier 4: headless Chromium against the whitelisted search pages."""

from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence
from urllib.parse import quote_plus

from playwright.async_api import async_playwright

from ..models import SearchResult, SourceKind

logger = logging.getLogger(__name__)

EXTRACT_LINKS_JS = "els => els.map(el => ({href: el.href, text: el.textContent || ''}))"
LAUNCH_ARGS = ["--no-sandbox", "--disable-dev-shm-usage"]

Launcher = Callable[[], Awaitable[Any]]


@asynccontextmanager
async def browser_session(launch: Launcher) -> AsyncIterator[Any]:
    """Launch a browser and close it exactly once, whatever happens inside."""
    browser = await launch()
    try:
        yield browser
    finally:
        await browser.close()


def links_to_results(links: List[Dict[str, str]], domain: str) -> List[SearchResult]:
    results = []
    for link in links:
        href = link.get("href")
        text = (link.get("text") or "").strip()
        if href and text:
            results.append(SearchResult.from_source(
                SourceKind.BROWSER, title=text, link=href, source=f"{domain}_browser",
            ))
    return results


async def _search_with(launch: Launcher, domains: Sequence[str], query: str,
                       nav_timeout_ms: Optional[float]) -> List[SearchResult]:
    results: List[SearchResult] = []
    async with browser_session(launch) as browser:
        context = await browser.new_context()
        page = await context.new_page()
        if nav_timeout_ms:
            page.set_default_timeout(nav_timeout_ms)

        for domain in domains:
            try:
                await page.goto(f"https://{domain}/search?q={quote_plus(query)}")
                await page.wait_for_load_state("networkidle")
                links = await page.eval_on_selector_all("a", EXTRACT_LINKS_JS)
            except Exception as e:
                logger.warning(f"Browser automation failed for {domain}: {e}")
                continue
            found = links_to_results(links or [], domain)
            logger.debug(f"Browser found {len(found)} links on {domain}")
            results.extend(found)
    return results


async def search(
    domains: Sequence[str],
    query: str,
    *,
    launch: Optional[Launcher] = None,
    nav_timeout_ms: Optional[float] = None,
) -> List[SearchResult]:
    """
    Visit each domain's search page and collect every anchor.

    Args:
        domains: Whitelisted domains, visited in order
        query: Search text
        launch: Coroutine factory returning a browser; defaults to headless Chromium
        nav_timeout_ms: Per-action Playwright timeout

    Returns:
        Results from every domain that loaded; ``[]`` if the browser fails
    """
    try:
        if launch is not None:
            return await _search_with(launch, domains, query, nav_timeout_ms)
        async with async_playwright() as pw:
            return await _search_with(
                lambda: pw.chromium.launch(headless=True, args=LAUNCH_ARGS),
                domains, query, nav_timeout_ms,
            )
    except Exception as e:
        logger.warning(f"Headless browser tier failed: {e}")
        return []
