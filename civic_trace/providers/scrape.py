"""Tier 3: whitelisted site search pages, scraped with a plain GET.

Anchors are pulled out by pattern matching rather than a real HTML parser;
the low confidence of this tier accounts for the noise.
"""

from __future__ import annotations
import logging
import re
from typing import List, Optional, Sequence

import httpx

from ..models import SearchResult, SourceKind
from ..net.http import policy_headers

logger = logging.getLogger(__name__)

ANCHOR_RE = re.compile(r"<a[^>]*>.*?</a>", re.IGNORECASE)
HREF_RE = re.compile(r'href="([^"]*)"', re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]*>")


def extract_anchors(html: str, domain: str) -> List[SearchResult]:
    results = []
    for match in ANCHOR_RE.findall(html or ""):
        href = HREF_RE.search(match)
        text = TAG_RE.sub("", match).strip()
        if href and href.group(1) and text:
            results.append(SearchResult.from_source(
                SourceKind.SCRAPE, title=text, link=href.group(1), source=domain,
            ))
    return results


async def scrape_domain(client: httpx.AsyncClient, domain: str, query: str, *,
                        timeout: float = 5.0, contact_email: Optional[str] = None) -> List[SearchResult]:
    response = await client.get(
        f"https://{domain}/search",
        params={"q": query},
        timeout=timeout,
        headers=policy_headers("scrape", contact_email),
    )
    response.raise_for_status()
    return extract_anchors(response.text, domain)


async def search(
    client: httpx.AsyncClient,
    domains: Sequence[str],
    query: str,
    *,
    timeout: float = 5.0,
    contact_email: Optional[str] = None,
) -> List[SearchResult]:
    """Query each domain in turn; one domain failing never stops the rest."""
    results: List[SearchResult] = []
    for domain in domains:
        try:
            found = await scrape_domain(client, domain, query, timeout=timeout, contact_email=contact_email)
        except Exception as e:
            logger.warning(f"Scraping failed for {domain}: {e}")
            continue
        logger.debug(f"Scraped {len(found)} links from {domain}")
        results.extend(found)
    return results
