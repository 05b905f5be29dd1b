"""Tier 1: Google Programmable Search (Custom Search JSON API)."""

from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx

from ..config import RetryProfile
from ..models import SearchResult, SourceKind
from ..net.http import policy_headers, request_json

logger = logging.getLogger(__name__)

CSE_URL = "https://www.googleapis.com/customsearch/v1"
PAGE_SIZE = 10


def build_query(query: str, boost: Sequence[str] = (), exclude: Sequence[str] = ()) -> str:
    """``q (b1 OR b2) -x1 -x2``; empty lists leave the query untouched."""
    q = f"{query} ({' OR '.join(boost)})" if boost else query
    if exclude:
        q = f"{q} -{' -'.join(exclude)}"
    return q


def _parse_items(data: Dict[str, Any]) -> List[SearchResult]:
    # every item counts toward coverage, even one without a link
    results = []
    for item in (data.get("items") or [])[:PAGE_SIZE]:
        results.append(SearchResult.from_source(
            SourceKind.GOOGLE_CSE,
            title=item.get("title") or "",
            link=item.get("link") or "",
            snippet=item.get("snippet") or "",
        ))
    return results


async def search(
    client: httpx.AsyncClient,
    query: str,
    *,
    api_key: Optional[str],
    engine_id: Optional[str],
    profile: RetryProfile,
    boost: Sequence[str] = (),
    exclude: Sequence[str] = (),
    contact_email: Optional[str] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> List[SearchResult]:
    """Execute one boosted search. Never raises."""
    if not api_key or not engine_id:
        logger.warning("Google CSE credentials not configured")
        return []

    full_query = build_query(query, boost, exclude)
    try:
        data = await request_json(
            client, "google_cse", "GET", CSE_URL,
            profile=profile,
            params={"key": api_key, "cx": engine_id, "q": full_query, "num": PAGE_SIZE},
            headers=policy_headers("google_cse", contact_email),
            sleep=sleep,
        )
        results = _parse_items(data)
    except Exception as e:
        logger.error(f"Google CSE query failed for '{full_query}': {e}")
        return []

    logger.info(f"Google CSE returned {len(results)} results for query: {full_query}")
    return results
