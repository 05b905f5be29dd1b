"""Tier 2 (opt-in): CourtListener opinion search."""

from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..config import RetryProfile
from ..models import SearchResult, SourceKind
from ..net.cache import ResponseCache
from ..net.http import policy_headers, request_json

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.courtlistener.com/api/rest/v3/search/"
SITE_URL = "https://www.courtlistener.com"


def to_results(data: Dict[str, Any]) -> List[SearchResult]:
    results = []
    for item in data.get("results") or []:
        path = item.get("absolute_url") or ""
        court = item.get("court") or "Unknown Court"
        filed = item.get("date_filed") or ""
        results.append(SearchResult.from_source(
            SourceKind.COURTLISTENER,
            title=item.get("case_name") or item.get("caseName") or "Unknown Case",
            link=f"{SITE_URL}{path}" if path.startswith("/") else path,
            snippet=f"{court} {filed}".strip(),
        ))
    return results


async def search(
    client: httpx.AsyncClient,
    query: str,
    *,
    token: Optional[str],
    profile: RetryProfile,
    contact_email: Optional[str] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    cache: Optional[ResponseCache] = None,
) -> List[SearchResult]:
    """Opinions mentioning ``query``, newest first. Never raises."""
    if not token:
        logger.warning("CourtListener token not configured")
        return []

    try:
        data = await request_json(
            client, "courtlistener", "GET", SEARCH_URL,
            profile=profile,
            params={"q": query, "type": "o", "order_by": "dateFiled desc"},
            headers=policy_headers("courtlistener", contact_email, {"Authorization": f"Token {token}"}),
            sleep=sleep,
            cache=cache,
        )
        results = to_results(data)
    except Exception as e:
        logger.error(f"CourtListener query failed: {e}")
        return []

    logger.info(f"CourtListener returned {len(results)} opinions for {query}")
    return results
