"""Tier 2: FEC individual contributions (Schedule A)."""

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

SCHEDULE_A_URL = "https://api.open.fec.gov/v1/schedules/schedule_a/"
RECEIPT_URL = "https://www.fec.gov/data/receipts/{sub_id}"
PER_PAGE = 20


def to_results(data: Dict[str, Any]) -> List[SearchResult]:
    results = []
    for item in data.get("results") or []:
        results.append(SearchResult.from_source(
            SourceKind.FEC,
            title=f"FEC Contribution: {item.get('committee_name') or 'Unknown committee'}",
            link=RECEIPT_URL.format(sub_id=item.get("sub_id", "")),
            snippet=f"${item.get('contribution_receipt_amount')} on {item.get('contribution_receipt_date')}",
        ))
    return results


async def search(
    client: httpx.AsyncClient,
    query: str,
    *,
    api_key: Optional[str],
    profile: RetryProfile,
    contact_email: Optional[str] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    cache: Optional[ResponseCache] = None,
) -> List[SearchResult]:
    """Contributions by contributor name, most recent first. Never raises."""
    if not api_key:
        logger.warning("FEC API key not configured")
        return []

    try:
        data = await request_json(
            client, "fec", "GET", SCHEDULE_A_URL,
            profile=profile,
            params={
                "api_key": api_key,
                "contributor_name": query,
                "per_page": PER_PAGE,
                "sort": "-contribution_receipt_date",
            },
            headers=policy_headers("fec", contact_email),
            sleep=sleep,
            cache=cache,
        )
        results = to_results(data)
    except Exception as e:
        logger.error(f"FEC API query failed: {e}")
        return []

    logger.info(f"FEC returned {len(results)} contributions for {query}")
    return results
