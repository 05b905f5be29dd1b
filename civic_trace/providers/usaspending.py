"""Tier 2: USASpending federal contract awards."""

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

AWARD_SEARCH_URL = "https://api.usaspending.gov/api/v2/search/spending_by_award/"
AWARD_URL = "https://www.usaspending.gov/award/{award_id}"

# Contract award types
AWARD_TYPE_CODES = ["A", "B", "C", "D"]
TIME_PERIOD = {"start_date": "2020-01-01", "end_date": "2024-12-31"}
FIELDS = [
    "recipient_name",
    "recipient_id",
    "Award Amount",
    "period_of_performance_start_date",
    "awarding_agency_name",
    "Award ID",
]
PAGE_LIMIT = 20


def build_payload(query: str) -> Dict[str, Any]:
    return {
        "filters": {
            "keywords": [query],
            "award_type_codes": AWARD_TYPE_CODES,
            "time_period": [TIME_PERIOD],
        },
        "fields": FIELDS,
        "page": 1,
        "limit": PAGE_LIMIT,
        "sort": "Award Amount",
        "order": "desc",
    }


def to_results(data: Dict[str, Any]) -> List[SearchResult]:
    results = []
    for item in data.get("results") or []:
        results.append(SearchResult.from_source(
            SourceKind.USASPENDING,
            title=f"Contract: {item.get('recipient_name') or 'Unknown recipient'}",
            link=AWARD_URL.format(award_id=item.get("Award ID", "")),
            snippet=f"${item.get('Award Amount')} from {item.get('awarding_agency_name')}",
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
    """Awards matching ``query`` by keyword, largest first. Never raises."""
    if not api_key:
        logger.warning("USASpending API key not configured")
        return []

    try:
        data = await request_json(
            client, "usaspending", "POST", AWARD_SEARCH_URL,
            profile=profile,
            json=build_payload(query),
            headers=policy_headers("usaspending", contact_email, {"X-Api-Key": api_key}),
            sleep=sleep,
            cache=cache,
        )
        results = to_results(data)
    except Exception as e:
        logger.error(f"USASpending API query failed: {e}")
        return []

    logger.info(f"USASpending returned {len(results)} awards for {query}")
    return results
