"""Async HTTP helpers with per-provider policy and retries."""

from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ..config import RetryProfile
from ..exceptions import APIError, RateLimitError
from .cache import ResponseCache, cache_key
from .redaction import redact_headers, redact_url
from .retry import retry_with_backoff

logger = logging.getLogger(__name__)

USER_AGENT = "civic-trace/1.0"


def _user_agent(contact_email: Optional[str]) -> str:
    return f"{USER_AGENT} (+mailto:{contact_email})" if contact_email else USER_AGENT


# Per-provider request policy
POLICY: Dict[str, Dict[str, Any]] = {
    "google_cse": {"accept": "application/json"},
    "fec": {"accept": "application/json"},
    "usaspending": {"accept": "application/json", "content_type": "application/json"},
    "courtlistener": {"accept": "application/json"},
    "scrape": {"accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"},
}


def policy_headers(provider: str, contact_email: Optional[str] = None,
                   extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Headers for ``provider``; ``extra`` takes precedence."""
    pol = POLICY.get(provider, {})
    headers = {"User-Agent": _user_agent(contact_email)}
    if "accept" in pol:
        headers["Accept"] = pol["accept"]
    if "content_type" in pol:
        headers["Content-Type"] = pol["content_type"]
    if extra:
        headers.update(extra)
    return headers


def create_client(timeout: float = 30.0) -> httpx.AsyncClient:
    """Shared client for one fetcher; connection pooling is httpx's concern."""
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=5.0), follow_redirects=True)


async def request_json(
    client: httpx.AsyncClient,
    provider: str,
    method: str,
    url: str,
    *,
    profile: RetryProfile,
    params: Optional[Dict[str, Any]] = None,
    json: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    cache: Optional[ResponseCache] = None,
) -> Any:
    """Make an HTTP request with retries and return the decoded JSON body.

    With a ``cache``, a fresh entry for the same request is returned without
    touching the network, and non-empty bodies are stored after a success.

    Raises:
        RateLimitError: HTTP 429 persisted through every retry
        APIError: any other HTTP or transport failure after retries
    """
    async def attempt() -> httpx.Response:
        response = await client.request(method, url, params=params, json=json, headers=headers)
        response.raise_for_status()
        return response

    key = None
    if cache is not None:
        key = cache_key(method, url, params, json, headers)
        cached = cache.get(key)
        if cached is not None:
            logger.debug(f"{provider} {method} {redact_url(url)} served from cache")
            return cached

    logger.debug(f"{provider} {method} {redact_url(url)} headers={redact_headers(headers or {})}")
    try:
        response = await retry_with_backoff(attempt, profile, label=provider, sleep=sleep)
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        where = redact_url(str(e.request.url))
        if status == 429:
            raise RateLimitError(f"{provider} rate limited: {where}", provider, status) from e
        raise APIError(f"{provider} returned HTTP {status}: {where}", provider, status) from e
    except httpx.TransportError as e:
        raise APIError(f"{provider} transport error: {e}", provider) from e
    data = response.json()
    if key is not None and data:
        cache.set(key, data)
    return data
