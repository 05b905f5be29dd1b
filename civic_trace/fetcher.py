"""
Escalation ladder: walk the data sources cheapest and most trusted first,
stopping as soon as accumulated results cover the caller's requirements.

    Tier 0  local curated DB
    Tier 1  Google CSE (boost/exclude annotations applied)
    Tier 2  structured government APIs, concurrently
    Tier 3  whitelisted site scraping
    Tier 4  headless browser, unless rate limited
"""

from __future__ import annotations
import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import httpx
import structlog

from .annotations import AnnotationInput, parse_annotations
from .config import FetcherConfig
from .coverage import calculate_coverage
from .exceptions import ValidationError
from .metrics import FETCH_ERRORS, FETCH_LATENCY, FETCH_REQUESTS, LADDER_COVERAGE, LADDER_RUNS
from .models import CoverageRequirement, FetchResult, SearchResult
from .net.cache import ResponseCache, build_caches
from .net.http import create_client
from .net.limiting import RateLimiter
from .providers import browser, courtlistener, fec, google_cse, local_db, scrape, usaspending

logger = structlog.get_logger()

BROWSER_KEY = "browser"

RequirementInput = Union[CoverageRequirement, Mapping[str, Any]]


def _as_requirements(items: Optional[Iterable[RequirementInput]]) -> List[CoverageRequirement]:
    reqs = []
    for item in items or []:
        reqs.append(item if isinstance(item, CoverageRequirement) else CoverageRequirement(**item))
    return reqs


class DataFetcher:
    """
    Multi-tier fetcher. One instance may serve concurrent ladder runs: each
    run owns its result list, and the only shared pieces are the HTTP client
    pool and the rate limiter.
    """

    def __init__(
        self,
        config: Optional[FetcherConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
        browser_launch: Optional[browser.Launcher] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or FetcherConfig.from_settings()
        self._client = client
        self._owns_client = client is None
        self.rate_limiter = rate_limiter or RateLimiter(self.config.rate_limits)
        self._browser_launch = browser_launch
        self._sleep = sleep
        self.caches: Dict[str, ResponseCache] = (
            build_caches(self.config.retry_profiles) if self.config.response_cache else {}
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = create_client(self.config.http_timeout)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "DataFetcher":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Ladder
    # ------------------------------------------------------------------

    async def fetch_with_priority_ladder(
        self,
        query: str,
        coverage_needed: Optional[Sequence[RequirementInput]] = None,
        annotations: AnnotationInput = None,
    ) -> FetchResult:
        """
        Escalate through the tiers until coverage reaches the threshold.

        Args:
            query: Non-empty search text
            coverage_needed: Requirements scored after every tier
            annotations: Boost/exclude labels for the search-engine tier

        Returns:
            FetchResult with every result found, in discovery order. A final
            coverage below the threshold is a best-effort answer, not an error.

        Raises:
            ValidationError: empty query or unparseable annotations
        """
        if not query or not query.strip():
            raise ValidationError("query must be non-empty")
        notes = parse_annotations(annotations)
        requirements = _as_requirements(coverage_needed)
        threshold = self.config.coverage_threshold
        start = time.perf_counter()

        results: List[SearchResult] = []
        coverage = 0.0
        tiers = [
            (0, "local curated DB", lambda: self._run_source("local_db", lambda: self.query_local_db(query))),
            (1, "Google CSE", lambda: self._run_source(
                "google_cse", lambda: self.query_google_cse(query, notes.boost, notes.exclude))),
            (2, "structured APIs", lambda: self._structured_tier(query)),
            (3, "whitelisted sites", lambda: self._run_source(
                "scrape", lambda: self.scrape_whitelisted_sites(query))),
        ]

        for tier, label, run in tiers:
            logger.info("tier_start", tier=tier, source=label, query=query)
            results.extend(await run())
            coverage = calculate_coverage(results, requirements)
            logger.info("tier_done", tier=tier, results=len(results), coverage=round(coverage, 4))
            if coverage >= threshold:
                return self._finish(results, coverage, tier, start)

        if self.is_rate_limited():
            logger.warning("tier_skipped", tier=4, reason="rate_limited")
            return self._finish(results, coverage, 3, start)

        logger.info("tier_start", tier=4, source="headless browser", query=query)
        results.extend(await self._browser_tier(query))
        coverage = calculate_coverage(results, requirements)
        return self._finish(results, coverage, 4, start)

    def _finish(self, results: List[SearchResult], coverage: float, tier_hit: int,
                start: float) -> FetchResult:
        latency_ms = (time.perf_counter() - start) * 1000
        LADDER_RUNS.labels(tier=str(tier_hit)).inc()
        LADDER_COVERAGE.observe(coverage)
        logger.info(
            "ladder_complete",
            tier_hit=tier_hit, coverage=round(coverage, 4),
            results=len(results), latency_ms=round(latency_ms, 1),
        )
        return FetchResult(results=list(results), coverage=coverage, tier_hit=tier_hit, latency=latency_ms)

    async def _run_source(self, source: str,
                          call: Callable[[], Awaitable[List[SearchResult]]]) -> List[SearchResult]:
        """Metrics plus per-call isolation: a failing source yields no results."""
        FETCH_REQUESTS.labels(source=source).inc()
        t0 = time.perf_counter()
        try:
            return list(await call())
        except Exception as e:
            FETCH_ERRORS.labels(source=source).inc()
            logger.warning("source_failed", source=source, error=str(e))
            return []
        finally:
            FETCH_LATENCY.labels(source=source).observe(time.perf_counter() - t0)

    async def _structured_tier(self, query: str) -> List[SearchResult]:
        calls = {
            "fec": self.query_fec,
            "usaspending": self.query_usaspending,
            "courtlistener": self.query_courtlistener,
        }
        names = self.config.structured_sources
        # gather keeps input order, so merging is deterministic: fec, usaspending, ...
        batches = await asyncio.gather(*(
            self._run_source(name, lambda fn=calls[name]: fn(query)) for name in names
        ))
        return [r for batch in batches for r in batch]

    async def _browser_tier(self, query: str) -> List[SearchResult]:
        timeout = self.config.browser_timeout

        async def call() -> List[SearchResult]:
            with self.rate_limiter.track(BROWSER_KEY):
                if timeout:
                    return await asyncio.wait_for(self.use_headless_browser(query), timeout)
                return await self.use_headless_browser(query)

        return await self._run_source("browser", call)

    def is_rate_limited(self) -> bool:
        return self.rate_limiter.is_rate_limited(BROWSER_KEY)

    # ------------------------------------------------------------------
    # Source adapters
    # ------------------------------------------------------------------

    async def query_local_db(self, query: str) -> List[SearchResult]:
        return await local_db.search(self.config.local_db_path, query)

    async def query_google_cse(self, query: str, boost: Sequence[str] = (),
                               exclude: Sequence[str] = ()) -> List[SearchResult]:
        return await google_cse.search(
            self.client, query,
            api_key=self.config.cse_api_key,
            engine_id=self.config.cse_engine_id,
            profile=self.config.retry_profile("search"),
            boost=boost, exclude=exclude,
            contact_email=self.config.contact_email,
            sleep=self._sleep,
        )

    async def query_fec(self, query: str) -> List[SearchResult]:
        return await fec.search(
            self.client, query,
            api_key=self.config.fec_api_key,
            profile=self.config.retry_profile("government"),
            contact_email=self.config.contact_email,
            sleep=self._sleep,
            cache=self.caches.get("government"),
        )

    async def query_usaspending(self, query: str) -> List[SearchResult]:
        return await usaspending.search(
            self.client, query,
            api_key=self.config.usaspending_api_key,
            profile=self.config.retry_profile("government"),
            contact_email=self.config.contact_email,
            sleep=self._sleep,
            cache=self.caches.get("government"),
        )

    async def query_courtlistener(self, query: str) -> List[SearchResult]:
        return await courtlistener.search(
            self.client, query,
            token=self.config.courtlistener_token,
            profile=self.config.retry_profile("court"),
            contact_email=self.config.contact_email,
            sleep=self._sleep,
            cache=self.caches.get("court"),
        )

    async def scrape_whitelisted_sites(self, query: str) -> List[SearchResult]:
        return await scrape.search(
            self.client, self.config.whitelisted_domains, query,
            timeout=self.config.scrape_timeout,
            contact_email=self.config.contact_email,
        )

    async def use_headless_browser(self, query: str) -> List[SearchResult]:
        nav_timeout = self.config.browser_nav_timeout
        return await browser.search(
            self.config.whitelisted_domains, query,
            launch=self._browser_launch,
            nav_timeout_ms=nav_timeout * 1000 if nav_timeout else None,
        )
