"""Tests for the API response cache."""

from dataclasses import replace

import httpx
import pytest

from civic_trace.config import RETRY_PROFILES, CacheConfig, RetryProfile
from civic_trace.fetcher import DataFetcher
from civic_trace.net.cache import ResponseCache, build_caches, cache_key
from civic_trace.net.http import request_json
from civic_trace.providers import fec

URL = "https://api.open.fec.gov/v1/schedules/schedule_a/"


class FakeClock:
    def __init__(self, now=500.0):
        self.now = now

    def __call__(self):
        return self.now


class TestCacheKey:

    def test_credentials_left_out(self):
        key = cache_key("GET", URL, {"api_key": "secret-fec-key", "contributor_name": "Acme"},
                        headers={"Authorization": "Token t", "X-Api-Key": "k", "Accept": "application/json"})
        assert "secret-fec-key" not in key
        assert "Token t" not in key
        assert "Acme" in key
        assert "application/json" in key

    def test_rotated_key_shares_entry(self):
        assert cache_key("GET", URL, {"api_key": "one", "q": "x"}) == cache_key("GET", URL, {"api_key": "two", "q": "x"})

    def test_body_and_method_distinguish(self):
        assert cache_key("POST", URL, json_body={"a": 1}) != cache_key("POST", URL, json_body={"a": 2})
        assert cache_key("GET", URL) != cache_key("POST", URL)

    def test_param_order_irrelevant(self):
        assert cache_key("GET", URL, {"a": 1, "b": 2}) == cache_key("GET", URL, {"b": 2, "a": 1})


class TestResponseCache:

    def test_hit_and_expiry(self):
        clock = FakeClock()
        cache = ResponseCache(CacheConfig(ttl=60.0, max_size=10), clock=clock)
        cache.set("k", {"results": [1]})

        clock.now += 59
        assert cache.get("k") == {"results": [1]}

        clock.now += 1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_least_recently_used_evicted(self):
        cache = ResponseCache(CacheConfig(ttl=60.0, max_size=2), clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.get("b") is None
        assert (cache.get("a"), cache.get("c")) == (1, 3)

    def test_build_caches_skips_uncached_profiles(self):
        profiles = dict(RETRY_PROFILES)
        profiles["court"] = replace(profiles["court"], cache=CacheConfig(ttl=1.0, max_size=1, enabled=False))
        caches = build_caches(profiles)
        assert set(caches) == {"government"}
        assert caches["government"].config.ttl == 3600.0


class TestCachedRequests:

    @pytest.mark.asyncio
    async def test_second_request_served_from_cache(self, make_client, no_sleep, fast_retry):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"results": [{"sub_id": "1"}]})

        cache = ResponseCache(CacheConfig(ttl=60.0, max_size=10))
        async with make_client(handler) as client:
            first = await request_json(client, "fec", "GET", URL, profile=fast_retry,
                                       params={"contributor_name": "Acme"}, sleep=no_sleep, cache=cache)
            second = await request_json(client, "fec", "GET", URL, profile=fast_retry,
                                        params={"contributor_name": "Acme"}, sleep=no_sleep, cache=cache)

        assert first == second
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_expired_entry_refetched(self, make_client, no_sleep, fast_retry):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"results": [len(seen)]})

        clock = FakeClock()
        cache = ResponseCache(CacheConfig(ttl=60.0, max_size=10), clock=clock)
        async with make_client(handler) as client:
            await request_json(client, "fec", "GET", URL, profile=fast_retry, sleep=no_sleep, cache=cache)
            clock.now += 61
            data = await request_json(client, "fec", "GET", URL, profile=fast_retry, sleep=no_sleep, cache=cache)

        assert len(seen) == 2
        assert data == {"results": [2]}

    @pytest.mark.asyncio
    async def test_failures_not_cached(self, make_client, no_sleep):
        responses = [httpx.Response(404), httpx.Response(200, json={"results": [{"sub_id": "1"}]})]
        profile = RetryProfile(max_retries=0, initial_delay=0.0, max_delay=0.0)
        cache = ResponseCache(CacheConfig(ttl=60.0, max_size=10))

        async with make_client(lambda request: responses.pop(0)) as client:
            assert await fec.search(client, "Acme", api_key="k", profile=profile, sleep=no_sleep, cache=cache) == []
            fresh = await fec.search(client, "Acme", api_key="k", profile=profile, sleep=no_sleep, cache=cache)
            cached = await fec.search(client, "Acme", api_key="k", profile=profile, sleep=no_sleep, cache=cache)

        assert responses == []
        assert len(fresh) == len(cached) == 1

    @pytest.mark.asyncio
    async def test_fetcher_reuses_government_cache(self, config, make_client):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"results": [{"committee_name": "PAC", "sub_id": "9"}]})

        async with make_client(handler) as client:
            fetcher = DataFetcher(config, client=client)
            first = await fetcher.query_fec("Acme Corp")
            second = await fetcher.query_fec("Acme Corp")

        assert len(seen) == 1
        assert [r.link for r in first] == [r.link for r in second]

    @pytest.mark.asyncio
    async def test_cache_can_be_disabled(self, config, make_client):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"results": [{"sub_id": "9"}]})

        async with make_client(handler) as client:
            fetcher = DataFetcher(replace(config, response_cache=False), client=client)
            await fetcher.query_fec("Acme Corp")
            await fetcher.query_fec("Acme Corp")

        assert fetcher.caches == {}
        assert len(seen) == 2
