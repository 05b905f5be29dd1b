"""Tests for backoff and the JSON request helper."""

import asyncio

import httpx
import pytest

from civic_trace.config import RETRY_PROFILES, RetryProfile
from civic_trace.exceptions import APIError, RateLimitError
from civic_trace.net.http import policy_headers, request_json
from civic_trace.net.retry import is_retryable, retry_with_backoff

URL = "https://api.example.gov/v1/things"


def _status_error(status):
    request = httpx.Request("GET", URL)
    return httpx.HTTPStatusError("boom", request=request, response=httpx.Response(status, request=request))


class TestRetryProfile:

    def test_government_profile(self):
        profile = RETRY_PROFILES["government"]
        assert (profile.max_retries, profile.initial_delay, profile.max_delay) == (3, 1.0, 10.0)
        assert [profile.delay_for(n) for n in range(3)] == [1.0, 2.0, 4.0]

    def test_court_profile(self):
        profile = RETRY_PROFILES["court"]
        assert (profile.max_retries, profile.initial_delay, profile.max_delay) == (5, 2.0, 20.0)
        assert [profile.delay_for(n) for n in range(5)] == [2.0, 4.0, 8.0, 16.0, 20.0]

    def test_delay_never_exceeds_cap(self):
        profile = RetryProfile(max_retries=10, initial_delay=1.0, max_delay=5.0, backoff_factor=3.0)
        assert max(profile.delay_for(n) for n in range(10)) == 5.0


class TestIsRetryable:

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_transient_statuses(self, status):
        assert is_retryable(_status_error(status))

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_permanent_statuses(self, status):
        assert not is_retryable(_status_error(status))

    def test_transport_errors_are_transient(self):
        assert is_retryable(httpx.ConnectError("refused"))
        assert is_retryable(httpx.ReadTimeout("slow"))

    def test_other_errors_are_not_retried(self):
        assert not is_retryable(ValueError("bad json"))


class TestRetryWithBackoff:

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self, no_sleep, fast_retry):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise _status_error(503)
            return "ok"

        assert await retry_with_backoff(flaky, fast_retry, sleep=no_sleep) == "ok"
        assert len(calls) == 3
        assert no_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_last_error(self, no_sleep, fast_retry):
        calls = []

        async def always_down():
            calls.append(1)
            raise _status_error(500)

        with pytest.raises(httpx.HTTPStatusError):
            await retry_with_backoff(always_down, fast_retry, sleep=no_sleep)
        assert len(calls) == fast_retry.max_retries + 1
        assert no_sleep.delays == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_permanent_error_fails_fast(self, no_sleep, fast_retry):
        calls = []

        async def forbidden():
            calls.append(1)
            raise _status_error(403)

        with pytest.raises(httpx.HTTPStatusError):
            await retry_with_backoff(forbidden, fast_retry, sleep=no_sleep)
        assert len(calls) == 1
        assert no_sleep.delays == []

    @pytest.mark.asyncio
    async def test_concurrent_calls_keep_separate_state(self, fast_retry):
        """Two calls sharing a profile each get the full retry budget."""
        delays = {"a": [], "b": []}
        counts = {"a": 0, "b": 0}

        def make(name):
            async def op():
                counts[name] += 1
                if counts[name] <= 2:
                    raise _status_error(500)
                return name
            return op

        def make_sleep(name):
            async def sleep(delay):
                delays[name].append(delay)
                await asyncio.sleep(0)
            return sleep

        results = await asyncio.gather(
            retry_with_backoff(make("a"), fast_retry, sleep=make_sleep("a")),
            retry_with_backoff(make("b"), fast_retry, sleep=make_sleep("b")),
        )
        assert results == ["a", "b"]
        assert delays == {"a": [1.0, 2.0], "b": [1.0, 2.0]}


class TestRequestJson:

    @pytest.mark.asyncio
    async def test_returns_decoded_body(self, make_client, no_sleep, fast_retry):
        def handler(request):
            return httpx.Response(200, json={"results": [1, 2]})

        async with make_client(handler) as client:
            data = await request_json(client, "fec", "GET", URL, profile=fast_retry, sleep=no_sleep)
        assert data == {"results": [1, 2]}

    @pytest.mark.asyncio
    async def test_429_exhaustion_raises_rate_limit_error(self, make_client, no_sleep, fast_retry):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(429)

        async with make_client(handler) as client:
            with pytest.raises(RateLimitError) as exc_info:
                await request_json(client, "google_cse", "GET", URL, profile=fast_retry, sleep=no_sleep)
        assert len(seen) == 4
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_error_message_redacts_keys(self, make_client, no_sleep, fast_retry):
        def handler(request):
            return httpx.Response(404)

        async with make_client(handler) as client:
            with pytest.raises(APIError) as exc_info:
                await request_json(
                    client, "fec", "GET", URL, profile=fast_retry,
                    params={"api_key": "secret-fec-key"}, sleep=no_sleep,
                )
        assert exc_info.value.status_code == 404
        assert "secret-fec-key" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_api_error(self, make_client, no_sleep, fast_retry):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(APIError):
                await request_json(client, "fec", "GET", URL, profile=fast_retry, sleep=no_sleep)
        assert len(no_sleep.delays) == fast_retry.max_retries


class TestPolicyHeaders:

    def test_contact_email_in_user_agent(self):
        headers = policy_headers("fec", "ops@example.org")
        assert "mailto:ops@example.org" in headers["User-Agent"]
        assert headers["Accept"] == "application/json"

    def test_extra_headers_win(self):
        headers = policy_headers("usaspending", extra={"X-Api-Key": "k", "Accept": "text/plain"})
        assert headers["X-Api-Key"] == "k"
        assert headers["Accept"] == "text/plain"
        assert headers["Content-Type"] == "application/json"
