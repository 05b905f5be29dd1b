"""Shared fixtures for civic_trace tests."""

import json
from typing import Callable, List

import httpx
import pytest

from civic_trace.config import FetcherConfig, RetryProfile

CREDENTIAL_VARS = [
    "GOOGLE_SEARCH_API_KEY", "GOOGLE_CSE_ID", "FEC_API_KEY",
    "USASPENDING_API_KEY", "COURTLISTENER_TOKEN",
    "RATE_LIMIT_REQUESTS_PER_MINUTE", "RATE_LIMIT_MAX_CONCURRENT",
    "STRUCTURED_SOURCES", "WHITELISTED_DOMAINS", "LOCAL_DB_PATH",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer credentials out of the tests."""
    for var in CREDENTIAL_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def vendor_db(tmp_path):
    path = tmp_path / "curated_db.json"
    path.write_text(json.dumps({
        "vendors": [
            {"name": "Acme Corp", "source_url": "https://acme.example/about", "description": "Placement services"},
            {"name": "Bright Futures Foster Agency", "source_url": "https://bf.example"},
            {"name": "Northwind Residential"},
        ]
    }), encoding="utf-8")
    return path


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every delay."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def no_sleep():
    return SleepRecorder()


@pytest.fixture
def fast_retry():
    return RetryProfile(max_retries=3, initial_delay=1.0, max_delay=10.0)


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return factory


@pytest.fixture
def config(vendor_db):
    return FetcherConfig(
        cse_api_key="cse-key",
        cse_engine_id="engine-1",
        fec_api_key="fec-key",
        usaspending_api_key="usa-key",
        local_db_path=vendor_db,
        whitelisted_domains=("legislature.gov", "oversight.gov", "childwelfare.gov"),
    )
