"""Configuration for the escalation fetcher.

Environment-backed ``Settings`` (pydantic-settings) feed the construction-time
``FetcherConfig`` consumed by ``DataFetcher``. Credentials are resolved once,
when the config is built.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Literal, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_WHITELISTED_DOMAINS: Tuple[str, ...] = (
    "legislature.gov",
    "oversight.gov",
    "childrensrights.org",
    "childwelfare.gov",
)

KNOWN_STRUCTURED_SOURCES = {"fec", "usaspending", "courtlistener"}


@dataclass(frozen=True)
class CacheConfig:
    """Response cache for one class of API."""
    ttl: float              # seconds an entry stays fresh
    max_size: int           # entries kept before the least recently used is evicted
    enabled: bool = True


@dataclass(frozen=True)
class RetryProfile:
    """Bounded exponential backoff parameters for one class of API, plus its response cache."""
    max_retries: int
    initial_delay: float    # seconds before the first retry
    max_delay: float        # cap on any single delay
    backoff_factor: float = 2.0
    cache: Optional[CacheConfig] = None

    def delay_for(self, retry_index: int) -> float:
        """Delay before retry ``retry_index`` (0-based), capped at ``max_delay``."""
        return min(self.initial_delay * (self.backoff_factor ** retry_index), self.max_delay)


RETRY_PROFILES: Dict[str, RetryProfile] = {
    # Federal data APIs (FEC, USASpending)
    "government": RetryProfile(
        max_retries=3, initial_delay=1.0, max_delay=10.0,
        cache=CacheConfig(ttl=3600.0, max_size=1000),
    ),
    # Court records are slower and flakier
    "court": RetryProfile(
        max_retries=5, initial_delay=2.0, max_delay=20.0,
        cache=CacheConfig(ttl=7200.0, max_size=2000),
    ),
    "search": RetryProfile(max_retries=3, initial_delay=1.0, max_delay=10.0),
}


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-key budget for the expensive tiers."""
    requests_per_minute: Optional[int] = None
    max_concurrent: Optional[int] = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # ==== Credentials (all optional; a missing one disables its source) ====
    GOOGLE_SEARCH_API_KEY: Optional[str] = None
    GOOGLE_CSE_ID: Optional[str] = None
    FEC_API_KEY: Optional[str] = None
    USASPENDING_API_KEY: Optional[str] = None
    COURTLISTENER_TOKEN: Optional[str] = None

    # ==== Sources ====
    LOCAL_DB_PATH: str = "data/curated_db.json"
    WHITELISTED_DOMAINS: str = ",".join(DEFAULT_WHITELISTED_DOMAINS)
    STRUCTURED_SOURCES: str = Field("fec,usaspending", description="Tier 2 sources, queried concurrently")

    # ==== Ladder ====
    COVERAGE_THRESHOLD: float = Field(0.95, ge=0, le=1)

    # ==== HTTP & timeouts ====
    HTTP_TIMEOUT_SECONDS: float = 30.0
    SCRAPE_TIMEOUT_SECONDS: float = 5.0
    BROWSER_TIMEOUT_SECONDS: Optional[float] = Field(None, description="Overall budget for tier 4")
    BROWSER_NAV_TIMEOUT_SECONDS: Optional[float] = Field(None, description="Per-action Playwright timeout")
    RESPONSE_CACHE_ENABLED: bool = Field(True, description="Cache structured API responses per retry profile")
    CONTACT_EMAIL: Optional[str] = Field(None, description="Contact email for User-Agent headers")

    # ==== Rate limiting (unset = permissive) ====
    RATE_LIMIT_REQUESTS_PER_MINUTE: Optional[int] = Field(None, ge=1)
    RATE_LIMIT_MAX_CONCURRENT: Optional[int] = Field(None, ge=1)

    # ==== Observability toggles ====
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    ENABLE_PROMETHEUS: bool = False
    PROMETHEUS_PORT: int = 9100

    def whitelisted_domains(self) -> Tuple[str, ...]:
        return tuple(d.strip() for d in self.WHITELISTED_DOMAINS.split(",") if d.strip())

    def structured_sources(self) -> Tuple[str, ...]:
        return tuple(s.strip().lower() for s in self.STRUCTURED_SOURCES.split(",") if s.strip())


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


@dataclass(frozen=True)
class FetcherConfig:
    """Everything a ``DataFetcher`` needs, fixed at construction time."""
    cse_api_key: Optional[str] = None
    cse_engine_id: Optional[str] = None
    fec_api_key: Optional[str] = None
    usaspending_api_key: Optional[str] = None
    courtlistener_token: Optional[str] = None
    local_db_path: Path = Path("data/curated_db.json")
    whitelisted_domains: Tuple[str, ...] = DEFAULT_WHITELISTED_DOMAINS
    structured_sources: Tuple[str, ...] = ("fec", "usaspending")
    coverage_threshold: float = 0.95
    http_timeout: float = 30.0
    scrape_timeout: float = 5.0
    browser_timeout: Optional[float] = None
    browser_nav_timeout: Optional[float] = None
    response_cache: bool = True
    contact_email: Optional[str] = None
    rate_limits: Optional[RateLimitConfig] = None
    retry_profiles: Dict[str, RetryProfile] = field(default_factory=lambda: dict(RETRY_PROFILES))

    def __post_init__(self):
        unknown = [s for s in self.structured_sources if s not in KNOWN_STRUCTURED_SOURCES]
        if unknown:
            raise ConfigurationError(f"Unknown structured sources: {unknown}")
        missing = {"government", "court", "search"} - set(self.retry_profiles)
        if missing:
            raise ConfigurationError(f"Missing retry profiles: {sorted(missing)}")

    def retry_profile(self, name: str) -> RetryProfile:
        return self.retry_profiles[name]

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FetcherConfig":
        s = settings or get_settings()
        rate_limits = None
        if s.RATE_LIMIT_REQUESTS_PER_MINUTE or s.RATE_LIMIT_MAX_CONCURRENT:
            rate_limits = RateLimitConfig(
                requests_per_minute=s.RATE_LIMIT_REQUESTS_PER_MINUTE,
                max_concurrent=s.RATE_LIMIT_MAX_CONCURRENT,
            )
        return cls(
            cse_api_key=s.GOOGLE_SEARCH_API_KEY,
            cse_engine_id=s.GOOGLE_CSE_ID,
            fec_api_key=s.FEC_API_KEY,
            usaspending_api_key=s.USASPENDING_API_KEY,
            courtlistener_token=s.COURTLISTENER_TOKEN,
            local_db_path=Path(s.LOCAL_DB_PATH),
            whitelisted_domains=s.whitelisted_domains(),
            structured_sources=s.structured_sources(),
            coverage_threshold=s.COVERAGE_THRESHOLD,
            http_timeout=s.HTTP_TIMEOUT_SECONDS,
            scrape_timeout=s.SCRAPE_TIMEOUT_SECONDS,
            browser_timeout=s.BROWSER_TIMEOUT_SECONDS,
            browser_nav_timeout=s.BROWSER_NAV_TIMEOUT_SECONDS,
            response_cache=s.RESPONSE_CACHE_ENABLED,
            contact_email=s.CONTACT_EMAIL,
            rate_limits=rate_limits,
        )
