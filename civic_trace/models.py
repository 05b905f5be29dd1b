from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SourceKind(str, Enum):
    """Origin adapter of a result"""
    LOCAL_DB = "local_db"
    GOOGLE_CSE = "google_cse"
    FEC = "fec_api"
    USASPENDING = "usaspending_api"
    COURTLISTENER = "courtlistener_api"
    SCRAPE = "scrape"
    BROWSER = "browser"


# Trust ranking among sources: curated data first, browser automation last.
SOURCE_CONFIDENCE: Dict[SourceKind, float] = {
    SourceKind.LOCAL_DB: 1.0,
    SourceKind.GOOGLE_CSE: 0.8,
    SourceKind.FEC: 0.9,
    SourceKind.USASPENDING: 0.95,
    SourceKind.COURTLISTENER: 0.9,
    SourceKind.SCRAPE: 0.7,
    SourceKind.BROWSER: 0.6,
}

SOURCE_TIER: Dict[SourceKind, int] = {
    SourceKind.LOCAL_DB: 0,
    SourceKind.GOOGLE_CSE: 1,
    SourceKind.FEC: 2,
    SourceKind.USASPENDING: 2,
    SourceKind.COURTLISTENER: 2,
    SourceKind.SCRAPE: 3,
    SourceKind.BROWSER: 4,
}

# Fields every adapter populates on its results. ``latency`` is absent on
# purpose: it belongs to the aggregate FetchResult only.
BASE_RESULT_FIELDS: FrozenSet[str] = frozenset(
    {"title", "link", "snippet", "source", "confidence", "retrieved_at", "tier_hit"}
)

RESULT_FIELDS: Dict[SourceKind, FrozenSet[str]] = {kind: BASE_RESULT_FIELDS for kind in SourceKind}


def result_fields(kind: SourceKind) -> FrozenSet[str]:
    """Field names present on results produced by ``kind``."""
    return RESULT_FIELDS[kind]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SearchResult(BaseModel):
    """A normalized hit from any source."""
    model_config = ConfigDict(frozen=True)

    title: str
    link: str
    snippet: str = ""
    source: str
    kind: SourceKind
    confidence: float = Field(ge=0, le=1)
    retrieved_at: str = Field(default_factory=_now_iso)
    tier_hit: int = Field(ge=0, le=4)
    latency: Optional[float] = None

    @classmethod
    def from_source(cls, kind: SourceKind, *, title: str, link: str, snippet: str = "",
                    source: Optional[str] = None) -> "SearchResult":
        """Build a result stamped with the adapter's fixed confidence and tier."""
        return cls(
            title=title,
            link=link,
            snippet=snippet or "",
            source=source or kind.value,
            kind=kind,
            confidence=SOURCE_CONFIDENCE[kind],
            tier_hit=SOURCE_TIER[kind],
        )

    def has_fields(self, names) -> bool:
        return set(names) <= result_fields(self.kind)


class CoverageRequirement(BaseModel):
    """One completeness criterion the caller wants satisfied."""
    model_config = ConfigDict(frozen=True)

    entity_type: str = "entity"
    min_confidence: float = Field(0.0, ge=0, le=1)
    required_fields: FrozenSet[str] = Field(default_factory=frozenset)


class FetchResult(BaseModel):
    """Aggregate return value of one escalation run."""
    model_config = ConfigDict(frozen=True)

    results: List[SearchResult] = Field(default_factory=list)
    coverage: float = Field(ge=0, le=1)
    tier_hit: int = Field(ge=0, le=4)
    latency: float  # milliseconds

    def is_complete(self, threshold: float = 0.95) -> bool:
        """False means best effort: callers should disclose ``tier_hit``."""
        return self.coverage >= threshold


class Annotations(BaseModel):
    """Boost/exclude labels, used only by the search-engine tier."""
    model_config = ConfigDict(frozen=True)

    boost: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
