"""TTL + LRU cache for decoded API responses.

Keys are built from the method, URL, non-credential query parameters, JSON
body and the headers that change the representation. Credentials never end up
in a key, so rotating an API key does not invalidate cached responses.
"""

from __future__ import annotations
import json
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..config import CacheConfig
from .redaction import SENSITIVE_KEYS

logger = logging.getLogger(__name__)

# Only headers that change the response body take part in the key
RELEVANT_HEADERS = {"accept", "content-type", "if-none-match"}


def cache_key(method: str, url: str, params: Optional[Mapping[str, Any]] = None,
              json_body: Any = None, headers: Optional[Mapping[str, str]] = None) -> str:
    parts = [method.upper(), url]
    clean = {k: v for k, v in (params or {}).items() if k.lower() not in SENSITIVE_KEYS}
    if clean:
        parts.append(json.dumps(clean, sort_keys=True, default=str))
    if json_body is not None:
        parts.append(json.dumps(json_body, sort_keys=True, default=str))
    relevant = {k.lower(): v for k, v in (headers or {}).items() if k.lower() in RELEVANT_HEADERS}
    if relevant:
        parts.append(json.dumps(relevant, sort_keys=True))
    return "::".join(parts)


class ResponseCache:
    """Bounded in-memory cache; the least recently used entry goes first."""

    def __init__(self, config: CacheConfig, clock: Callable[[], float] = time.monotonic):
        self.config = config
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        expires, data = entry
        if expires <= self._clock():
            del self._entries[key]
            return default
        self._entries.move_to_end(key)
        logger.debug(f"Cache hit: {key[:120]}")
        return data

    def set(self, key: str, data: Any) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = (self._clock() + self.config.ttl, data)
        while len(self._entries) > self.config.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache eviction: {evicted[:120]}")

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def build_caches(profiles: Mapping[str, Any]) -> Dict[str, ResponseCache]:
    """One cache per profile whose cache is enabled."""
    return {
        name: ResponseCache(profile.cache)
        for name, profile in profiles.items()
        if profile.cache is not None and profile.cache.enabled
    }
