"""Tier 0: locally curated vendor store."""

from __future__ import annotations
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import pydantic

from ..exceptions import ParseError
from ..models import SearchResult, SourceKind

logger = logging.getLogger(__name__)


def load_vendors(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Read the ``vendors`` list from the curated JSON file."""
    with open(path, "r", encoding="utf-8") as fh:
        db = json.load(fh)
    vendors = db.get("vendors") if isinstance(db, dict) else None
    if not isinstance(vendors, list):
        raise ParseError(f"{path}: expected an object with a 'vendors' list")
    return vendors


def match_vendors(vendors: List[Dict[str, Any]], query: str) -> List[SearchResult]:
    needle = query.lower()
    results = []
    for v in vendors:
        name = v.get("name") if isinstance(v, dict) else None
        if not isinstance(name, str) or needle not in name.lower():
            continue
        try:
            hit = SearchResult.from_source(
                SourceKind.LOCAL_DB,
                title=name,
                link=v.get("source_url") or "",
                snippet=v.get("description") or "",
            )
        except pydantic.ValidationError as e:
            logger.warning(f"Skipping malformed vendor record {name!r}: {e.error_count()} invalid field(s)")
            continue
        results.append(hit)
    return results


async def search(path: Union[str, Path], query: str) -> List[SearchResult]:
    """Case-insensitive substring match on vendor name. Never raises."""
    try:
        vendors = await asyncio.to_thread(load_vendors, path)
    except (OSError, ValueError, ParseError) as e:
        logger.warning(f"Local DB query failed: {e}")
        return []

    results = match_vendors(vendors, query)
    logger.info(f"Found {len(results)} matches in local DB")
    return results
