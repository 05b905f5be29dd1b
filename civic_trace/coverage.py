"""Coverage scoring for accumulated ladder results."""

from __future__ import annotations
from typing import Sequence

from .models import CoverageRequirement, SearchResult


def requirement_ratio(results: Sequence[SearchResult], requirement: CoverageRequirement) -> float:
    """Share of *all* results that satisfy ``requirement``."""
    if not results:
        return 0.0
    matching = sum(
        1 for r in results
        if r.confidence >= requirement.min_confidence and r.has_fields(requirement.required_fields)
    )
    return matching / len(results)


def calculate_coverage(results: Sequence[SearchResult],
                       requirements: Sequence[CoverageRequirement]) -> float:
    """
    Average, over requirements, of the fraction of all results meeting each one.

    The denominator is the full result count, so low-confidence hits from
    later tiers dilute every requirement. Coverage can drop tier over tier.

    Args:
        results: Accumulated results in discovery order
        requirements: Caller's coverage requirements

    Returns:
        Score in [0, 1]; 0 when either input is empty
    """
    if not results or not requirements:
        return 0.0
    total = sum(requirement_ratio(results, req) for req in requirements)
    return total / len(requirements)
