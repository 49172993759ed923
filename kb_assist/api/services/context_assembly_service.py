"""Merge ranked hits from both retrieval tiers into one capped context set."""

from typing import List, Sequence

from .vector_store_service import SearchResult


def _distance_key(result: SearchResult) -> float:
    distance = getattr(result, "distance", None)
    return float(distance) if distance is not None else 0.0


def merge_tier_results(
    org_results: Sequence[SearchResult],
    domain_results: Sequence[SearchResult],
    max_context: int,
) -> List[SearchResult]:
    """
    Concatenate org hits then domain hits, sort by ascending distance, cap.

    The sort is stable, so equal distances keep org-before-domain order and
    each tier's own order. A missing distance counts as 0.
    """
    if max_context <= 0:
        return []
    combined = [*org_results, *domain_results]
    combined.sort(key=_distance_key)
    return combined[:max_context]
