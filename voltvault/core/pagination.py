"""Marker based pagination helpers."""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

DEFAULT_MAX_RESULTS = 25


def validate_max_results(max_results: Optional[int]) -> int:
    if max_results is None:
        return DEFAULT_MAX_RESULTS
    if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results < 1:
        raise ValueError(f"max_results must be a positive integer, got {max_results!r}")
    return max_results


def paginate_sorted(
    items: Sequence[T],
    key: Callable[[T], str],
    max_results: Optional[int],
    marker: Optional[str],
) -> Tuple[List[T], Optional[str]]:
    """Slice *items* (already sorted by *key*) after *marker*.

    The marker is the key of the last item handed out, so a walk resumes
    correctly even if that item has since disappeared and ignores anything
    inserted before it. ``None`` is returned as the marker once the listing
    is exhausted.
    """

    limit = validate_max_results(max_results)
    remaining = [item for item in items if not marker or key(item) > marker]
    return page_of(remaining, key, limit)


def page_of(remaining: Sequence[T], key: Callable[[T], str], limit: int) -> Tuple[List[T], Optional[str]]:
    page = list(remaining[:limit])
    next_marker = key(page[-1]) if page and len(remaining) > limit else None
    return page, next_marker


__all__ = ["DEFAULT_MAX_RESULTS", "page_of", "paginate_sorted", "validate_max_results"]
