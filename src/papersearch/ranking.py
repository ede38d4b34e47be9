from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date
from typing import Any

from .connectors.base import Paper, SearchFilters
from .utils import parse_date, parse_year

SORT_KEYS = ("relevance", "date", "citations", "quality", "impact", "velocity", "title")


def apply_filters(
    papers: Sequence[Paper], filters: SearchFilters, *, current_year: int | None = None
) -> list[Paper]:
    """Year range first, then author substring. Relative order is preserved."""
    filtered = list(papers)

    if filters.year_from or filters.year_to:
        from_year = filters.year_from or 1900
        to_year = filters.year_to or current_year or date.today().year

        def _in_range(paper: Paper) -> bool:
            year = parse_year(paper.published_date)
            # Undated papers cannot satisfy an active range
            return year is not None and from_year <= year <= to_year

        filtered = [p for p in filtered if _in_range(p)]

    if filters.author:
        needle = filters.author.lower()
        filtered = [p for p in filtered if any(needle in a.lower() for a in p.author_names)]

    return filtered


def _metric(getter: Callable[[Paper], Any]) -> Callable[[Paper], float]:
    def key(paper: Paper) -> float:
        return -(getter(paper) or 0)

    return key


def _date_key(paper: Paper) -> tuple[int, int]:
    parsed = parse_date(paper.published_date)
    # Undated papers go last
    return (1, 0) if parsed is None else (0, -parsed.toordinal())


_SORTERS: dict[str, Callable[[Paper], Any]] = {
    "date": _date_key,
    "citations": _metric(lambda p: p.citation_count),
    "quality": _metric(lambda p: p.quality_score),
    "impact": _metric(lambda p: p.impact_metrics.academic_impact if p.impact_metrics else 0),
    "velocity": _metric(lambda p: p.impact_metrics.citation_velocity if p.impact_metrics else 0),
    "title": lambda p: p.title.casefold(),
}


def sort_results(papers: Sequence[Paper], sort_by: str = "relevance") -> list[Paper]:
    """Stable sort by the requested key; descending for every key except title.

    ``relevance`` (and any unknown key) only reorders when at least one paper has a
    relevance score; otherwise the merged order is returned unchanged.
    """
    results = list(papers)
    key = _SORTERS.get(sort_by)
    if key is not None:
        return sorted(results, key=key)
    if any(p.relevance_score for p in results):
        return sorted(results, key=_metric(lambda p: p.relevance_score))
    return results
