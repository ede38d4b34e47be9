from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Mapping
from typing import Any

from .cache import SearchCache
from .citations import OpenCitationsClient
from .config import Settings
from .connectors import default_connectors
from .connectors.base import (
    OUTCOME_EMPTY,
    OUTCOME_FAILED,
    OUTCOME_RESULTS,
    Connector,
    Paper,
    SearchFilters,
)
from .dedup import merge_and_deduplicate
from .enrich import enrich_results
from .errors import AllSourcesUnavailable
from .export import export_papers
from .orcid import OrcidClient
from .ranking import apply_filters, sort_results
from .storage import PersistenceStore
from .utils import SourceCounters, telemetry_span

logger = logging.getLogger(__name__)

COMMON_TERMS = [
    "machine learning",
    "artificial intelligence",
    "deep learning",
    "neural networks",
    "natural language processing",
    "computer vision",
    "quantum computing",
    "blockchain",
    "bioinformatics",
    "robotics",
]


class PaperSearchEngine:
    """Fans a query out to every selected source and keeps the current result set.

    The cache and the current-search snapshot (``current_results``, ``total_results``,
    ``is_searching``) belong to this object alone. ``is_searching`` rejects overlapping
    searches instead of queueing them; a rejected caller gets ``[]`` and must retry.
    """

    def __init__(
        self,
        connectors: Mapping[str, Connector] | None = None,
        *,
        settings: Settings | None = None,
        cache: SearchCache | None = None,
        store: PersistenceStore | None = None,
        citation_client: OpenCitationsClient | None = None,
        author_client: OrcidClient | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.connectors: dict[str, Connector] = (
            dict(connectors) if connectors is not None else default_connectors(self.settings)
        )
        self.cache = cache or SearchCache(ttl_seconds=self.settings.cache_ttl_seconds)
        self.store = store
        self.citation_client = citation_client
        self.author_client = author_client

        self.current_results: list[Paper] = []
        self.current_query = ""
        self.current_filters = SearchFilters()
        self.total_results = 0
        self.is_searching = False
        self.last_outcomes: dict[str, str] = {}

    def active_connectors(self, filters: SearchFilters) -> list[tuple[str, Connector]]:
        if filters.source == "all":
            return list(self.connectors.items())
        connector = self.connectors.get(filters.source)
        if connector is None:
            logger.warning("Unknown source %r, no connectors selected", filters.source)
            return []
        return [(filters.source, connector)]

    async def search_all(self, query: str, filters: SearchFilters | None = None) -> list[Paper]:
        """Search every selected source concurrently and return the merged, ranked list.

        Raises ``AllSourcesUnavailable`` only when every invoked source failed; sources
        that answered with zero results count as successful.
        """
        filters = filters or SearchFilters(per_page=self.settings.default_per_page)
        if self.is_searching:
            logger.info("Search already in progress, rejecting query %r", query)
            return []

        self.is_searching = True
        try:
            return await self._run_search(query, filters)
        finally:
            self.is_searching = False

    async def _run_search(self, query: str, filters: SearchFilters) -> list[Paper]:
        self.current_query = query
        self.current_filters = filters

        cached = self.cache.get(query, filters)
        if cached is not None:
            logger.info("cache hit query=%r total=%d", query, cached.total)
            self.current_results = cached.results
            self.total_results = cached.total
            return list(cached.results)

        self._record_history(query)

        active = self.active_connectors(filters)
        counters = SourceCounters()
        with telemetry_span("search_all", counters):
            settled = await asyncio.gather(
                *(connector.search_with_outcome(query, filters) for _, connector in active),
                return_exceptions=True,
            )

            raw: list[Paper] = []
            outcomes: dict[str, str] = {}
            for (name, connector), result in zip(active, settled):
                if isinstance(result, BaseException):
                    logger.warning("%s failed: %r", connector.source.value, result)
                    papers, failed = [], True
                else:
                    papers, failed = result
                if failed:
                    counters.failed += 1
                    outcomes[name] = OUTCOME_FAILED
                elif papers:
                    counters.succeeded += 1
                    outcomes[name] = OUTCOME_RESULTS
                    raw.extend(papers)
                else:
                    counters.empty += 1
                    outcomes[name] = OUTCOME_EMPTY
            self.last_outcomes = outcomes

        working = counters.succeeded + counters.empty
        logger.info(
            "Search summary: %d/%d sources successful, %d total results",
            working,
            len(active),
            len(raw),
        )
        if active and working == 0:
            raise AllSourcesUnavailable(len(active))

        merged = merge_and_deduplicate(raw)
        filtered = apply_filters(merged, filters)
        ordered = sort_results(filtered, filters.sort or "relevance")

        entry = self.cache.set(query, filters, ordered)
        self.current_results = entry.results
        self.total_results = entry.total
        return list(entry.results)

    def _record_history(self, query: str) -> None:
        if self.store is None:
            return
        try:
            self.store.add_to_history(query)
        except Exception:  # noqa: BLE001
            logger.warning("Could not record search history", exc_info=True)

    async def enrich(
        self,
        papers: list[Paper] | None = None,
        *,
        with_citations: bool = True,
        with_authors: bool = False,
        current_year: int | None = None,
    ) -> list[Paper]:
        """Score and optionally enrich a result set (the current one by default).

        When the current set is enriched, it is re-sorted by the active sort key and
        the snapshot is replaced so paging and export see the computed fields.
        """
        target = self.current_results if papers is None else papers
        if self.citation_client is None:
            self.citation_client = OpenCitationsClient(self.settings)
        if with_authors and self.author_client is None:
            self.author_client = OrcidClient(self.settings)
        enriched = await enrich_results(
            target,
            settings=self.settings,
            citation_client=self.citation_client,
            author_client=self.author_client,
            with_citations=with_citations,
            with_authors=with_authors,
            current_year=current_year,
        )
        if papers is None:
            enriched = sort_results(enriched, self.current_filters.sort or "relevance")
            self.current_results = enriched
            self.total_results = len(enriched)
        return enriched

    def get_page(self, page: int, per_page: int | None = None) -> dict[str, Any]:
        per_page = per_page or self.settings.default_per_page
        start = (page - 1) * per_page
        return {
            "results": self.current_results[max(start, 0) : max(start + per_page, 0)],
            "page": page,
            "per_page": per_page,
            "total": self.total_results,
            "total_pages": math.ceil(self.total_results / per_page),
        }

    def export_results(self, fmt: str = "json") -> str:
        return export_papers(self.current_results, fmt)

    def get_search_suggestions(self, query: str) -> list[dict[str, str]]:
        if not query or len(query) < 2:
            return []
        needle = query.lower()
        suggestions: list[dict[str, str]] = []
        history = self.store.load_history() if self.store is not None else []
        for entry in history:
            if needle in entry.query.lower() and entry.query != query:
                suggestions.append({"text": entry.query, "type": "history"})
        seen = {s["text"] for s in suggestions}
        for term in COMMON_TERMS:
            if needle in term and term != query and term not in seen:
                suggestions.append({"text": term, "type": "suggestion"})
        return suggestions[:5]
