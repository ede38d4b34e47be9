from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any

import requests

from ..config import Settings
from ..errors import AdapterError
from ..utils import RateLimiter, http_get_json, http_get_text

logger = logging.getLogger(__name__)

NO_TITLE = "No title"
NO_ABSTRACT = "No abstract available"
UNKNOWN_JOURNAL = "Unknown journal"

OUTCOME_RESULTS = "results"
OUTCOME_EMPTY = "empty"
OUTCOME_FAILED = "failed"


class Source(str, Enum):
    ARXIV = "ArXiv"
    CROSSREF = "CrossRef"
    SEMANTIC_SCHOLAR = "Semantic Scholar"
    OPENALEX = "OpenAlex"
    PUBMED = "PubMed"
    DOAJ = "DOAJ"


@dataclass(frozen=True)
class SearchFilters:
    """Filters for one search invocation.

    - source: "all" or one source key (arxiv, crossref, semantic_scholar, openalex, pubmed, doaj)
    - sort: date|citations|quality|impact|velocity|title|relevance
    - page/per_page: pagination passed through to each source
    - year_from/year_to: inclusive publication year range
    - author: case-insensitive substring matched against author names
    - category: arXiv subject group (cs, math, physics, bio, econ, stat)
    - exact_phrase: search the query as a quoted phrase where the source supports it
    """

    source: str = "all"
    sort: str = "relevance"
    page: int = 1
    per_page: int = 20
    year_from: int | None = None
    year_to: int | None = None
    author: str | None = None
    category: str | None = None
    exact_phrase: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AuthorInfo:
    name: str
    orcid: str | None = None
    affiliation: str | None = None
    h_index: int | None = None
    total_citations: int | None = None


@dataclass
class ImpactMetrics:
    citation_velocity: float = 0.0
    social_impact: int = 0
    academic_impact: int = 0


@dataclass
class Paper:
    # Core identity
    id: str
    source: Source

    # Descriptive fields
    title: str = NO_TITLE
    authors: list[str | AuthorInfo] = field(default_factory=list)
    abstract: str = NO_ABSTRACT
    published_date: str = ""
    url: str | None = None
    doi: str | None = None
    download_url: str | None = None
    journal: str = UNKNOWN_JOURNAL
    categories: list[str] = field(default_factory=list)
    citation_count: int | None = None
    influential_citation_count: int | None = None
    arxiv_id: str | None = None

    # Computed later by scoring, never by connectors
    relevance_score: int | None = None
    quality_score: int | None = None
    impact_metrics: ImpactMetrics | None = None

    # Citation enrichment
    citing_papers: list[Any] | None = None
    cited_papers: list[Any] | None = None
    citation_network: dict[str, Any] | None = None

    @property
    def author_names(self) -> list[str]:
        return [a.name if isinstance(a, AuthorInfo) else a for a in self.authors]

    def copy(self, **changes: Any) -> "Paper":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping using the camelCase keys of the public export format."""
        authors: list[Any] = [
            {
                "name": a.name,
                "orcid": a.orcid,
                "affiliation": a.affiliation,
                "h_index": a.h_index,
                "totalCitations": a.total_citations,
            }
            if isinstance(a, AuthorInfo)
            else a
            for a in self.authors
        ]
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "authors": authors,
            "abstract": self.abstract,
            "publishedDate": self.published_date,
            "source": self.source.value,
            "url": self.url,
            "doi": self.doi,
            "citationCount": self.citation_count,
            "categories": list(self.categories),
            "journal": self.journal,
            "downloadUrl": self.download_url,
        }
        if self.influential_citation_count is not None:
            out["influentialCitationCount"] = self.influential_citation_count
        if self.arxiv_id is not None:
            out["arxivId"] = self.arxiv_id
        if self.relevance_score is not None:
            out["relevanceScore"] = self.relevance_score
        if self.quality_score is not None:
            out["qualityScore"] = self.quality_score
        if self.impact_metrics is not None:
            out["impactMetrics"] = {
                "citationVelocity": self.impact_metrics.citation_velocity,
                "socialImpact": self.impact_metrics.social_impact,
                "academicImpact": self.impact_metrics.academic_impact,
            }
        if self.citing_papers is not None:
            out["citingPapers"] = self.citing_papers
            out["citedPapers"] = self.cited_papers or []
            out["citationNetwork"] = self.citation_network or {}
        return out


class Connector:
    """One external search API.

    Subclasses implement ``_search``, which may raise ``AdapterError`` freely.
    ``search`` is the public contract: it never raises for ordinary failures and
    returns an empty list instead, so one failing source cannot abort an aggregate
    search.
    """

    source_name: str
    source: Source
    max_per_call: int = 100

    def __init__(
        self,
        settings: Settings | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.rate_limiter = rate_limiter
        # Outcome of the most recent search: results, empty or failed; None before any search
        self.last_outcome: str | None = None

    async def search(self, query: str, filters: SearchFilters) -> list[Paper]:
        papers, _ = await self.search_with_outcome(query, filters)
        return papers

    async def search_with_outcome(
        self, query: str, filters: SearchFilters
    ) -> tuple[list[Paper], bool]:
        """Run the search and report ``(papers, failed)``.

        ``failed`` separates a broken source from one that simply found nothing;
        ``last_outcome`` records the same distinction on the connector.
        """
        try:
            papers = await self._search(query, filters)
        except AdapterError as exc:
            if exc.timeout:
                logger.warning("%s search timed out: %s", self.source.value, exc)
            else:
                logger.warning(
                    "%s search failed, continuing with other sources: %s", self.source.value, exc
                )
            self.last_outcome = OUTCOME_FAILED
            return [], True
        except Exception:  # noqa: BLE001
            logger.exception("%s search failed while parsing the response", self.source.value)
            self.last_outcome = OUTCOME_FAILED
            return [], True
        logger.info("%s returned %d papers", self.source.value, len(papers))
        self.last_outcome = OUTCOME_RESULTS if papers else OUTCOME_EMPTY
        return papers, False

    async def _search(self, query: str, filters: SearchFilters) -> list[Paper]:  # pragma: no cover
        raise NotImplementedError

    def page_size(self, filters: SearchFilters) -> int:
        requested = filters.per_page or self.settings.default_per_page
        return max(1, min(requested, self.max_per_call))

    def offset(self, filters: SearchFilters) -> int:
        return (max(filters.page, 1) - 1) * self.page_size(filters)

    async def _get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> dict[str, Any]:
        return await self._request(http_get_json, url, params, headers, timeout_seconds)

    async def _get_text(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> str:
        return await self._request(http_get_text, url, params, headers, timeout_seconds)

    async def _request(self, fetch, url, params, headers, timeout_seconds):
        if self.rate_limiter is not None:
            await self.rate_limiter.acquire()
        timeout = timeout_seconds or self.settings.request_timeout_seconds
        logger.debug("%s request url=%s params=%s", self.source.value, url, params)
        try:
            return await asyncio.to_thread(
                fetch, url, params=params, headers=headers, timeout_seconds=timeout
            )
        except requests.Timeout as exc:
            raise AdapterError(
                self.source_name, f"request timed out after {timeout}s", timeout=True
            ) from exc
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else 0
            raise AdapterError(
                self.source_name, f"{self.source.value} API error: {status}", status=status
            ) from exc
        except (requests.JSONDecodeError, ValueError) as exc:
            raise AdapterError(
                self.source_name, f"invalid response body: {exc}", status=200
            ) from exc
        except requests.RequestException as exc:
            raise AdapterError(self.source_name, f"request failed: {exc}") from exc
