from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .citations import OpenCitationsClient
from .config import Settings
from .connectors.base import AuthorInfo, Paper
from .errors import EnrichmentError
from .orcid import OrcidClient
from .scoring import score_paper

logger = logging.getLogger(__name__)


@dataclass
class EnrichCounters:
    enriched: int = 0
    skipped: int = 0
    errors: int = 0


def enrich_with_metrics(papers: Sequence[Paper], current_year: int | None = None) -> list[Paper]:
    """Attach relevance, quality and impact scores to every paper."""
    out: list[Paper] = []
    for paper in papers:
        try:
            out.append(score_paper(paper, current_year))
        except Exception:  # noqa: BLE001
            logger.warning("Error calculating metrics for paper %s", paper.id, exc_info=True)
            out.append(paper)
    return out


async def _with_citations(paper: Paper, client: OpenCitationsClient) -> Paper:
    try:
        data = await client.get_citation_data(paper.doi or "")
    except Exception as exc:  # noqa: BLE001
        raise EnrichmentError(paper.id, f"citation lookup failed: {exc}") from exc
    return paper.copy(
        citing_papers=data.citing, cited_papers=data.cited, citation_network=data.network
    )


async def enrich_with_citations(
    papers: Sequence[Paper], client: OpenCitationsClient
) -> list[Paper]:
    """Attach citing/cited lists to papers that have a DOI, one paper at a time."""
    counters = EnrichCounters()
    out: list[Paper] = []
    for paper in papers:
        if not paper.doi:
            counters.skipped += 1
            out.append(paper)
            continue
        try:
            out.append(await _with_citations(paper, client))
            counters.enriched += 1
        except EnrichmentError as exc:
            logger.warning("Error enriching citations for paper %s: %s", paper.id, exc)
            counters.errors += 1
            out.append(paper)
    logger.info(
        "citation enrichment enriched=%d skipped=%d errors=%d",
        counters.enriched,
        counters.skipped,
        counters.errors,
    )
    return out


async def _with_authors(paper: Paper, client: OrcidClient) -> Paper:
    authors: list[str | AuthorInfo] = []
    # One lookup at a time; the registry limiter paces them
    for name in paper.author_names:
        try:
            authors.append(await client.get_author_info(name))
        except Exception as exc:  # noqa: BLE001
            raise EnrichmentError(paper.id, f"author lookup failed for {name!r}: {exc}") from exc
    return paper.copy(authors=authors)


async def enrich_with_author_info(papers: Sequence[Paper], client: OrcidClient) -> list[Paper]:
    """Replace author names with ``AuthorInfo`` records from the identity registry."""
    counters = EnrichCounters()
    out: list[Paper] = []
    for paper in papers:
        try:
            out.append(await _with_authors(paper, client))
            counters.enriched += 1
        except EnrichmentError as exc:
            logger.warning("Error enriching author info for paper %s: %s", paper.id, exc)
            counters.errors += 1
            out.append(paper)
    logger.info("author enrichment enriched=%d errors=%d", counters.enriched, counters.errors)
    return out


async def enrich_results(
    papers: Sequence[Paper],
    *,
    settings: Settings | None = None,
    citation_client: OpenCitationsClient | None = None,
    author_client: OrcidClient | None = None,
    with_citations: bool = True,
    with_authors: bool = False,
    current_year: int | None = None,
) -> list[Paper]:
    """Enrichment policy applied to a finished result set.

    Only sets of 1..``enrich_max_results`` papers are enriched. Metrics always run;
    citations run for the first ``enrich_max_citation_papers`` papers with a DOI and
    are merged back by id; author lookups run only when requested.
    """
    settings = settings or Settings.from_env()
    results = list(papers)
    if not results or len(results) > settings.enrich_max_results:
        logger.info("skipping enrichment for %d results", len(results))
        return results

    try:
        results = enrich_with_metrics(results, current_year)

        if with_citations:
            with_doi = [p for p in results if p.doi][: settings.enrich_max_citation_papers]
            if with_doi:
                client = citation_client or OpenCitationsClient(settings)
                by_id = {p.id: p for p in await enrich_with_citations(with_doi, client)}
                results = [by_id.get(p.id, p) for p in results]

        if with_authors:
            registry = author_client or OrcidClient(settings)
            results = await enrich_with_author_info(results, registry)
    except Exception:  # noqa: BLE001
        logger.warning("Data enrichment failed, returning unenriched results", exc_info=True)
        return list(papers)

    logger.info("data enrichment completed for %d results", len(results))
    return results
