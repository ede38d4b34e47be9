from __future__ import annotations

import logging
from typing import Any

from ..utils import generate_id, normalize_doi
from .base import NO_ABSTRACT, NO_TITLE, Connector, Paper, SearchFilters, Source

logger = logging.getLogger(__name__)

BASE_URL = "https://api.semanticscholar.org/graph/v1/paper/search"
FIELDS = (
    "title,abstract,authors,year,citationCount,influentialCitationCount,"
    "venue,url,openAccessPdf,externalIds"
)


def parse_semantic_scholar_response(data: dict[str, Any]) -> list[Paper]:
    items = data.get("data")
    if not isinstance(items, list):
        return []

    papers: list[Paper] = []
    for item in items:
        try:
            year = item.get("year")
            oa = item.get("openAccessPdf") or {}
            external_ids = item.get("externalIds") or {}
            papers.append(
                Paper(
                    id=f"semantic_{item.get('paperId') or generate_id()}",
                    source=Source.SEMANTIC_SCHOLAR,
                    title=item.get("title") or NO_TITLE,
                    authors=[a.get("name") for a in (item.get("authors") or []) if a.get("name")],
                    abstract=item.get("abstract") or NO_ABSTRACT,
                    published_date=f"{year}-01-01" if year else "",
                    url=item.get("url") or None,
                    doi=normalize_doi(external_ids.get("DOI")),
                    download_url=(oa.get("url") if isinstance(oa, dict) else None) or None,
                    # The venue sentinel differs from the journal default, as the API reports it
                    journal=item.get("venue") or "Unknown venue",
                    categories=[],
                    citation_count=item.get("citationCount") or 0,
                    influential_citation_count=item.get("influentialCitationCount") or 0,
                )
            )
        except Exception:  # noqa: BLE001
            logger.warning("Error parsing Semantic Scholar entry", exc_info=True)
    return papers


class SemanticScholarConnector(Connector):
    source_name = "semantic_scholar"
    source = Source.SEMANTIC_SCHOLAR
    max_per_call = 100

    async def _search(self, query: str, filters: SearchFilters) -> list[Paper]:
        params: dict[str, str] = {
            "query": query,
            "limit": str(self.page_size(filters)),
            "offset": str(self.offset(filters)),
            "fields": FIELDS,
        }
        data = await self._get_json(BASE_URL, params=params)
        return parse_semantic_scholar_response(data)
