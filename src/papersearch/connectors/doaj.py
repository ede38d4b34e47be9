from __future__ import annotations

import logging
from typing import Any

from ..utils import generate_id, normalize_doi
from .base import NO_ABSTRACT, NO_TITLE, UNKNOWN_JOURNAL, Connector, Paper, SearchFilters, Source

logger = logging.getLogger(__name__)

BASE_URL = "https://doaj.org/api/search/articles"


def parse_doaj_response(data: dict[str, Any]) -> list[Paper]:
    items = data.get("results")
    if not isinstance(items, list):
        return []

    papers: list[Paper] = []
    for item in items:
        try:
            bib = item.get("bibjson") or {}
            links = [link for link in (bib.get("link") or []) if isinstance(link, dict)]
            pdf_url = next(
                (
                    link.get("url")
                    for link in links
                    if link.get("type") == "fulltext" and link.get("content_type") == "PDF"
                ),
                None,
            )
            doi = next(
                (
                    ident.get("id")
                    for ident in (bib.get("identifier") or [])
                    if isinstance(ident, dict) and ident.get("type") == "doi"
                ),
                None,
            )
            categories = []
            for subject in bib.get("subject") or []:
                term = subject.get("term") if isinstance(subject, dict) else subject
                if term:
                    categories.append(term)
            year = bib.get("year")
            papers.append(
                Paper(
                    id=f"doaj_{item.get('id') or generate_id()}",
                    source=Source.DOAJ,
                    title=bib.get("title") or NO_TITLE,
                    authors=[
                        a.get("name")
                        for a in (bib.get("author") or [])
                        if isinstance(a, dict) and a.get("name")
                    ],
                    abstract=bib.get("abstract") or NO_ABSTRACT,
                    published_date=f"{year}-01-01" if year else "",
                    url=(links[0].get("url") if links else None) or None,
                    doi=normalize_doi(doi),
                    download_url=pdf_url or None,
                    journal=(bib.get("journal") or {}).get("title") or UNKNOWN_JOURNAL,
                    categories=categories,
                    citation_count=None,
                )
            )
        except Exception:  # noqa: BLE001
            logger.warning("Error parsing DOAJ entry", exc_info=True)
    return papers


class DOAJConnector(Connector):
    source_name = "doaj"
    source = Source.DOAJ
    max_per_call = 100

    async def _search(self, query: str, filters: SearchFilters) -> list[Paper]:
        params = {
            "q": query,
            "pageSize": str(self.page_size(filters)),
            "page": str(max(filters.page, 1)),
            "sort": "relevance",
        }
        data = await self._get_json(BASE_URL, params=params)
        return parse_doaj_response(data)
