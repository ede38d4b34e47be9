from __future__ import annotations

import logging
from datetime import date
from typing import Any

from ..utils import generate_id, normalize_doi
from .base import NO_ABSTRACT, NO_TITLE, UNKNOWN_JOURNAL, Connector, Paper, SearchFilters, Source

logger = logging.getLogger(__name__)

BASE_URL = "https://api.openalex.org/works"
WORK_PREFIX = "https://openalex.org/"


def rebuild_abstract(inverted_index: dict[str, list[int]] | None) -> str | None:
    """OpenAlex ships abstracts as {word: [positions]}; put the words back in order."""
    if not inverted_index:
        return None
    positioned: list[tuple[int, str]] = []
    for word, positions in inverted_index.items():
        for pos in positions or []:
            positioned.append((pos, word))
    if not positioned:
        return None
    positioned.sort()
    return " ".join(word for _, word in positioned)


def parse_openalex_response(data: dict[str, Any]) -> list[Paper]:
    items = data.get("results")
    if not isinstance(items, list):
        return []

    papers: list[Paper] = []
    for item in items:
        try:
            work_id = item.get("id") or ""
            short_id = work_id.replace(WORK_PREFIX, "") if work_id else ""
            authors = [
                (a.get("author") or {}).get("display_name")
                for a in (item.get("authorships") or [])
            ]
            abstract = item.get("abstract") or rebuild_abstract(
                item.get("abstract_inverted_index")
            )
            source_info = (item.get("primary_location") or {}).get("source") or {}
            oa = item.get("open_access") or {}
            papers.append(
                Paper(
                    id=f"openalex_{short_id or generate_id()}",
                    source=Source.OPENALEX,
                    title=item.get("title") or item.get("display_name") or NO_TITLE,
                    authors=[a for a in authors if a],
                    abstract=abstract or NO_ABSTRACT,
                    published_date=item.get("publication_date") or "",
                    url=work_id or None,
                    doi=normalize_doi(item.get("doi")),
                    download_url=oa.get("oa_url") or None,
                    journal=source_info.get("display_name") or UNKNOWN_JOURNAL,
                    categories=[
                        c.get("display_name")
                        for c in (item.get("concepts") or [])
                        if c.get("display_name")
                    ],
                    citation_count=item.get("cited_by_count") or 0,
                )
            )
        except Exception:  # noqa: BLE001
            logger.warning("Error parsing OpenAlex entry", exc_info=True)
    return papers


class OpenAlexConnector(Connector):
    source_name = "openalex"
    source = Source.OPENALEX
    max_per_call = 200

    async def _search(self, query: str, filters: SearchFilters) -> list[Paper]:
        params: dict[str, str] = {
            "search": query,
            "per-page": str(self.page_size(filters)),
            "page": str(max(filters.page, 1)),
            "sort": "relevance_score:desc",
        }
        if filters.year_from or filters.year_to:
            from_year = filters.year_from or 1900
            to_year = filters.year_to or date.today().year
            params["filter"] = f"publication_year:{from_year}-{to_year}"

        headers = {"User-Agent": f"PaperSearchTool/1.0 (mailto:{self.settings.contact_email})"}
        data = await self._get_json(BASE_URL, params=params, headers=headers)
        return parse_openalex_response(data)
