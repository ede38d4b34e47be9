from __future__ import annotations

import logging
from datetime import date
from typing import Any

from ..utils import build_url, generate_id, normalize_doi, via_proxy
from .base import NO_ABSTRACT, NO_TITLE, UNKNOWN_JOURNAL, Connector, Paper, SearchFilters, Source

logger = logging.getLogger(__name__)

BASE_URL = "https://api.crossref.org/works"


def _format_date_parts(parts: list[Any]) -> str:
    parts = [p for p in parts if p is not None]
    if len(parts) >= 3:
        return f"{parts[0]}-{int(parts[1]):02d}-{int(parts[2]):02d}"
    if len(parts) >= 1:
        return str(parts[0])
    return ""


def parse_crossref_response(data: dict[str, Any]) -> list[Paper]:
    message = data.get("message") or {}
    items = message.get("items") if isinstance(message, dict) else None
    if not items:
        return []

    papers: list[Paper] = []
    for item in items:
        try:
            titles = item.get("title") or []
            authors = [
                f"{a.get('given') or ''} {a.get('family') or ''}".strip()
                for a in (item.get("author") or [])
                if isinstance(a, dict)
            ]
            date_parts = (
                ((item.get("published-print") or {}).get("date-parts") or [[]])[0]
                or ((item.get("published-online") or {}).get("date-parts") or [[]])[0]
                or []
            )
            containers = item.get("container-title") or []
            doi = normalize_doi(item.get("DOI"))
            papers.append(
                Paper(
                    id=f"crossref_{doi or generate_id()}",
                    source=Source.CROSSREF,
                    title=(titles[0] if titles else None) or NO_TITLE,
                    authors=[a for a in authors if a],
                    abstract=item.get("abstract") or NO_ABSTRACT,
                    published_date=_format_date_parts(date_parts),
                    url=f"https://doi.org/{doi}" if doi else None,
                    doi=doi,
                    download_url=None,
                    journal=(containers[0] if containers else None) or UNKNOWN_JOURNAL,
                    categories=list(item.get("subject") or []),
                    citation_count=item.get("is-referenced-by-count") or 0,
                )
            )
        except Exception:  # noqa: BLE001
            logger.warning("Error parsing CrossRef entry", exc_info=True)
    return papers


class CrossRefConnector(Connector):
    source_name = "crossref"
    source = Source.CROSSREF
    max_per_call = 1000

    async def _search(self, query: str, filters: SearchFilters) -> list[Paper]:
        rows = self.page_size(filters)
        params: dict[str, str] = {
            "query": query,
            "rows": str(rows),
            "offset": str(self.offset(filters)),
        }
        if filters.year_from or filters.year_to:
            from_year = filters.year_from or 1900
            to_year = filters.year_to or date.today().year
            params["filter"] = f"from-pub-date:{from_year},until-pub-date:{to_year}"
        if filters.author:
            params["query.author"] = filters.author

        url = build_url(BASE_URL, params)
        # CrossRef is always relayed, with a hard timeout on the relay hop.
        data = await self._get_json(
            via_proxy(self.settings.cors_proxy, url),
            timeout_seconds=self.settings.crossref_timeout_seconds,
        )
        return parse_crossref_response(data)
