from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from ..errors import AdapterError
from ..utils import build_url, via_proxy
from .base import NO_ABSTRACT, NO_TITLE, Connector, Paper, SearchFilters, Source

logger = logging.getLogger(__name__)

BASE_URL = "https://export.arxiv.org/api/query"
ATOM = "{http://www.w3.org/2005/Atom}"

# arXiv subject groups exposed as the "category" filter
CATEGORY_MAP = {
    "cs": "cat:cs.*",
    "math": "cat:math.*",
    "physics": "cat:physics.*",
    "bio": "cat:q-bio.*",
    "econ": "cat:econ.*",
    "stat": "cat:stat.*",
}


def build_arxiv_query(query: str, filters: SearchFilters) -> str:
    # arXiv supports fielded queries like: "deep learning" AND au:"Smith" AND cat:cs.*
    expr = f'"{query}"' if filters.exact_phrase else query
    if filters.author:
        expr += f' AND au:"{filters.author}"'
    if filters.category and filters.category in CATEGORY_MAP:
        expr += f" AND {CATEGORY_MAP[filters.category]}"
    return expr


def _text(node: ET.Element | None) -> str:
    return (node.text or "").strip() if node is not None else ""


def parse_arxiv_response(xml_text: str) -> list[Paper]:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise AdapterError("arxiv", "Failed to parse ArXiv response", status=200) from exc

    papers: list[Paper] = []
    for entry in root.iter(f"{ATOM}entry"):
        try:
            entry_id = _text(entry.find(f"{ATOM}id"))
            arxiv_id = entry_id.rstrip("/").split("/")[-1]
            published = _text(entry.find(f"{ATOM}published"))
            pdf_link = next(
                (
                    link.get("href")
                    for link in entry.findall(f"{ATOM}link")
                    if link.get("type") == "application/pdf"
                ),
                None,
            )
            papers.append(
                Paper(
                    id=f"arxiv_{arxiv_id}",
                    source=Source.ARXIV,
                    title=_text(entry.find(f"{ATOM}title")) or NO_TITLE,
                    authors=[
                        name
                        for name in (
                            _text(a.find(f"{ATOM}name")) for a in entry.findall(f"{ATOM}author")
                        )
                        if name
                    ],
                    abstract=_text(entry.find(f"{ATOM}summary")) or NO_ABSTRACT,
                    published_date=published.split("T")[0],
                    url=entry_id or None,
                    doi=None,
                    download_url=pdf_link or None,
                    journal="ArXiv",
                    categories=[
                        c.get("term", "") for c in entry.findall(f"{ATOM}category") if c.get("term")
                    ],
                    citation_count=None,
                    arxiv_id=arxiv_id,
                )
            )
        except Exception:  # noqa: BLE001
            logger.warning("Error parsing ArXiv entry", exc_info=True)
    return papers


class ArxivConnector(Connector):
    source_name = "arxiv"
    source = Source.ARXIV
    max_per_call = 1000

    async def _search(self, query: str, filters: SearchFilters) -> list[Paper]:
        limit = self.page_size(filters)
        url = build_url(
            BASE_URL,
            {
                "search_query": build_arxiv_query(query, filters),
                "start": str(self.offset(filters)),
                "max_results": str(limit),
                "sortBy": "relevance",
                "sortOrder": "descending",
            },
        )
        # Direct request first; when the call never gets a response, retry through the relay.
        try:
            xml_text = await self._get_text(url)
        except AdapterError as exc:
            if not exc.is_transport:
                raise
            logger.info("ArXiv direct fetch failed (%s), trying CORS proxy", exc)
            xml_text = await self._get_text(via_proxy(self.settings.cors_proxy, url))
        return parse_arxiv_response(xml_text)
