from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from ..errors import AdapterError
from ..utils import generate_id, normalize_doi
from .base import NO_ABSTRACT, NO_TITLE, UNKNOWN_JOURNAL, Connector, Paper, SearchFilters, Source

logger = logging.getLogger(__name__)

EUTILS_SEARCH = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esearch.fcgi"
EUTILS_FETCH = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/efetch.fcgi"

_MONTHS = {
    "jan": "01", "feb": "02", "mar": "03", "apr": "04", "may": "05", "jun": "06",
    "jul": "07", "aug": "08", "sep": "09", "oct": "10", "nov": "11", "dec": "12",
}  # fmt: skip


def _month_number(raw: str) -> str:
    if not raw:
        return "01"
    if raw.isdigit():
        return raw.zfill(2)
    return _MONTHS.get(raw[:3].lower(), "01")


def _text(node: ET.Element | None) -> str:
    # itertext keeps inline markup such as <i> inside titles
    return "".join(node.itertext()).strip() if node is not None else ""


def parse_pubmed_response(xml_text: str) -> list[Paper]:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise AdapterError("pubmed", "Failed to parse PubMed response", status=200) from exc

    papers: list[Paper] = []
    for article in root.iter("PubmedArticle"):
        try:
            citation = article.find("MedlineCitation")
            pmid = _text(citation.find("PMID")) if citation is not None else ""
            art = citation.find("Article") if citation is not None else None

            authors: list[str] = []
            for author in art.findall("AuthorList/Author") if art is not None else []:
                name = f"{_text(author.find('ForeName'))} {_text(author.find('LastName'))}".strip()
                if name:
                    authors.append(name)

            pub_date = art.find("Journal/JournalIssue/PubDate") if art is not None else None
            year = _text(pub_date.find("Year")) if pub_date is not None else ""
            published = ""
            if year:
                month = _month_number(_text(pub_date.find("Month")))
                day = (_text(pub_date.find("Day")) or "01").zfill(2)
                published = f"{year}-{month}-{day}"

            doi = None
            for aid in article.findall("PubmedData/ArticleIdList/ArticleId"):
                if aid.get("IdType") == "doi":
                    doi = normalize_doi(_text(aid))
                    break

            papers.append(
                Paper(
                    id=f"pubmed_{pmid or generate_id()}",
                    source=Source.PUBMED,
                    title=(_text(art.find("ArticleTitle")) if art is not None else "") or NO_TITLE,
                    authors=authors,
                    abstract=(
                        (_text(art.find("Abstract/AbstractText")) if art is not None else "")
                        or NO_ABSTRACT
                    ),
                    published_date=published,
                    url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/" if pmid else None,
                    doi=doi,
                    download_url=None,
                    journal=(_text(art.find("Journal/Title")) if art is not None else "")
                    or UNKNOWN_JOURNAL,
                    categories=[],
                    citation_count=None,
                )
            )
        except Exception:  # noqa: BLE001
            logger.warning("Error parsing PubMed article", exc_info=True)
    return papers


class PubMedConnector(Connector):
    source_name = "pubmed"
    source = Source.PUBMED
    max_per_call = 200

    async def _search(self, query: str, filters: SearchFilters) -> list[Paper]:
        # Step 1: resolve the query to PMIDs; step 2: fetch full records for them
        retmax = self.page_size(filters)
        search_params = {
            "db": "pubmed",
            "term": query,
            "retmax": str(retmax),
            "retstart": str(self.offset(filters)),
            "retmode": "json",
            "sort": "relevance",
        }
        search_res = await self._get_json(EUTILS_SEARCH, params=search_params)
        idlist = (search_res.get("esearchresult") or {}).get("idlist") or []
        if not idlist:
            return []

        fetch_params = {
            "db": "pubmed",
            "id": ",".join(idlist),
            "retmode": "xml",
        }
        xml_text = await self._get_text(EUTILS_FETCH, params=fetch_params)
        return parse_pubmed_response(xml_text)
