from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence

from .connectors.base import Paper
from .errors import UnsupportedFormat
from .utils import truncate_text

SUPPORTED_FORMATS = ("json", "csv")
CSV_HEADERS = ["Title", "Authors", "Abstract", "Published Date", "Source", "Journal", "DOI", "URL"]


def _csv_row(paper: Paper) -> list[str]:
    return [
        paper.title,
        "; ".join(paper.author_names),
        truncate_text(paper.abstract, 200),
        paper.published_date or "",
        paper.source.value,
        paper.journal,
        paper.doi or "",
        paper.url or "",
    ]


def export_to_csv(papers: Sequence[Paper]) -> str:
    """Header row, then one fully quoted row per paper; '' for no papers.

    Embedded quotes are doubled. Rows are separated by ``\\n`` with no trailing newline.
    """
    if not papers:
        return ""
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerow(CSV_HEADERS)
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for paper in papers:
        writer.writerow(_csv_row(paper))
    return buf.getvalue().removesuffix("\n")


def export_to_json(papers: Sequence[Paper]) -> str:
    return json.dumps([p.to_dict() for p in papers], indent=2, ensure_ascii=False)


def is_supported_format(fmt: str | None) -> bool:
    return (fmt or "").lower() in SUPPORTED_FORMATS


def export_papers(papers: Sequence[Paper], fmt: str = "json") -> str:
    kind = (fmt or "").lower()
    if kind == "csv":
        return export_to_csv(papers)
    if kind == "json":
        return export_to_json(papers)
    raise UnsupportedFormat(fmt)
