from __future__ import annotations

import re
from collections.abc import Iterable

from .connectors.base import Paper

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_title(title: str | None) -> str:
    """Comparison key for titles: lower-case, punctuation stripped, whitespace collapsed."""
    s = _NON_WORD.sub("", (title or "").lower())
    return _WHITESPACE.sub(" ", s).strip()


def merge_and_deduplicate(papers: Iterable[Paper]) -> list[Paper]:
    """Keep the first paper seen for each normalized title, in first-seen order.

    Later papers with the same title are dropped even when their id or source differs.
    A later paper reusing an id that was already kept is dropped as well.
    """
    seen_titles: set[str] = set()
    seen_ids: set[str] = set()
    merged: list[Paper] = []
    for paper in papers:
        key = normalize_title(paper.title)
        if key in seen_titles or paper.id in seen_ids:
            continue
        seen_titles.add(key)
        seen_ids.add(paper.id)
        merged.append(paper)
    return merged
