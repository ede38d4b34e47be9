"""Deterministic heuristics computed purely from a paper's own fields.

Every function takes an optional ``current_year`` so results are reproducible;
it defaults to the calendar year at call time.
"""

from __future__ import annotations

import math
from datetime import date

from .connectors.base import ImpactMetrics, Paper, Source
from .utils import parse_year


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _year_now(current_year: int | None) -> int:
    return current_year if current_year is not None else date.today().year


def _journal_known(journal: str | None) -> bool:
    # Covers both "Unknown journal" and the "Unknown venue" some sources report
    return bool(journal) and "Unknown" not in journal


def relevance_score(paper: Paper, current_year: int | None = None) -> int:
    """0-100 ranking heuristic.

    citations 30, recency 20, substantive abstract 20, downloadable 15, known journal 15.
    """
    score = 0.0
    if paper.citation_count:
        score += min(paper.citation_count / 100, 1) * 30
    pub_year = parse_year(paper.published_date)
    if pub_year is not None:
        age = _year_now(current_year) - pub_year
        score += min(1.0, max(0.0, 1 - age / 10)) * 20
    if paper.abstract and len(paper.abstract) > 100:
        score += 20
    if paper.download_url:
        score += 15
    if _journal_known(paper.journal):
        score += 15
    return _round_half_up(score)


def quality_score(paper: Paper) -> int:
    score = 0
    if paper.title and len(paper.title) > 10 and "No title" not in paper.title:
        score += 25
    if paper.abstract and len(paper.abstract) > 200 and "No abstract" not in paper.abstract:
        score += 35
    if paper.authors:
        score += 20
    if paper.doi:
        score += 20
    return score


def citation_velocity(paper: Paper, current_year: int | None = None) -> float:
    """Citations per year since publication, one decimal."""
    pub_year = parse_year(paper.published_date)
    if not paper.citation_count or pub_year is None:
        return 0.0
    years = max(1, _year_now(current_year) - pub_year)
    return _round_half_up(paper.citation_count / years * 10) / 10


def social_impact(paper: Paper) -> int:
    score = 0
    if paper.source == Source.ARXIV:
        score += 5
    if paper.download_url:
        score += 10
    if (paper.citation_count or 0) > 50:
        score += 15
    return score


def academic_impact(paper: Paper) -> int:
    score = 0.0
    if paper.citation_count:
        score += min(paper.citation_count / 10, 50)
    if paper.influential_citation_count:
        score += paper.influential_citation_count * 2
    return _round_half_up(score)


def impact_metrics(paper: Paper, current_year: int | None = None) -> ImpactMetrics:
    return ImpactMetrics(
        citation_velocity=citation_velocity(paper, current_year),
        social_impact=social_impact(paper),
        academic_impact=academic_impact(paper),
    )


def score_paper(paper: Paper, current_year: int | None = None) -> Paper:
    """Return a copy of ``paper`` with all computed fields filled in."""
    return paper.copy(
        relevance_score=relevance_score(paper, current_year),
        quality_score=quality_score(paper),
        impact_metrics=impact_metrics(paper, current_year),
    )
