from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import PlainTextResponse

from .config import Settings
from .connectors.base import SearchFilters
from .engine import PaperSearchEngine
from .errors import AllSourcesUnavailable, UnsupportedFormat
from .storage import PersistenceStore

logger = logging.getLogger(__name__)

_engine: PaperSearchEngine | None = None


@asynccontextmanager
async def _lifespan(_: FastAPI):
    # Ensure the persistence schema exists on startup
    _get_engine()
    yield


app = FastAPI(title="Paper Search API", version="1.0.0", lifespan=_lifespan)


def _get_engine() -> PaperSearchEngine:
    global _engine
    if _engine is None:
        settings = Settings.from_env()
        _engine = PaperSearchEngine(
            settings=settings, store=PersistenceStore.from_settings(settings)
        )
    return _engine


def _get_store() -> PersistenceStore:
    store = _get_engine().store
    if store is None:
        raise HTTPException(status_code=503, detail="Persistence is not configured")
    return store


@app.get("/search")
async def search(
    q: str = Query(..., min_length=1, description="Keyword query"),
    source: str = Query(
        "all", description="all|arxiv|crossref|semantic_scholar|openalex|pubmed|doaj"
    ),
    sort: str = Query(
        "relevance", description="relevance|date|citations|quality|impact|velocity|title"
    ),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=1000),
    year_from: int | None = Query(None),
    year_to: int | None = Query(None),
    author: str | None = Query(None, description="Author substring filter"),
    category: str | None = Query(None, description="cs|math|physics|bio|econ|stat"),
    exact_phrase: bool = Query(False),
    enrich: bool = Query(False, description="Score and add citation data to small result sets"),
) -> dict[str, Any]:
    engine = _get_engine()
    filters = SearchFilters(
        source=source,
        sort=sort,
        page=page,
        per_page=per_page,
        year_from=year_from,
        year_to=year_to,
        author=author,
        category=category,
        exact_phrase=exact_phrase,
    )
    try:
        results = await engine.search_all(q, filters)
    except AllSourcesUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    if enrich:
        results = await engine.enrich()
    return {
        "total": len(results),
        "sources": dict(engine.last_outcomes),
        "results": [p.to_dict() for p in results],
    }


@app.get("/page")
def get_page(
    page: int = Query(1, ge=1), per_page: int = Query(10, ge=1, le=1000)
) -> dict[str, Any]:
    data = _get_engine().get_page(page, per_page)
    data["results"] = [p.to_dict() for p in data["results"]]
    return data


@app.get("/export", response_class=PlainTextResponse)
def export(fmt: str = Query("json", alias="format")) -> PlainTextResponse:
    try:
        body = _get_engine().export_results(fmt)
    except UnsupportedFormat as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    media_type = "text/csv" if fmt.lower() == "csv" else "application/json"
    return PlainTextResponse(body, media_type=media_type)


@app.get("/suggestions")
def suggestions(q: str = Query("")) -> list[dict[str, str]]:
    return _get_engine().get_search_suggestions(q)


@app.get("/history")
def history() -> list[dict[str, Any]]:
    return [{"query": e.query, "timestamp": e.timestamp} for e in _get_store().load_history()]


@app.get("/bookmarks")
def bookmarks() -> list[dict[str, Any]]:
    return _get_store().load_bookmarks()


@app.post("/bookmarks/{paper_id}")
def toggle_bookmark(paper_id: str) -> dict[str, Any]:
    """Toggle a paper from the current result set in or out of the bookmarks."""
    store = _get_store()
    paper = next((p for p in _get_engine().current_results if p.id == paper_id), None)
    if paper is None:
        saved = next((b for b in store.load_bookmarks() if b.get("id") == paper_id), None)
        if saved is None:
            raise HTTPException(status_code=404, detail="Paper not found")
        return {"id": paper_id, "bookmarked": store.toggle_bookmark(saved)}
    return {"id": paper_id, "bookmarked": store.toggle_bookmark(paper)}
