from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer
from dotenv import load_dotenv

from .config import Settings
from .connectors.base import Paper, SearchFilters
from .engine import PaperSearchEngine
from .errors import AllSourcesUnavailable, UnsupportedFormat
from .export import export_papers, is_supported_format
from .storage import PersistenceStore

app = typer.Typer(add_completion=False, help="Search academic papers across multiple sources.")


def _init(verbose: bool = False) -> Settings:
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return settings


def _build_engine(settings: Settings, persist: bool = True) -> PaperSearchEngine:
    store = PersistenceStore.from_settings(settings) if persist else None
    return PaperSearchEngine(settings=settings, store=store)


def _run_search(
    engine: PaperSearchEngine,
    query: str,
    filters: SearchFilters,
    enrich: bool,
    with_authors: bool,
) -> list[Paper]:
    async def _go() -> list[Paper]:
        results = await engine.search_all(query, filters)
        if enrich or with_authors:
            results = await engine.enrich(with_authors=with_authors)
        return results

    try:
        return asyncio.run(_go())
    except AllSourcesUnavailable as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from None


def _format_line(index: int, paper: Paper) -> str:
    authors = ", ".join(paper.author_names[:3])
    if len(paper.author_names) > 3:
        authors += " et al."
    year = paper.published_date[:4] if paper.published_date else "n.d."
    line = f"{index:>3}. [{paper.source.value}] {paper.title} ({year})"
    if authors:
        line += f"\n     {authors}"
    extras = []
    if paper.citation_count is not None:
        extras.append(f"citations={paper.citation_count}")
    if paper.relevance_score is not None:
        extras.append(f"relevance={paper.relevance_score}")
    if paper.doi:
        extras.append(f"doi={paper.doi}")
    if extras:
        line += "\n     " + " ".join(extras)
    return line


def _filters(
    source: str,
    sort: str,
    page: int,
    per_page: int,
    year_from: int | None,
    year_to: int | None,
    author: str | None,
    category: str | None,
    exact_phrase: bool,
) -> SearchFilters:
    return SearchFilters(
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


SourceOpt = typer.Option(
    "all", "--source", help="all|arxiv|crossref|semantic_scholar|openalex|pubmed|doaj"
)
SortOpt = typer.Option(
    "relevance", "--sort", help="relevance|date|citations|quality|impact|velocity|title"
)


@app.command("search")
def cmd_search(
    query: str = typer.Argument(..., help="Search query (keywords)"),
    source: str = SourceOpt,
    sort: str = SortOpt,
    page: int = typer.Option(1, "--page", min=1),
    per_page: int = typer.Option(20, "--per-page", min=1, max=1000),
    year_from: int | None = typer.Option(None, "--year-from"),
    year_to: int | None = typer.Option(None, "--year-to"),
    author: str | None = typer.Option(None, "--author", help="Author substring filter"),
    category: str | None = typer.Option(None, "--category", help="cs|math|physics|bio|econ|stat"),
    exact_phrase: bool = typer.Option(False, "--exact-phrase"),
    enrich: bool = typer.Option(False, "--enrich", help="Score results and add citation data"),
    with_authors: bool = typer.Option(False, "--with-authors", help="Look authors up in ORCID"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Search all selected sources and print the merged, ranked results."""
    settings = _init(verbose)
    engine = _build_engine(settings)
    filters = _filters(
        source, sort, page, per_page, year_from, year_to, author, category, exact_phrase
    )
    results = _run_search(engine, query, filters, enrich, with_authors)

    if as_json:
        typer.echo(export_papers(results, "json"))
        return
    if not results:
        typer.echo("No results found")
        return
    typer.echo(f"Found {len(results)} papers ({json.dumps(engine.last_outcomes)})")
    for i, paper in enumerate(results, start=1):
        typer.echo(_format_line(i, paper))


@app.command("export")
def cmd_export(
    query: str = typer.Argument(..., help="Search query (keywords)"),
    fmt: str = typer.Option("json", "--format", "-f", help="json|csv"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write to file instead of stdout"
    ),
    source: str = SourceOpt,
    sort: str = SortOpt,
    per_page: int = typer.Option(20, "--per-page", min=1, max=1000),
    year_from: int | None = typer.Option(None, "--year-from"),
    year_to: int | None = typer.Option(None, "--year-to"),
    author: str | None = typer.Option(None, "--author"),
    enrich: bool = typer.Option(False, "--enrich"),
):
    """Run a search and export the results as JSON or CSV."""
    if not is_supported_format(fmt):
        typer.secho(str(UnsupportedFormat(fmt)), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)
    settings = _init()
    engine = _build_engine(settings)
    filters = _filters(source, sort, 1, per_page, year_from, year_to, author, None, False)
    _run_search(engine, query, filters, enrich, False)
    body = engine.export_results(fmt)

    if output is None:
        typer.echo(body)
        return
    output.write_text(body, encoding="utf-8")
    typer.echo(json.dumps({"exported": engine.total_results, "path": str(output)}))


@app.command("history")
def cmd_history():
    """Show the most recent searches, newest first."""
    settings = _init()
    store = PersistenceStore.from_settings(settings)
    for entry in store.load_history():
        typer.echo(entry.query)


@app.command("bookmarks")
def cmd_bookmarks():
    """List bookmarked papers."""
    settings = _init()
    store = PersistenceStore.from_settings(settings)
    for b in store.load_bookmarks():
        typer.echo(f"{b.get('id')}\t{b.get('title')}")


@app.command("suggest")
def cmd_suggest(query: str = typer.Argument(...)):
    """Suggest queries from history and common academic terms."""
    settings = _init()
    engine = _build_engine(settings)
    for s in engine.get_search_suggestions(query):
        typer.echo(f"{s['text']}\t({s['type']})")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
