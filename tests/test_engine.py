import asyncio

import pytest

from conftest import FakeConnector, make_paper
from papersearch.connectors.base import SearchFilters, Source
from papersearch.engine import PaperSearchEngine
from papersearch.errors import AllSourcesUnavailable
from papersearch.storage import PersistenceStore

ALL_SOURCES = [
    Source.ARXIV,
    Source.CROSSREF,
    Source.SEMANTIC_SCHOLAR,
    Source.OPENALEX,
    Source.PUBMED,
    Source.DOAJ,
]


def _engine(settings, connectors, store=None) -> PaperSearchEngine:
    return PaperSearchEngine(
        {c.source_name: c for c in connectors}, settings=settings, store=store
    )


@pytest.mark.asyncio
async def test_merges_in_source_order_and_deduplicates(settings):
    arxiv = FakeConnector(settings, [make_paper("arxiv_1", "Shared title")])
    crossref = FakeConnector(
        settings,
        [
            make_paper("crossref_1", "shared TITLE!", source=Source.CROSSREF),
            make_paper("crossref_2", "Only here", source=Source.CROSSREF),
        ],
        source=Source.CROSSREF,
    )
    engine = _engine(settings, [arxiv, crossref])

    results = await engine.search_all("q", SearchFilters())

    assert [p.id for p in results] == ["arxiv_1", "crossref_2"]
    assert engine.total_results == 2
    assert engine.current_query == "q"
    assert engine.last_outcomes == {"arxiv": "results", "crossref": "results"}


@pytest.mark.asyncio
async def test_partial_failure_returns_surviving_results(settings):
    connectors = [
        FakeConnector(
            settings,
            [make_paper(f"{s.name.lower()}_1", f"From {s.value}", source=s)],
            source=s,
            fail=s not in (Source.OPENALEX, Source.DOAJ),
        )
        for s in ALL_SOURCES
    ]
    engine = _engine(settings, connectors)

    results = await engine.search_all("q", SearchFilters())

    assert [p.source for p in results] == [Source.OPENALEX, Source.DOAJ]
    assert list(engine.last_outcomes.values()).count("failed") == 4


@pytest.mark.asyncio
async def test_all_sources_failing_raises(settings):
    connectors = [FakeConnector(settings, fail=True, source=s) for s in ALL_SOURCES]
    engine = _engine(settings, connectors)

    with pytest.raises(AllSourcesUnavailable) as info:
        await engine.search_all("q", SearchFilters())
    assert info.value.attempted == 6
    assert engine.is_searching is False


@pytest.mark.asyncio
async def test_empty_answers_are_success_not_failure(settings):
    connectors = [
        FakeConnector(settings, [], source=Source.ARXIV),
        FakeConnector(settings, fail=True, source=Source.CROSSREF),
    ]
    engine = _engine(settings, connectors)

    assert await engine.search_all("nothing", SearchFilters()) == []
    assert engine.last_outcomes == {"arxiv": "empty", "crossref": "failed"}


@pytest.mark.asyncio
async def test_single_source_selection(settings):
    arxiv = FakeConnector(settings, [make_paper("arxiv_1")])
    doaj = FakeConnector(settings, [make_paper("doaj_1", source=Source.DOAJ)], source=Source.DOAJ)
    engine = _engine(settings, [arxiv, doaj])

    results = await engine.search_all("q", SearchFilters(source="doaj"))

    assert [p.id for p in results] == ["doaj_1"]
    assert arxiv.calls == []


@pytest.mark.asyncio
async def test_unknown_source_selects_nothing(settings):
    arxiv = FakeConnector(settings, [make_paper("arxiv_1")])
    engine = _engine(settings, [arxiv])
    assert await engine.search_all("q", SearchFilters(source="scopus")) == []
    assert arxiv.calls == []


@pytest.mark.asyncio
async def test_cache_hit_does_not_call_sources(settings):
    arxiv = FakeConnector(settings, [make_paper("arxiv_1")])
    engine = _engine(settings, [arxiv])
    filters = SearchFilters()

    first = await engine.search_all("q", filters)
    second = await engine.search_all("q", filters)

    assert first == second
    assert len(arxiv.calls) == 1
    await engine.search_all("q", SearchFilters(sort="date"))
    assert len(arxiv.calls) == 2


@pytest.mark.asyncio
async def test_filters_and_sort_applied_after_merge(settings):
    arxiv = FakeConnector(
        settings,
        [
            make_paper("a", citation_count=3, published_date="2019", authors=["Ann Lee"]),
            make_paper("b", citation_count=9, published_date="2021", authors=["Ann Lee"]),
            make_paper("c", citation_count=7, published_date="2021", authors=["Bo Chen"]),
            make_paper("d", citation_count=8, published_date="2022", authors=["ann lee"]),
        ],
    )
    engine = _engine(settings, [arxiv])
    filters = SearchFilters(sort="citations", year_from=2020, author="ANN")

    results = await engine.search_all("q", filters)

    assert [p.id for p in results] == ["b", "d"]


@pytest.mark.asyncio
async def test_overlapping_search_is_rejected(settings):
    slow = FakeConnector(settings, [make_paper("arxiv_1")], delay=0.1)
    engine = _engine(settings, [slow])

    first = asyncio.create_task(engine.search_all("first", SearchFilters()))
    await asyncio.sleep(0.01)
    assert engine.is_searching is True
    assert await engine.search_all("second", SearchFilters()) == []

    assert [p.id for p in await first] == ["arxiv_1"]
    assert engine.is_searching is False
    assert engine.current_query == "first"


@pytest.mark.asyncio
async def test_history_recorded_on_cache_miss(settings):
    store = PersistenceStore.from_settings(settings)
    engine = _engine(settings, [FakeConnector(settings, [make_paper("a")])], store=store)

    await engine.search_all("graph neural networks", SearchFilters())
    await engine.search_all("graph neural networks", SearchFilters())

    assert [e.query for e in store.load_history()] == ["graph neural networks"]


@pytest.mark.asyncio
async def test_get_page(settings):
    papers = [make_paper(str(i)) for i in range(25)]
    engine = _engine(settings, [FakeConnector(settings, papers)])
    await engine.search_all("q", SearchFilters())

    page = engine.get_page(3, 10)
    assert [p.id for p in page["results"]] == [str(i) for i in range(20, 25)]
    assert page["total"] == 25 and page["total_pages"] == 3
    assert engine.get_page(4, 10)["results"] == []


@pytest.mark.asyncio
async def test_enrich_replaces_current_results(settings):
    class NoCitations:
        async def get_citation_data(self, doi):
            raise AssertionError("no paper has a DOI")

    engine = _engine(settings, [FakeConnector(settings, [make_paper("a", citation_count=4)])])
    engine.citation_client = NoCitations()
    await engine.search_all("q", SearchFilters())

    enriched = await engine.enrich(current_year=2024)

    assert enriched[0].quality_score is not None
    assert engine.current_results[0].relevance_score is not None
    assert '"relevanceScore"' in engine.export_results("json")


@pytest.mark.asyncio
async def test_enrich_reorders_current_results_by_active_sort(settings):
    sparse = make_paper("a", "Short")
    complete = make_paper("b", "A considerably longer title", authors=["Ada Lovelace"])
    engine = _engine(settings, [FakeConnector(settings, [sparse, complete])])
    ordered = await engine.search_all("q", SearchFilters(sort="quality"))
    assert [p.id for p in ordered] == ["a", "b"]

    enriched = await engine.enrich(with_citations=False, current_year=2024)

    assert [p.id for p in enriched] == ["b", "a"]
    assert [p.id for p in engine.get_page(1)["results"]] == ["b", "a"]


def test_suggestions_from_history_then_common_terms(settings):
    store = PersistenceStore.from_settings(settings)
    store.add_to_history("learning to rank")
    engine = _engine(settings, [], store=store)

    suggestions = engine.get_search_suggestions("learning")

    assert suggestions[0] == {"text": "learning to rank", "type": "history"}
    assert {"text": "machine learning", "type": "suggestion"} in suggestions
    assert len(suggestions) <= 5
    assert engine.get_search_suggestions("l") == []
