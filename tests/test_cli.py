import json

import pytest
from typer.testing import CliRunner

import papersearch.cli as cli_mod
from conftest import FakeConnector, make_paper
from papersearch.engine import PaperSearchEngine
from papersearch.storage import PersistenceStore

runner = CliRunner()


@pytest.fixture
def fake_sources(settings, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", settings.database_url)
    state = {"fail": False, "built": 0}

    def _build(cfg, persist=True):
        state["built"] += 1
        connector = FakeConnector(
            cfg,
            [
                make_paper("arxiv_1", "Graph networks", authors=["A. Author"], doi="10.1/g"),
                make_paper("arxiv_2", "Message passing", published_date="2020-02-02"),
            ],
            fail=state["fail"],
        )
        store = PersistenceStore.from_settings(cfg) if persist else None
        return PaperSearchEngine({"arxiv": connector}, settings=cfg, store=store)

    monkeypatch.setattr(cli_mod, "_build_engine", _build)
    return state


def test_search_prints_results(fake_sources):
    result = runner.invoke(cli_mod.app, ["search", "graphs"])
    assert result.exit_code == 0, result.output
    assert "Found 2 papers" in result.output
    assert "[ArXiv] Graph networks (n.d.)" in result.output
    assert "doi=10.1/g" in result.output
    assert "Message passing (2020)" in result.output


def test_search_json_output(fake_sources):
    result = runner.invoke(cli_mod.app, ["search", "graphs", "--json", "--sort", "title"])
    assert result.exit_code == 0
    records = json.loads(result.stdout)
    assert [r["id"] for r in records] == ["arxiv_1", "arxiv_2"]


def test_search_all_sources_down_exits_2(fake_sources):
    fake_sources["fail"] = True
    result = runner.invoke(cli_mod.app, ["search", "graphs"])
    assert result.exit_code == 2


def test_export_to_file(fake_sources, tmp_path):
    out = tmp_path / "papers.csv"
    result = runner.invoke(cli_mod.app, ["export", "graphs", "-f", "csv", "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"exported": 2, "path": str(out)}
    assert out.read_text(encoding="utf-8").startswith("Title,Authors,Abstract")


def test_export_rejects_unknown_format(fake_sources):
    result = runner.invoke(cli_mod.app, ["export", "graphs", "-f", "bibtex"])
    assert result.exit_code == 2
    assert "Unsupported export format: 'bibtex'" in result.output
    assert fake_sources["built"] == 0


def test_history_and_suggest(fake_sources):
    runner.invoke(cli_mod.app, ["search", "graph learning"])
    history = runner.invoke(cli_mod.app, ["history"])
    assert history.stdout.splitlines() == ["graph learning"]

    suggest = runner.invoke(cli_mod.app, ["suggest", "learning"])
    lines = suggest.stdout.splitlines()
    assert lines[0] == "graph learning\t(history)"
    assert "machine learning\t(suggestion)" in lines


def test_bookmarks_empty(fake_sources):
    result = runner.invoke(cli_mod.app, ["bookmarks"])
    assert result.exit_code == 0 and result.stdout == ""
