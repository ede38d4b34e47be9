"""
Shared fixtures: settings without environment lookups, paper factories and a
scriptable fake connector for orchestrator tests.
"""

from __future__ import annotations

import asyncio

import pytest

from papersearch.config import Settings
from papersearch.connectors.base import Connector, Paper, SearchFilters, Source
from papersearch.errors import AdapterError


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(database_url=f"sqlite:///{tmp_path}/test.db")


def make_paper(pid: str, title: str | None = None, **fields) -> Paper:
    fields.setdefault("source", Source.ARXIV)
    return Paper(id=pid, title=title or f"Paper {pid}", **fields)


class FakeHTTP:
    """Stand-in for ``http_get_json`` / ``http_get_text``.

    ``routes`` is a list of (url_prefix, response); the first matching prefix wins.
    Exceptions are raised, anything else is returned.
    """

    def __init__(self, routes: list[tuple[str, object]]) -> None:
        self.routes = routes
        self.calls: list[dict] = []

    def __call__(self, url, *, params=None, headers=None, timeout_seconds=30):
        self.calls.append(
            {"url": url, "params": params, "headers": headers, "timeout": timeout_seconds}
        )
        for prefix, response in self.routes:
            if url.startswith(prefix):
                if isinstance(response, BaseException):
                    raise response
                return response
        raise AssertionError(f"unexpected request to {url}")


class FakeConnector(Connector):
    """Returns canned papers, or fails the way a broken source would."""

    def __init__(
        self,
        settings: Settings,
        papers: list[Paper] | None = None,
        *,
        fail: bool = False,
        source: Source = Source.ARXIV,
        delay: float = 0.0,
    ) -> None:
        super().__init__(settings)
        self.papers = papers or []
        self.fail = fail
        self.source = source
        self.source_name = source.name.lower()
        self.delay = delay
        self.calls: list[tuple[str, SearchFilters]] = []

    async def _search(self, query: str, filters: SearchFilters) -> list[Paper]:
        self.calls.append((query, filters))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise AdapterError(self.source_name, "simulated outage", status=503)
        return list(self.papers)
