import pytest
import requests

import papersearch.citations as citations_mod
import papersearch.orcid as orcid_mod
from conftest import FakeHTTP
from papersearch.citations import OpenCitationsClient
from papersearch.orcid import OrcidClient, build_orcid_query
from papersearch.utils import RateLimiter


@pytest.fixture
def unpaced():
    return RateLimiter(0)


@pytest.mark.asyncio
async def test_citation_data_is_truncated_and_doi_encoded(settings, unpaced, monkeypatch):
    fake = FakeHTTP(
        [
            (f"{citations_mod.BASE_URL}/citations/", {"data": [{"n": i} for i in range(15)]}),
            (f"{citations_mod.BASE_URL}/references/", {"data": [{"n": 1}]}),
        ]
    )
    monkeypatch.setattr(citations_mod, "http_get_json", fake)

    data = await OpenCitationsClient(settings, unpaced).get_citation_data("10.1000/x y")

    assert len(data.citing) == 10
    assert data.cited == [{"n": 1}]
    assert {c["url"] for c in fake.calls} == {
        f"{citations_mod.BASE_URL}/citations/10.1000%2Fx%20y",
        f"{citations_mod.BASE_URL}/references/10.1000%2Fx%20y",
    }


@pytest.mark.asyncio
async def test_citation_failure_gives_empty_list(settings, unpaced, monkeypatch):
    fake = FakeHTTP(
        [
            (f"{citations_mod.BASE_URL}/citations/", requests.ConnectionError("down")),
            (f"{citations_mod.BASE_URL}/references/", {"data": [{"n": 2}]}),
        ]
    )
    monkeypatch.setattr(citations_mod, "http_get_json", fake)

    data = await OpenCitationsClient(settings, unpaced).get_citation_data("10.1/x")
    assert data.citing == [] and data.cited == [{"n": 2}]


def test_build_orcid_query():
    assert build_orcid_query("Marie Salomea Curie") == (
        "given-names:Marie AND family-name:Salomea Curie"
    )


@pytest.mark.asyncio
async def test_author_info_with_affiliation(settings, unpaced, monkeypatch):
    fake = FakeHTTP(
        [
            (
                f"{orcid_mod.BASE_URL}/search",
                {"result": [{"orcid-identifier": {"path": "0000-0002-1825-0097"}}]},
            ),
            (
                f"{orcid_mod.BASE_URL}/0000-0002-1825-0097/person",
                {"name": {"institution-name": {"value": "Sorbonne"}}},
            ),
        ]
    )
    monkeypatch.setattr(orcid_mod, "http_get_json", fake)

    info = await OrcidClient(settings, unpaced).get_author_info("Marie Curie")

    assert info.name == "Marie Curie"
    assert info.orcid == "0000-0002-1825-0097"
    assert info.affiliation == "Sorbonne"
    assert fake.calls[0]["params"] == {
        "q": "given-names:Marie AND family-name:Curie",
        "rows": "1",
    }


@pytest.mark.asyncio
async def test_author_info_without_match(settings, unpaced, monkeypatch):
    fake = FakeHTTP([(f"{orcid_mod.BASE_URL}/search", {"result": []})])
    monkeypatch.setattr(orcid_mod, "http_get_json", fake)

    info = await OrcidClient(settings, unpaced).get_author_info("Nobody Known")
    assert info.orcid is None and info.affiliation is None
    assert len(fake.calls) == 1


@pytest.mark.asyncio
async def test_author_info_registry_error_is_empty(settings, unpaced, monkeypatch):
    fake = FakeHTTP([(f"{orcid_mod.BASE_URL}/search", requests.Timeout("slow"))])
    monkeypatch.setattr(orcid_mod, "http_get_json", fake)

    info = await OrcidClient(settings, unpaced).get_author_info("Ada Lovelace")
    assert info.name == "Ada Lovelace" and info.orcid is None
