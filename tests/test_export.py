import csv
import io
import json

import pytest

from conftest import make_paper
from papersearch.connectors.base import ImpactMetrics, Source
from papersearch.errors import UnsupportedFormat
from papersearch.export import CSV_HEADERS, export_papers, export_to_csv, export_to_json


def test_csv_of_nothing_is_empty_string():
    assert export_to_csv([]) == ""


def test_csv_quotes_and_truncates():
    paper = make_paper(
        "a",
        'The "best" paper',
        authors=["Ada Lovelace", "Alan Turing"],
        abstract="y" * 300,
        published_date="2020-01-01",
        source=Source.CROSSREF,
        journal="Journal, of Things",
        doi="10.1/x",
        url="https://doi.org/10.1/x",
    )
    header, row = export_to_csv([paper]).split("\n")

    assert header == ",".join(CSV_HEADERS)
    assert row.startswith('"The ""best"" paper","Ada Lovelace; Alan Turing","')
    assert '"' + "y" * 200 + '..."' in row
    assert row.endswith(
        ',"2020-01-01","CrossRef","Journal, of Things","10.1/x","https://doi.org/10.1/x"'
    )


def test_csv_missing_optional_fields_are_blank():
    row = export_to_csv([make_paper("a", "T")]).split("\n")[1]
    assert row.endswith(',"ArXiv","Unknown journal","",""')


def test_json_uses_public_keys():
    paper = make_paper(
        "a",
        citation_count=3,
        relevance_score=55,
        impact_metrics=ImpactMetrics(citation_velocity=1.5, social_impact=5, academic_impact=0),
    )
    body = export_to_json([paper])
    assert body.startswith("[\n  {")
    (record,) = json.loads(body)
    assert record["id"] == "a"
    assert record["source"] == "ArXiv"
    assert record["citationCount"] == 3
    assert record["relevanceScore"] == 55
    assert record["impactMetrics"]["citationVelocity"] == 1.5
    assert "qualityScore" not in record


def test_format_name_is_case_insensitive():
    assert export_papers([], "JSON") == "[]"
    assert export_papers([], "Csv") == ""


def test_unsupported_format():
    with pytest.raises(UnsupportedFormat) as info:
        export_papers([make_paper("a")], "xml")
    assert info.value.format == "xml"


def test_csv_commas_in_doi_and_url_keep_columns_aligned():
    paper = make_paper(
        "a",
        "T",
        doi="10.1000/a,b",
        url="https://example.org/x?ids=1,2",
        abstract='Line one, "two"\nline three',
    )
    header, row = list(csv.reader(io.StringIO(export_to_csv([paper]))))

    assert header == CSV_HEADERS
    assert len(row) == len(CSV_HEADERS)
    assert row[2] == 'Line one, "two"\nline three'
    assert row[6:] == ["10.1000/a,b", "https://example.org/x?ids=1,2"]
