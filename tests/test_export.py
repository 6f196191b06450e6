"""
CSV export: fixed header, every field quoted, embedded quotes doubled,
categories joined with "; ", ISO added date, blanks for missing values.
"""

import csv
import io
from datetime import datetime

from shelfscan.catalog.export import HEADER, records_to_csv
from shelfscan.catalog.models import BookMetadata, CatalogRecord


def _record(**kw) -> CatalogRecord:
    base = dict(
        id=1,
        owner_id="alice",
        batch_id="b1",
        title="Dune",
        author="Frank Herbert",
        created_at=datetime(2026, 3, 15, 12, 30),
    )
    base.update(kw)
    return CatalogRecord(**base)


def test_header_only_for_empty_library():
    assert records_to_csv([]) == '"' + '","'.join(HEADER) + '"\n'


def test_full_row_layout():
    rec = _record(
        isbn="9780441013593",
        page_count=412,
        description="Spice.",
        metadata=BookMetadata(categories=["Fiction", "Science Fiction"], published_date="1965", publisher="Ace"),
    )
    lines = records_to_csv([rec]).split("\n")
    assert lines[1] == (
        '"Dune","Frank Herbert","9780441013593","2026-03-15","Ace","1965",'
        '"Fiction; Science Fiction","412","Spice."'
    )
    assert lines[2] == ""


def test_missing_values_are_empty_strings():
    line = records_to_csv([_record()]).split("\n")[1]
    assert line == '"Dune","Frank Herbert","","2026-03-15","","","","",""'


def test_round_trip_with_quotes_commas_and_newlines():
    tricky = _record(
        title='The "Quoted" Title, Vol. 1',
        description='Line one\nLine "two", with comma',
    )
    text = records_to_csv([tricky])
    assert '"The ""Quoted"" Title, Vol. 1"' in text

    rows = list(csv.reader(io.StringIO(text)))
    assert rows[0] == HEADER
    assert rows[1][0] == tricky.title
    assert rows[1][8] == tricky.description
    assert len(rows) == 2


def test_zero_page_count_is_kept():
    line = records_to_csv([_record(page_count=0)]).split("\n")[1]
    assert line.endswith('"0",""')
