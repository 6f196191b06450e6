"""CSV export of an owner's library."""

from __future__ import annotations

import csv
import io
from typing import Iterable

from shelfscan.catalog.models import CatalogRecord

EXPORT_FILENAME = "my-library.csv"

HEADER = [
    "Title",
    "Author",
    "ISBN",
    "Added Date",
    "Publisher",
    "Published Date",
    "Categories",
    "Page Count",
    "Description",
]


def _row(record: CatalogRecord) -> list:
    meta = record.metadata
    return [
        record.title,
        record.author,
        record.isbn or "",
        record.created_at.date().isoformat(),
        meta.publisher or "",
        meta.published_date or "",
        "; ".join(meta.categories or []),
        "" if record.page_count is None else str(record.page_count),
        record.description or "",
    ]


def records_to_csv(records: Iterable[CatalogRecord]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(HEADER)
    for record in records:
        writer.writerow(_row(record))
    return buf.getvalue()
