"""
Google Books resolver: request shape, ranking cap, volume -> record mapping,
error mapping. HTTP is mocked at the requests.Session level.
"""

from unittest.mock import MagicMock

import pytest
import requests

from conftest import volume
from shelfscan.catalog.models import CandidateMetadata
from shelfscan.catalog.resolver import GoogleBooksResolver
from shelfscan.errors import NotFound, ResolutionFailed


def _ok(body):
    resp = MagicMock()
    resp.raise_for_status.return_value = None
    resp.json.return_value = body
    return resp


def test_search_sends_query_limit_and_key():
    session = MagicMock()
    session.get.return_value = _ok({"items": [volume("v1", "Dune")]})
    resolver = GoogleBooksResolver(api_key="gb-key", base_url="https://books.local/v1/", max_results=5, session=session)

    results = resolver.search("Dune Frank Herbert")

    assert [r.external_id for r in results] == ["v1"]
    args, kwargs = session.get.call_args
    assert args[0] == "https://books.local/v1/volumes"
    assert kwargs["params"] == {"q": "Dune Frank Herbert", "maxResults": "5", "key": "gb-key"}


def test_search_omits_key_when_unset_and_caps_results():
    session = MagicMock()
    session.get.return_value = _ok({"items": [volume(f"v{i}", f"Book {i}") for i in range(8)]})
    resolver = GoogleBooksResolver(max_results=3, session=session)

    results = resolver.search("book")

    assert [r.external_id for r in results] == ["v0", "v1", "v2"]
    assert "key" not in session.get.call_args.kwargs["params"]


def test_search_without_items_is_no_match():
    session = MagicMock()
    session.get.return_value = _ok({"kind": "books#volumes", "totalItems": 0})
    assert GoogleBooksResolver(session=session).search("nothing here") == []


def test_blank_query_skips_the_call():
    session = MagicMock()
    assert GoogleBooksResolver(session=session).search("   ") == []
    session.get.assert_not_called()


def test_search_transport_error_raises_resolution_failed():
    session = MagicMock()
    session.get.side_effect = requests.exceptions.ConnectionError("refused")
    with pytest.raises(ResolutionFailed):
        GoogleBooksResolver(session=session).search("Dune")


def test_get_by_id_returns_raw_blob():
    session = MagicMock()
    blob = {"id": "v1", "volumeInfo": {"title": "Dune"}}
    session.get.return_value = _ok(blob)
    assert GoogleBooksResolver(session=session).get_by_id("v1") == blob
    assert session.get.call_args.args[0].endswith("/volumes/v1")


def test_get_by_id_upstream_error_is_not_found():
    session = MagicMock()
    resp = MagicMock()
    resp.raise_for_status.side_effect = requests.exceptions.HTTPError("404")
    session.get.return_value = resp
    with pytest.raises(NotFound):
        GoogleBooksResolver(session=session).get_by_id("missing")


def test_volume_mapping():
    meta = CandidateMetadata.from_volume(volume(
        "v1", "Dune", ("Frank Herbert", "Brian Herbert"),
        industryIdentifiers=[{"type": "ISBN_10", "identifier": "0441013597"},
                             {"type": "ISBN_13", "identifier": "9780441013593"}],
        imageLinks={"smallThumbnail": "http://s", "thumbnail": "http://t"},
        description="Spice.", pageCount=412, categories=["Fiction"],
        publishedDate="1965-08-01", publisher="Chilton",
    ))
    rec = meta.to_new_record()
    assert rec.author == "Frank Herbert"
    assert rec.isbn == "0441013597"
    assert rec.cover_url == "http://t"
    assert rec.external_id == "v1"
    assert rec.page_count == 412
    assert rec.metadata.published_date == "1965-08-01"
    assert rec.metadata.publisher == "Chilton"


def test_volume_mapping_defaults():
    rec = CandidateMetadata.from_volume(volume("v2", "Anon", authors=None)).to_new_record()
    assert rec.author == "Unknown"
    assert rec.isbn is None
    assert rec.cover_url is None
    assert rec.metadata.categories is None
