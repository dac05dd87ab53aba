"""Tests for the Google Books HTTP client."""
from unittest.mock import MagicMock, patch

import pytest
import requests

from booklist.client import GoogleBooksClient
from booklist.errors import NetworkError, ProviderError


def make_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    response.text = "error body"
    return response


def make_client(*responses, max_retries=3):
    session = MagicMock()
    session.get.side_effect = list(responses)
    return GoogleBooksClient(api_key="KEY", max_retries=max_retries, base_backoff=0, session=session), session


SEARCH_PAYLOAD = {
    "totalItems": 3,
    "items": [
        {"id": "1", "volumeInfo": {"title": "Foo", "authors": ["Bar"],
                                   "industryIdentifiers": [{"type": "ISBN_13", "identifier": "123"}]}},
        {"id": "2", "volumeInfo": {"title": "Foo!", "authors": ["bar"]}},
        {"id": "3", "volumeInfo": {"authors": ["No Title"]}},
    ]
}


def test_search_sends_query_and_key():
    """Test search sends query and key."""
    client, session = make_client(make_response(200, {"items": []}))

    client.search("dune", max_results=100, start_index=5)

    _, kwargs = session.get.call_args
    assert kwargs["params"] == {"q": "dune", "maxResults": 40, "startIndex": 5, "key": "KEY"}
    assert kwargs["timeout"] == 10


def test_fetch_catalog_blank_query_makes_no_request():
    """Test fetch catalog blank query makes no request."""
    client, session = make_client()

    assert client.fetch_catalog("   ") == []
    session.get.assert_not_called()


def test_fetch_catalog_returns_raw_items():
    """Test fetch catalog returns raw items."""
    client, _ = make_client(make_response(200, SEARCH_PAYLOAD))

    items = client.fetch_catalog("foo")

    assert [i["id"] for i in items] == ["1", "2", "3"]


def test_fetch_catalog_without_items():
    """Test fetch catalog without items."""
    client, _ = make_client(make_response(200, {"kind": "books#volumes", "totalItems": 0}))

    assert client.fetch_catalog("zzzz") == []


def test_search_books_deduplicates_and_ranks():
    """Test search books deduplicates and ranks."""
    client, _ = make_client(make_response(200, SEARCH_PAYLOAD))

    books = client.search_books("foo")

    assert [b.id for b in books] == ["1"]
    assert books[0].isbn == "123"


@patch("booklist.client.time.sleep")
def test_retries_server_errors_then_succeeds(mock_sleep):
    """Test retries server errors then succeeds."""
    client, session = make_client(
        make_response(503),
        make_response(429),
        make_response(200, {"items": []}),
    )

    assert client.search("dune") == {"items": []}
    assert session.get.call_count == 3


def test_client_error_not_retried():
    """Test client error not retried."""
    client, session = make_client(make_response(400), make_response(200))

    with pytest.raises(ProviderError) as exc_info:
        client.search("dune")

    assert exc_info.value.status_code == 400
    assert session.get.call_count == 1


def test_exhausted_retries_raise_provider_error():
    """Test exhausted retries raise provider error."""
    client, session = make_client(make_response(500), make_response(500), max_retries=2)

    with pytest.raises(ProviderError) as exc_info:
        client.search("dune")

    assert exc_info.value.status_code == 500
    assert session.get.call_count == 2


def test_connection_errors_raise_network_error():
    """Test connection errors raise network error."""
    client, session = make_client(
        requests.exceptions.ConnectionError("refused"),
        requests.exceptions.Timeout("slow"),
    max_retries=2)

    with pytest.raises(NetworkError):
        client.search("dune")

    assert session.get.call_count == 2


def test_fetch_book_by_id():
    """Test fetch book by id."""
    payload = {
        "id": "zyTCAlFPjgYC",
        "volumeInfo": {
            "title": "The Google Story",
            "authors": ["David A. Vise"],
            "imageLinks": {"thumbnail": "http://books.google.com/t.jpg"}
        }
    }
    client, session = make_client(make_response(200, payload))

    book = client.fetch_book_by_id("zyTCAlFPjgYC")

    assert book.title == "The Google Story"
    assert book.thumbnail == "https://books.google.com/t.jpg"
    assert session.get.call_args[0][0].endswith("/volumes/zyTCAlFPjgYC")


def test_fetch_book_by_id_not_found():
    """Test fetch book by id not found."""
    client, _ = make_client(make_response(404))

    assert client.fetch_book_by_id("missing") is None


def test_search_with_cache_hit_skips_request():
    """Test search with cache hit skips request."""
    client, session = make_client()
    cache_db = MagicMock()
    cache_db.cache_get.return_value = {"items": []}

    assert client.search_with_cache("dune", cache_db=cache_db) == {"items": []}
    session.get.assert_not_called()


def test_search_with_cache_miss_stores_response():
    """Test search with cache miss stores response."""
    client, _ = make_client(make_response(200, SEARCH_PAYLOAD))
    cache_db = MagicMock()
    cache_db.cache_get.return_value = None

    client.search_with_cache("foo", cache_db=cache_db, cache_ttl=60)

    cache_db.cache_set.assert_called_once_with("books:search:foo:40:0", SEARCH_PAYLOAD, 60)


def test_context_manager_closes_session():
    """Test context manager closes session."""
    client, session = make_client()

    with client:
        pass

    session.close.assert_called_once()


def test_paginated_search_fetches_past_api_page_limit():
    """Test that more than 40 results are fetched as consecutive pages."""
    first_page = {"items": [{"id": f"a{i}", "volumeInfo": {"title": f"A{i}"}} for i in range(40)]}
    second_page = {"items": [{"id": f"b{i}", "volumeInfo": {"title": f"B{i}"}} for i in range(10)]}
    client, session = make_client(make_response(200, first_page), make_response(200, second_page))

    items = client.paginated_search("dune", total_results=50)

    assert len(items) == 50
    pages = [call[1]["params"] for call in session.get.call_args_list]
    assert [(p["startIndex"], p["maxResults"]) for p in pages] == [(0, 40), (40, 10)]


def test_paginated_search_stops_on_short_page():
    """Test that a short page ends pagination."""
    client, session = make_client(make_response(200, {"items": [{"id": "1", "volumeInfo": {"title": "T"}}]}))

    items = client.paginated_search("dune", total_results=120)

    assert len(items) == 1
    assert session.get.call_count == 1


def test_paginated_search_blank_query_makes_no_request():
    """Test that a blank query returns no items without a request."""
    client, session = make_client()

    assert client.paginated_search("  ", total_results=80) == []
    session.get.assert_not_called()
