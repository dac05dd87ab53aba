"""Tests for the async client and debounced search."""
import asyncio

import httpx
import pytest

from booklist.async_client import AsyncGoogleBooksClient, DebouncedSearch
from booklist.errors import NetworkError, ProviderError
from booklist.models import BookRecord


def run(coro):
    return asyncio.run(coro)


def volume(book_id, title, author="Author"):
    return {"id": book_id, "volumeInfo": {"title": title, "authors": [author]}}


def make_client(handler):
    return AsyncGoogleBooksClient(transport=httpx.MockTransport(handler))


def test_search_books_processes_results():
    """Test search books processes results."""
    def handler(request):
        assert request.url.params["q"] == "emma"
        return httpx.Response(200, json={"items": [
            volume("1", "Emma", "Jane Austen"),
            volume("2", "Emma: Annotated", "Jane Austen"),
            volume("3", "Persuasion", "Jane Austen"),
        ]})

    async def scenario():
        async with make_client(handler) as client:
            return await client.search_books("  emma ")

    books = run(scenario())

    assert [b.id for b in books] == ["1", "3"]


def test_fetch_catalog_blank_query():
    """Test fetch catalog blank query."""
    def handler(request):
        raise AssertionError("no request expected")

    async def scenario():
        async with make_client(handler) as client:
            return await client.fetch_catalog("")

    assert run(scenario()) == []


def test_non_success_status_raises_provider_error():
    """Test non success status raises provider error."""
    def handler(request):
        return httpx.Response(429)

    async def scenario():
        async with make_client(handler) as client:
            await client.search("emma")

    with pytest.raises(ProviderError) as exc_info:
        run(scenario())

    assert exc_info.value.status_code == 429


def test_connection_failure_raises_network_error():
    """Test connection failure raises network error."""
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    async def scenario():
        async with make_client(handler) as client:
            await client.search("emma")

    with pytest.raises(NetworkError):
        run(scenario())


def test_paginated_search_concatenates_pages_in_order():
    """Test paginated search concatenates pages in order."""
    def handler(request):
        start = int(request.url.params["startIndex"])
        return httpx.Response(200, json={"items": [volume(f"p{start}", f"Book {start}")]})

    async def scenario():
        async with make_client(handler) as client:
            return await client.paginated_search("q", total_results=100, results_per_page=40)

    items = run(scenario())

    assert [i["id"] for i in items] == ["p0", "p40", "p80"]


def test_debounce_runs_only_last_query():
    """Test debounce runs only last query."""
    calls = []

    async def search(query):
        calls.append(query)
        return [BookRecord(id=query, title=query)]

    async def scenario():
        debounced = DebouncedSearch(search, delay=0.05)
        first = asyncio.ensure_future(debounced("an"))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(debounced("animal"))
        await asyncio.sleep(0)
        third = asyncio.ensure_future(debounced("animal farm"))
        return await asyncio.gather(first, second, third)

    first, second, third = run(scenario())

    assert calls == ["animal farm"]
    assert first is None
    assert second is None
    assert [b.id for b in third] == ["animal farm"]


def test_debounce_discards_superseded_in_flight_response():
    """Test debounce discards superseded in flight response."""
    async def search(query):
        if query == "slow":
            await asyncio.sleep(0.2)
        return [BookRecord(id=query, title=query)]

    async def scenario():
        debounced = DebouncedSearch(search, delay=0)
        slow = asyncio.ensure_future(debounced("slow"))
        await asyncio.sleep(0.05)
        fast = await debounced("fast")
        return await slow, fast

    slow, fast = run(scenario())

    assert slow is None
    assert [b.id for b in fast] == ["fast"]


def test_debounce_blank_query_returns_empty():
    """Test debounce blank query returns empty."""
    async def search(query):
        raise AssertionError("no search expected")

    assert run(DebouncedSearch(search, delay=0)("  ")) == []


def test_debounce_propagates_search_errors():
    """Test debounce propagates search errors."""
    async def search(query):
        raise NetworkError("offline")

    with pytest.raises(NetworkError):
        run(DebouncedSearch(search, delay=0)("emma"))
