"""Async HTTP client for parallel requests and search-as-you-type."""
import asyncio
import httpx
from typing import Awaitable, Callable, List, Optional, Dict, Any
import logging

from booklist.dedupe import process
from booklist.errors import NetworkError, ProviderError
from booklist.models import BookRecord
from booklist.parse import parse_books_response

logger = logging.getLogger(__name__)


class AsyncGoogleBooksClient:
    """Async client for parallel book searches."""

    BASE_URL = "https://www.googleapis.com/books/v1/volumes"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: int = 10,
        max_concurrent: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize async client.

        Args:
            api_key: Optional API key
            timeout: Request timeout
            max_concurrent: Maximum concurrent requests
            transport: Custom transport (used by tests)
        """
        self.api_key = api_key
        self.timeout = timeout
        self.semaphore = asyncio.Semaphore(max_concurrent)

        # Create async HTTP client
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def search(
        self,
        query: str,
        max_results: int = 40,
        start_index: int = 0
    ) -> Dict[str, Any]:
        """
        Search for books asynchronously.

        Args:
            query: Search query
            max_results: Max results
            start_index: Pagination offset

        Returns:
            API response

        Raises:
            NetworkError: The catalog could not be reached
            ProviderError: The catalog returned a non-success status
        """
        params = {
            "q": query,
            "maxResults": min(max_results, 40),
            "startIndex": start_index
        }

        if self.api_key:
            params["key"] = self.api_key

        # Use semaphore to limit concurrency
        async with self.semaphore:
            try:
                logger.info(f"Async request: {query} (index={start_index})")
                response = await self.client.get(self.BASE_URL, params=params)
            except httpx.RequestError as e:
                logger.error(f"Async request failed: {e}")
                raise NetworkError(str(e)) from e

        if response.status_code != 200:
            logger.warning(f"Status {response.status_code} for query: {query}")
            raise ProviderError(f"Request failed ({response.status_code})", response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError("Malformed JSON in catalog response", response.status_code) from e

    async def fetch_catalog(self, query: str, max_results: int = 40) -> List[Dict[str, Any]]:
        """Raw catalog items for a query; a blank query issues no request."""
        if not query or not query.strip():
            return []

        response = await self.search(query.strip(), max_results)
        return parse_books_response(response)

    async def search_books(
        self,
        query: str,
        max_results: int = 40,
        strategy: str = "replace"
    ) -> List[BookRecord]:
        """Search and return deduplicated, ranked results."""
        items = await self.fetch_catalog(query, max_results)
        return process(items, strategy=strategy)

    async def paginated_search(
        self,
        query: str,
        total_results: int = 40,
        results_per_page: int = 40
    ) -> List[Dict[str, Any]]:
        """
        Fetch multiple pages in parallel and concatenate their items.

        Args:
            query: Search query
            total_results: Total results to fetch
            results_per_page: Results per page

        Returns:
            Raw catalog items of all pages, in page order
        """
        num_pages = (total_results + results_per_page - 1) // results_per_page

        tasks = [
            self.search(query, results_per_page, i * results_per_page)
            for i in range(num_pages)
        ]

        responses = await asyncio.gather(*tasks)

        items = []
        for response in responses:
            items.extend(parse_books_response(response))
        return items

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


class DebouncedSearch:
    """
    Coalesce rapid successive searches into one request.

    Each call waits ``delay`` seconds before searching. A newer call
    cancels any older call that is still waiting or in flight, and the
    superseded call resolves to None, so stale results never replace
    newer ones.
    """

    def __init__(
        self,
        search_fn: Callable[[str], Awaitable[List[BookRecord]]],
        delay: float = 0.5
    ):
        self.search_fn = search_fn
        self.delay = delay
        self._task: Optional[asyncio.Task] = None

    def cancel(self):
        """Cancel the pending search, if any."""
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, query: str) -> List[BookRecord]:
        await asyncio.sleep(self.delay)
        return await self.search_fn(query)

    async def __call__(self, query: str) -> Optional[List[BookRecord]]:
        self.cancel()

        if not query or not query.strip():
            return []

        task = asyncio.ensure_future(self._run(query))
        self._task = task

        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task.cancelled():
            logger.debug(f"Search superseded: {query}")
            return None

        if self._task is task:
            self._task = None
        return task.result()
