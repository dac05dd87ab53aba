"""HTTP client for Google Books API with resilience patterns."""
import time
import random
import requests
from typing import Optional, Dict, Any, List
import logging

from booklist.dedupe import process
from booklist.errors import NetworkError, ProviderError
from booklist.models import BookRecord
from booklist.parse import parse_book, parse_books_response

logger = logging.getLogger(__name__)


class GoogleBooksClient:
    """Client for Google Books API with timeouts, retries, and backoff."""

    BASE_URL = "https://www.googleapis.com/books/v1/volumes"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: int = 10,
        max_retries: int = 3,
        base_backoff: float = 1.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize Google Books API client.

        Args:
            api_key: Optional API key (increases rate limits)
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts per request
            base_backoff: Base delay for exponential backoff
            session: Pre-built session (defaults to a new one)
        """
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.base_backoff = base_backoff

        # Create session for connection pooling
        self.session = session or requests.Session()

    def search(
        self,
        query: str,
        max_results: int = 40,
        start_index: int = 0
    ) -> Dict[str, Any]:
        """
        Search for books.

        Args:
            query: Search query string
            max_results: Maximum results to return (1-40)
            start_index: Pagination offset

        Returns:
            API response JSON

        Raises:
            NetworkError: The catalog could not be reached
            ProviderError: The catalog returned a non-success status
        """
        params = {
            "q": query,
            "maxResults": min(max_results, 40),  # API limit
            "startIndex": start_index
        }

        if self.api_key:
            params["key"] = self.api_key

        return self._make_request_with_retry(self.BASE_URL, params)

    def fetch_catalog(self, query: str, max_results: int = 40) -> List[Dict[str, Any]]:
        """Raw catalog items for a query; a blank query issues no request."""
        if not query or not query.strip():
            return []

        response = self.search(query.strip(), max_results=max_results)
        return parse_books_response(response)

    def search_books(
        self,
        query: str,
        max_results: int = 40,
        strategy: str = "replace"
    ) -> List[BookRecord]:
        """
        Search and return deduplicated, ranked results.

        Args:
            query: Search query string
            max_results: Raw results to request before deduplication
            strategy: Merge strategy for equivalent records

        Returns:
            Ranked list of BookRecords
        """
        items = self.fetch_catalog(query, max_results=max_results)
        books = process(items, strategy=strategy)
        logger.info(f"{len(items)} raw results reduced to {len(books)} for query: {query}")
        return books

    def fetch_book_by_id(self, book_id: str) -> Optional[BookRecord]:
        """
        Fetch a single volume by its catalog id.

        Args:
            book_id: Google Books volume id

        Returns:
            BookRecord, or None if the catalog has no such volume
        """
        params = {"key": self.api_key} if self.api_key else {}

        try:
            response = self._make_request_with_retry(f"{self.BASE_URL}/{book_id}", params)
        except ProviderError as e:
            if e.status_code == 404:
                logger.info(f"Volume not found: {book_id}")
                return None
            raise

        return parse_book(response)

    def _make_request_with_retry(
        self,
        url: str,
        params: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Make HTTP request with retry logic.

        Rate limiting, server errors, timeouts and connection errors are
        retried; other client errors fail immediately.

        Args:
            url: Request URL
            params: Query parameters

        Returns:
            Response JSON
        """
        last_error: Exception = NetworkError("No request attempted")

        for attempt in range(self.max_retries):
            try:
                logger.info(f"Request attempt {attempt + 1}/{self.max_retries}: {url}")

                response = self.session.get(
                    url,
                    params=params,
                    timeout=self.timeout
                )

            except requests.exceptions.Timeout as e:
                logger.warning(f"Timeout on attempt {attempt + 1}")
                last_error = NetworkError(f"Request timed out: {e}")

            except requests.exceptions.ConnectionError as e:
                logger.warning(f"Connection error on attempt {attempt + 1}: {e}")
                last_error = NetworkError(f"Connection failed: {e}")

            except requests.exceptions.RequestException as e:
                logger.error(f"Unexpected request error: {e}")
                raise NetworkError(str(e)) from e

            else:
                # Handle different status codes
                if response.status_code == 200:
                    logger.info(f"Success: {response.status_code}")
                    try:
                        return response.json()
                    except ValueError as e:
                        raise ProviderError("Malformed JSON in catalog response", response.status_code) from e

                if response.status_code == 429:
                    # Rate limited - must retry with backoff
                    logger.warning(f"Rate limited (429) on attempt {attempt + 1}")
                    last_error = ProviderError("Rate limited (429)", 429)

                elif response.status_code >= 500:
                    # Server error - retryable
                    logger.warning(f"Server error ({response.status_code}) on attempt {attempt + 1}")
                    last_error = ProviderError(f"Server error ({response.status_code})", response.status_code)

                else:
                    # Client error - don't retry
                    logger.error(f"Client error ({response.status_code}): {response.text}")
                    raise ProviderError(f"Request failed ({response.status_code})", response.status_code)

            if attempt < self.max_retries - 1:
                self._backoff(attempt)

        logger.error(f"All {self.max_retries} attempts failed")
        raise last_error

    def _backoff(self, attempt: int):
        """
        Sleep with exponential backoff and jitter.

        Args:
            attempt: Current attempt number (0-indexed)
        """
        # Exponential backoff: base * 2^attempt
        delay = self.base_backoff * (2 ** attempt)

        # Add jitter: random value between 0 and delay
        jitter = random.uniform(0, delay)
        total_delay = delay + jitter

        logger.info(f"Backing off for {total_delay:.2f} seconds")
        time.sleep(total_delay)

    def paginated_search(
        self,
        query: str,
        total_results: int = 40,
        results_per_page: int = 40,
        cache_db=None,
        cache_ttl: int = 3600
    ) -> List[Dict[str, Any]]:
        """
        Fetch pages one after another and concatenate their items.

        A blank query issues no request. Stops early when a page comes
        back short, since later pages would be empty.

        Args:
            query: Search query
            total_results: Total raw results wanted
            results_per_page: Results per page (API maximum is 40)
            cache_db: Database instance for response caching (optional)
            cache_ttl: Cache TTL in seconds

        Returns:
            Raw catalog items of all pages, in page order
        """
        if not query or not query.strip():
            return []

        results_per_page = min(results_per_page, 40)
        items: List[Dict[str, Any]] = []

        for start_index in range(0, total_results, results_per_page):
            page_size = min(results_per_page, total_results - start_index)
            response = self.search_with_cache(
                query.strip(),
                max_results=page_size,
                start_index=start_index,
                cache_db=cache_db,
                cache_ttl=cache_ttl
            )
            page = parse_books_response(response)
            items.extend(page)

            if len(page) < page_size:
                break

        return items

    def search_with_cache(
        self,
        query: str,
        max_results: int = 40,
        start_index: int = 0,
        cache_db=None,
        cache_ttl: int = 3600
    ) -> Dict[str, Any]:
        """
        Search with database-backed caching.

        Args:
            query: Search query
            max_results: Max results
            start_index: Pagination offset
            cache_db: Database instance (optional)
            cache_ttl: Cache TTL in seconds

        Returns:
            API response
        """
        # Generate cache key
        cache_key = f"books:search:{query}:{max_results}:{start_index}"

        # Try cache first
        if cache_db:
            cached = cache_db.cache_get(cache_key)
            if cached:
                return cached

        # Cache miss - fetch from API
        response = self.search(query, max_results, start_index)

        # Cache the response
        if response and cache_db:
            cache_db.cache_set(cache_key, response, cache_ttl)

        return response

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
