"""
Coroutine wrappers for the Outscraper API endpoints.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.parse import quote

import structlog

from outscraper_aio.client.http_client import HttpClient
from outscraper_aio.client.poller import ArchivePoller
from outscraper_aio.config.config import Config, load_config
from outscraper_aio.exceptions import ApiError, ConfigurationError

logger = structlog.get_logger(__name__)

QueryType = Union[str, Sequence[str]]


def _as_list(query: QueryType) -> List[str]:
    if isinstance(query, str):
        return [query]
    return list(query)


class OutscraperClient:
    """
    Asynchronous client for the Outscraper API.

    Usage:
        async with OutscraperClient(api_key="...") as client:
            places = await client.google_maps_search("restaurants brooklyn usa", limit=20)

    Args:
        api_key: API key from https://app.outscraper.com/profile. Falls back to
            ``config.api_key`` (``OUTSCRAPER_API_KEY``) when omitted.
        config: Client configuration; defaults are read from the environment.

    Raises:
        ConfigurationError: no API key could be resolved, or the settings
            read from the environment or the polling budget are invalid. Nothing touches the network before this check.
    """

    def __init__(self, api_key: Optional[str] = None, *, config: Optional[Config] = None):
        self.config = config if config is not None else load_config()

        if api_key is None and self.config.api_key is not None:
            api_key = self.config.api_key.get_secret_value()
        if not api_key or not api_key.strip():
            raise ConfigurationError("api_key must have a value")

        self.http = HttpClient(self.config, api_key)
        self.poller = ArchivePoller(
            self.get_request_archive,
            poll_interval=self.config.polling.poll_interval,
            max_wait=self.config.polling.max_wait,
        )

    async def initialize(self) -> None:
        await self.http.initialize()

    async def close(self) -> None:
        await self.http.close()

    async def __aenter__(self) -> "OutscraperClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --- Envelope helpers ---

    @staticmethod
    def _extract_data(envelope: Any) -> Any:
        if not isinstance(envelope, dict) or "data" not in envelope:
            raise ApiError("Response envelope has no 'data' payload")
        return envelope["data"]

    async def _submit_and_wait(
        self, path: str, params: Dict[str, Any], cancel_event: Optional[asyncio.Event]
    ) -> Dict[str, Any]:
        envelope = await self.http.get(path, params)
        request_id = envelope.get("id") if isinstance(envelope, dict) else None
        if not request_id:
            raise ApiError(f"Response from {path} has no request id")

        logger.debug("Task submitted", path=path, request_id=request_id)
        return await self.poller.wait(request_id, cancel_event=cancel_event)

    # --- Requests archive ---

    async def get_requests_history(self) -> Any:
        """Fetch up to 100 of your last requests."""
        return await self.http.get("requests")

    async def get_request_archive(self, request_id: str) -> Dict[str, Any]:
        """
        Fetch request data from the archive.

        Args:
            request_id: id of the request/task returned in the ``id`` field
        """
        if not request_id:
            raise ValueError("request_id must have a value")
        return await self.http.get(f"requests/{quote(request_id, safe='')}", endpoint="requests/{id}")

    async def wait_request_archive(
        self, request_id: str, cancel_event: Optional[asyncio.Event] = None
    ) -> Dict[str, Any]:
        """Poll the archive until ``request_id`` leaves the Pending state."""
        return await self.poller.wait(request_id, cancel_event=cancel_event)

    # --- Google search ---

    async def google_search(
        self,
        query: QueryType,
        pages_per_query: int = 1,
        uule: str = "",
        language: str = "en",
        region: Optional[str] = None,
        webhook: Optional[str] = None,
    ) -> Any:
        """
        Return search results from Google for one or many queries.

        Args:
            query: queries to search on Google (e.g. "bitcoin")
            pages_per_query: limit of pages to return per query
            uule: Google UULE location code
            language: interface language (e.g. "en", "de")
            region: country code (e.g. "US")
            webhook: callback URL Outscraper POSTs to when the task finishes
        """
        params = {
            "query": _as_list(query),
            "pagesPerQuery": pages_per_query,
            "uule": uule,
            "language": language,
            "region": region,
            "webhook": webhook,
        }
        return self._extract_data(await self.http.get("google-search-v3", params))

    # --- Google Maps ---

    async def google_maps_search(
        self,
        query: QueryType,
        language: str = "en",
        region: Optional[str] = None,
        limit: int = 400,
        coordinates: Optional[str] = None,
        drop_duplicates: bool = False,
        skip: int = 0,
        async_request: bool = False,
        webhook: Optional[str] = None,
    ) -> Any:
        """
        Get places from Google Maps (speed optimized endpoint).

        Args:
            query: queries to search on Google Maps (e.g. "restaurants brooklyn usa")
            language: interface language
            region: country code
            limit: organizations to take from one query (the site rarely returns more than 400)
            coordinates: coordinates used along with the query, e.g. "@41.3954381,2.1628662,15.1z"
            drop_duplicates: drop the same organizations found by different queries
            skip: skip the first N places, a multiple of 20; used for pagination
            async_request: submit the task and return the envelope with its ``id``
                instead of waiting; fetch the result later with ``get_request_archive``
            webhook: callback URL Outscraper POSTs to when the task finishes

        Returns:
            the ``data`` payload, or the submission envelope when ``async_request`` is set
        """
        params = {
            "query": _as_list(query),
            "language": language,
            "region": region,
            "organizationsPerQueryLimit": limit,
            "coordinates": coordinates,
            "dropDuplicates": drop_duplicates,
            "skipPlaces": skip,
            "async": async_request,
            "webhook": webhook,
        }
        result = await self.http.get("maps/search-v2", params)

        if async_request:
            return result
        return self._extract_data(result)

    async def google_maps_search_v1(
        self,
        query: QueryType,
        language: str = "en",
        region: Optional[str] = None,
        limit: int = 400,
        extract_contacts: bool = False,
        coordinates: Optional[str] = None,
        drop_duplicates: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Dict[str, Any]:
        """
        Get places from Google Maps (legacy endpoint, always polled to completion).

        Args:
            extract_contacts: also scrape emails and social links from the places' websites
            cancel_event: set it to abort the wait with ``Cancelled``

        See ``google_maps_search`` for the remaining arguments.
        """
        params = {
            "query": _as_list(query),
            "language": language,
            "region": region,
            "organizationsPerQueryLimit": limit,
            "coordinates": coordinates,
            "extractContacts": extract_contacts,
            "dropDuplicates": drop_duplicates,
        }
        return await self._submit_and_wait("maps/search", params, cancel_event)

    async def google_maps_reviews(
        self,
        query: QueryType,
        language: str = "en",
        region: Optional[str] = None,
        limit: int = 1,
        reviews_limit: int = 100,
        coordinates: Optional[str] = None,
        start: Optional[int] = None,
        cutoff: Optional[int] = None,
        cutoff_rating: Optional[int] = None,
        sort: str = "most_relevant",
        reviews_query: Optional[str] = None,
        ignore_empty: bool = False,
        source: Optional[str] = None,
        last_pagination_id: Optional[str] = None,
        async_request: bool = False,
        webhook: Optional[str] = None,
    ) -> Any:
        """
        Get reviews from Google Maps (speed optimized endpoint).

        Args:
            query: places to take reviews from (names, place ids or links)
            limit: organizations to take from one query
            reviews_limit: reviews to extract from one organization
            start: timestamp of the newest review to start from; forces "newest" sorting
            cutoff: oldest review timestamp to return; forces "newest" sorting
            cutoff_rating: rating bound used with "lowest_rating"/"highest_rating" sorting
            sort: one of "most_relevant", "newest", "highest_rating", "lowest_rating"
            reviews_query: search among the reviews (e.g. "amazing")
            ignore_empty: skip reviews without text
            source: source filter, e.g. Booking.com reviews shown for hotels
            last_pagination_id: ``review_pagination_id`` of the last item, for pagination
            async_request: return the submission envelope instead of waiting
            webhook: callback URL Outscraper POSTs to when the task finishes
        """
        params = {
            "query": _as_list(query),
            "language": language,
            "region": region,
            "organizationsPerQueryLimit": limit,
            "reviewsPerOrganizationLimit": reviews_limit,
            "coordinates": coordinates,
            "start": start,
            "cutoff": cutoff,
            "cutoffRating": cutoff_rating,
            "sort": sort,
            "reviewsQuery": reviews_query,
            "ignoreEmpty": ignore_empty,
            "source": source,
            "lastPaginationId": last_pagination_id,
            "async": async_request,
            "webhook": webhook,
        }
        result = await self.http.get("maps/reviews-v3", params)

        if async_request:
            return result
        return self._extract_data(result)

    async def google_maps_reviews_v2(
        self,
        query: QueryType,
        language: str = "en",
        region: Optional[str] = None,
        limit: int = 1,
        reviews_limit: int = 100,
        coordinates: Optional[str] = None,
        cutoff: Optional[int] = None,
        cutoff_rating: Optional[int] = None,
        sort: str = "most_relevant",
        reviews_query: Optional[str] = None,
        ignore_empty: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Dict[str, Any]:
        """Get reviews from Google Maps (legacy endpoint, always polled to completion)."""
        params = {
            "query": _as_list(query),
            "language": language,
            "region": region,
            "organizationsPerQueryLimit": limit,
            "reviewsPerOrganizationLimit": reviews_limit,
            "coordinates": coordinates,
            "cutoff": cutoff,
            "cutoffRating": cutoff_rating,
            "reviewsQuery": reviews_query,
            "ignoreEmpty": ignore_empty,
            "sort": sort,
        }
        return await self._submit_and_wait("maps/reviews-v2", params, cancel_event)

    # --- Enrichment ---

    async def emails_and_contacts(self, query: QueryType) -> Any:
        """Return emails, social links and phones found on the given domains."""
        params = {"query": _as_list(query), "async": False}
        return self._extract_data(await self.http.get("emails-and-contacts", params))

    async def phones_enricher(self, query: QueryType) -> Any:
        """Return carrier data (name/type) and validity for the given phone numbers."""
        params = {"query": _as_list(query), "async": False}
        return self._extract_data(await self.http.get("phones-enricher", params))

    # --- Trustpilot ---

    async def trustpilot(self, query: QueryType, cancel_event: Optional[asyncio.Event] = None) -> Dict[str, Any]:
        """
        Return data about Trustpilot businesses.

        Args:
            query: Trustpilot page links or domain names (e.g. "outscraper.com")
        """
        params = {"query": _as_list(query)}
        return await self._submit_and_wait("trustpilot", params, cancel_event)

    async def trustpilot_search(
        self, query: QueryType, limit: int = 100, cancel_event: Optional[asyncio.Event] = None
    ) -> Dict[str, Any]:
        """Return Trustpilot search results for companies or categories (e.g. "real estate")."""
        params = {"query": _as_list(query), "limit": limit}
        return await self._submit_and_wait("trustpilot/search", params, cancel_event)

    async def trustpilot_reviews(
        self,
        query: QueryType,
        limit: int = 100,
        sort: Optional[str] = None,
        cutoff: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Dict[str, Any]:
        """
        Return reviews of Trustpilot businesses.

        Args:
            query: Trustpilot page links or domain names
            limit: items to get from one query
            sort: sorting type (e.g. "recency")
            cutoff: oldest timestamp to return; overrides ``sort`` (newest first)
        """
        params = {
            "query": _as_list(query),
            "limit": limit,
            "sort": sort,
            "cutoff": cutoff,
        }
        return await self._submit_and_wait("trustpilot/reviews", params, cancel_event)
