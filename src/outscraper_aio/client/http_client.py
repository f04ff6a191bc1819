"""
Authenticated JSON-over-GET transport for the Outscraper API.
"""

from __future__ import annotations

import asyncio
import re
import time
from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

import aiohttp
import structlog
from yarl import URL

from outscraper_aio import __version__
from outscraper_aio.config.config import Config
from outscraper_aio.exceptions import ApiError, ConfigurationError, TransportError
from outscraper_aio.observability.metrics import METRICS

logger = structlog.get_logger(__name__)

# Index suffixes such as "query%5B0%5D" or "query[]" that generic serializers
# emit for list values. The remote API only understands bare repeated keys.
_INDEXED_KEY_SUFFIX = re.compile(r"(?:%5B|\[)\d*(?:%5D|\])", re.IGNORECASE)


def strip_indexed_keys(query: str) -> str:
    """Remove bracket index suffixes from parameter names, leaving values intact."""
    if not query:
        return query

    pairs = []
    for pair in query.split("&"):
        if not pair:
            continue
        key, sep, value = pair.partition("=")
        pairs.append(_INDEXED_KEY_SUFFIX.sub("", key) + sep + value)
    return "&".join(pairs)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def build_query(params: Mapping[str, Any]) -> str:
    """
    Serialize query parameters the way the API expects them.

    ``None`` values are omitted, booleans become ``1``/``0`` and list or tuple
    values are expanded into repeated bare keys (``query=a&query=b``).
    """
    items: List[Tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            items.extend((key, _format_value(item)) for item in value if item is not None)
        else:
            items.append((key, _format_value(value)))

    return strip_indexed_keys(urlencode(items))


class HttpClient:
    """Issues single authenticated GET requests and decodes the JSON envelope."""

    def __init__(self, config: Config, api_key: str):
        if not api_key or not api_key.strip():
            raise ConfigurationError("api_key must have a value")

        self.config = config
        self.api_config = config.api
        self.base_url = self.api_config.base_url.rstrip("/")
        self._headers = {
            "Accept": "application/json",
            "Client": f"{self.api_config.client_name} {__version__}",
            "X-API-KEY": api_key,
        }

        # Session will be initialized in initialize()
        self.session: Optional[aiohttp.ClientSession] = None
        self._is_initialized = False

    @property
    def headers(self) -> Mapping[str, str]:
        return dict(self._headers)

    async def initialize(self) -> None:
        """Initialize the HTTP client session."""
        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.api_config.timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)
            self._is_initialized = True
            logger.debug("HTTP client session initialized", base_url=self.base_url)

    async def close(self) -> None:
        """Close the HTTP client session."""
        if self.session:
            await self.session.close()
            self.session = None
        self._is_initialized = False

    async def __aenter__(self) -> "HttpClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def build_url(self, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
        url = f"{self.base_url}/{path.lstrip('/')}"
        query = build_query(params or {})
        if query:
            url = f"{url}?{query}"
        return url

    def _record(self, endpoint: str, outcome: str, start_time: float) -> None:
        METRICS["requests_total"].labels(endpoint=endpoint, outcome=outcome).inc()
        METRICS["request_latency_seconds"].labels(endpoint=endpoint).observe(time.perf_counter() - start_time)

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None, *, endpoint: Optional[str] = None) -> Any:
        """
        Perform one GET request and return the decoded JSON body.

        Args:
            path: Endpoint path relative to the base URL
            params: Query parameters, see ``build_query``
            endpoint: Metric label for the call (defaults to ``path``)

        Raises:
            TransportError: network failure, timeout or a body that is not JSON
            ApiError: the decoded envelope carries a truthy ``error`` flag
        """
        if not self._is_initialized or self.session is None:
            raise RuntimeError("HTTP client not initialized. Call initialize() first.")

        endpoint = endpoint or path
        url = self.build_url(path, params)
        start_time = time.perf_counter()
        logger.debug("Dispatching request", endpoint=endpoint, url=url)

        try:
            # encoded=True keeps yarl from re-quoting the prepared query string
            async with self.session.get(URL(url, encoded=True), headers=self._headers) as response:
                status = response.status
                body = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            self._record(endpoint, "transport_error", start_time)
            logger.warning("Request timed out", endpoint=endpoint, timeout=self.api_config.timeout)
            raise TransportError(f"Request timed out after {self.api_config.timeout}s", url=url) from e
        except aiohttp.ClientError as e:
            self._record(endpoint, "transport_error", start_time)
            logger.warning("Request failed", endpoint=endpoint, error=str(e))
            raise TransportError(f"API Error: {e}", url=url) from e
        except ValueError as e:
            self._record(endpoint, "transport_error", start_time)
            logger.warning("Malformed response body", endpoint=endpoint, error=str(e))
            raise TransportError(f"Malformed response body: {e}", url=url) from e

        if body is None:
            self._record(endpoint, "transport_error", start_time)
            logger.warning("Empty response body", endpoint=endpoint, status=status)
            raise TransportError(f"Empty response body (HTTP {status})", url=url)

        if isinstance(body, dict) and body.get("error"):
            message = body.get("errorMessage")
            message = "Unknown API error" if message is None else str(message)
            self._record(endpoint, "api_error", start_time)
            logger.warning("API reported an error", endpoint=endpoint, status=status, error=message)
            raise ApiError(message, status=status)

        self._record(endpoint, "success", start_time)
        logger.debug("Request completed", endpoint=endpoint, status=status)
        return body
