"""
Outscraper API client.

- ``HttpClient`` performs single authenticated GET requests and normalizes errors
- ``ArchivePoller`` waits for asynchronous jobs by polling the request archive
- ``OutscraperClient`` exposes one coroutine per API endpoint
"""

from .http_client import HttpClient, build_query, strip_indexed_keys
from .outscraper import OutscraperClient
from .poller import PENDING_STATUS, ArchivePoller

__all__ = [
    "ArchivePoller",
    "HttpClient",
    "OutscraperClient",
    "PENDING_STATUS",
    "build_query",
    "strip_indexed_keys",
]
