"""
outscraper-aio - asyncio client for the Outscraper web-scraping API.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .client import ArchivePoller, HttpClient, OutscraperClient
from .config import Config
from .exceptions import (
    ApiError,
    Cancelled,
    ConfigurationError,
    OutscraperError,
    TimeoutExceeded,
    TransportError,
)

__all__ = [
    "__version__",
    "ApiError",
    "ArchivePoller",
    "Cancelled",
    "Config",
    "ConfigurationError",
    "HttpClient",
    "OutscraperClient",
    "OutscraperError",
    "TimeoutExceeded",
    "TransportError",
]
