"""
Turns an asynchronous Outscraper job into a synchronous result by polling the archive.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from outscraper_aio.config.config import attempt_budget
from outscraper_aio.exceptions import ApiError, Cancelled, ConfigurationError, TimeoutExceeded
from outscraper_aio.observability.metrics import METRICS

logger = structlog.get_logger(__name__)

PENDING_STATUS = "Pending"

ArchiveFetcher = Callable[[str], Awaitable[Dict[str, Any]]]


class ArchivePoller:
    """
    Bounded fixed-interval polling of the request archive.

    Every lookup, including the first one, is preceded by a full
    ``poll_interval`` sleep, so a polled job always costs at least one interval.
    At most ``floor(max_wait / poll_interval)`` lookups are made.
    """

    def __init__(self, fetch_archive: ArchiveFetcher, poll_interval: float = 5, max_wait: float = 60 * 60):
        if poll_interval <= 0:
            raise ConfigurationError("poll_interval must be positive")
        if max_wait < poll_interval:
            raise ConfigurationError("max_wait must be greater than or equal to poll_interval")

        self.fetch_archive = fetch_archive
        self.poll_interval = poll_interval
        self.max_wait = max_wait

    @property
    def max_attempts(self) -> int:
        return attempt_budget(self.max_wait, self.poll_interval)

    async def _sleep(self, cancel_event: Optional[asyncio.Event]) -> bool:
        """Sleep one interval; return True if the cancel event fired instead."""
        if cancel_event is None:
            await asyncio.sleep(self.poll_interval)
            return False

        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def wait(self, request_id: str, cancel_event: Optional[asyncio.Event] = None) -> Dict[str, Any]:
        """
        Poll the archive for ``request_id`` until its status leaves ``"Pending"``.

        The terminal record is returned as-is; failure statuses reported by the
        service are data, not exceptions.

        Raises:
            TimeoutExceeded: the job was still pending after the last attempt
            Cancelled: ``cancel_event`` was set before the job finished
            ApiError: the archive returned something other than a JSON object
        """
        remaining = self.max_attempts
        attempts = 0
        log = logger.bind(request_id=request_id)
        log.info("Waiting for request", poll_interval=self.poll_interval, max_attempts=remaining)

        while remaining > 0:
            if cancel_event is not None and cancel_event.is_set():
                log.info("Polling cancelled", attempts=attempts)
                raise Cancelled(request_id)

            if await self._sleep(cancel_event):
                log.info("Polling cancelled", attempts=attempts)
                raise Cancelled(request_id)

            result = await self.fetch_archive(request_id)
            remaining -= 1
            attempts += 1

            if not isinstance(result, dict):
                raise ApiError(f"Malformed archive record for request {request_id}")

            status = result.get("status")
            METRICS["archive_polls_total"].labels(status=str(status)).inc()

            if status != PENDING_STATUS:
                log.info("Request finished", status=status, attempts=attempts)
                return result

            log.debug("Request still pending", attempt=attempts, remaining=remaining)

        log.warning("Timeout exceeded while waiting for request", attempts=attempts)
        raise TimeoutExceeded(request_id, attempts)
