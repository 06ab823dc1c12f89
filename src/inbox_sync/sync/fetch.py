"""Fetch coordination for inbox listings.

Every list request is tagged with its ``PageKey`` and a serial number that
grows with each request sent. Identical requests started within the dedup
window share one task, and a single polling task can keep
re-fetching the active key while auto refresh is on.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import NamedTuple

import structlog

from inbox_sync.exceptions import MailboxAPIError
from inbox_sync.mailbox import MailboxService
from inbox_sync.models import PageKey, PageResult

logger = structlog.get_logger()


class TaggedResult(NamedTuple):
    """A page result with the serial of the request that produced it."""

    serial: int
    result: PageResult


ResultHandler = Callable[[PageKey, TaggedResult], Awaitable[None]]
ErrorHandler = Callable[[PageKey, MailboxAPIError], Awaitable[None]]


@dataclass(frozen=True)
class _Request:
    started_at: float
    serial: int
    task: asyncio.Task[PageResult]


class FetchCoordinator:
    """Issues list requests, collapses duplicates and drives polling."""

    def __init__(
        self,
        service: MailboxService,
        *,
        dedup_interval: float = 2.0,
        refresh_interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create a coordinator.

        Args:
            service: Mailbox service used for list requests.
            dedup_interval: Seconds during which an identical request reuses
                the previous one.
            refresh_interval: Seconds between two polling fetches.
            clock: Monotonic clock, injectable for tests.
        """

        self._service = service
        self.dedup_interval = dedup_interval
        self.refresh_interval = refresh_interval
        self._clock = clock
        self._requests: dict[PageKey, _Request] = {}
        self._issued = 0
        self._poll_task: asyncio.Task[None] | None = None
        self._poll_key: PageKey | None = None

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def issued(self) -> int:
        """Serial of the most recent request sent; 0 before the first one."""
        return self._issued

    @property
    def polling_key(self) -> PageKey | None:
        return self._poll_key if self.is_polling else None

    async def fetch_page(self, key: PageKey, *, force: bool = False) -> PageResult:
        """Fetch one page; see ``fetch_tagged``."""

        return (await self.fetch_tagged(key, force=force)).result

    async def fetch_tagged(self, key: PageKey, *, force: bool = False) -> TaggedResult:
        """Fetch one page, reusing a recent identical request when possible.

        Args:
            key: Mailbox, page and page size to list.
            force: Always issue a new request, ignoring the dedup window.

        Returns:
            The page result for ``key`` and the serial of the request that
            produced it. A deduplicated call gets the serial of the shared
            request.

        Raises:
            MailboxAPIError: If the request fails.
        """

        now = self._clock()
        self._prune(now)

        previous = self._requests.get(key)
        if not force and previous is not None and now - previous.started_at < self.dedup_interval:
            logger.debug("list_request_deduplicated", mailbox=key.mailbox, page=key.page)
            return TaggedResult(previous.serial, await asyncio.shield(previous.task))

        task = asyncio.create_task(
            self._service.list_messages(key.mailbox, key.page, key.page_size)
        )
        self._issued += 1
        request = _Request(started_at=now, serial=self._issued, task=task)
        self._requests[key] = request
        task.add_done_callback(lambda t: self._forget_failed(key, request))

        # Shielded so a cancelled caller does not cancel a request others share.
        return TaggedResult(request.serial, await asyncio.shield(task))

    async def refresh(self, key: PageKey) -> TaggedResult | None:
        """Manual refresh. Returns None without fetching while polling is active."""

        if self.is_polling:
            logger.debug("manual_refresh_suppressed", mailbox=key.mailbox, page=key.page)
            return None
        return await self.fetch_tagged(key)

    async def start_polling(
        self,
        key: PageKey,
        on_result: ResultHandler,
        on_error: ErrorHandler,
    ) -> None:
        """Start polling ``key``, replacing any polling task already running."""

        await self.stop_polling()
        self._poll_key = key
        self._poll_task = asyncio.create_task(self._poll(key, on_result, on_error))
        logger.info(
            "polling_started",
            mailbox=key.mailbox,
            page=key.page,
            interval=self.refresh_interval,
        )

    async def stop_polling(self) -> None:
        task = self._poll_task
        key = self._poll_key
        self._poll_task = None
        self._poll_key = None
        if task is None:
            return

        task.cancel()
        if task is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("polling_stopped", mailbox=key.mailbox if key else None)

    async def close(self) -> None:
        """Stop polling and cancel requests still in flight."""

        await self.stop_polling()
        for request in self._requests.values():
            request.task.cancel()
        self._requests.clear()

    async def _poll(self, key: PageKey, on_result: ResultHandler, on_error: ErrorHandler) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            try:
                tagged = await self.fetch_tagged(key)
            except MailboxAPIError as exc:
                logger.warning("poll_fetch_failed", mailbox=key.mailbox, page=key.page, error=str(exc))
                await on_error(key, exc)
                continue
            await on_result(key, tagged)

    def _forget_failed(self, key: PageKey, request: _Request) -> None:
        task = request.task
        # Reading the exception here also marks it as retrieved.
        if task.cancelled() or task.exception() is not None:
            if self._requests.get(key) is request:
                del self._requests[key]

    def _prune(self, now: float) -> None:
        expired = [
            key
            for key, request in self._requests.items()
            if request.task.done() and now - request.started_at >= self.dedup_interval
        ]
        for key in expired:
            del self._requests[key]
