"""Inbox session: the single owner of the synchronized inbox state.

User intents (select a mailbox, open a message, change page, tick messages,
toggle auto refresh, compose) come in through the session's methods. Fetch
results are applied only when their key still matches the active one, so a
late answer for a mailbox or page the user has left is dropped on arrival.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from types import TracebackType
from typing import Any

import structlog

from inbox_sync.config import Settings
from inbox_sync.exceptions import MailboxAPIError, ValidationError
from inbox_sync.mailbox import MailboxService
from inbox_sync.models import Draft, Message, PageKey, PageResult
from inbox_sync.sync.bulk import BulkActionExecutor, BulkReadResult
from inbox_sync.sync.compose import ComposeStaging
from inbox_sync.sync.fetch import FetchCoordinator, TaggedResult
from inbox_sync.sync.pagination import Pagination
from inbox_sync.sync.selection import SelectionReconciler
from inbox_sync.utils import error_message

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class InboxView:
    """Snapshot of everything a renderer needs to draw the inbox."""

    mailbox: str | None
    page: int
    page_size: int
    total: int
    page_count: int
    messages: tuple[Message, ...]
    selected_message_id: str | None
    selected_message: Message | None
    bulk_selected_ids: frozenset[str]
    auto_refresh: bool
    is_loading: bool
    error: str | None
    draft: Draft | None

    @property
    def has_pagination(self) -> bool:
        return self.page_count > 1

    @property
    def composer_open(self) -> bool:
        return self.draft is not None


Listener = Callable[[InboxView], None]


class InboxSession:
    """Keeps one mailbox view in sync with the mailbox service."""

    def __init__(
        self,
        service: MailboxService,
        settings: Settings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the session.

        Args:
            service: Mailbox service to sync against.
            settings: Application settings. If None, uses default settings.
            clock: Monotonic clock used for the dedup window.
            now: Wall clock used for optimistic read timestamps.
        """
        from inbox_sync.config import get_settings

        self.settings = settings or get_settings()
        self._service = service
        self._now = now

        self.fetcher = FetchCoordinator(
            service,
            dedup_interval=self.settings.dedup_interval,
            refresh_interval=self.settings.refresh_interval,
            clock=clock,
        )
        self.pagination = Pagination(page_size=self.settings.page_size)
        self.selection = SelectionReconciler(
            clear_bulk_on_mailbox_switch=self.settings.clear_bulk_on_mailbox_switch
        )
        self.bulk = BulkActionExecutor(service)
        self.compose = ComposeStaging(service)

        self._mailbox: str | None = None
        self._result: PageResult | None = None
        self._auto_refresh = False
        self._loading_key: PageKey | None = None
        self._error: str | None = None
        # Ids flipped to read locally. None while the mark-read request is
        # pending, then the last fetch serial sent before the service confirmed it.
        self._optimistic_reads: dict[str, int | None] = {}
        self._listeners: list[Listener] = []

    async def __aenter__(self) -> InboxSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        await self.fetcher.close()

    @property
    def mailbox(self) -> str | None:
        return self._mailbox

    @property
    def auto_refresh(self) -> bool:
        return self._auto_refresh

    @property
    def result(self) -> PageResult | None:
        return self._result

    @property
    def active_key(self) -> PageKey | None:
        if self._mailbox is None:
            return None
        return PageKey(self._mailbox, self.pagination.page, self.pagination.page_size)

    def view(self) -> InboxView:
        messages = tuple(self._result.messages) if self._result else ()
        selected_id = self.selection.selected_message_id
        selected = self._result.find(selected_id) if self._result and selected_id else None
        return InboxView(
            mailbox=self._mailbox,
            page=self.pagination.page,
            page_size=self.pagination.page_size,
            total=self.pagination.total,
            page_count=self.pagination.page_count,
            messages=messages,
            selected_message_id=selected_id,
            selected_message=selected,
            bulk_selected_ids=self.selection.bulk_selected_ids,
            auto_refresh=self._auto_refresh,
            is_loading=self._loading_key is not None and self._loading_key == self.active_key,
            error=self._error,
            draft=self.compose.draft,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh view after every state change.

        Returns:
            A function that removes the listener.
        """

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Mailbox and pagination

    async def select_mailbox(self, mailbox: str | None) -> InboxView:
        """Switch to ``mailbox`` (or to no mailbox) and load its first page."""

        previous = self._mailbox
        self._mailbox = mailbox or None
        self.pagination.reset()
        self.selection.switch_mailbox(self._mailbox)
        self._optimistic_reads.clear()
        logger.info("mailbox_selected", mailbox=self._mailbox, previous=previous)
        await self._key_changed()
        return self.view()

    async def set_page(self, page: int) -> InboxView:
        self.pagination.set_page(page)
        await self._key_changed()
        return self.view()

    async def set_page_size(self, page_size: int) -> InboxView:
        self.pagination.set_page_size(page_size)
        await self._key_changed()
        return self.view()

    # Refresh

    async def refresh(self) -> InboxView:
        """Manual refresh. Does nothing while auto refresh is on."""

        key = self.active_key
        if key is None:
            return self.view()
        try:
            tagged = await self.fetcher.refresh(key)
        except MailboxAPIError as exc:
            await self._fetch_failed(key, exc)
            return self.view()
        if tagged is not None:
            await self._apply(key, tagged)
        return self.view()

    async def set_auto_refresh(self, enabled: bool) -> InboxView:
        if enabled == self._auto_refresh:
            return self.view()

        self._auto_refresh = enabled
        logger.info("auto_refresh_toggled", enabled=enabled, mailbox=self._mailbox)
        key = self.active_key
        if enabled and key is not None:
            await self.fetcher.start_polling(key, self._apply, self._fetch_failed)
        elif not enabled:
            await self.fetcher.stop_polling()
        self._notify()
        return self.view()

    # Message selection and read state

    async def select_message(self, message_id: str | None) -> InboxView:
        """Open a message, or go back to the list with ``None``.

        Opening an unread message flips it to read locally right away, then
        tells the service and reloads the page.

        Raises:
            ValidationError: If the message is not on the current page.
        """

        if message_id is None:
            self.selection.select(None)
            self._notify()
            return self.view()

        message = self._require_listed(message_id)
        self.selection.select(message_id)
        if message.is_read:
            self._notify()
            return self.view()

        await self._mark_read(message_id)
        return self.view()

    async def mark_read(self, message_id: str) -> InboxView:
        """Mark one message on the current page as read.

        Raises:
            ValidationError: If the message is not on the current page.
        """

        self._require_listed(message_id)
        await self._mark_read(message_id)
        return self.view()

    # Bulk selection

    def toggle_bulk(self, message_id: str) -> InboxView:
        self.selection.toggle_bulk(message_id)
        self._notify()
        return self.view()

    def clear_bulk(self) -> InboxView:
        self.selection.clear_bulk()
        self._notify()
        return self.view()

    async def mark_selected_read(self) -> BulkReadResult:
        """Mark every ticked message as read.

        Ids the service accepted are unticked and the page is reloaded. On
        failure the ticked set is left as it was so the user can retry.

        Raises:
            ValidationError: If nothing is ticked.
            OperationInProgressError: If a bulk action is already pending.
            MailboxAPIError: If the request fails.
        """

        outcome = await self.bulk.mark_read(self.selection.bulk_selected_ids)
        self.selection.discard_bulk(outcome.succeeded)
        self._notify()

        key = self.active_key
        if key is not None:
            await self._load(key, force=True)
        return outcome

    # Compose

    def open_draft(self) -> Draft:
        draft = self.compose.open(self._mailbox)
        self._notify()
        return draft

    def update_draft(self, **fields: Any) -> Draft:
        draft = self.compose.update(**fields)
        self._notify()
        return draft

    def cancel_draft(self) -> None:
        self.compose.cancel()
        self._notify()

    async def send_draft(self) -> None:
        """Send the open draft; see ``ComposeStaging.send``."""

        await self.compose.send()
        self._notify()

    # Internals

    async def _key_changed(self) -> None:
        self._result = None
        self._error = None
        key = self.active_key
        self._loading_key = key
        # A message from the previous page is not on the new one.
        if self.selection.selected_message_id is not None:
            self.selection.select(None)

        if self._auto_refresh:
            if key is None:
                await self.fetcher.stop_polling()
            else:
                await self.fetcher.start_polling(key, self._apply, self._fetch_failed)

        self._notify()
        if key is not None:
            await self._load(key)

    async def _load(self, key: PageKey, *, force: bool = False) -> None:
        self._loading_key = key
        try:
            tagged = await self.fetcher.fetch_tagged(key, force=force)
        except MailboxAPIError as exc:
            self._finish_loading(key)
            await self._fetch_failed(key, exc)
            return
        self._finish_loading(key)
        await self._apply(key, tagged)

    def _finish_loading(self, key: PageKey) -> None:
        if self._loading_key == key:
            self._loading_key = None

    async def _apply(self, key: PageKey, tagged: TaggedResult) -> None:
        if key != self.active_key:
            logger.debug("stale_page_discarded", mailbox=key.mailbox, page=key.page)
            return

        result = tagged.result
        # Pages requested before the service confirmed a read may predate it.
        stale_reads = [
            message_id
            for message_id, confirmed_after in self._optimistic_reads.items()
            if confirmed_after is None or tagged.serial <= confirmed_after
        ]
        if stale_reads:
            moment = self._now()
            for message_id in stale_reads:
                result = result.with_read(message_id, moment)

        self._result = result
        self._error = None
        self.pagination.apply_total(result.total)
        self.selection.reconcile(key.mailbox, result)
        logger.debug(
            "page_applied",
            mailbox=key.mailbox,
            page=key.page,
            total=result.total,
            count=len(result.messages),
        )
        self._notify()

    async def _fetch_failed(self, key: PageKey, exc: MailboxAPIError) -> None:
        if key != self.active_key:
            logger.debug("stale_page_error_discarded", mailbox=key.mailbox, error=str(exc))
            return
        self._error = error_message(exc, "Failed to load messages")
        self._notify()

    async def _mark_read(self, message_id: str) -> None:
        key = self.active_key
        if self._result is not None:
            self._result = self._result.with_read(message_id, self._now())
        self._optimistic_reads[message_id] = None
        self._notify()

        confirmed = False
        try:
            await self._service.mark_read(message_id)
            confirmed = True
        except MailboxAPIError as exc:
            logger.warning("mark_read_failed", message_id=message_id, error=str(exc))
            self._error = error_message(exc, "Failed to mark message as read")
        finally:
            self._settle_read(message_id, confirmed)

        if not confirmed:
            self._notify()
            return

        if key is not None and key == self.active_key:
            await self._load(key, force=True)

    def _settle_read(self, message_id: str, confirmed: bool) -> None:
        if message_id not in self._optimistic_reads:
            return
        if confirmed:
            self._optimistic_reads[message_id] = self.fetcher.issued
        else:
            del self._optimistic_reads[message_id]

    def _require_listed(self, message_id: str) -> Message:
        message = self._result.find(message_id) if self._result else None
        if message is None:
            raise ValidationError(f"message {message_id} is not on the current page")
        return message

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.view()
        for listener in list(self._listeners):
            listener(snapshot)
