"""Mailbox service protocol."""

from __future__ import annotations

from typing import Protocol

from inbox_sync.models import BulkReadAck, Draft, PageResult


class MailboxService(Protocol):
    """Remote source of truth for mailbox contents and read state."""

    async def list_messages(self, mailbox: str, page: int, page_size: int) -> PageResult:
        """List one page of ``mailbox``, newest first."""
        ...

    async def mark_read(self, message_id: str) -> None:
        """Mark a single message as read. Idempotent."""
        ...

    async def mark_read_bulk(self, message_ids: list[str]) -> BulkReadAck:
        """Mark several messages as read in one request. Idempotent per id."""
        ...

    async def send_message(self, draft: Draft) -> None:
        """Send ``draft`` from its mailbox."""
        ...
