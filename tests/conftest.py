"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from inbox_sync.exceptions import MailboxAPIError, NotFoundError
from inbox_sync.models import BulkReadAck, Draft, Message, PageResult

READ_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_message(message_id: str, *, read: bool = False, minutes_ago: int = 0) -> Message:
    """Build a listed message; newer messages get smaller ``minutes_ago``."""

    return Message(
        id=message_id,
        subject=f"Subject {message_id}",
        from_name=f"Sender {message_id}",
        html=f"<p>Body of {message_id}</p>",
        created_at=datetime(2024, 5, 1, 11, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago),
        read_at=READ_AT if read else None,
    )


def make_mailbox(prefix: str, count: int) -> list[Message]:
    return [make_message(f"{prefix}{i}", minutes_ago=i) for i in range(count)]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMailboxService:
    """In-memory mailbox service recording every call.

    Failures are scripted through the ``*_error`` attributes; ``list_gates``,
    ``read_gate`` and ``bulk_gate`` hold the matching calls until set. With
    ``list_snapshot_on_arrival`` a held listing answers with the mailbox as it
    was when the request arrived.
    """

    def __init__(self) -> None:
        self.mailboxes: dict[str, list[Message]] = {}
        self.list_calls: list[tuple[str, int, int]] = []
        self.read_calls: list[str] = []
        self.bulk_calls: list[list[str]] = []
        self.sent: list[Draft] = []

        self.list_error: MailboxAPIError | None = None
        self.read_error: MailboxAPIError | None = None
        self.bulk_error: MailboxAPIError | None = None
        self.send_error: MailboxAPIError | None = None
        self.bulk_failed_ids: list[str] = []
        self.list_snapshot_on_arrival = False

        self.list_gates: dict[str, asyncio.Event] = {}
        self.read_gate: asyncio.Event | None = None
        self.bulk_gate: asyncio.Event | None = None
        self.send_gate: asyncio.Event | None = None

    async def __aenter__(self) -> FakeMailboxService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    async def list_messages(self, mailbox: str, page: int, page_size: int) -> PageResult:
        self.list_calls.append((mailbox, page, page_size))
        snapshot = self.mailboxes.get(mailbox) if self.list_snapshot_on_arrival else None
        gate = self.list_gates.get(mailbox)
        if gate is not None:
            await gate.wait()
        if self.list_error is not None:
            raise self.list_error
        if mailbox not in self.mailboxes:
            raise NotFoundError("Mailbox not found", 404)

        messages = snapshot if snapshot is not None else self.mailboxes[mailbox]
        start = (page - 1) * page_size
        return PageResult(total=len(messages), messages=messages[start : start + page_size])

    async def mark_read(self, message_id: str) -> None:
        self.read_calls.append(message_id)
        if self.read_gate is not None:
            await self.read_gate.wait()
        if self.read_error is not None:
            raise self.read_error
        self._store_read(message_id)

    async def mark_read_bulk(self, message_ids: list[str]) -> BulkReadAck:
        self.bulk_calls.append(list(message_ids))
        if self.bulk_gate is not None:
            await self.bulk_gate.wait()
        if self.bulk_error is not None:
            raise self.bulk_error
        for message_id in message_ids:
            if message_id not in self.bulk_failed_ids:
                self._store_read(message_id)
        return BulkReadAck(failed_ids=[i for i in message_ids if i in self.bulk_failed_ids])

    async def send_message(self, draft: Draft) -> None:
        if self.send_gate is not None:
            await self.send_gate.wait()
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(draft)

    def remove(self, mailbox: str, message_id: str) -> None:
        self.mailboxes[mailbox] = [m for m in self.mailboxes[mailbox] if m.id != message_id]

    def _store_read(self, message_id: str) -> None:
        for mailbox, messages in self.mailboxes.items():
            self.mailboxes[mailbox] = [
                m.with_read_at(READ_AT) if m.id == message_id and not m.is_read else m
                for m in messages
            ]


@pytest.fixture
def mock_settings():
    """Provide mock settings for testing."""
    from inbox_sync.config import Settings

    return Settings(
        api_base_url="http://mailbox.test",
        page_size=10,
        refresh_interval_ms=10,
        dedup_interval_ms=2000,
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def fake_service() -> FakeMailboxService:
    """Provide a fake mailbox service with two mailboxes."""
    service = FakeMailboxService()
    service.mailboxes["a@example.com"] = make_mailbox("a", 15)
    service.mailboxes["b@example.com"] = make_mailbox("b", 3)
    return service


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_inbox_payload() -> dict:
    """Provide an inbox listing as the service returns it."""
    return {
        "total": 2,
        "list": [
            {
                "id": "msg-2",
                "subject": "Your order has shipped",
                "from": "orders@shop.example",
                "fromName": "Shop",
                "to": "me@example.com",
                "html": "<p>Tracking number <b>123</b></p>",
                "text": None,
                "date": "2024-05-01T10:00:00Z",
                "createdAt": "2024-05-01T10:00:05Z",
                "readAt": None,
            },
            {
                "id": "msg-1",
                "subject": None,
                "fromName": None,
                "text": "Plain text only",
                "createdAt": "2024-04-30T08:00:00Z",
                "readAt": "2024-04-30T09:00:00Z",
            },
        ],
    }
