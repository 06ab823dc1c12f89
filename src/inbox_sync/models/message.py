"""Message and page models for the inbox view.

Field aliases follow the JSON the mailbox service returns (``fromName``,
``readAt``, ``list``...), while attribute names stay snake_case. Models are
frozen: the only local change ever made to a message is the read timestamp,
and that goes through ``with_read_at`` which returns a copy.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


@dataclass(frozen=True)
class PageKey:
    """Identity of one list request: which mailbox, which page, how big."""

    mailbox: str
    page: int
    page_size: int


class Message(BaseModel):
    """A single message as listed by the mailbox service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(description="Unique message ID")
    subject: str = Field(default="", description="Subject header")
    from_name: str | None = Field(default=None, alias="fromName", description="Sender display name")
    from_address: str | None = Field(default=None, alias="from", description="Sender email address")
    to: str | None = Field(default=None, description="Recipient email address")

    # At most one of the two is populated; html wins for rendering.
    html: str | None = Field(default=None, description="HTML body")
    text: str | None = Field(default=None, description="Plain text body")

    date: datetime | None = Field(default=None, description="Parsed Date header")
    created_at: datetime | None = Field(
        default=None, alias="createdAt", description="When the service stored the message"
    )
    read_at: datetime | None = Field(
        default=None, alias="readAt", description="When the message was read; None means unread"
    )

    @field_validator("subject", mode="before")
    @classmethod
    def _none_subject(cls, v: object) -> object:
        return "" if v is None else v

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    @property
    def received_at(self) -> datetime | None:
        return self.date or self.created_at

    @property
    def body(self) -> str | None:
        return self.html or self.text

    @property
    def display_name(self) -> str:
        return self.from_name or self.subject or "Untitled"

    def with_read_at(self, moment: datetime) -> Message:
        """Return a copy marked as read at ``moment``."""
        return self.model_copy(update={"read_at": moment})


class PageResult(BaseModel):
    """One page of a mailbox listing plus the mailbox-wide total."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    total: int = Field(default=0, ge=0, description="Number of messages in the mailbox")
    messages: list[Message] = Field(
        default_factory=list, alias="list", description="Messages on this page, newest first"
    )

    def find(self, message_id: str) -> Message | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def contains(self, message_id: str) -> bool:
        return self.find(message_id) is not None

    def with_read(self, message_id: str, moment: datetime) -> PageResult:
        """Return a copy in which ``message_id`` is marked as read.

        Messages that are already read keep their original timestamp.
        """

        patched = [
            m.with_read_at(moment) if m.id == message_id and not m.is_read else m
            for m in self.messages
        ]
        return self.model_copy(update={"messages": patched})
