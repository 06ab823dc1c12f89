"""Data models for Inbox Sync.

This module contains Pydantic models for data validation and serialization.
"""

from pydantic import BaseModel, ConfigDict, Field

from inbox_sync.models.message import Message, PageKey, PageResult

REQUIRED_DRAFT_FIELDS = ("to", "subject", "html")


class Draft(BaseModel):
    """Outgoing message being composed for the selected mailbox."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    from_address: str = Field(alias="from", description="Sending mailbox, fixed when the draft opens")
    to: str = Field(default="", description="Recipient email address")
    subject: str = Field(default="", description="Subject line")
    html: str = Field(default="", description="HTML body")

    def missing_fields(self) -> list[str]:
        """Names of required fields that are empty or whitespace only."""
        return [name for name in REQUIRED_DRAFT_FIELDS if not getattr(self, name).strip()]

    def envelope(self) -> dict[str, str]:
        """Payload accepted by the send endpoint."""
        return self.model_dump(by_alias=True)


class BulkReadAck(BaseModel):
    """Acknowledgement of a bulk mark-read request."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    failed_ids: list[str] = Field(
        default_factory=list,
        alias="failedIds",
        description="Ids the service could not update; empty on a full ack",
    )


__all__ = [
    "BulkReadAck",
    "Draft",
    "Message",
    "PageKey",
    "PageResult",
    "REQUIRED_DRAFT_FIELDS",
]
