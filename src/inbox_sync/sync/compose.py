"""Draft staging and sending."""

from __future__ import annotations

from typing import Any

import pydantic
import structlog

from inbox_sync.exceptions import MailboxAPIError, OperationInProgressError, ValidationError
from inbox_sync.mailbox import MailboxService
from inbox_sync.models import Draft

logger = structlog.get_logger()

_EDITABLE_FIELDS = frozenset({"to", "subject", "html"})


class ComposeStaging:
    """Holds the draft while the composer is open and submits it.

    Sending never touches the inbox listing: a sent message is not expected
    to show up in the mailbox being viewed.
    """

    def __init__(self, service: MailboxService) -> None:
        self._service = service
        self.draft: Draft | None = None
        self._sending = False

    @property
    def is_open(self) -> bool:
        return self.draft is not None

    @property
    def is_sending(self) -> bool:
        return self._sending

    def open(self, mailbox: str | None) -> Draft:
        """Start an empty draft sent from ``mailbox``.

        Raises:
            ValidationError: If no mailbox is selected.
        """

        if not mailbox:
            raise ValidationError("no email address selected")
        self.draft = Draft(from_address=mailbox)
        logger.debug("draft_opened", sender=mailbox)
        return self.draft

    def update(self, **fields: Any) -> Draft:
        """Merge ``fields`` into the open draft.

        Only ``to``, ``subject`` and ``html`` can be changed.

        Raises:
            ValidationError: If no draft is open, a field is not editable or a
                value is not a string.
        """

        draft = self._require_draft()
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"cannot edit draft fields: {', '.join(sorted(unknown))}")

        try:
            self.draft = Draft.model_validate({**draft.model_dump(), **fields})
        except pydantic.ValidationError as exc:
            fields_in_error = sorted({str(error["loc"][0]) for error in exc.errors() if error["loc"]})
            raise ValidationError(f"invalid draft fields: {', '.join(fields_in_error)}") from exc
        return self.draft

    def cancel(self) -> None:
        if self.draft is not None:
            logger.debug("draft_discarded", sender=self.draft.from_address)
        self.draft = None

    async def send(self) -> None:
        """Submit the open draft and close the composer on success.

        The draft stays open, unchanged, when validation or the request fails.

        Raises:
            ValidationError: If no draft is open or a required field is empty.
                Nothing is sent.
            OperationInProgressError: If a send is already pending.
            MailboxAPIError: If the service refuses the message.
        """

        draft = self._require_draft()
        missing = draft.missing_fields()
        if missing:
            raise ValidationError(f"please fill in all fields: {', '.join(missing)}")
        if self._sending:
            raise OperationInProgressError("a message is already being sent")

        self._sending = True
        try:
            await self._service.send_message(draft)
        except MailboxAPIError as exc:
            logger.warning("send_failed", sender=draft.from_address, error=str(exc))
            raise
        finally:
            self._sending = False

        logger.info("message_sent", sender=draft.from_address, recipient=draft.to)
        # A draft opened or edited while sending is kept.
        if self.draft is draft:
            self.draft = None

    def _require_draft(self) -> Draft:
        if self.draft is None:
            raise ValidationError("no draft is open")
        return self.draft
