"""Bulk mark-read of the ticked messages."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from inbox_sync.exceptions import MailboxAPIError, OperationInProgressError, ValidationError
from inbox_sync.mailbox import MailboxService

logger = structlog.get_logger()


@dataclass(frozen=True)
class BulkReadResult:
    """Outcome of one bulk mark-read request."""

    submitted: frozenset[str]
    failed: frozenset[str] = frozenset()

    @property
    def succeeded(self) -> frozenset[str]:
        return self.submitted - self.failed

    @property
    def partial(self) -> bool:
        return bool(self.failed)


class BulkActionExecutor:
    """Runs bulk mark-read requests one at a time."""

    def __init__(self, service: MailboxService) -> None:
        self._service = service
        self._pending = False

    @property
    def is_pending(self) -> bool:
        return self._pending

    async def mark_read(self, message_ids: Iterable[str]) -> BulkReadResult:
        """Mark ``message_ids`` as read with a single request.

        Args:
            message_ids: Ids ticked for the bulk action.

        Returns:
            Which ids were submitted and which the service reported as failed.

        Raises:
            ValidationError: If no ids are given. Nothing is sent.
            OperationInProgressError: If another bulk request is still pending.
            MailboxAPIError: If the request fails.
        """

        ids = sorted(set(message_ids))
        if not ids:
            raise ValidationError("no messages selected")
        if self._pending:
            raise OperationInProgressError("a bulk action is already in progress")

        self._pending = True
        logger.info("bulk_mark_read_started", count=len(ids))
        try:
            ack = await self._service.mark_read_bulk(ids)
        except MailboxAPIError as exc:
            logger.warning("bulk_mark_read_failed", count=len(ids), error=str(exc))
            raise
        finally:
            self._pending = False

        submitted = frozenset(ids)
        result = BulkReadResult(submitted=submitted, failed=frozenset(ack.failed_ids) & submitted)
        if result.partial:
            logger.warning(
                "bulk_mark_read_partial",
                count=len(ids),
                failed=len(result.failed),
            )
        else:
            logger.info("bulk_mark_read_completed", count=len(ids))
        return result
