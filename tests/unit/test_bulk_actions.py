"""Unit tests for the bulk action executor."""

import asyncio

import pytest

from inbox_sync.exceptions import OperationInProgressError, ServerError, ValidationError
from inbox_sync.sync.bulk import BulkActionExecutor


class TestBulkActionExecutor:
    """Test suite for BulkActionExecutor class."""

    @pytest.mark.asyncio
    async def test_empty_selection_never_calls_service(self, fake_service) -> None:
        """Test that nothing is sent for an empty selection."""
        executor = BulkActionExecutor(fake_service)

        with pytest.raises(ValidationError, match="no messages selected"):
            await executor.mark_read(frozenset())

        assert fake_service.bulk_calls == []

    @pytest.mark.asyncio
    async def test_single_batched_request(self, fake_service) -> None:
        """Test that all ids go out in one request."""
        executor = BulkActionExecutor(fake_service)

        result = await executor.mark_read({"a2", "a0", "a1"})

        assert fake_service.bulk_calls == [["a0", "a1", "a2"]]
        assert result.succeeded == frozenset({"a0", "a1", "a2"})
        assert result.partial is False
        assert executor.is_pending is False

    @pytest.mark.asyncio
    async def test_partial_acknowledgement(self, fake_service) -> None:
        """Test that failed ids are reported separately."""
        fake_service.bulk_failed_ids = ["a1"]
        executor = BulkActionExecutor(fake_service)

        result = await executor.mark_read({"a0", "a1"})

        assert result.partial is True
        assert result.failed == frozenset({"a1"})
        assert result.succeeded == frozenset({"a0"})

    @pytest.mark.asyncio
    async def test_failure_propagates(self, fake_service) -> None:
        """Test that a service error reaches the caller and frees the executor."""
        fake_service.bulk_error = ServerError("Failed to mark emails as read", 500)
        executor = BulkActionExecutor(fake_service)

        with pytest.raises(ServerError, match="Failed to mark emails as read"):
            await executor.mark_read({"a0"})

        assert executor.is_pending is False

    @pytest.mark.asyncio
    async def test_second_action_rejected_while_pending(self, fake_service) -> None:
        """Test that bulk actions never interleave."""
        fake_service.bulk_gate = asyncio.Event()
        executor = BulkActionExecutor(fake_service)

        first = asyncio.create_task(executor.mark_read({"a0"}))
        await asyncio.sleep(0)

        with pytest.raises(OperationInProgressError):
            await executor.mark_read({"a1"})

        fake_service.bulk_gate.set()
        await first

        assert fake_service.bulk_calls == [["a0"]]
