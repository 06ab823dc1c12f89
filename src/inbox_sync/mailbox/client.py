"""HTTP client for the remote mailbox service.

Notes:
    All calls go through a single ``httpx.AsyncClient``. Transport failures
    (connection refused, timeouts) become ``NetworkError``; any non-2xx answer
    becomes ``ServerError`` carrying the human-readable text from the body.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any

import httpx
import structlog

from inbox_sync.config import Settings
from inbox_sync.exceptions import NetworkError, NotFoundError, ServerError
from inbox_sync.models import BulkReadAck, Draft, PageResult

logger = structlog.get_logger()

INBOX_PATH = "/api/email/inbox"
READ_PATH = "/api/email/read"
SEND_PATH = "/api/email/send"


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value

    text = response.text.strip()
    if text:
        return text
    return response.reason_phrase or f"HTTP {response.status_code}"


class MailboxClient:
    """Mailbox service client over HTTP.

    The client can wrap an existing ``httpx.AsyncClient`` (which it will then
    not close), or build its own from settings.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the mailbox client.

        Args:
            settings: Application settings. If None, uses default settings.
            http_client: Preconfigured HTTP client. If None, one is created
                from ``api_base_url`` and ``api_timeout``.
        """
        from inbox_sync.config import get_settings

        self.settings = settings or get_settings()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.api_timeout,
        )
        logger.info("mailbox_client_initialized", base_url=str(self._http.base_url))

    async def __aenter__(self) -> MailboxClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def list_messages(self, mailbox: str, page: int, page_size: int) -> PageResult:
        """List one page of messages for a mailbox.

        Args:
            mailbox: Email address of the mailbox.
            page: 1-based page number.
            page_size: Number of messages per page.

        Returns:
            The page plus the mailbox total.

        Raises:
            NetworkError: If the service cannot be reached.
            NotFoundError: If the mailbox does not exist.
            ServerError: If the request fails or the response is malformed.
        """

        logger.info("listing_messages", mailbox=mailbox, page=page, page_size=page_size)

        response = await self._request(
            "GET",
            INBOX_PATH,
            params={"emailAddress": mailbox, "page": page, "size": page_size},
        )
        try:
            return PageResult.model_validate(response.json())
        except ValueError as exc:
            logger.error("inbox_response_malformed", mailbox=mailbox, error=str(exc))
            raise ServerError(
                "Mailbox service returned an unreadable inbox listing",
                response.status_code,
            ) from exc

    async def mark_read(self, message_id: str) -> None:
        """Mark one message as read.

        Raises:
            MailboxAPIError: If the request fails.
        """

        logger.info("marking_message_read", message_id=message_id)
        await self._request("POST", READ_PATH, json={"emailId": message_id})

    async def mark_read_bulk(self, message_ids: list[str]) -> BulkReadAck:
        """Mark several messages as read in a single request.

        Returns:
            The acknowledgement; ``failed_ids`` is empty unless the service
            reported a partial success.

        Raises:
            MailboxAPIError: If the request fails.
        """

        logger.info("marking_messages_read", count=len(message_ids))
        response = await self._request("PUT", READ_PATH, json={"emailIds": message_ids})

        try:
            body = response.json()
        except ValueError:
            return BulkReadAck()
        if not isinstance(body, dict):
            return BulkReadAck()
        return BulkReadAck.model_validate(body)

    async def send_message(self, draft: Draft) -> None:
        """Send a composed message.

        Raises:
            MailboxAPIError: If the service refuses the message.
        """

        logger.info("sending_message", sender=draft.from_address, recipient=draft.to)
        await self._request("POST", SEND_PATH, json=draft.envelope())

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(method, path, params=params, json=json)
        except httpx.TransportError as exc:
            logger.exception("mailbox_request_failed", method=method, path=path, error=str(exc))
            raise NetworkError(str(exc) or "Unable to reach the mailbox service") from exc

        if response.is_success:
            return response

        message = _error_text(response)
        logger.error(
            "mailbox_request_rejected",
            method=method,
            path=path,
            status_code=response.status_code,
            error=message,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError(message, response.status_code)
        raise ServerError(message, response.status_code)
