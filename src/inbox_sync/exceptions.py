"""Custom exceptions for Inbox Sync."""


class InboxSyncError(Exception):
    """Base exception for all Inbox Sync errors."""


class ValidationError(InboxSyncError):
    """Exception raised when a local check rejects an operation.

    Validation errors never reach the mailbox service and leave state unchanged.
    """


class OperationInProgressError(InboxSyncError):
    """Exception raised when an operation is started while the same one is pending."""


class MailboxAPIError(InboxSyncError):
    """Exception raised for mailbox service related errors."""


class NetworkError(MailboxAPIError):
    """Exception raised when the mailbox service cannot be reached."""


class ServerError(MailboxAPIError):
    """Exception raised when the mailbox service answers with an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(ServerError):
    """Exception raised when the requested mailbox does not exist."""
