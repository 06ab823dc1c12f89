"""Access to the remote mailbox service."""

from .client import MailboxClient
from .protocol import MailboxService

__all__ = ["MailboxClient", "MailboxService"]
