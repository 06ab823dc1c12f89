"""Inbox Sync - keeps a displayed inbox consistent with a remote mailbox.

This package provides the state engine behind an inbox view: fetching and
polling pages of a mailbox, keeping the open message and the bulk selection
valid while the listing changes, optimistic read marking and message sending.
"""

__version__ = "0.1.0"
__author__ = "Trickl"

from inbox_sync.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__", "__author__"]
