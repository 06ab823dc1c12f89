"""Inbox state synchronization.

This package contains the components that keep the displayed inbox in line
with the mailbox service: fetch coordination, pagination, selection, bulk
actions, compose staging and the session tying them together.
"""

from .bulk import BulkActionExecutor, BulkReadResult
from .compose import ComposeStaging
from .fetch import FetchCoordinator, TaggedResult
from .pagination import Pagination, page_count
from .selection import SelectionReconciler, SelectionState
from .session import InboxSession, InboxView

__all__ = [
    "BulkActionExecutor",
    "BulkReadResult",
    "ComposeStaging",
    "FetchCoordinator",
    "InboxSession",
    "InboxView",
    "Pagination",
    "SelectionReconciler",
    "SelectionState",
    "TaggedResult",
    "page_count",
]
