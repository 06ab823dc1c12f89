"""Selection state and its transitions.

The state is an immutable value and every transition is a pure function
returning a new one. ``SelectionReconciler`` holds the current value for a
session and logs the transitions that drop a selection.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

import structlog

from inbox_sync.models import PageResult

logger = structlog.get_logger()


@dataclass(frozen=True)
class SelectionState:
    """Which message is open and which ones are ticked for a bulk action.

    ``mailbox`` records the mailbox the selection belongs to, so results from
    another mailbox never touch it.
    """

    mailbox: str | None = None
    selected_message_id: str | None = None
    bulk_selected_ids: frozenset[str] = frozenset()


def switch_mailbox(
    state: SelectionState,
    mailbox: str | None,
    *,
    clear_bulk: bool = True,
) -> SelectionState:
    bulk = frozenset() if clear_bulk else state.bulk_selected_ids
    return SelectionState(mailbox=mailbox, selected_message_id=None, bulk_selected_ids=bulk)


def select_message(state: SelectionState, message_id: str | None) -> SelectionState:
    return replace(state, selected_message_id=message_id)


def reconcile(state: SelectionState, mailbox: str, result: PageResult) -> SelectionState:
    """Drop the open message if ``result`` no longer lists it.

    Results for a mailbox other than the one the selection belongs to are
    ignored.
    """

    if mailbox != state.mailbox or state.selected_message_id is None:
        return state
    if result.contains(state.selected_message_id):
        return state
    return replace(state, selected_message_id=None)


def toggle_bulk(state: SelectionState, message_id: str) -> SelectionState:
    return replace(state, bulk_selected_ids=state.bulk_selected_ids ^ {message_id})


def clear_bulk(state: SelectionState) -> SelectionState:
    return replace(state, bulk_selected_ids=frozenset())


def discard_bulk(state: SelectionState, message_ids: Iterable[str]) -> SelectionState:
    return replace(state, bulk_selected_ids=state.bulk_selected_ids - frozenset(message_ids))


class SelectionReconciler:
    """Owner of the session's selection state."""

    def __init__(self, *, clear_bulk_on_mailbox_switch: bool = True) -> None:
        self.clear_bulk_on_mailbox_switch = clear_bulk_on_mailbox_switch
        self.state = SelectionState()

    @property
    def mailbox(self) -> str | None:
        return self.state.mailbox

    @property
    def selected_message_id(self) -> str | None:
        return self.state.selected_message_id

    @property
    def bulk_selected_ids(self) -> frozenset[str]:
        return self.state.bulk_selected_ids

    def switch_mailbox(self, mailbox: str | None) -> None:
        self.state = switch_mailbox(
            self.state, mailbox, clear_bulk=self.clear_bulk_on_mailbox_switch
        )

    def select(self, message_id: str | None) -> None:
        self.state = select_message(self.state, message_id)

    def reconcile(self, mailbox: str, result: PageResult) -> None:
        previous = self.state.selected_message_id
        self.state = reconcile(self.state, mailbox, result)
        if previous is not None and self.state.selected_message_id is None:
            logger.info("selected_message_gone", mailbox=mailbox, message_id=previous)

    def toggle_bulk(self, message_id: str) -> None:
        self.state = toggle_bulk(self.state, message_id)

    def clear_bulk(self) -> None:
        self.state = clear_bulk(self.state)

    def discard_bulk(self, message_ids: Iterable[str]) -> None:
        self.state = discard_bulk(self.state, message_ids)
