"""Stateless helpers for rendering messages."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from bs4 import BeautifulSoup

from inbox_sync.models import Message

_WHITESPACE = re.compile(r"\s+")
_SKIPPED_TAGS = ["script", "style", "head", "title"]


def html_to_text(html: str) -> str:
    """Strip markup from ``html`` and collapse whitespace."""

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_SKIPPED_TAGS):
        tag.decompose()
    return _WHITESPACE.sub(" ", soup.get_text(" ", strip=True))


def preview(message: Message, limit: int = 80) -> str:
    """Short plain-text excerpt of a message body."""

    if message.html:
        text = html_to_text(message.html)
    else:
        text = _WHITESPACE.sub(" ", message.text or "").strip()
    if not text:
        return "No content"
    if len(text) <= limit:
        return text
    return text[: max(limit - 3, 0)].rstrip() + "..."


def time_ago(moment: datetime | None, now: datetime | None = None) -> str:
    """Relative age of ``moment`` such as ``5m ago``.

    Naive datetimes are treated as UTC. Anything older than a week is shown
    as an ISO date.
    """

    if moment is None:
        return ""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 7 * 86400:
        return f"{seconds // 86400}d ago"
    return moment.date().isoformat()
