"""Utility functions for Inbox Sync."""

from .text import html_to_text, preview, time_ago


def error_message(exc: BaseException, fallback: str) -> str:
    """Text to show the user for ``exc``, or ``fallback`` when it has none."""

    text = str(exc).strip()
    return text or fallback


__all__ = ["error_message", "html_to_text", "preview", "time_ago"]
