"""Command-line interface for Inbox Sync.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import structlog

from inbox_sync import __version__
from inbox_sync.config import Settings, get_settings
from inbox_sync.exceptions import InboxSyncError
from inbox_sync.mailbox import MailboxClient
from inbox_sync.models import PageKey, PageResult
from inbox_sync.sync import ComposeStaging, FetchCoordinator, InboxSession, InboxView, page_count
from inbox_sync.utils import preview, time_ago

logger = structlog.get_logger()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="inbox-sync", description="Inbox Sync")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="Show one page of a mailbox")
    list_parser.add_argument("mailbox", help="Email address of the mailbox")
    list_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    list_parser.add_argument(
        "--size",
        type=int,
        default=None,
        help="Messages per page (default: settings page_size)",
    )

    watch_parser = subparsers.add_parser("watch", help="Poll a mailbox and print changes")
    watch_parser.add_argument("mailbox", help="Email address of the mailbox")
    watch_parser.add_argument(
        "--size",
        type=int,
        default=None,
        help="Messages per page (default: settings page_size)",
    )
    watch_parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until interrupted)",
    )

    read_parser = subparsers.add_parser("read", help="Mark messages as read")
    read_parser.add_argument("mailbox", help="Email address of the mailbox")
    read_parser.add_argument("ids", nargs="+", help="Message ids to mark as read")

    send_parser = subparsers.add_parser("send", help="Send a message from a mailbox")
    send_parser.add_argument("mailbox", help="Sending email address")
    send_parser.add_argument("--to", required=True, help="Recipient address")
    send_parser.add_argument("--subject", required=True, help="Subject line")
    send_parser.add_argument("--html", required=True, help="HTML body")

    return parser


def _format_page(result: PageResult, page: int, page_size: int) -> list[str]:
    if not result.messages:
        return ["Waiting for emails..."]

    lines = []
    for m in result.messages:
        marker = " " if m.is_read else "*"
        lines.append(
            f"{marker} {m.id}\t{time_ago(m.received_at)}\t{m.display_name}\t{m.subject}\t{preview(m, 60)}"
        )

    pages = page_count(result.total, page_size)
    if pages > 1:
        lines.append(f"-- page {page}/{pages}, {result.total} messages --")
    else:
        lines.append(f"-- {result.total} messages --")
    return lines


def _print_view(view: InboxView) -> None:
    if view.error:
        print(f"! {view.error}", file=sys.stderr)
    if view.is_loading:
        return
    result = PageResult(total=view.total, messages=list(view.messages))
    print("\n".join(_format_page(result, view.page, view.page_size)))


def _with_page_size(settings: Settings, size: int | None) -> Settings:
    if size is None:
        return settings
    return settings.model_copy(update={"page_size": size})


async def _cmd_list(args: argparse.Namespace) -> int:
    settings = get_settings()
    page_size: int = args.size or settings.page_size

    async with MailboxClient(settings) as client:
        fetcher = FetchCoordinator(client, dedup_interval=settings.dedup_interval)
        result = await fetcher.fetch_page(PageKey(args.mailbox, args.page, page_size))

    print(f"INBOX {args.mailbox}")
    print("\n".join(_format_page(result, args.page, page_size)))
    return 0


async def _cmd_watch(args: argparse.Namespace) -> int:
    settings = _with_page_size(get_settings(), args.size)
    last_seen: tuple[tuple[str, bool], ...] | None = None

    def on_change(view: InboxView) -> None:
        nonlocal last_seen
        if view.is_loading:
            return
        if view.error:
            _print_view(view)
            return
        fingerprint = tuple((m.id, m.is_read) for m in view.messages)
        if fingerprint != last_seen:
            last_seen = fingerprint
            _print_view(view)

    async with MailboxClient(settings) as client, InboxSession(client, settings) as session:
        session.subscribe(on_change)
        await session.select_mailbox(args.mailbox)
        await session.set_auto_refresh(True)
        logger.info("watch_started", mailbox=args.mailbox, interval=settings.refresh_interval)

        if args.duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(args.duration)
    return 0


async def _cmd_read(args: argparse.Namespace) -> int:
    settings = get_settings()

    async with MailboxClient(settings) as client, InboxSession(client, settings) as session:
        await session.select_mailbox(args.mailbox)
        for message_id in args.ids:
            if message_id not in session.selection.bulk_selected_ids:
                session.toggle_bulk(message_id)
        outcome = await session.mark_selected_read()

    print(f"Marked {len(outcome.succeeded)} messages as read")
    if outcome.partial:
        print(f"Failed: {', '.join(sorted(outcome.failed))}", file=sys.stderr)
        return 1
    return 0


async def _cmd_send(args: argparse.Namespace) -> int:
    settings = get_settings()

    async with MailboxClient(settings) as client:
        staging = ComposeStaging(client)
        staging.open(args.mailbox)
        staging.update(to=args.to, subject=args.subject, html=args.html)
        await staging.send()

    print("Email sent successfully")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the Inbox Sync CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()

    # Configure logging; keep stdout for command output.
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )

    logger.info("inbox_sync_started", version=__version__, debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    commands = {
        "list": _cmd_list,
        "watch": _cmd_watch,
        "read": _cmd_read,
        "send": _cmd_send,
    }
    command = commands.get(parsed.command)
    if command is None:
        logger.error("unknown_command", command=parsed.command)
        return 2

    try:
        return asyncio.run(command(parsed))
    except InboxSyncError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
