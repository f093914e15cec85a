#!/usr/bin/env python3
"""Harmonik draft maintenance CLI."""
from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone

from harmonik.config import ConfigError, configure_logging, load_settings
from harmonik.drafts import DraftMetadata, DraftStore, build_storage


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="harmonik-drafts",
        description="Inspect and clean up saved form drafts.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser(
        "list",
        help="List live drafts, newest first.",
    )
    list_parser.add_argument(
        "--user",
        help="Only show drafts owned by this user ID.",
    )

    show_parser = subparsers.add_parser(
        "show",
        help="Print the payload of one draft.",
    )
    show_parser.add_argument("key", help="Form draft key (without the namespace prefix).")
    show_parser.add_argument(
        "--user",
        help="Load the draft as this user ID.",
    )

    delete_parser = subparsers.add_parser(
        "delete",
        help="Delete one draft.",
    )
    delete_parser.add_argument("key", help="Form draft key (without the namespace prefix).")

    subparsers.add_parser(
        "cleanup",
        help="Remove expired and unreadable drafts.",
    )

    return parser


def _format_ms(value: int) -> str:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def _format_metadata(metadata: DraftMetadata) -> str:
    owner = metadata.user_id or "-"
    return (
        f"saved {_format_ms(metadata.timestamp)} | "
        f"expires {_format_ms(metadata.expires_at)} | user {owner}"
    )


def _cmd_list(store: DraftStore, user_id: str | None) -> int:
    drafts = store.list_drafts(user_id)
    if not drafts:
        print("No drafts saved.")
        return 0

    for key, metadata in drafts:
        print(f"- {key}: {_format_metadata(metadata)}")
    return 0


def _cmd_show(store: DraftStore, key: str, user_id: str | None) -> int:
    result = store.read(key, user_id)
    if not result.ok:
        print(f"Draft {key} not available ({result.miss.value}).", file=sys.stderr)
        return 1

    print(_format_metadata(result.metadata))
    print(json.dumps(result.value, indent=2, ensure_ascii=False))
    return 0


def _cmd_delete(store: DraftStore, key: str) -> int:
    store.delete(key)
    print(f"Deleted draft {key}.")
    return 0


def _cmd_cleanup(store: DraftStore) -> int:
    removed = store.cleanup_expired()
    print(f"Removed {removed} expired draft(s).")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level)
    store = DraftStore(build_storage(settings))

    if args.command == "list":
        return _cmd_list(store, user_id=args.user)
    if args.command == "show":
        return _cmd_show(store, key=args.key, user_id=args.user)
    if args.command == "delete":
        return _cmd_delete(store, key=args.key)
    if args.command == "cleanup":
        return _cmd_cleanup(store)

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
