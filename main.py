"""Command-line interface for the volunteer sign-up service."""

from __future__ import annotations
import argparse
import dataclasses
import logging
import sys
from typing import Sequence

from signup.config import load_event_config, resolve_config_path
from signup.records import RecordStore, SQLiteRecordStore
from signup.settings import Settings, build_record_store, load_settings
from signup.store import SignupStore

logger = logging.getLogger("signup.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Volunteer sign-up utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Create the local SQLite record table")

    serve_parser = subparsers.add_parser("serve", help="Start the sign-up web service")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the web service")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the web service (default: 8000)",
    )
    serve_parser.add_argument(
        "--memory",
        action="store_true",
        help="Keep sign-ups in memory only (development)",
    )

    subparsers.add_parser("list", help="Print the current sign-ups for both days")

    remove_parser = subparsers.add_parser("remove", help="Remove a single sign-up")
    remove_parser.add_argument("day", help="Event day key, e.g. thursday")
    remove_parser.add_argument("entry_id", help="Identifier of the entry to remove")

    clear_parser = subparsers.add_parser("clear", help="Remove every sign-up for both days")
    clear_parser.add_argument(
        "--yes",
        action="store_true",
        help="Do not ask for confirmation",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "list", "remove", "clear", "init-db"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _load_store(records: RecordStore, settings: Settings) -> SignupStore:
    store = SignupStore(records, capacity=settings.capacity)
    store.initialize()
    return store


def _serve(*, settings: Settings, host: str, port: int) -> None:
    from signup.application import create_app
    import uvicorn

    logger.info("Starting sign-up service on http://%s:%s (%s backend)", host, port, settings.backend)
    app = create_app(settings=settings)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _list_signups(store: SignupStore, settings: Settings) -> None:
    event = load_event_config(resolve_config_path(settings.event_config))
    for slot in event.slots():
        entries = store.entries(slot.key)
        print(f"{slot.heading}  ({len(entries)}/{store.capacity})")
        if not entries:
            print("  No signups yet")
        for index, entry in enumerate(entries, start=1):
            print(f"  {index:>2}. {entry.name:<32} {entry.signed_up_at:<26} id={entry.id}")
        print()


def _clear_signups(store: SignupStore, *, assume_yes: bool) -> None:
    if not assume_yes:
        answer = input("Clear ALL signups? This cannot be undone. [y/N]: ").strip().lower()
        if answer not in {"y", "yes"}:
            print("Nothing was cleared.")
            return
    store.clear_all()
    print("All signups cleared.")


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    try:
        settings = load_settings()
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    if args.command == "serve":
        if args.memory:
            settings = dataclasses.replace(settings, backend="memory")
        _serve(settings=settings, host=args.host, port=args.port)
        return

    if args.command == "init-db":
        records = SQLiteRecordStore(settings.database_path, settings.record_key)
        records.initialize()
        logger.info("Record table initialised at %s", settings.database_path)
        print("Database initialisation complete.")
        return

    store = _load_store(build_record_store(settings), settings)
    if args.command == "list":
        _list_signups(store, settings)
    elif args.command == "remove":
        try:
            removed = store.remove_volunteer(args.day, args.entry_id)
        except ValueError as exc:
            raise SystemExit(str(exc)) from exc
        print("Entry removed." if removed else "No entry with that id was found.")
    elif args.command == "clear":
        _clear_signups(store, assume_yes=args.yes)


if __name__ == "__main__":
    main()
