#!/usr/bin/env python3
"""Command-line interface for pointsync."""

import argparse
import asyncio
import sys
from datetime import date
from pathlib import Path
from typing import Any

from loguru import logger

from pointsync.app import PointSyncApp, build_app
from pointsync.config import (
    create_default_config,
    get_cache_dir,
    get_config_path,
    get_remote_settings,
    load_config,
    save_json_config,
)
from pointsync.errors import AuthError
from pointsync.models import CARD_TYPES, CATEGORIES, Transaction
from pointsync.points import CARDS, category_breakdown, milestone_progress
from pointsync.transfer import parse_import
from pointsync.utils import parse_amount, parse_date

# How long to wait for the first remote snapshot before using local data
SYNC_WAIT_SECONDS = 30.0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pointsync",
        description="Track credit card spend and reward points, synced across devices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pointsync add --card metal --amount 2400 --category dining
  pointsync add --card travel --amount 15000 --category international -d "Flight"
  pointsync summary
  pointsync login
  pointsync export ~/Downloads/

Cards:
  metal  - Charge Metal (1 pt / 40, 3x international)
  travel - Platinum Travel (1 pt / 50, milestones at 1.9L and 4L)
        """,
    )
    parser.add_argument("--config", type=Path, help="Path to config.json file")
    parser.add_argument("--api-key", help="Firebase API key (or configure in config.json)")
    parser.add_argument("--project-id", help="Firebase project id (or configure in config.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Record a transaction")
    add.add_argument("--card", choices=CARD_TYPES, required=True)
    add.add_argument("--amount", required=True, help="Amount in rupees, e.g. 1,250.50")
    add.add_argument("--category", choices=CATEGORIES, default="other")
    add.add_argument("--date", help="Transaction date (default: today)")
    add.add_argument("-d", "--description", default="")

    list_cmd = commands.add_parser("list", help="List transactions")
    list_cmd.add_argument("--card", choices=CARD_TYPES, help="Only show this card")

    summary = commands.add_parser("summary", help="Show points per card")
    summary.add_argument("--card", choices=CARD_TYPES, help="Category breakdown for this card")

    delete = commands.add_parser("delete", help="Delete a transaction")
    delete.add_argument("id", help="Transaction id (as shown by 'list')")

    clear = commands.add_parser("clear", help="Delete all transactions")
    clear.add_argument("--yes", action="store_true", help="Don't ask for confirmation")

    export = commands.add_parser("export", help="Export transactions as JSON")
    export.add_argument("directory", nargs="?", type=Path, default=Path.cwd())

    import_cmd = commands.add_parser("import", help="Import transactions from JSON")
    import_cmd.add_argument("file", type=Path)

    commands.add_parser("login", help="Sign in to sync across devices")
    commands.add_parser("logout", help="Sign out")
    commands.add_parser("watch", help="Print live updates until interrupted")
    init = commands.add_parser("init", help="Write a default config file")
    init.add_argument("--force", action="store_true", help="Overwrite an existing config")
    commands.add_parser("show-config", help="Show current configuration")

    return parser


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def format_amount(amount: Any) -> str:
    """Format a rupee amount for display."""
    return f"₹{amount:,}"


def print_transactions(transactions: list[Transaction]) -> None:
    """Print transactions as a table."""
    if not transactions:
        print("No transactions yet.")
        return

    for tx in transactions:
        card_name = CARDS[tx.card].name
        desc = tx.description or "-"
        print(f"{tx.date}  {card_name:<16}  {tx.category:<13}  {desc[:30]:<30}  "
              f"{format_amount(tx.amount):>12}  {tx.points:>6} pts  [{tx.id}]")


def print_summary(app: PointSyncApp, card: str | None) -> None:
    """Print per-card points and a category breakdown."""
    transactions = list(app.controller.transactions)

    for name, summary in app.controller.summary().items():
        rule = CARDS[name]
        print(f"{rule.name}:")
        print(f"  Spend:  {format_amount(summary.spend)} ({summary.count} transactions)")
        print(f"  Points: {summary.total_points:,}", end="")
        if summary.milestone_bonus:
            print(f" (incl. {summary.milestone_bonus:,} milestone bonus)", end="")
        print()
        if rule.milestones:
            progress = milestone_progress(name, transactions)
            print(f"  Milestone progress: {progress:.1f}%")

    print("\nBy category:" if card is None else f"\nBy category ({CARDS[card].name}):")
    totals = category_breakdown(transactions, card=card)
    if not totals:
        print("  No data to display")
    for total in totals:
        print(f"  {total.category:<13}  {format_amount(total.amount):>12}  {total.points:>6,} pts")


def show_config(config: dict[str, Any] | None, args: argparse.Namespace) -> None:
    """Display the current configuration."""
    settings = get_remote_settings(config, api_key=args.api_key, project_id=args.project_id)
    print(f"Local cache: {get_cache_dir(config)}")
    if settings is None:
        print("Remote sync: Not configured (offline mode)")
        return

    masked = settings.api_key[:8] + "..." if len(settings.api_key) > 8 else "***"
    print(f"Remote sync: Firebase project {settings.project_id}")
    print(f"  API key: {masked}")
    print(f"  Poll interval: {settings.poll_interval}s")


def init_config(force: bool) -> int:
    """Write a default config to the XDG config location."""
    path = get_config_path()
    if path.exists() and not force:
        print(f"Error: {path} already exists (use --force to overwrite)", file=sys.stderr)
        return 1

    save_json_config(create_default_config(), path)
    print(f"Wrote default config to {path}")
    print("Set remote.api_key and remote.project_id to enable sync.")
    return 0


async def run_command(args: argparse.Namespace, config: dict[str, Any] | None) -> int:
    """Run one subcommand against a freshly built app."""
    ready = asyncio.Event()

    def on_loading_change(loading: bool) -> None:
        if not loading:
            ready.set()

    def on_sync_status_change(state: str, message: str) -> None:
        if state == "error":
            print(f"Sync error: {message}", file=sys.stderr)

    watching = args.command == "watch"

    def on_display_update(transactions: list[Transaction]) -> None:
        if watching:
            print(f"\n{len(transactions)} transactions:")
            print_transactions(transactions)

    app = build_app(
        config,
        api_key=args.api_key,
        project_id=args.project_id,
        on_display_update=on_display_update,
        on_sync_status_change=on_sync_status_change,
        on_loading_change=on_loading_change,
    )
    controller = app.controller

    await app.session.restore()
    controller.start()
    try:
        if controller.is_subscribed:
            try:
                await asyncio.wait_for(ready.wait(), timeout=SYNC_WAIT_SECONDS)
            except asyncio.TimeoutError:
                print("Warning: remote sync timed out, showing local data", file=sys.stderr)
        return await dispatch(args, app)
    finally:
        controller.stop()


async def dispatch(args: argparse.Namespace, app: PointSyncApp) -> int:
    """Execute the parsed subcommand."""
    controller = app.controller

    if args.command == "add":
        amount = parse_amount(args.amount)
        if amount is None or amount < 0:
            print(f"Error: invalid amount {args.amount!r}", file=sys.stderr)
            return 1
        tx_date = parse_date(args.date) if args.date else date.today()
        if tx_date is None:
            print(f"Error: invalid date {args.date!r}", file=sys.stderr)
            return 1

        tx = await controller.add_transaction(
            args.card, amount, args.category, tx_date, args.description
        )
        print(f"Added {format_amount(tx.amount)} on {CARDS[tx.card].name}: "
              f"{tx.points:,} points [{tx.id}]")

    elif args.command == "list":
        transactions = [
            tx for tx in controller.transactions if args.card is None or tx.card == args.card
        ]
        print_transactions(transactions)

    elif args.command == "summary":
        print_summary(app, args.card)

    elif args.command == "delete":
        if not any(tx.id == args.id for tx in controller.transactions):
            print(f"Error: no transaction with id {args.id}", file=sys.stderr)
            return 1
        await controller.delete_transaction(args.id)
        print(f"Deleted {args.id}")

    elif args.command == "clear":
        if not args.yes:
            answer = input("Delete all transactions? This cannot be undone. [y/N]: ")
            if answer.strip().lower() not in ("y", "yes"):
                print("Cancelled.")
                return 0
        await controller.clear_all()
        print("Cleared all transactions")

    elif args.command == "export":
        path = controller.export_transactions(args.directory)
        print(f"Exported {len(controller.transactions)} transactions to {path}")

    elif args.command == "import":
        try:
            records = parse_import(args.file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            print(f"Error: invalid import file: {e}", file=sys.stderr)
            return 1
        count = await controller.import_transactions(records)
        print(f"Imported {count} transactions")

    elif args.command == "login":
        if app.is_offline:
            print("Remote sync not configured. Running in offline mode.")
            return 0
        identity = await app.session.sign_in()
        print(f"Signed in as {identity.email if identity else 'unknown'}")

    elif args.command == "logout":
        await app.session.sign_out()
        print("Signed out")

    elif args.command == "watch":
        if not controller.is_subscribed:
            print("Not signed in; nothing to watch.", file=sys.stderr)
            return 1
        while controller.is_subscribed:
            await asyncio.sleep(1)

    return 1 if controller.status.is_error else 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    config: dict[str, Any] | None = load_config(args.config)

    if args.command == "show-config":
        show_config(config, args)
        return 0

    if args.command == "init":
        return init_config(args.force)

    try:
        return asyncio.run(run_command(args, config))
    except AuthError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
