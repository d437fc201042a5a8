"""JSON export and import of transaction lists."""

import json
from collections.abc import Callable, Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Any

from loguru import logger

from pointsync.models import Transaction, new_transaction_id, parse_timestamp
from pointsync.points import compute_points
from pointsync.utils import parse_amount, parse_date

EXPORT_PREFIX = "amex-points"


def export_filename(today: date) -> str:
    """Name of the export file for ``today``."""
    return f"{EXPORT_PREFIX}-{today.isoformat()}.json"


def dump_transactions(transactions: Sequence[Transaction]) -> str:
    """Serialize transactions as indented JSON."""
    return json.dumps([tx.to_dict() for tx in transactions], indent=2)


def write_export(
    transactions: Sequence[Transaction],
    directory: Path,
    today: date | None = None,
) -> Path:
    """Write an export file into ``directory`` and return its path."""
    path = directory / export_filename(today or date.today())
    path.write_text(dump_transactions(transactions) + "\n", encoding="utf-8")
    return path


def parse_import(text: str) -> list[Any]:
    """Parse import file content.

    Raises:
        ValueError: If the content is not a JSON array
    """
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("Import file must contain a JSON array of transactions")
    return data


def record_to_transaction(
    record: Any,
    now: datetime,
    new_id: Callable[[], str] = new_transaction_id,
) -> Transaction:
    """Build a transaction from an imported record.

    Records without ``id`` get a fresh one and records without
    ``createdAt`` are stamped with ``now``. Points are always
    recomputed from the current card rules.

    Raises:
        ValueError: If a required field is missing or invalid
    """
    if not isinstance(record, dict):
        raise ValueError(f"Expected an object, got {type(record).__name__}")

    amount = parse_amount(record.get("amount"))
    if amount is None:
        raise ValueError(f"Invalid amount: {record.get('amount')!r}")

    tx_date = parse_date(record.get("date"))
    if tx_date is None:
        raise ValueError(f"Invalid date: {record.get('date')!r}")

    created_at = now
    if record.get("createdAt"):
        created_at = parse_timestamp(str(record["createdAt"]))

    tx = Transaction(
        id=str(record.get("id") or new_id()),
        card=record.get("card"),  # type: ignore[arg-type]
        amount=amount,
        category=record.get("category"),  # type: ignore[arg-type]
        date=tx_date,
        description=str(record.get("description") or ""),
        created_at=created_at,
    )
    return tx.with_changes(points=compute_points(tx))


def records_to_transactions(
    records: Sequence[Any],
    now: datetime,
    new_id: Callable[[], str] = new_transaction_id,
) -> list[Transaction]:
    """Convert imported records, skipping (and logging) invalid ones."""
    transactions: list[Transaction] = []
    for index, record in enumerate(records):
        try:
            transactions.append(record_to_transaction(record, now, new_id))
        except ValueError as e:
            logger.warning("Skipping invalid import record", index=index, error=str(e))
    return transactions
