"""Local on-disk cache of the full transaction list."""

import json
import os
from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from pointsync.errors import LocalPersistenceError
from pointsync.models import Transaction

DEFAULT_KEY = "transactions"


class LocalCacheStore:
    """
    Durable key-value store holding the transaction list for this device.

    The store never raises to its callers: unreadable data loads as an
    empty list and failed writes are logged.

    Usage:
        store = LocalCacheStore(Path("~/.local/share/pointsync"))
        store.save(transactions)
        transactions = store.load()
    """

    def __init__(self, directory: Path, key: str = DEFAULT_KEY) -> None:
        self.directory = directory
        self.key = key

    @property
    def path(self) -> Path:
        """File holding the serialized list."""
        return self.directory / f"{self.key}.json"

    def load(self) -> list[Transaction]:
        """Return the persisted transactions, or [] if missing or corrupt."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning("Could not read local cache", path=str(self.path), error=str(e))
            return []

        if not raw.strip():
            return []

        try:
            records = json.loads(raw)
            if not isinstance(records, list):
                raise ValueError(f"expected a list, got {type(records).__name__}")
            return [Transaction.from_dict(record) for record in records]
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning("Ignoring corrupt local cache", path=str(self.path), error=str(e))
            return []

    def save(self, transactions: Sequence[Transaction]) -> None:
        """Persist the full list, replacing previous contents."""
        try:
            self._write(transactions)
        except LocalPersistenceError as e:
            logger.error("Error saving local cache: {}", e)

    def _write(self, transactions: Sequence[Transaction]) -> None:
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            payload = json.dumps([tx.to_dict() for tx in transactions])
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise LocalPersistenceError(f"Could not write {self.path}: {e}") from e
