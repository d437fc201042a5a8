"""Reconciliation of the in-memory list, the local cache and the remote store."""

from collections.abc import Callable, Sequence
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

from loguru import logger

from pointsync.auth import SessionManager
from pointsync.cache import LocalCacheStore
from pointsync.errors import RemoteError
from pointsync.models import Identity, SyncStatus, Transaction, new_transaction_id
from pointsync.points import CARDS, CardSummary, compute_points, summarize_card
from pointsync.remote import RemoteSyncAdapter, Subscription
from pointsync.transfer import records_to_transactions, write_export

DisplayCallback = Callable[[list[Transaction]], None]
StatusCallback = Callable[[str, str], None]
LoadingCallback = Callable[[bool], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReconciliationController:
    """
    Single source of truth for the transaction list.

    Every mutation is applied to memory and the local cache first, then
    attempted remotely when a user is signed in. A failed remote write
    sets an error status but never rolls back the local change.

    While subscribed to the remote store, each remote snapshot replaces
    the in-memory list and is mirrored to the cache. When signed out,
    the list reverts to the cache contents.

    Usage:
        controller = ReconciliationController(cache, remote, session)
        controller.start()
        await controller.add_transaction("metal", Decimal("1200"), "dining", date.today())
    """

    def __init__(
        self,
        cache: LocalCacheStore,
        remote: RemoteSyncAdapter,
        session: SessionManager,
        on_display_update: DisplayCallback | None = None,
        on_sync_status_change: StatusCallback | None = None,
        on_loading_change: LoadingCallback | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.cache = cache
        self.remote = remote
        self.session = session
        self.on_display_update = on_display_update
        self.on_sync_status_change = on_sync_status_change
        self.on_loading_change = on_loading_change
        self._clock = clock
        self._transactions: list[Transaction] = []
        self._status = SyncStatus()
        self._subscription: Subscription | None = None
        self._detach_session: Callable[[], None] | None = None

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        """Current transactions, newest first."""
        return tuple(self._transactions)

    @property
    def status(self) -> SyncStatus:
        """Last reported sync status."""
        return self._status

    @property
    def is_subscribed(self) -> bool:
        """Return True while remote snapshots are authoritative."""
        return self._subscription is not None

    def start(self) -> None:
        """Show cached data and follow session changes."""
        self._transactions = self.cache.load()
        self._display()
        self._detach_session = self.session.on_session_change(self._handle_session_change)

    def stop(self) -> None:
        """Stop following the session and detach any live subscription."""
        if self._detach_session is not None:
            self._detach_session()
            self._detach_session = None
        self._detach_subscription()

    # Session and subscription lifecycle

    def _handle_session_change(self, identity: Identity | None) -> None:
        if identity is not None and self.remote.is_available():
            self._start_sync()
        else:
            self._stop_sync()

    def _start_sync(self) -> None:
        self._detach_subscription()
        self._set_loading(True)
        handle: Subscription | None = None

        def on_change(transactions: list[Transaction]) -> None:
            if handle is self._subscription:
                self._apply_snapshot(transactions)

        def on_error(error: RemoteError) -> None:
            if handle is self._subscription:
                self._apply_subscription_error(error)

        handle = self.remote.subscribe(on_change, on_error)
        self._subscription = handle

    def _stop_sync(self) -> None:
        self._detach_subscription()
        self._transactions = self.cache.load()
        self._display()
        self._set_loading(False)

    def _detach_subscription(self) -> None:
        if self._subscription is not None:
            self._subscription()
            self._subscription = None

    def _apply_snapshot(self, transactions: list[Transaction]) -> None:
        logger.debug("Remote snapshot received", count=len(transactions))
        self._transactions = list(transactions)
        self.cache.save(self._transactions)
        self._set_status(SyncStatus.SYNCED)
        self._display()
        self._set_loading(False)

    def _apply_subscription_error(self, error: RemoteError) -> None:
        self._subscription = None
        self._set_status(SyncStatus.ERROR, str(error))
        self._transactions = self.cache.load()
        self._display()
        self._set_loading(False)

    # Mutations

    async def add_transaction(
        self,
        card: str,
        amount: Decimal | int | str,
        category: str,
        tx_date: date,
        description: str = "",
    ) -> Transaction:
        """Record a new transaction.

        Returns:
            The stored transaction (with the server timestamp if the
            remote write succeeded)
        """
        draft = Transaction(
            id=new_transaction_id(),
            card=card,
            amount=Decimal(amount),
            category=category,
            date=tx_date,
            description=description,
            created_at=self._next_timestamp(),
        )
        tx = draft.with_changes(points=compute_points(draft))
        self._commit([tx, *self._transactions])

        stored = await self._push(self.remote.add, tx)
        if stored is None:
            return tx

        self._commit([stored if t.id == stored.id else t for t in self._transactions])
        return stored  # type: ignore[no-any-return]

    async def delete_transaction(self, transaction_id: str) -> bool:
        """Delete a transaction.

        Returns:
            False if the remote delete failed, True otherwise
        """
        self._commit([t for t in self._transactions if t.id != transaction_id])
        return await self._push_ok(self.remote.remove, transaction_id)

    async def clear_all(self) -> bool:
        """Delete every transaction.

        Returns:
            False if the remote clear failed, True otherwise
        """
        self._commit([])
        return await self._push_ok(self.remote.clear)

    async def import_transactions(self, records: Sequence[Any]) -> int:
        """Merge imported records ahead of the existing ones.

        Returns:
            Number of transactions imported locally
        """
        imported = records_to_transactions(records, now=self._next_timestamp())
        imported_ids = {tx.id for tx in imported}
        self._commit([*imported, *(t for t in self._transactions if t.id not in imported_ids)])

        if not self.remote.is_available():
            return len(imported)

        self._set_status(SyncStatus.SYNCING)
        try:
            result = await self.remote.bulk_import(imported)
        except RemoteError as e:
            logger.error("Error importing transactions: {}", e)
            self._set_status(SyncStatus.ERROR, str(e))
            return len(imported)

        if result.errors:
            logger.error("Error importing transactions: {}", "; ".join(result.errors))
            self._set_status(
                SyncStatus.ERROR,
                f"{len(result.errors)} of {result.attempted} imports failed",
            )
        else:
            self._set_status(SyncStatus.SYNCED)
        return len(imported)

    def export_transactions(self, directory: Path, today: date | None = None) -> Path:
        """Write the current list as indented JSON into ``directory``."""
        return write_export(self._transactions, directory, today)

    def summary(self) -> dict[str, CardSummary]:
        """Points summary for every card."""
        return {card: summarize_card(card, self._transactions) for card in CARDS}

    # Internals

    async def _push(self, operation: Callable[..., Any], *args: Any) -> Any:
        """Attempt a remote operation after the local write.

        Returns None when offline or when the operation failed.
        """
        if not self.remote.is_available():
            return None

        self._set_status(SyncStatus.SYNCING)
        try:
            result = await operation(*args)
        except RemoteError as e:
            logger.error("Remote {} failed: {}", operation.__name__, e)
            self._set_status(SyncStatus.ERROR, str(e))
            return None

        self._set_status(SyncStatus.SYNCED)
        return True if result is None else result

    async def _push_ok(self, operation: Callable[..., Any], *args: Any) -> bool:
        if not self.remote.is_available():
            return True
        return await self._push(operation, *args) is not None

    def _next_timestamp(self) -> datetime:
        """Current time, never earlier than any timestamp already held."""
        now = self._clock()
        latest = max(
            (t.created_at for t in self._transactions if t.created_at is not None),
            default=now,
        )
        return max(now, latest)

    def _commit(self, transactions: list[Transaction]) -> None:
        self._transactions = transactions
        self.cache.save(transactions)
        self._display()

    def _display(self) -> None:
        if self.on_display_update is not None:
            self.on_display_update(list(self._transactions))

    def _set_status(self, state: str, message: str = "") -> None:
        self._status = SyncStatus(state, message)
        if self.on_sync_status_change is not None:
            self.on_sync_status_change(state, message)

    def _set_loading(self, loading: bool) -> None:
        if self.on_loading_change is not None:
            self.on_loading_change(loading)
