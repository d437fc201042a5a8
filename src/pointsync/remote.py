"""Remote sync adapter over the per-user transaction collection."""

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from loguru import logger

from pointsync.auth import SessionManager
from pointsync.config import DEFAULT_POLL_INTERVAL
from pointsync.errors import RemoteError
from pointsync.models import Identity, Transaction

ChangeCallback = Callable[[list[Transaction]], None]
ErrorCallback = Callable[[RemoteError], None]


class DocumentClient(Protocol):
    """Blocking client for a per-user transaction collection."""

    def list_transactions(self, uid: str, id_token: str) -> list[Transaction]:
        ...

    def create_transaction(self, uid: str, id_token: str, tx: Transaction) -> Transaction:
        ...

    def upsert_transaction(self, uid: str, id_token: str, tx: Transaction) -> Transaction:
        ...

    def delete_transaction(self, uid: str, id_token: str, transaction_id: str) -> None:
        ...


@dataclass
class ImportResult:
    """Result of pushing imported transactions to the remote store."""

    added: int
    errors: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        """Total transactions sent to the remote store."""
        return self.added + len(self.errors)


class Subscription:
    """Handle for a live listener. Calling it detaches the listener."""

    def __init__(self) -> None:
        self._active = True
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        """Return True until the subscription is detached."""
        return self._active

    def __call__(self) -> None:
        self._active = False
        if self._task is not None and not self._task.done():
            self._task.cancel()


class RemoteSyncAdapter:
    """
    Async access to the signed-in user's remote transactions.

    Blocking client calls run in a worker thread. At most one
    subscription is live per adapter; subscribing again detaches the
    previous listener first.
    """

    def __init__(
        self,
        client: DocumentClient | None,
        session: SessionManager,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.client = client
        self.session = session
        self.poll_interval = poll_interval
        self._subscription: Subscription | None = None

    def is_available(self) -> bool:
        """Return True if a backend is configured and a user is signed in."""
        return self.client is not None and self.session.current_user is not None

    def _identity(self) -> Identity:
        identity = self.session.current_user
        if self.client is None or identity is None:
            raise RemoteError("Remote store is not available")
        return identity

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Execute a blocking client call in a worker thread."""
        return await asyncio.to_thread(func, *args)

    async def fetch_all(self) -> list[Transaction]:
        """Fetch all remote transactions, newest first."""
        identity = self._identity()
        return await self._run(  # type: ignore[no-any-return]
            self.client.list_transactions, identity.uid, identity.id_token  # type: ignore[union-attr]
        )

    def subscribe(self, on_change: ChangeCallback, on_error: ErrorCallback) -> Subscription:
        """Start delivering remote snapshots to ``on_change``.

        Must be called from a running event loop. The first snapshot is
        delivered as soon as it is fetched, later ones only when the
        remote contents change. A fetch failure is passed to
        ``on_error`` and ends the subscription.
        """
        if self._subscription is not None:
            self._subscription()

        subscription = Subscription()
        subscription._task = asyncio.get_running_loop().create_task(
            self._poll(subscription, on_change, on_error)
        )
        self._subscription = subscription
        logger.debug("Remote subscription started")
        return subscription

    def unsubscribe(self) -> None:
        """Detach the active subscription, if any."""
        if self._subscription is not None:
            self._subscription()
            self._subscription = None

    async def _poll(
        self,
        subscription: Subscription,
        on_change: ChangeCallback,
        on_error: ErrorCallback,
    ) -> None:
        previous: list[Transaction] | None = None

        while subscription.active:
            try:
                snapshot = await self.fetch_all()
            except RemoteError as e:
                if subscription.active:
                    logger.error("Snapshot error: {}", e)
                    self._end(subscription)
                    on_error(e)
                return

            # Detached while the fetch was in flight
            if not subscription.active:
                return

            if snapshot != previous:
                previous = snapshot
                try:
                    on_change(list(snapshot))
                except Exception as e:
                    logger.exception("Snapshot listener failed")
                    self._end(subscription)
                    on_error(RemoteError(f"Snapshot listener failed: {e}"))
                    return

            await asyncio.sleep(self.poll_interval)

    def _end(self, subscription: Subscription) -> None:
        """Mark ``subscription`` finished without cancelling its own task."""
        subscription._active = False
        if self._subscription is subscription:
            self._subscription = None

    async def add(self, tx: Transaction) -> Transaction:
        """Store ``tx`` remotely under its own id.

        Returns:
            The stored transaction carrying the server creation timestamp
        """
        identity = self._identity()
        return await self._run(  # type: ignore[no-any-return]
            self.client.create_transaction, identity.uid, identity.id_token, tx  # type: ignore[union-attr]
        )

    async def remove(self, transaction_id: str) -> None:
        """Delete one remote transaction."""
        identity = self._identity()
        await self._run(
            self.client.delete_transaction,  # type: ignore[union-attr]
            identity.uid,
            identity.id_token,
            transaction_id,
        )

    async def clear(self) -> None:
        """Delete every remote transaction.

        All deletes are attempted. Deletes that succeed stay applied.

        Raises:
            RemoteError: If listing fails or any delete fails
        """
        identity = self._identity()
        existing = await self.fetch_all()

        results = await asyncio.gather(
            *(
                self._run(
                    self.client.delete_transaction,  # type: ignore[union-attr]
                    identity.uid,
                    identity.id_token,
                    tx.id,
                )
                for tx in existing
            ),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            raise RemoteError(
                f"{len(failures)} of {len(existing)} deletes failed: {failures[0]}"
            )

    async def bulk_import(self, transactions: Sequence[Transaction]) -> ImportResult:
        """Add every transaction remotely, collecting per-item failures.

        Existing documents with the same id are overwritten.
        """
        identity = self._identity()

        results = await asyncio.gather(
            *(
                self._run(
                    self.client.upsert_transaction,  # type: ignore[union-attr]
                    identity.uid,
                    identity.id_token,
                    tx,
                )
                for tx in transactions
            ),
            return_exceptions=True,
        )

        errors = [
            f"{tx.id}: {result}"
            for tx, result in zip(transactions, results)
            if isinstance(result, BaseException)
        ]
        return ImportResult(added=len(transactions) - len(errors), errors=errors)
