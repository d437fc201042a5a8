"""Pytest configuration and fixtures."""

import asyncio
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from pointsync.auth import SessionManager
from pointsync.cache import LocalCacheStore
from pointsync.controller import ReconciliationController
from pointsync.errors import AuthError, RemoteError
from pointsync.models import Identity, Transaction
from pointsync.remote import RemoteSyncAdapter

TEST_IDENTITY = Identity(uid="user-1", email="asha@example.com", id_token="token-1")

# Server clock used by the fake document store
SERVER_EPOCH = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_tx(**overrides: Any) -> Transaction:
    """Build a valid transaction, overriding any field."""
    fields: dict[str, Any] = {
        "id": "tx-1",
        "card": "metal",
        "amount": Decimal("1000"),
        "category": "dining",
        "date": date(2026, 2, 14),
        "description": "Dinner",
        "points": 25,
        "created_at": datetime(2026, 2, 14, 20, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Transaction(**fields)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("Timed out waiting for condition")
        await asyncio.sleep(0.005)


class FakeDocumentClient:
    """In-memory stand-in for the Firestore client."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, Transaction]] = {}
        self.fail_list = False
        self.fail_writes = False
        self.fail_ids: set[str] = set()
        self._tick = 0

    def seed(self, uid: str, *transactions: Transaction) -> None:
        for tx in transactions:
            self.collections.setdefault(uid, {})[tx.id] = tx

    def docs(self, uid: str = TEST_IDENTITY.uid) -> list[Transaction]:
        return list(self.collections.get(uid, {}).values())

    def list_transactions(self, uid: str, id_token: str) -> list[Transaction]:
        if self.fail_list:
            raise RemoteError("Missing or insufficient permissions", status=403)
        docs = self.docs(uid)
        return sorted(docs, key=lambda tx: tx.created_at, reverse=True)  # type: ignore[arg-type,return-value]

    def create_transaction(self, uid: str, id_token: str, tx: Transaction) -> Transaction:
        if self.fail_writes or tx.id in self.fail_ids:
            raise RemoteError(f"Quota exceeded writing {tx.id}", status=429)
        if tx.id in self.collections.get(uid, {}):
            raise RemoteError(f"Document already exists: {tx.id}", status=409)
        return self._store(uid, tx)

    def upsert_transaction(self, uid: str, id_token: str, tx: Transaction) -> Transaction:
        if self.fail_writes or tx.id in self.fail_ids:
            raise RemoteError(f"Quota exceeded writing {tx.id}", status=429)
        existing = self.collections.get(uid, {}).get(tx.id)
        if existing is not None:
            stored = tx.with_changes(created_at=existing.created_at)
            self.collections[uid][tx.id] = stored
            return stored
        return self._store(uid, tx)

    def _store(self, uid: str, tx: Transaction) -> Transaction:
        self._tick += 1
        stored = tx.with_changes(created_at=SERVER_EPOCH + timedelta(seconds=self._tick))
        self.collections.setdefault(uid, {})[tx.id] = stored
        return stored

    def delete_transaction(self, uid: str, id_token: str, transaction_id: str) -> None:
        if self.fail_writes or transaction_id in self.fail_ids:
            raise RemoteError(f"Could not delete {transaction_id}", status=503)
        self.collections.get(uid, {}).pop(transaction_id, None)


class FakeIdentityProvider:
    """Identity provider that signs in without prompting."""

    def __init__(self, identity: Identity = TEST_IDENTITY) -> None:
        self.identity = identity
        self.restored: Identity | None = None
        self.cancel_sign_in = False
        self.fail_sign_out = False

    async def sign_in(self) -> Identity:
        if self.cancel_sign_in:
            raise AuthError("Sign-in cancelled")
        return self.identity

    async def sign_out(self) -> None:
        if self.fail_sign_out:
            raise AuthError("Provider unavailable")

    async def restore(self) -> Identity | None:
        return self.restored


class Recorder:
    """Collects presentation callbacks from the controller."""

    def __init__(self) -> None:
        self.displays: list[list[Transaction]] = []
        self.statuses: list[tuple[str, str]] = []
        self.loading: list[bool] = []

    def on_display_update(self, transactions: list[Transaction]) -> None:
        self.displays.append(transactions)

    def on_sync_status_change(self, state: str, message: str) -> None:
        self.statuses.append((state, message))

    def on_loading_change(self, loading: bool) -> None:
        self.loading.append(loading)


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep config and data lookups inside the test's temp directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg_config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg_data"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def cache(tmp_path: Path) -> LocalCacheStore:
    """Return a cache store in a temp directory."""
    return LocalCacheStore(tmp_path / "cache")


@pytest.fixture
def client() -> FakeDocumentClient:
    """Return an empty fake document store."""
    return FakeDocumentClient()


@pytest.fixture
def provider() -> FakeIdentityProvider:
    """Return a fake identity provider."""
    return FakeIdentityProvider()


@pytest.fixture
def session(provider: FakeIdentityProvider) -> SessionManager:
    """Return a signed-out session manager with a configured provider."""
    return SessionManager(provider)


@pytest.fixture
def adapter(client: FakeDocumentClient, session: SessionManager) -> RemoteSyncAdapter:
    """Return a remote adapter that polls quickly."""
    return RemoteSyncAdapter(client, session, poll_interval=0.01)


@pytest.fixture
def recorder() -> Recorder:
    """Return a callback recorder."""
    return Recorder()


@pytest.fixture
def controller(
    cache: LocalCacheStore,
    adapter: RemoteSyncAdapter,
    session: SessionManager,
    recorder: Recorder,
) -> ReconciliationController:
    """Return a controller wired to the fakes, not yet started."""
    return ReconciliationController(
        cache,
        adapter,
        session,
        on_display_update=recorder.on_display_update,
        on_sync_status_change=recorder.on_sync_status_change,
        on_loading_change=recorder.on_loading_change,
    )
