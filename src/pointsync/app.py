"""Wiring of the cache, session, remote adapter and controller."""

from dataclasses import dataclass
from typing import Any

from pointsync.auth import FirebaseAuthProvider, SessionManager
from pointsync.cache import LocalCacheStore
from pointsync.config import (
    DEFAULT_POLL_INTERVAL,
    get_cache_dir,
    get_remote_settings,
    get_session_path,
)
from pointsync.controller import ReconciliationController
from pointsync.firestore import FirestoreClient
from pointsync.remote import RemoteSyncAdapter


@dataclass
class PointSyncApp:
    """One application instance; components are shared by reference."""

    session: SessionManager
    remote: RemoteSyncAdapter
    controller: ReconciliationController

    @property
    def is_offline(self) -> bool:
        """Return True when no remote backend is configured."""
        return self.remote.client is None


def build_app(
    config: dict[str, Any] | None = None,
    api_key: str | None = None,
    project_id: str | None = None,
    **callbacks: Any,
) -> PointSyncApp:
    """Build the application from config.

    Args:
        config: Loaded JSON config
        api_key: Optional Firebase API key override
        project_id: Optional Firebase project id override
        **callbacks: Presentation callbacks passed to the controller

    Returns:
        PointSyncApp, running offline if the remote is not configured
    """
    settings = get_remote_settings(config, api_key=api_key, project_id=project_id)

    provider = None
    client = None
    poll_interval = DEFAULT_POLL_INTERVAL
    if settings is not None:
        provider = FirebaseAuthProvider(settings.api_key, get_session_path())
        client = FirestoreClient(settings.project_id, settings.api_key)
        poll_interval = settings.poll_interval

    session = SessionManager(provider)
    remote = RemoteSyncAdapter(client, session, poll_interval=poll_interval)
    controller = ReconciliationController(
        LocalCacheStore(get_cache_dir(config)),
        remote,
        session,
        **callbacks,
    )
    return PointSyncApp(session=session, remote=remote, controller=controller)
