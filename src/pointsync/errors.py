"""Exception types raised by pointsync."""


class PointSyncError(Exception):
    """Base class for pointsync errors."""


class AuthError(PointSyncError):
    """Sign-in or sign-out failed, including user cancellation."""


class RemoteError(PointSyncError):
    """A remote document store call failed (network, permission or quota)."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class LocalPersistenceError(PointSyncError):
    """The local cache could not be written."""
