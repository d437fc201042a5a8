"""Sign-in state and the Firebase Auth identity provider."""

import asyncio
import getpass
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

import requests
from loguru import logger

from pointsync.errors import AuthError
from pointsync.models import Identity

SessionListener = Callable[[Identity | None], None]


class IdentityProvider(Protocol):
    """Minimal protocol for an interactive identity provider."""

    async def sign_in(self) -> Identity:
        ...

    async def sign_out(self) -> None:
        ...

    async def restore(self) -> Identity | None:
        ...


class FirebaseAuthProvider:
    """Email/password sign-in against the Firebase Auth REST API.

    The refresh token is kept in ``session_path`` so later runs start
    signed in until ``sign_out`` is called.
    """

    SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
    REFRESH_URL = "https://securetoken.googleapis.com/v1/token"

    def __init__(
        self,
        api_key: str,
        session_path: Path,
        prompt: Callable[[], tuple[str, str]] | None = None,
    ) -> None:
        self.api_key = api_key
        self.session_path = session_path
        self._prompt = prompt or prompt_credentials
        self._session = requests.Session()

    def _post(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._session.post(url, params={"key": self.api_key}, json=payload)
            response.raise_for_status()
            return response.json()  # type: ignore[no-any-return]
        except requests.HTTPError as e:
            raise AuthError(f"Authentication failed: {_provider_message(e)}") from e
        except (requests.RequestException, ValueError) as e:
            raise AuthError(f"Authentication failed: {e}") from e

    async def sign_in(self) -> Identity:
        """Prompt for credentials and sign in."""
        try:
            email, password = await asyncio.to_thread(self._prompt)
        except (EOFError, KeyboardInterrupt) as e:
            raise AuthError("Sign-in cancelled") from e

        if not email or not password:
            raise AuthError("Sign-in cancelled")

        result = await asyncio.to_thread(
            self._post,
            self.SIGN_IN_URL,
            {"email": email, "password": password, "returnSecureToken": True},
        )
        try:
            identity = Identity(
                uid=result["localId"],
                email=result.get("email", email),
                id_token=result["idToken"],
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise AuthError(f"Authentication failed: unexpected response ({e})") from e
        self._store_session(result.get("refreshToken", ""), identity.email)
        return identity

    async def sign_out(self) -> None:
        """Forget the stored session."""
        try:
            self.session_path.unlink(missing_ok=True)
        except OSError as e:
            raise AuthError(f"Could not remove session file: {e}") from e

    async def restore(self) -> Identity | None:
        """Exchange a stored refresh token for a fresh identity, if any."""
        try:
            stored = json.loads(self.session_path.read_text())
            refresh_token = stored["refresh_token"]
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable session file", error=str(e))
            return None

        try:
            result = await asyncio.to_thread(
                self._post,
                self.REFRESH_URL,
                {"grant_type": "refresh_token", "refresh_token": refresh_token},
            )
        except AuthError as e:
            logger.warning("Could not restore session", error=str(e))
            return None

        try:
            identity = Identity(
                uid=result["user_id"],
                email=stored.get("email", ""),
                id_token=result["id_token"],
            )
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning("Could not restore session", error=f"unexpected response ({e})")
            return None

        self._store_session(result.get("refresh_token", refresh_token), identity.email)
        return identity

    def _store_session(self, refresh_token: str, email: str) -> None:
        if not refresh_token:
            return
        try:
            self.session_path.parent.mkdir(parents=True, exist_ok=True)
            self.session_path.write_text(
                json.dumps({"refresh_token": refresh_token, "email": email})
            )
            self.session_path.chmod(0o600)
        except OSError as e:
            logger.warning("Could not persist session", error=str(e))


def _provider_message(error: requests.HTTPError) -> str:
    """Extract Firebase's error code (e.g. INVALID_PASSWORD) from a response."""
    try:
        return str(error.response.json()["error"]["message"])  # type: ignore[union-attr]
    except (ValueError, KeyError, TypeError, AttributeError):
        return str(error)


def prompt_credentials() -> tuple[str, str]:
    """Ask for email and password on the terminal."""
    email = input("Email: ").strip()
    password = getpass.getpass("Password: ")
    return email, password


class SessionManager:
    """
    Tracks the signed-in identity and notifies listeners on every change.

    With no provider configured the manager stays signed out and sign-in
    is a no-op (offline mode).
    """

    def __init__(self, provider: IdentityProvider | None = None) -> None:
        self.provider = provider
        self._current: Identity | None = None
        self._listeners: list[SessionListener] = []

    @property
    def current_user(self) -> Identity | None:
        """The signed-in identity, or None."""
        return self._current

    @property
    def is_signed_in(self) -> bool:
        """Return True if a user is signed in."""
        return self._current is not None

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        """Register a listener, calling it once now with the current session.

        Returns:
            A function that detaches the listener
        """
        self._listeners.append(callback)
        callback(self._current)

        def detach() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return detach

    def _set_session(self, identity: Identity | None) -> None:
        self._current = identity
        logger.info("Session changed", uid=identity.uid if identity else None)
        for listener in list(self._listeners):
            listener(identity)

    async def restore(self) -> Identity | None:
        """Resume a previously persisted session, if the provider has one."""
        if self.provider is None:
            return None

        identity = await self.provider.restore()
        if identity is not None:
            self._set_session(identity)
        return identity

    async def sign_in(self) -> Identity | None:
        """Sign in interactively.

        Returns:
            The new identity, or None in offline mode

        Raises:
            AuthError: On cancellation or provider failure
        """
        if self.provider is None:
            logger.warning("Remote backend not configured. Running in offline mode.")
            return None

        try:
            identity = await self.provider.sign_in()
        except AuthError as e:
            logger.error("Sign in error: {}", e)
            raise

        self._set_session(identity)
        return identity

    async def sign_out(self) -> None:
        """Sign out. The local session ends even if the provider call fails.

        Raises:
            AuthError: If the provider failed to revoke the session
        """
        if self.provider is None or self._current is None:
            return

        try:
            await self.provider.sign_out()
        except AuthError as e:
            logger.error("Sign out error: {}", e)
            raise
        finally:
            self._set_session(None)
