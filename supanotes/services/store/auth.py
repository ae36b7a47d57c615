"""
Session handling against the auth service ({url}/auth/v1).

The current session lives in a :class:`SessionStorage`; ``AuthClient`` reads it
back, refreshes it when it has expired and tells subscribers about every
transition (``SIGNED_IN``, ``SIGNED_OUT``, ``TOKEN_REFRESHED``).
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Protocol

from pydantic import ValidationError

from supanotes.exceptions import AuthenticationFailed, StoreApiError

from .models import AuthEvent, AuthSession, AuthUser, SignUpResponse

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from .client import _RestClient

LOGGER = logging.getLogger(__name__)

AuthCallback = Callable[[AuthEvent, Optional[AuthSession]], None]


# ------------------------------- Storage -------------------------------------


class SessionStorage(Protocol):
    """Where the serialized session is kept between calls (and runs)."""

    def load(self) -> Optional[Dict[str, Any]]: ...

    def save(self, data: Dict[str, Any]) -> None: ...

    def clear(self) -> None: ...


class MemorySessionStorage:
    def __init__(self) -> None:
        self._data: Optional[Dict[str, Any]] = None

    def load(self) -> Optional[Dict[str, Any]]:
        return dict(self._data) if self._data else None

    def save(self, data: Dict[str, Any]) -> None:
        self._data = dict(data)

    def clear(self) -> None:
        self._data = None


class FileSessionStorage:
    """JSON file with owner-only permissions."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[Dict[str, Any]]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, OSError) as exc:
            LOGGER.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return None
        return data if isinstance(data, dict) else None

    def save(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.chmod(self.path, 0o600)

    def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)


# ----------------------------- Subscriptions ---------------------------------


@dataclass
class Subscription:
    id: int
    _owner: "AuthClient"

    def unsubscribe(self) -> None:
        self._owner._remove_listener(self.id)


def _jwt_expiry(token: str) -> Optional[int]:
    """Read the ``exp`` claim of a JWT without verifying it."""
    parts = token.split(".")
    if len(parts) != 3:
        return None
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(segment.encode("ascii")))
    except (binascii.Error, ValueError, UnicodeError):
        return None
    exp = claims.get("exp") if isinstance(claims, dict) else None
    return int(exp) if isinstance(exp, (int, float)) else None


# ------------------------------ Auth client ----------------------------------


class AuthClient:
    def __init__(self, http: "_RestClient", storage: Optional[SessionStorage] = None):
        self._http = http
        self._storage: SessionStorage = storage or MemorySessionStorage()
        self._listeners: Dict[int, AuthCallback] = {}
        self._next_id = 0
        self._lock = threading.RLock()

    # ----- Subscribers -----

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        with self._lock:
            self._next_id += 1
            self._listeners[self._next_id] = callback
            return Subscription(self._next_id, self)

    def _remove_listener(self, listener_id: int) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)

    def _emit(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        with self._lock:
            callbacks = list(self._listeners.values())
        LOGGER.info("Auth state changed: %s", event.value)
        for callback in callbacks:
            try:
                callback(event, session)
            except Exception:
                LOGGER.exception("Auth listener failed on %s", event.value)

    # ----- Session storage -----

    def _current(self) -> Optional[AuthSession]:
        data = self._storage.load()
        if not data:
            return None
        try:
            return AuthSession.model_validate(data)
        except ValidationError:
            LOGGER.warning("Discarding malformed stored session")
            self._storage.clear()
            return None

    def _store(self, body: Optional[object]) -> AuthSession:
        if not isinstance(body, dict):
            raise StoreApiError("Auth response carried no session", payload=body)
        try:
            session = AuthSession.model_validate(body)
        except ValidationError as exc:
            raise StoreApiError("Auth response validation failed", payload=body) from exc
        self._storage.save(session.model_dump(mode="json", exclude_none=True))
        return session

    def discard_session(self) -> None:
        """Forget the local session without calling the server or notifying."""
        self._storage.clear()

    # ----- Session API -----

    def get_session(self) -> Optional[AuthSession]:
        """Return the stored session, refreshed first if it has expired."""
        current = self._current()
        if current is None:
            return None
        if current.is_expired():
            LOGGER.debug("Stored session expired, refreshing")
            return self.refresh_session(current.refresh_token)
        return current

    def refresh_session(self, refresh_token: Optional[str] = None) -> AuthSession:
        if refresh_token is None:
            current = self._current()
            refresh_token = current.refresh_token if current else None
        if not refresh_token:
            raise AuthenticationFailed("No session to refresh")
        try:
            _, body = self._http.request(
                "POST",
                "/token",
                params=[("grant_type", "refresh_token")],
                payload={"refresh_token": refresh_token},
            )
        except AuthenticationFailed:
            # the refresh token is dead; so is the session
            self._storage.clear()
            self._emit(AuthEvent.SIGNED_OUT, None)
            raise
        session = self._store(body)
        self._emit(AuthEvent.TOKEN_REFRESHED, session)
        return session

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        _, body = self._http.request(
            "POST",
            "/token",
            params=[("grant_type", "password")],
            payload={"email": email, "password": password},
        )
        session = self._store(body)
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    def sign_up(
        self, email: str, password: str, *, redirect_to: Optional[str] = None
    ) -> SignUpResponse:
        params = [("redirect_to", redirect_to)] if redirect_to else None
        _, body = self._http.request(
            "POST",
            "/signup",
            params=params,
            payload={"email": email, "password": password},
        )
        if not isinstance(body, dict):
            raise StoreApiError("Unexpected sign-up response", payload=body)
        try:
            result = SignUpResponse.from_payload(body)
        except ValidationError as exc:
            raise StoreApiError("Sign-up response validation failed", payload=body) from exc
        if result.session is not None:
            self._storage.save(result.session.model_dump(mode="json", exclude_none=True))
            self._emit(AuthEvent.SIGNED_IN, result.session)
        return result

    def sign_out(self) -> None:
        """Revoke the session remotely; the local copy is dropped regardless."""
        current = self._current()
        try:
            if current is not None:
                self._http.request("POST", "/logout", token=current.access_token)
        finally:
            self._storage.clear()
            self._emit(AuthEvent.SIGNED_OUT, None)

    def set_session(self, access_token: str, refresh_token: str) -> AuthSession:
        """Adopt tokens handed over out of band (e-mail link redirects)."""
        expires_at = _jwt_expiry(access_token)
        try:
            _, body = self._http.request("GET", "/user", token=access_token)
        except AuthenticationFailed:
            LOGGER.info("Access token rejected, trying its refresh token")
            return self.refresh_session(refresh_token)
        if not isinstance(body, dict):
            raise StoreApiError("Unexpected user response", payload=body)
        user = AuthUser.model_validate(body)
        session = self._store(
            {
                "access_token": access_token,
                "refresh_token": refresh_token,
                "expires_at": expires_at,
                "user": user.model_dump(mode="json"),
            }
        )
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    def verify_otp(self, token_hash: str, *, type: str = "email") -> AuthSession:
        _, body = self._http.request(
            "POST", "/verify", payload={"type": type, "token_hash": token_hash}
        )
        session = self._store(body)
        self._emit(AuthEvent.SIGNED_IN, session)
        return session
