"""
Session tracking: keeps the context's principal in step with the auth service.

Public API:
  - SessionTracker.start() / stop()          subscribe to auth state changes
  - SessionTracker.restore_session()         adopt a persisted session on startup
  - SessionTracker.on_session_changed(...)   auth event handler
  - SessionTracker.sign_in / sign_up / sign_out / handle_redirect
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from supanotes.exceptions import (
    AuthenticationFailed,
    ClientInitializationError,
    NotesError,
    describe_error,
)
from supanotes.services.store import AuthEvent, AuthSession, ClientGate, StoreClient, Subscription

from .cache import NoteCache
from .context import SessionContext
from .models import Principal

LOGGER = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class SignUpOutcome(str, Enum):
    SIGNED_IN = "signed_in"
    VERIFICATION_PENDING = "verification_pending"


def _first(params: Dict[str, List[str]], key: str) -> Optional[str]:
    values = params.get(key)
    return values[0] if values else None


class SessionTracker:
    def __init__(self, gate: "ClientGate[StoreClient]", context: SessionContext, cache: NoteCache):
        self._gate = gate
        self._ctx = context
        self._cache = cache
        self._subscription: Optional[Subscription] = None

    @property
    def principal(self) -> Optional[Principal]:
        return self._ctx.principal

    def _client(self, scope: str) -> StoreClient:
        try:
            return self._gate.wait()
        except ClientInitializationError as exc:
            self._ctx.events.error(scope, describe_error("reach the backend", exc))
            raise

    # ----- Subscription -----

    def start(self) -> bool:
        """Listen for auth state changes; False if the client never came up."""
        if self._subscription is not None:
            return True
        try:
            client = self._gate.wait()
        except ClientInitializationError as exc:
            LOGGER.error("Cannot listen for auth changes: %s", exc)
            return False
        self._subscription = client.auth.on_auth_state_change(self.on_session_changed)
        LOGGER.debug("Subscribed to auth state changes")
        return True

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    # ----- State transitions -----

    def _signed_in(self, session: AuthSession) -> Principal:
        principal = Principal.from_user(session.user)
        changed = self._ctx.set_principal(principal)
        if changed:
            self._ctx.events.logged_in(principal)
        return principal

    def _signed_out(self) -> None:
        self._ctx.clear()
        self._ctx.events.logged_out()

    def _reload_quietly(self) -> None:
        try:
            self._cache.reload(self._ctx)
        except NotesError as exc:
            # already reported through the context events
            LOGGER.warning("Note reload after sign-in failed: %s", exc)

    def _adopt(self, session: AuthSession) -> Principal:
        # a subscribed tracker already handled the SIGNED_IN event
        if self._subscription is None:
            self.on_session_changed(AuthEvent.SIGNED_IN, session)
        return self._ctx.principal or Principal.from_user(session.user)

    def on_session_changed(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        LOGGER.info(
            "Auth state changed: %s %s",
            event.value,
            (session.user.email if session else None) or "no user",
        )
        if event == AuthEvent.SIGNED_OUT or session is None:
            self._signed_out()
            return
        if event == AuthEvent.TOKEN_REFRESHED:
            current = self._ctx.principal
            if current is None:
                return
            if current.id == session.user.id:
                self._ctx.set_principal(Principal.from_user(session.user))
                LOGGER.debug("Session refreshed")
                return
            LOGGER.warning("Refreshed session belongs to another user, switching")
        self._signed_in(session)
        self._reload_quietly()

    # ----- Startup -----

    def restore_session(self) -> Optional[Principal]:
        """Adopt the persisted session, if any. Never raises for remote failures."""
        try:
            client = self._client("session")
        except ClientInitializationError:
            self._signed_out()
            return None
        try:
            session = client.auth.get_session()
        except NotesError as exc:
            LOGGER.error("Auth session error: %s", exc)
            client.auth.discard_session()
            self._signed_out()
            self._ctx.events.error("session", describe_error("check authentication status", exc))
            return None
        if session is None:
            LOGGER.info("No active session found")
            self._signed_out()
            return None
        principal = self._signed_in(session)
        LOGGER.info("User session found: %s", principal.email or principal.id)
        self._reload_quietly()
        return principal

    # ----- Auth actions -----

    def sign_in(self, email: str, password: str) -> Principal:
        client = self._client("auth")
        try:
            if not email or not password:
                raise AuthenticationFailed("Email and password are required")
            session = client.auth.sign_in_with_password(email, password)
        except NotesError as exc:
            LOGGER.error("Login error: %s", exc)
            self._ctx.events.error("auth", describe_error("login", exc))
            raise
        return self._adopt(session)

    def sign_up(
        self, email: str, password: str, *, redirect_to: Optional[str] = None
    ) -> SignUpOutcome:
        client = self._client("auth")
        try:
            if len(password or "") < MIN_PASSWORD_LENGTH:
                raise AuthenticationFailed(
                    f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
                )
            result = client.auth.sign_up(email, password, redirect_to=redirect_to)
        except NotesError as exc:
            LOGGER.error("Signup error: %s", exc)
            self._ctx.events.error("auth", describe_error("create account", exc))
            raise

        if result.session is not None:
            self._adopt(result.session)
            return SignUpOutcome.SIGNED_IN
        if result.user is not None:
            LOGGER.info("Account created, e-mail verification pending")
            return SignUpOutcome.VERIFICATION_PENDING

        # neither user nor session: confirmation may be disabled, try to log in
        try:
            session = client.auth.sign_in_with_password(email, password)
        except AuthenticationFailed:
            return SignUpOutcome.VERIFICATION_PENDING
        except NotesError as exc:
            LOGGER.error("Login after signup failed: %s", exc)
            self._ctx.events.error("auth", describe_error("create account", exc))
            raise
        self._adopt(session)
        return SignUpOutcome.SIGNED_IN

    def sign_out(self) -> None:
        """Sign out remotely; local state is cleared even when that fails."""
        try:
            client = self._client("auth")
            try:
                client.auth.sign_out()
            except NotesError as exc:
                LOGGER.error("Logout error: %s", exc)
                self._ctx.events.error("auth", describe_error("logout", exc))
                raise
        finally:
            if self._ctx.principal is not None:
                self._signed_out()

    def handle_redirect(self, url: str) -> Optional[Principal]:
        """
        Finish an e-mail verification redirect. Understands
        ``#access_token=..&refresh_token=..``, ``?token=..&type=email``,
        ``?token_hash=..`` and ``#error=..&error_description=..``.
        Returns None when the URL carries none of them.
        """
        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        fragment = parse_qs(parsed.fragment)

        error = _first(fragment, "error") or _first(query, "error")
        if error:
            description = _first(fragment, "error_description") or _first(query, "error_description")
            exc = AuthenticationFailed(f"Authentication error: {description or error}", code=error)
            LOGGER.error("Auth error from URL: %s %s", error, description)
            self._ctx.events.error("auth", describe_error("verify email", exc))
            raise exc

        access_token = _first(fragment, "access_token")
        refresh_token = _first(fragment, "refresh_token")
        token = _first(query, "token")
        token_hash = _first(query, "token_hash")
        if not (access_token and refresh_token) and not token_hash and not (
            token and _first(query, "type") == "email"
        ):
            return None

        client = self._client("auth")
        try:
            if access_token and refresh_token:
                session = client.auth.set_session(access_token, refresh_token)
            else:
                use_token = token and _first(query, "type") == "email"
                session = client.auth.verify_otp(
                    (token if use_token else token_hash) or "", type="email"
                )
        except NotesError as exc:
            LOGGER.error("Email verification error: %s", exc)
            self._ctx.events.error("auth", describe_error("verify email", exc))
            raise
        return self._adopt(session)
