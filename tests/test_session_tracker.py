"""Tests for session tracking against the auth client."""

import time
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from supanotes.exceptions import (
    AuthenticationFailed,
    ClientInitializationError,
    TransientStoreError,
)
from supanotes.services.notes import (
    Note,
    NoteCache,
    Principal,
    SessionContext,
    SessionTracker,
    SignUpOutcome,
)
from supanotes.services.store import AuthEvent, AuthSession, ClientGate, MemorySessionStorage
from supanotes.services.store.auth import AuthClient

STAMP = datetime(2025, 11, 8, 14, 30, tzinfo=timezone.utc)


def session_body(user_id="user-1", email="ada@example.com", **extra):
    data = {
        "access_token": f"access-{user_id}",
        "refresh_token": f"refresh-{user_id}",
        "expires_in": 3600,
        "user": {"id": user_id, "email": email},
    }
    data.update(extra)
    return data


class Repo:
    def __init__(self):
        self.calls = []
        self.on_list = None

    def list_for(self, owner_id):
        self.calls.append(owner_id)
        if self.on_list is not None:
            self.on_list()
        return [Note(f"{owner_id}-n1", owner_id, "Title", "Body", STAMP, STAMP)]


class FakeClient:
    def __init__(self, auth):
        self.auth = auth


class Recorder:
    def __init__(self):
        self.events = []
        self.errors = []

    def logged_in(self, principal):
        self.events.append(("in", principal.id))

    def logged_out(self):
        self.events.append(("out",))

    def error(self, scope, message):
        self.errors.append((scope, message))


class SessionTrackerTest(unittest.TestCase):
    def setUp(self):
        self.http = MagicMock()
        self.storage = MemorySessionStorage()
        self.auth = AuthClient(self.http, storage=self.storage)
        self.repo = Repo()
        self.recorder = Recorder()
        self.ctx = SessionContext(self.recorder)
        self.tracker = SessionTracker(
            ClientGate.ready(FakeClient(self.auth)), self.ctx, NoteCache(self.repo)
        )
        self.assertTrue(self.tracker.start())

    def tearDown(self):
        self.tracker.stop()

    def test_restore_without_session(self):
        self.assertIsNone(self.tracker.restore_session())
        self.assertIsNone(self.ctx.principal)
        self.assertEqual(self.recorder.events, [("out",)])
        self.assertEqual(self.repo.calls, [])

    def test_restore_persisted_session_loads_notes(self):
        self.storage.save(session_body())
        principal = self.tracker.restore_session()
        self.assertEqual(principal, Principal("user-1", "ada@example.com"))
        self.assertEqual(self.repo.calls, ["user-1"])
        self.assertEqual([n.id for n in self.ctx.notes], ["user-1-n1"])

    def test_restore_with_dead_refresh_token(self):
        self.storage.save(session_body(expires_in=None, expires_at=int(time.time()) - 60))
        self.http.request.side_effect = AuthenticationFailed("Invalid Refresh Token")

        self.assertIsNone(self.tracker.restore_session())

        self.assertIsNone(self.ctx.principal)
        self.assertIsNone(self.storage.load())
        self.assertEqual(self.recorder.errors, [("session", "Invalid Refresh Token")])

    def test_sign_in_loads_notes_once(self):
        self.http.request.return_value = (200, session_body())
        principal = self.tracker.sign_in("ada@example.com", "secret")
        self.assertEqual(principal.id, "user-1")
        self.assertEqual(self.repo.calls, ["user-1"])
        self.assertEqual(self.recorder.events, [("in", "user-1")])

    def test_sign_in_without_subscription(self):
        self.tracker.stop()
        self.http.request.return_value = (200, session_body())
        self.tracker.sign_in("ada@example.com", "secret")
        self.assertEqual(self.repo.calls, ["user-1"])

    def test_sign_in_failure_reported(self):
        self.http.request.side_effect = AuthenticationFailed("Invalid login credentials")
        with self.assertRaises(AuthenticationFailed):
            self.tracker.sign_in("ada@example.com", "wrong")
        self.assertIsNone(self.ctx.principal)
        self.assertEqual(self.recorder.errors, [("auth", "Invalid login credentials")])

    def test_sign_in_requires_credentials(self):
        with self.assertRaises(AuthenticationFailed):
            self.tracker.sign_in("", "")
        self.http.request.assert_not_called()

    def test_signed_out_event_clears_everything(self):
        self.http.request.return_value = (200, session_body())
        self.tracker.sign_in("ada@example.com", "secret")
        self.ctx.set_editing("user-1-n1")

        self.tracker.on_session_changed(AuthEvent.SIGNED_OUT, None)

        self.assertIsNone(self.ctx.principal)
        self.assertEqual(self.ctx.notes, [])
        self.assertIsNone(self.ctx.editing_note_id)
        self.assertEqual(self.recorder.events[-1], ("out",))

    def test_sign_out_clears_even_if_revoke_fails(self):
        self.http.request.return_value = (200, session_body())
        self.tracker.sign_in("ada@example.com", "secret")
        self.http.request.side_effect = AuthenticationFailed("session not found")

        with self.assertRaises(AuthenticationFailed):
            self.tracker.sign_out()

        self.assertIsNone(self.ctx.principal)
        self.assertEqual(self.ctx.notes, [])

    def test_switching_principal_never_shows_previous_notes(self):
        self.http.request.return_value = (200, session_body())
        self.tracker.sign_in("ada@example.com", "secret")
        seen = []
        self.repo.on_list = lambda: seen.append(self.ctx.notes)

        bob = AuthSession.model_validate(session_body("user-2", "bob@example.com"))
        self.tracker.on_session_changed(AuthEvent.SIGNED_IN, bob)

        self.assertEqual(seen, [[]])
        self.assertEqual([n.owner_id for n in self.ctx.notes], ["user-2"])

    def test_token_refresh_keeps_cache(self):
        self.http.request.return_value = (200, session_body())
        self.tracker.sign_in("ada@example.com", "secret")
        refreshed = AuthSession.model_validate(session_body(access_token="new"))

        self.tracker.on_session_changed(AuthEvent.TOKEN_REFRESHED, refreshed)

        self.assertEqual(self.repo.calls, ["user-1"])
        self.assertEqual(len(self.ctx.notes), 1)

    def test_token_refresh_while_signed_out_is_ignored(self):
        refreshed = AuthSession.model_validate(session_body())
        self.tracker.on_session_changed(AuthEvent.TOKEN_REFRESHED, refreshed)
        self.assertIsNone(self.ctx.principal)
        self.assertEqual(self.repo.calls, [])

    def test_sign_up_pending_verification(self):
        self.http.request.return_value = (200, {"id": "user-3", "email": "new@example.com"})
        outcome = self.tracker.sign_up("new@example.com", "secret1")
        self.assertEqual(outcome, SignUpOutcome.VERIFICATION_PENDING)
        self.assertIsNone(self.ctx.principal)

    def test_sign_up_signed_in(self):
        self.http.request.return_value = (200, session_body())
        outcome = self.tracker.sign_up("ada@example.com", "secret1")
        self.assertEqual(outcome, SignUpOutcome.SIGNED_IN)
        self.assertEqual(self.ctx.principal.id, "user-1")

    def test_sign_up_empty_response_tries_sign_in(self):
        self.http.request.side_effect = [
            (200, {}),
            AuthenticationFailed("Email not confirmed"),
        ]
        outcome = self.tracker.sign_up("new@example.com", "secret1")
        self.assertEqual(outcome, SignUpOutcome.VERIFICATION_PENDING)
        self.assertEqual(self.http.request.call_count, 2)

    def test_sign_up_fallback_failure_is_reported(self):
        self.http.request.side_effect = [(200, {}), TransientStoreError("timed out")]
        with self.assertRaises(TransientStoreError):
            self.tracker.sign_up("new@example.com", "secret1")
        self.assertEqual(
            self.recorder.errors,
            [("auth", "Failed to create account. The service is unreachable right now. Please try again.")],
        )
        self.assertIsNone(self.ctx.principal)

    def test_sign_up_rejects_short_password(self):
        with self.assertRaises(AuthenticationFailed):
            self.tracker.sign_up("new@example.com", "12345")
        self.http.request.assert_not_called()
        self.assertEqual(
            self.recorder.errors, [("auth", "Password must be at least 6 characters long")]
        )

    def test_redirect_with_error(self):
        with self.assertRaises(AuthenticationFailed) as ctx:
            self.tracker.handle_redirect(
                "https://app.example.com/#error=access_denied&error_description=Email+link+is+invalid"
            )
        self.assertEqual(str(ctx.exception), "Authentication error: Email link is invalid")
        self.http.request.assert_not_called()

    def test_redirect_with_token_hash(self):
        self.http.request.return_value = (200, session_body())
        principal = self.tracker.handle_redirect("https://app.example.com/?token_hash=abc&type=email")
        self.assertEqual(principal.id, "user-1")
        self.http.request.assert_called_once_with(
            "POST", "/verify", payload={"type": "email", "token_hash": "abc"}
        )

    def test_redirect_with_session_fragment(self):
        self.http.request.return_value = (200, {"id": "user-1", "email": "ada@example.com"})
        principal = self.tracker.handle_redirect(
            "https://app.example.com/#access_token=a.b.c&refresh_token=r1&type=signup"
        )
        self.assertEqual(principal.id, "user-1")
        self.assertEqual(self.storage.load()["refresh_token"], "r1")

    def test_redirect_without_tokens(self):
        self.assertIsNone(self.tracker.handle_redirect("https://app.example.com/notes"))
        self.http.request.assert_not_called()


class UnavailableClientTest(unittest.TestCase):
    def test_gate_timeout(self):
        recorder = Recorder()
        ctx = SessionContext(recorder)
        tracker = SessionTracker(ClientGate(timeout=0.01), ctx, NoteCache(Repo()))

        self.assertFalse(tracker.start())
        self.assertIsNone(tracker.restore_session())
        self.assertEqual(recorder.events, [("out",)])
        self.assertEqual(recorder.errors[0][0], "session")
        with self.assertRaises(ClientInitializationError):
            tracker.sign_in("ada@example.com", "secret")

    def test_sign_out_clears_state_without_client(self):
        recorder = Recorder()
        ctx = SessionContext(recorder)
        ctx.set_principal(Principal("user-1", "ada@example.com"))
        ctx.set_editing("n1")
        tracker = SessionTracker(ClientGate(timeout=0.01), ctx, NoteCache(Repo()))

        with self.assertRaises(ClientInitializationError):
            tracker.sign_out()

        self.assertIsNone(ctx.principal)
        self.assertIsNone(ctx.editing_note_id)
        self.assertEqual(recorder.events, [("out",)])
        self.assertEqual(recorder.errors[0][0], "auth")


if __name__ == "__main__":
    unittest.main()
