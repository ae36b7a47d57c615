"""Tests for the auth client and its session storage."""

import base64
import json
import os
import tempfile
import time
import unittest
from unittest.mock import MagicMock

from supanotes.exceptions import AuthenticationFailed
from supanotes.services.store import AuthEvent, FileSessionStorage, MemorySessionStorage
from supanotes.services.store.auth import AuthClient, _jwt_expiry


def make_session(user_id="user-1", email="ada@example.com", token="access-1", **extra):
    data = {
        "access_token": token,
        "refresh_token": "refresh-" + token,
        "token_type": "bearer",
        "expires_in": 3600,
        "user": {"id": user_id, "email": email},
    }
    data.update(extra)
    return data


def make_jwt(exp):
    claims = base64.urlsafe_b64encode(json.dumps({"exp": exp}).encode()).decode().rstrip("=")
    return f"header.{claims}.signature"


class AuthClientTest(unittest.TestCase):
    def setUp(self):
        self.http = MagicMock()
        self.storage = MemorySessionStorage()
        self.auth = AuthClient(self.http, storage=self.storage)
        self.events = []
        self.auth.on_auth_state_change(lambda event, session: self.events.append((event, session)))

    def test_sign_in_stores_session_and_notifies(self):
        self.http.request.return_value = (200, make_session())
        session = self.auth.sign_in_with_password("ada@example.com", "secret")

        self.http.request.assert_called_once_with(
            "POST",
            "/token",
            params=[("grant_type", "password")],
            payload={"email": "ada@example.com", "password": "secret"},
        )
        self.assertEqual(session.user.id, "user-1")
        self.assertIsNotNone(session.expires_at)
        self.assertEqual(self.auth.get_session().access_token, "access-1")
        self.assertEqual([e for e, _ in self.events], [AuthEvent.SIGNED_IN])

    def test_expired_session_is_refreshed_on_read(self):
        self.storage.save(make_session(expires_in=None, expires_at=int(time.time()) - 5))
        self.http.request.return_value = (200, make_session(token="access-2"))

        session = self.auth.get_session()

        self.assertEqual(session.access_token, "access-2")
        args, kwargs = self.http.request.call_args
        self.assertEqual(kwargs["params"], [("grant_type", "refresh_token")])
        self.assertEqual(kwargs["payload"], {"refresh_token": "refresh-access-1"})
        self.assertEqual([e for e, _ in self.events], [AuthEvent.TOKEN_REFRESHED])

    def test_rejected_refresh_signs_out(self):
        self.storage.save(make_session(expires_in=None, expires_at=int(time.time()) - 5))
        self.http.request.side_effect = AuthenticationFailed("Invalid Refresh Token")

        with self.assertRaises(AuthenticationFailed):
            self.auth.get_session()

        self.assertIsNone(self.storage.load())
        self.assertEqual([e for e, _ in self.events], [AuthEvent.SIGNED_OUT])

    def test_sign_up_pending_verification(self):
        self.http.request.return_value = (200, {"id": "user-9", "email": "new@example.com"})
        result = self.auth.sign_up("new@example.com", "secret1", redirect_to="https://app/cb")

        self.assertIsNone(result.session)
        self.assertEqual(result.user.id, "user-9")
        self.assertIsNone(self.storage.load())
        self.assertEqual(self.events, [])
        _, kwargs = self.http.request.call_args
        self.assertEqual(kwargs["params"], [("redirect_to", "https://app/cb")])

    def test_sign_up_with_session(self):
        self.http.request.return_value = (200, make_session())
        result = self.auth.sign_up("ada@example.com", "secret1")
        self.assertIsNotNone(result.session)
        self.assertEqual([e for e, _ in self.events], [AuthEvent.SIGNED_IN])

    def test_sign_out_clears_even_when_revoke_fails(self):
        self.storage.save(make_session())
        self.http.request.side_effect = AuthenticationFailed("session gone")

        with self.assertRaises(AuthenticationFailed):
            self.auth.sign_out()

        self.assertIsNone(self.storage.load())
        self.assertEqual([e for e, _ in self.events], [AuthEvent.SIGNED_OUT])

    def test_set_session_fetches_user(self):
        token = make_jwt(int(time.time()) + 600)
        self.http.request.return_value = (200, {"id": "user-1", "email": "ada@example.com"})

        session = self.auth.set_session(token, "refresh-x")

        self.http.request.assert_called_once_with("GET", "/user", token=token)
        self.assertEqual(session.refresh_token, "refresh-x")
        self.assertFalse(session.is_expired())
        self.assertEqual([e for e, _ in self.events], [AuthEvent.SIGNED_IN])

    def test_verify_otp(self):
        self.http.request.return_value = (200, make_session())
        self.auth.verify_otp("hash-1")
        self.http.request.assert_called_once_with(
            "POST", "/verify", payload={"type": "email", "token_hash": "hash-1"}
        )

    def test_unsubscribe_and_failing_listener(self):
        def broken(event, session):
            raise RuntimeError("boom")

        self.auth.on_auth_state_change(broken)
        subscription = self.auth.on_auth_state_change(lambda e, s: self.events.append("late"))
        subscription.unsubscribe()
        self.http.request.return_value = (200, make_session())

        self.auth.sign_in_with_password("ada@example.com", "secret")

        self.assertEqual(len(self.events), 1)

    def test_malformed_stored_session_is_dropped(self):
        self.storage.save({"access_token": "only"})
        self.assertIsNone(self.auth.get_session())
        self.assertIsNone(self.storage.load())

    def test_jwt_expiry(self):
        self.assertEqual(_jwt_expiry(make_jwt(1234)), 1234)
        self.assertIsNone(_jwt_expiry("not-a-jwt"))
        self.assertIsNone(_jwt_expiry("a.!!!.c"))


class FileSessionStorageTest(unittest.TestCase):
    def test_round_trip_and_permissions(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "nested", "session.json")
            storage = FileSessionStorage(path)
            self.assertIsNone(storage.load())

            storage.save({"access_token": "a"})
            self.assertEqual(storage.load(), {"access_token": "a"})
            if os.name == "posix":
                self.assertEqual(os.stat(path).st_mode & 0o777, 0o600)

            storage.clear()
            self.assertFalse(os.path.exists(path))

    def test_corrupt_file_is_ignored(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "session.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{not json")
            self.assertIsNone(FileSessionStorage(path).load())


if __name__ == "__main__":
    unittest.main()
