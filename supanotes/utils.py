"""Utilities."""

from __future__ import annotations

import keyring
from keyring.errors import KeyringError

KEYRING_SYSTEM = "supanotes://notes-password"


def password_exists_in_keyring(email: str) -> bool:
    try:
        get_password_from_keyring(email)
    except KeyError:
        return False
    return True


def get_password_from_keyring(email: str) -> str:
    try:
        password = keyring.get_password(KEYRING_SYSTEM, email)
    except KeyringError as exc:
        raise KeyError(f"Keyring unavailable: {exc}") from exc
    if password is None:
        raise KeyError(f"No password saved in the keyring for {email}")
    return password


def store_password_in_keyring(email: str, password: str) -> None:
    keyring.set_password(KEYRING_SYSTEM, email, password)


def delete_password_in_keyring(email: str) -> None:
    keyring.delete_password(KEYRING_SYSTEM, email)
