"""
Pydantic models for the auth and table endpoints.

Models for these payloads:
    - {url}/auth/v1/token?grant_type=password|refresh_token  -> AuthSession
    - {url}/auth/v1/signup                                   -> SignUpResponse
    - {url}/auth/v1/user, {url}/auth/v1/verify               -> AuthUser / AuthSession
    - {url}/rest/v1/<table>                                  -> NoteRow
    - error bodies of both services                          -> ErrorPayload
"""

from __future__ import annotations

import os
import time
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from dateutil.parser import isoparse
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator, model_validator


def _env_extra_mode(default: str = "ignore") -> str:
    """
    Determine the extra-mode from environment vars.

    SUPANOTES_MODELS_EXTRA: allow|forbid|ignore
    Convenience booleans: "true/1/on" -> forbid (strict), "false/0/off" -> allow
    """
    raw = (os.getenv("SUPANOTES_MODELS_EXTRA") or default).strip().lower()

    if raw in {"allow", "forbid", "ignore"}:
        return raw
    if raw in {"1", "true", "yes", "on", "strict"}:
        return "forbid"
    if raw in {"0", "false", "no", "off", "lenient"}:
        return "allow"
    return default


class StoreModel(BaseModel):
    """
    Project-wide base model.

    Servers add columns and fields freely, so unknown keys are ignored unless
    SUPANOTES_MODELS_EXTRA says otherwise.
    """

    model_config = ConfigDict(extra=_env_extra_mode(), populate_by_name=True)


def _parse_timestamp(v: Any) -> Any:
    if isinstance(v, str) and v:
        return isoparse(v)
    return v


# ─── Auth ────────────────────────────────────────────────────────────────────


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


class AuthUser(StoreModel):
    """The user object embedded in sessions."""

    id: str
    email: Optional[EmailStr] = None
    email_confirmed_at: Optional[datetime] = None

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, v):
        # phone-only accounts come back with ""
        return v or None

    @field_validator("email_confirmed_at", mode="before")
    @classmethod
    def _parse_confirmed(cls, v):
        return _parse_timestamp(v)


class AuthSession(StoreModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    """Expiry as epoch seconds."""
    user: AuthUser

    @model_validator(mode="after")
    def _fill_expires_at(self) -> "AuthSession":
        if self.expires_at is None and self.expires_in is not None:
            self.expires_at = int(time.time()) + int(self.expires_in)
        return self

    def is_expired(self, *, margin: float = 10.0, now: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return False
        current = time.time() if now is None else now
        return self.expires_at <= current + margin


class SignUpResponse(StoreModel):
    """Sign-up result. ``session`` is None while e-mail verification is pending."""

    user: Optional[AuthUser] = None
    session: Optional[AuthSession] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "SignUpResponse":
        if data.get("access_token"):
            session = AuthSession.model_validate(data)
            return cls(user=session.user, session=session)
        if "user" in data and isinstance(data["user"], dict):
            return cls(user=AuthUser.model_validate(data["user"]))
        if data.get("id"):
            return cls(user=AuthUser.model_validate(data))
        return cls()


# ─── Table rows ──────────────────────────────────────────────────────────────


class NoteRow(StoreModel):
    """A row of the notes table, after the owner column is mapped to owner_id."""

    id: str
    owner_id: str
    title: str = ""
    content: str = ""
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("id", "owner_id", mode="before")
    @classmethod
    def _as_text(cls, v):
        # bigint and uuid keys both surface as strings
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("title", "content", mode="before")
    @classmethod
    def _null_text(cls, v):
        return "" if v is None else v

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _parse_dates(cls, v):
        return _parse_timestamp(v)

    @model_validator(mode="after")
    def _default_updated(self) -> "NoteRow":
        if self.updated_at is None:
            self.updated_at = self.created_at
        return self


# ─── Errors ──────────────────────────────────────────────────────────────────


class ErrorPayload(StoreModel):
    """
    Union of the error bodies returned by the table service
    (code/message/details/hint) and the auth service
    (error/error_description, or error_code/msg on newer servers).
    """

    model_config = ConfigDict(extra="ignore")

    code: Optional[str] = None
    message: Optional[str] = None
    details: Optional[str] = None
    hint: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    error_description: Optional[str] = None
    msg: Optional[str] = None

    @field_validator("code", mode="before")
    @classmethod
    def _code_text(cls, v):
        # the auth service reports the HTTP status as an integer "code"
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("details", "hint", mode="before")
    @classmethod
    def _flatten(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @property
    def reason(self) -> Optional[str]:
        return self.error_code or self.error or self.code

    @property
    def text(self) -> Optional[str]:
        return self.message or self.msg or self.error_description or self.error


__all__ = [
    "AuthEvent",
    "AuthUser",
    "AuthSession",
    "SignUpResponse",
    "NoteRow",
    "ErrorPayload",
    "StoreModel",
]
