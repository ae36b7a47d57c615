"""Library exceptions.

Every error raised by supanotes carries an :class:`ErrorKind`. The kind is
decided once, where the failure is observed (the HTTP transport for remote
failures, the cache for local validation), and never re-derived from message
text further up.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Classification of a failure by cause."""

    INITIALIZATION = "initialization"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    SCHEMA_MISSING = "schema_missing"
    TRANSIENT = "transient"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class NotesError(Exception):
    """Base supanotes error."""

    kind: ErrorKind = ErrorKind.UNKNOWN


class ClientInitializationError(NotesError):
    """The store client never became ready."""

    kind = ErrorKind.INITIALIZATION


class NotSignedIn(NotesError):
    """An operation needing a principal ran without one."""

    kind = ErrorKind.AUTHENTICATION


class NoteValidationError(NotesError):
    """Title or content failed local validation."""

    kind = ErrorKind.VALIDATION


class NoteNotFound(NotesError):
    """The note is absent or not owned by the current principal."""

    kind = ErrorKind.NOT_FOUND


class StoreApiError(NotesError):
    """Catch-all remote error.

    ``status`` is the HTTP status (``None`` for connection failures),
    ``code`` the structured error code reported by the backend, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        payload: Optional[object] = None,
    ):
        super().__init__(message)
        self.status = status
        self.code = code
        self.payload = payload


class AuthenticationFailed(StoreApiError):
    """Bad credentials, weak password, expired or invalid token."""

    kind = ErrorKind.AUTHENTICATION


class PermissionDenied(StoreApiError):
    """Row-level security or grant rejected the request."""

    kind = ErrorKind.AUTHORIZATION


class SchemaMissing(StoreApiError):
    """The backing table does not exist."""

    kind = ErrorKind.SCHEMA_MISSING


class TransientStoreError(StoreApiError):
    """Network failure, timeout, rate limiting or server-side error."""

    kind = ErrorKind.TRANSIENT

    def __init__(self, message: str, *, retry_after: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


_KIND_HINTS = {
    ErrorKind.AUTHORIZATION: "Permission denied. Please check your database policies.",
    ErrorKind.SCHEMA_MISSING: "Notes table not found. Please create the table in your project.",
    ErrorKind.NOT_FOUND: "Note not found or you do not have permission to change it.",
    ErrorKind.INITIALIZATION: "The backend client is not initialized. Please check your configuration.",
    ErrorKind.TRANSIENT: "The service is unreachable right now. Please try again.",
}


def describe_error(action: str, error: BaseException) -> str:
    """Build the user-facing message for a failed ``action``.

    ``action`` is a short phrase such as ``"load notes"``.
    """
    kind = getattr(error, "kind", ErrorKind.UNKNOWN)
    hint = _KIND_HINTS.get(kind)
    if hint is None:
        hint = str(error) or "Please try again."
    if kind in (ErrorKind.VALIDATION, ErrorKind.AUTHENTICATION):
        return hint
    return f"Failed to {action}. {hint}"


__all__ = [
    "ErrorKind",
    "NotesError",
    "ClientInitializationError",
    "NotSignedIn",
    "NoteValidationError",
    "NoteNotFound",
    "StoreApiError",
    "AuthenticationFailed",
    "PermissionDenied",
    "SchemaMissing",
    "TransientStoreError",
    "describe_error",
]
