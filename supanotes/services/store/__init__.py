"""Public API for the remote store client."""

from .auth import AuthClient, FileSessionStorage, MemorySessionStorage, SessionStorage, Subscription
from .client import QueryResult, StoreClient, TableQuery, classify_error
from .models import AuthEvent, AuthSession, AuthUser, NoteRow, SignUpResponse
from .readiness import ClientGate

__all__ = [
    "StoreClient",
    "TableQuery",
    "QueryResult",
    "classify_error",
    "AuthClient",
    "AuthEvent",
    "AuthSession",
    "AuthUser",
    "SignUpResponse",
    "NoteRow",
    "SessionStorage",
    "MemorySessionStorage",
    "FileSessionStorage",
    "Subscription",
    "ClientGate",
]
