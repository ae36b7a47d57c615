"""
Low-level client for the backend-as-a-service project.

Two HTTP services hang off the project URL:
  - {url}/rest/v1  table access (filters as ``col=eq.value`` query params)
  - {url}/auth/v1  sessions and users (see :mod:`.auth`)

This module owns the transport and the classification of remote failures into
typed exceptions. Callers never look at status codes or message text.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from pydantic import ValidationError

from supanotes.config import Settings, env_flag
from supanotes.exceptions import (
    AuthenticationFailed,
    PermissionDenied,
    SchemaMissing,
    StoreApiError,
    TransientStoreError,
)

from .auth import AuthClient, SessionStorage
from .models import ErrorPayload

LOGGER = logging.getLogger(__name__)

# relation does not exist / table missing from the schema cache
_SCHEMA_CODES = {"42P01", "PGRST205", "PGRST106"}
# insufficient_privilege (grants and row-level security)
_PERMISSION_CODES = {"42501"}
# JWT expired / malformed on the table service
_TOKEN_CODES = {"PGRST301", "PGRST302", "PGRST303"}


def classify_error(
    status: int, body: Optional[object], *, service: str = "rest"
) -> StoreApiError:
    """Turn an HTTP error response into the matching typed exception."""
    payload = ErrorPayload()
    if isinstance(body, dict):
        try:
            payload = ErrorPayload.model_validate(body)
        except ValidationError:
            LOGGER.debug("Unrecognized error body: %r", body)
    reason = payload.reason
    message = payload.text or f"HTTP {status}"
    kwargs: Dict[str, Any] = {"status": status, "code": reason, "payload": body}

    if reason in _SCHEMA_CODES:
        return SchemaMissing(message, **kwargs)
    if reason in _PERMISSION_CODES:
        return PermissionDenied(message, **kwargs)
    if reason in _TOKEN_CODES:
        return AuthenticationFailed(message, **kwargs)
    if status in (408, 429) or status >= 500:
        return TransientStoreError(message, **kwargs)
    if service == "auth" and 400 <= status < 500:
        return AuthenticationFailed(message, **kwargs)
    if status in (401, 403):
        return PermissionDenied(message, **kwargs)
    return StoreApiError(message, **kwargs)


# ------------------------------- Transport -----------------------------------


class _RestClient:
    """
    Minimal HTTP transport:
      - JSON bodies via `json=payload`
      - `apikey` + bearer headers on every call
      - Bounded debug dumps (SUPANOTES_DEBUG, SUPANOTES_DEBUG_MAX_BYTES)
    """

    def __init__(
        self,
        base_url: str,
        session: requests.Session,
        api_key: str,
        *,
        service: str = "rest",
        timeout: float = 10.0,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._api_key = api_key
        self._service = service
        self._timeout = timeout
        self._token_provider = token_provider
        LOGGER.debug("Initialized _RestClient with base_url: %s", self._base_url)

    def _headers(self, token: Optional[str], extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        if token is None and self._token_provider is not None:
            token = self._token_provider()
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {token or self._api_key}",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[List[Tuple[str, str]]] = None,
        payload: Optional[object] = None,
        headers: Optional[Dict[str, str]] = None,
        token: Optional[str] = None,
    ) -> Tuple[int, Optional[object]]:
        url = f"{self._base_url}{path}"
        LOGGER.info("%s %s", method, url)
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=self._headers(token, headers),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            LOGGER.error("%s %s failed: %s", method, url, exc)
            raise TransientStoreError(f"Network error: {exc}") from exc

        code = getattr(resp, "status_code", 0)
        LOGGER.debug("%s %s returned status %d", method, url, code)
        if code >= 400:
            self._dump_http_debug(method, url, params, payload, resp)
            try:
                body = resp.json()
            except ValueError:
                body = getattr(resp, "text", None)
            error = classify_error(code, body, service=self._service)
            if code == 429 and isinstance(error, TransientStoreError):
                hdr = resp.headers.get("Retry-After") if resp.headers else None
                if hdr:
                    try:
                        error.retry_after = float(hdr)
                    except ValueError:
                        pass
            LOGGER.error(
                "%s %s failed with code %d (%s)", method, url, code, type(error).__name__
            )
            raise error

        if code == 204 or not (getattr(resp, "content", b"") or b"").strip():
            return code, None
        try:
            return code, resp.json()
        except ValueError as exc:
            self._dump_http_debug(method, url, params, payload, resp)
            LOGGER.error("Failed to parse JSON response from %s", url)
            raise StoreApiError(
                "Invalid JSON response",
                status=code,
                payload=getattr(resp, "text", None),
            ) from exc

    @staticmethod
    def _dump_http_debug(method, url, params, payload, resp) -> None:
        if not env_flag("SUPANOTES_DEBUG"):
            return
        ts = time.strftime("%Y%m%d-%H%M%S")
        out_dir = os.path.join("workspace", "supanotes_debug")
        path = os.path.join(out_dir, f"{ts}_{method.lower()}_http.txt")
        max_bytes = int(os.getenv("SUPANOTES_DEBUG_MAX_BYTES", "524288"))
        body_text = getattr(resp, "text", "") or ""
        if len(body_text) > max_bytes:
            body_text = body_text[:max_bytes] + "\n[truncated]\n"
        try:
            os.makedirs(out_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(f"{method} {url}\nparams={params}\n")
                f.write(json.dumps(payload, ensure_ascii=False, indent=2, default=str))
                f.write(f"\n\nstatus={getattr(resp, 'status_code', None)}\n\n")
                f.write(body_text)
        except OSError as exc:
            LOGGER.debug("Could not write debug dump %s: %s", path, exc)


# ------------------------------ Table queries --------------------------------


@dataclass(frozen=True)
class QueryResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    status: int = 200

    @property
    def count(self) -> int:
        return len(self.rows)


def _filter_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TableQuery:
    """
    Chainable request against one table.

        client.table("notes").select("*").eq("user_id", uid).order("created_at", desc=True).execute()
        client.table("notes").insert({...}).select().execute()
        client.table("notes").update({...}).eq("id", nid).eq("user_id", uid).select().execute()
        client.table("notes").delete().eq("id", nid).eq("user_id", uid).execute()

    Mutations return rows only when ``select()`` is chained after them.
    """

    def __init__(self, http: _RestClient, table: str):
        self._http = http
        self._table = table
        self._method = "GET"
        self._payload: Optional[object] = None
        self._filters: List[Tuple[str, str]] = []
        self._order: List[str] = []
        self._columns: Optional[str] = None

    def select(self, columns: str = "*") -> "TableQuery":
        self._columns = columns
        return self

    def insert(self, values: Dict[str, Any]) -> "TableQuery":
        self._method = "POST"
        self._payload = values
        return self

    def update(self, values: Dict[str, Any]) -> "TableQuery":
        self._method = "PATCH"
        self._payload = values
        return self

    def delete(self) -> "TableQuery":
        self._method = "DELETE"
        return self

    def eq(self, column: str, value: object) -> "TableQuery":
        self._filters.append((column, f"eq.{_filter_value(value)}"))
        return self

    def order(self, column: str, *, desc: bool = False) -> "TableQuery":
        self._order.append(f"{column}.{'desc' if desc else 'asc'}")
        return self

    def params(self) -> List[Tuple[str, str]]:
        out: List[Tuple[str, str]] = []
        if self._columns is not None:
            out.append(("select", self._columns))
        out.extend(self._filters)
        if self._order:
            out.append(("order", ",".join(self._order)))
        return out

    def execute(self) -> QueryResult:
        headers: Dict[str, str] = {}
        if self._method != "GET":
            returning = "representation" if self._columns is not None else "minimal"
            headers["Prefer"] = f"return={returning}"
        elif self._columns is None:
            self._columns = "*"
        status, body = self._http.request(
            self._method,
            f"/{self._table}",
            params=self.params(),
            payload=self._payload,
            headers=headers,
        )
        if body is None:
            rows: List[Dict[str, Any]] = []
        elif isinstance(body, list):
            rows = body
        elif isinstance(body, dict):
            rows = [body]
        else:
            raise StoreApiError("Unexpected table response", status=status, payload=body)
        LOGGER.debug("%s %s returned %d rows", self._method, self._table, len(rows))
        return QueryResult(rows=rows, status=status)


# ------------------------------ Store client ---------------------------------


class StoreClient:
    """
    Authenticated entry point: ``client.auth`` for sessions,
    ``client.table(name)`` for rows. Table calls carry the current session's
    access token, refreshing it first when it has expired.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        *,
        session: Optional[requests.Session] = None,
        storage: Optional[SessionStorage] = None,
        timeout: float = 10.0,
    ):
        if not url or not anon_key:
            raise ValueError("Both a project url and an anon key are required")
        self._session = session or requests.Session()
        base = url.rstrip("/")
        self.auth = AuthClient(
            _RestClient(
                f"{base}/auth/v1",
                self._session,
                anon_key,
                service="auth",
                timeout=timeout,
            ),
            storage=storage,
        )
        self._rest = _RestClient(
            f"{base}/rest/v1",
            self._session,
            anon_key,
            timeout=timeout,
            token_provider=self._access_token,
        )
        LOGGER.info("StoreClient initialized for %s", base)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        session: Optional[requests.Session] = None,
        storage: Optional[SessionStorage] = None,
    ) -> "StoreClient":
        return cls(
            settings.url,
            settings.anon_key,
            session=session,
            storage=storage,
            timeout=settings.request_timeout,
        )

    def _access_token(self) -> Optional[str]:
        current = self.auth.get_session()
        return current.access_token if current else None

    def table(self, name: str) -> TableQuery:
        return TableQuery(self._rest, name)
