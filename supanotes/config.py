"""Runtime settings for the notes client."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional


def _env_str(*names: str, default: str = "") -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value.strip()
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_flag(name: str) -> bool:
    """Interpret ``name`` as a boolean switch (1/true/yes/on)."""
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    # Project endpoint, e.g. https://<ref>.supabase.co
    url: str = ""
    # Public (anon) API key; row-level security does the scoping
    anon_key: str = ""

    table: str = "notes"
    owner_column: str = "user_id"

    # One-shot wait for the store client to become available
    ready_timeout: float = 2.0
    request_timeout: float = 10.0

    # Where the auth session is persisted; None keeps it in memory only
    session_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            url=_env_str("SUPANOTES_URL", "SUPABASE_URL"),
            anon_key=_env_str("SUPANOTES_ANON_KEY", "SUPABASE_ANON_KEY"),
            table=_env_str("SUPANOTES_TABLE", default="notes"),
            owner_column=_env_str("SUPANOTES_OWNER_COLUMN", default="user_id"),
            ready_timeout=_env_float("SUPANOTES_READY_TIMEOUT", 2.0),
            request_timeout=_env_float("SUPANOTES_REQUEST_TIMEOUT", 10.0),
        )

    def merged(self, overrides: Dict[str, Any]) -> "Settings":
        """Return a copy with the non-empty known keys of ``overrides`` applied."""
        known = {
            k: v
            for k, v in overrides.items()
            if k in self.__dataclass_fields__ and v not in (None, "")
        }
        return replace(self, **known)

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)
