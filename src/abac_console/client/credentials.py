"""Credential providers for API authentication.

The CredentialProvider protocol is the single place bearer tokens come
from; API calls ask their provider instead of reading storage themselves.

Providers:
- StaticCredentialProvider: fixed token (tests, scripting)
- EnvCredentialProvider: ABAC_CONSOLE_TOKEN environment variable
- FileCredentialProvider: credentials.json in the config dir, written by
  `abac-console auth login`
- ChainCredentialProvider: first provider returning a token wins
"""

from __future__ import annotations

__all__ = [
    "ChainCredentialProvider",
    "CredentialProvider",
    "EnvCredentialProvider",
    "FileCredentialProvider",
    "StaticCredentialProvider",
    "default_credential_provider",
    "get_credentials_path",
]

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from abac_console.constants import CREDENTIALS_FILENAME, ENV_TOKEN
from abac_console.utils.file_helpers import atomic_write_text, get_app_dir, set_secure_permissions


@runtime_checkable
class CredentialProvider(Protocol):
    """Protocol for pluggable token sources."""

    def get_token(self) -> str | None:
        """Return the bearer token, or None if no credential is available."""
        ...


class StaticCredentialProvider:
    """Always returns the token it was created with."""

    def __init__(self, token: str | None) -> None:
        self._token = token or None

    def get_token(self) -> str | None:
        return self._token


class EnvCredentialProvider:
    """Reads the token from an environment variable on every call."""

    def __init__(self, variable: str = ENV_TOKEN) -> None:
        self.variable = variable

    def get_token(self) -> str | None:
        value = os.environ.get(self.variable, "").strip()
        return value or None


def get_credentials_path() -> Path:
    """Path to credentials.json in the OS config directory."""
    return get_app_dir() / CREDENTIALS_FILENAME


class FileCredentialProvider:
    """Token stored as JSON ({"token": "...", "saved_at": "..."}).

    Unreadable or malformed files are treated as "no credential".
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or get_credentials_path()

    def get_token(self) -> str | None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return None
        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str):
            return None
        return token.strip() or None

    def save_token(self, token: str) -> None:
        """Store a token with 0o600 permissions (directory 0o700)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        set_secure_permissions(self.path.parent, is_directory=True)
        payload = {"token": token, "saved_at": datetime.now(timezone.utc).isoformat()}
        atomic_write_text(self.path, json.dumps(payload, indent=2) + "\n", prefix=".credentials_", secure=True)

    def clear(self) -> bool:
        """Delete the stored token. Returns True if a file was removed."""
        try:
            self.path.unlink()
            return True
        except FileNotFoundError:
            return False


class ChainCredentialProvider:
    """Tries providers in order; the first non-empty token wins."""

    def __init__(self, *providers: CredentialProvider) -> None:
        self.providers = providers

    def get_token(self) -> str | None:
        for provider in self.providers:
            token = provider.get_token()
            if token:
                return token
        return None


def default_credential_provider() -> ChainCredentialProvider:
    """Environment variable first, then the stored credentials file."""
    return ChainCredentialProvider(EnvCredentialProvider(), FileCredentialProvider())
