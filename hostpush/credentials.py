"""Local storage for the GitHub access token."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Sequence

ENV_TOKEN_KEYS = ("HOSTPUSH_GITHUB_TOKEN", "GITHUB_TOKEN")


class CredentialError(RuntimeError):
    """Raised when no GitHub token can be found."""


def default_token_path() -> Path:
    base = os.getenv("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "hostpush" / "token"


class TokenStore:
    """Keeps the token in a user-only file on this machine."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or default_token_path()

    def load(self) -> Optional[str]:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def save(self, token: str) -> None:
        token = token.strip()
        if not token:
            raise CredentialError("Refusing to store an empty token")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(token)
        os.chmod(self.path, 0o600)

    def clear(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True


def _first_env_value(keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


def resolve_token(explicit: str | None = None, *, store: TokenStore | None = None) -> str:
    """Return the token from the argument, the environment, or the local store."""
    if explicit:
        return explicit
    env_value = _first_env_value(ENV_TOKEN_KEYS)
    if env_value:
        return env_value
    stored = (store or TokenStore()).load()
    if stored:
        return stored
    raise CredentialError(
        "No GitHub token found. Run `hostpush login --token <token>` or set HOSTPUSH_GITHUB_TOKEN."
    )


__all__ = ["CredentialError", "TokenStore", "default_token_path", "resolve_token"]
