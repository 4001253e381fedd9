"""Bearer credential storage and the invalidation signal."""

from pathlib import Path
from typing import Callable, Optional

import yaml


class AuthEvents:
    """Broadcast authentication events to whoever subscribed."""

    def __init__(self) -> None:
        self._listeners: list[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def token_invalidated(self) -> None:
        """Tell subscribers the credential is gone and re-authentication is needed."""
        for listener in list(self._listeners):
            listener()


class TokenStore:
    """Hold the backend API token.

    With a path the token survives restarts in a small YAML file;
    without one it lives only in memory.
    """

    def __init__(self, token: Optional[str] = None, path: Optional[Path] = None) -> None:
        self.path = path
        self._token = token
        if self._token is None and self.path is not None:
            self._token = self._read()

    def get_token(self) -> Optional[str]:
        return self._token

    def save_token(self, token: str) -> None:
        self._token = token
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump({"api_token": token}, f)

    def delete_token(self) -> None:
        self._token = None
        if self.path is not None:
            self.path.unlink(missing_ok=True)

    def _read(self) -> Optional[str]:
        if self.path is None or not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            print(f"⚠️  Warning: Could not read token file {self.path}: {e}")
            return None
        token = data.get("api_token") if isinstance(data, dict) else None
        return token or None
