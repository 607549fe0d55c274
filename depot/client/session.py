"""
Client-side session: the signed-in user and their bearer token.

Lifecycle: :meth:`Session.load` once at start-up, :meth:`Session.store`
after login/registration, :meth:`Session.clear` on logout or any 401.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class SessionUser(BaseModel):
    id: int
    username: str
    position: str
    branch: str | None = None


# ── Token stores ────────────────────────────────────────────────────
class TokenStore:
    """Persists ``{"token", "user"}`` between runs."""

    def load(self) -> dict | None:
        raise NotImplementedError

    def save(self, data: dict) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryTokenStore(TokenStore):
    def __init__(self, data: dict | None = None) -> None:
        self.data = data

    def load(self) -> dict | None:
        return self.data

    def save(self, data: dict) -> None:
        self.data = data

    def clear(self) -> None:
        self.data = None


class FileTokenStore(TokenStore):
    """JSON file on disk, the local-storage equivalent."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> dict | None:
        if not self.path.exists():
            return None
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return None

    def save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


# ── Session ─────────────────────────────────────────────────────────
class Session:
    def __init__(self, token_store: TokenStore | None = None) -> None:
        self.token_store = token_store or MemoryTokenStore()
        self.token: str | None = None
        self.user: SessionUser | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None

    def load(self) -> bool:
        """Restore a persisted session; returns whether one was found."""
        data = self.token_store.load()
        if not data or not data.get("token") or not data.get("user"):
            self.token, self.user = None, None
            return False
        try:
            self.user = SessionUser.model_validate(data["user"])
        except ValueError:
            logger.warning("Discarding persisted session with malformed user")
            self.clear()
            return False
        self.token = data["token"]
        return True

    def store(self, token: str, user: dict | SessionUser) -> None:
        self.token = token
        self.user = user if isinstance(user, SessionUser) else SessionUser.model_validate(user)
        self.token_store.save({"token": token, "user": self.user.model_dump()})

    def set_user(self, user: dict | SessionUser) -> None:
        """Refresh the cached profile without touching the token."""
        if self.token is None:
            return
        self.store(self.token, user)

    def clear(self) -> None:
        self.token = None
        self.user = None
        self.token_store.clear()
