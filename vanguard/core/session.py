"""Session storage capability (auth token + user profile).

The stored session is only read to decide per-listing manage permissions.
Stores are injected into services instead of being read from a global.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ValidationError
from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker

from vanguard.core.config import settings
from vanguard.core.logging import get_logger
from vanguard.models.base import Base
from vanguard.models.session_entry import SessionEntry

log = get_logger("session")

AUTH_KEY = "auth"


class SessionUser(BaseModel):
    id: Union[int, str]
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


class AuthSession(BaseModel):
    token: str
    user: SessionUser


class SessionStore(ABC):
    """Key-value capability: get, set, clear."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serialisable value under key."""

    @abstractmethod
    def clear(self, key: Optional[str] = None) -> None:
        """Remove one key, or everything when key is None."""

    def load_auth(self) -> Optional[AuthSession]:
        raw = self.get(AUTH_KEY)
        if raw is None:
            return None
        try:
            return AuthSession.model_validate(raw)
        except ValidationError as exc:
            log.warning(f"Ignoring malformed stored session: {exc.error_count()} error(s)")
            return None

    def save_auth(self, auth: AuthSession) -> None:
        self.set(AUTH_KEY, auth.model_dump(mode="json"))


class InMemorySessionStore(SessionStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            self._data.clear()
        else:
            self._data.pop(key, None)


class JsonFileSessionStore(SessionStore):
    """Persists all keys in one JSON document on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError:
            log.warning(f"Session file {self.path} is not valid JSON; treating as empty")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            if self.path.exists():
                self.path.unlink()
            return
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class SqlSessionStore(SessionStore):
    """Stores each key as a row in the session_entries table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        Base.metadata.create_all(session_factory.kw["bind"])

    def get(self, key: str) -> Optional[Any]:
        with self.session_factory() as db:
            entry = db.get(SessionEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: Any) -> None:
        with self.session_factory() as db:
            entry = db.get(SessionEntry, key)
            if entry is None:
                db.add(SessionEntry(key=key, value=value))
            else:
                entry.value = value
            db.commit()

    def clear(self, key: Optional[str] = None) -> None:
        with self.session_factory() as db:
            stmt = delete(SessionEntry)
            if key is not None:
                stmt = stmt.where(SessionEntry.key == key)
            db.execute(stmt)
            db.commit()


def build_session_store() -> SessionStore:
    """Create the store selected by SESSION_BACKEND."""
    backend = settings.SESSION_BACKEND
    if backend == "file":
        return JsonFileSessionStore(settings.SESSION_FILE)
    if backend == "sql":
        from vanguard.core.db import SessionLocal

        return SqlSessionStore(SessionLocal)
    return InMemorySessionStore()
