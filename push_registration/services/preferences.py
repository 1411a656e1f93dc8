"""Persistent key-value preferences stores.

The coordinator keeps the device identifier and the last permission
outcome here. Calls are synchronous and must survive process restarts
(except for the in-memory store, which exists for tests and ephemeral
hosts).
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

import redis

from push_registration.core.registration.exceptions import PreferencesError


@runtime_checkable
class PreferencesStore(Protocol):
    """Durable string storage keyed by string."""

    def get(self, key: str, default: str = "") -> str: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryPreferences:
    """Dict-backed store. Contents are lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str, default: str = "") -> str:
        return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Copy of the current contents, e.g. to simulate a restart."""
        return dict(self._data)


class JsonFilePreferences:
    """Stores preferences as a single JSON object on disk.

    Every write replaces the file atomically (temp file + ``os.replace``),
    so a crash mid-write leaves the previous contents intact. A file that
    exists but cannot be parsed raises ``PreferencesError`` rather than
    being silently reset, so callers can tell an empty store from a
    corrupt one.
    """

    def __init__(self, path: str | Path) -> None:
        self.file_path = Path(path)
        self._lock = threading.Lock()

    def get(self, key: str, default: str = "") -> str:
        with self._lock:
            value = self._load().get(key)
        return value if isinstance(value, str) else default

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

    def _load(self) -> dict:
        if not self.file_path.exists():
            return {}
        try:
            raw = json.loads(self.file_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PreferencesError(
                f"Cannot read preferences file {self.file_path}: {exc}"
            ) from exc
        if not isinstance(raw, dict):
            raise PreferencesError(
                f"Preferences file {self.file_path} does not hold a JSON object"
            )
        return raw

    def _save(self, data: dict) -> None:
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.file_path.parent, prefix=".prefs-", suffix=".tmp"
            )
        except OSError as exc:
            raise PreferencesError(
                f"Cannot write preferences file {self.file_path}: {exc}"
            ) from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.file_path)
        except (OSError, TypeError, ValueError) as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise PreferencesError(
                f"Cannot write preferences file {self.file_path}: {exc}"
            ) from exc


class RedisPreferences:
    """Redis-backed store for hosts that keep state in a shared Redis.

    All keys live under ``prefix``. Redis failures surface as
    ``PreferencesError``.
    """

    def __init__(
        self,
        url: str | None = None,
        prefix: str = "push_registration:",
        client: redis.Redis | None = None,
    ) -> None:
        if client is None:
            if not url:
                raise ValueError("RedisPreferences requires a url or a client")
            client = redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        self._client = client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str, default: str = "") -> str:
        try:
            value = self._client.get(self._key(key))
        except redis.RedisError as exc:
            raise PreferencesError(f"Redis unavailable reading {key}") from exc
        if value is None:
            return default
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self._client.set(self._key(key), value)
        except redis.RedisError as exc:
            raise PreferencesError(f"Redis unavailable writing {key}") from exc

    def remove(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except redis.RedisError as exc:
            raise PreferencesError(f"Redis unavailable removing {key}") from exc
