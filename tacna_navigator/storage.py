"""
Tacna Transit Navigator — Key-value persistence port

The route store only needs get / set / subscribe. A change notification
is delivered to *other* sessions when a key is modified, mirroring how a
browser delivers storage events to every tab except the writer.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

from .errors import StorageError

log = logging.getLogger("navigator.storage")

# listener(key, new_raw_value_or_None)
StorageListener = Callable[[str, Optional[str]], None]


class KeyValueStorage(Protocol):
    # May raise StorageError when the stored bytes cannot be read
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def subscribe(self, listener: StorageListener) -> Callable[[], None]: ...


class StorageQuotaExceeded(OSError):
    """Write rejected because the backend is full."""


class _Listeners:
    def __init__(self):
        self._items: List[StorageListener] = []

    def add(self, listener: StorageListener) -> Callable[[], None]:
        self._items.append(listener)

        def unsubscribe():
            if listener in self._items:
                self._items.remove(listener)

        return unsubscribe

    def notify(self, key: str, value: Optional[str]) -> None:
        for listener in list(self._items):
            listener(key, value)


class _SharedBackend:
    def __init__(self, quota_bytes: Optional[int]):
        self.data:     Dict[str, str] = {}
        self.quota:    Optional[int]  = quota_bytes
        self.sessions: List["InMemoryStorage"] = []


class InMemoryStorage:
    """
    One session's view over an in-memory backend.

    open_session() returns another view over the same data; writes made
    through one view notify the listeners of every other view.
    """

    def __init__(self, quota_bytes: Optional[int] = None, _backend: Optional[_SharedBackend] = None):
        self._backend   = _backend or _SharedBackend(quota_bytes)
        self._listeners = _Listeners()
        self._backend.sessions.append(self)

    def open_session(self) -> "InMemoryStorage":
        return InMemoryStorage(_backend=self._backend)

    def get(self, key: str) -> Optional[str]:
        return self._backend.data.get(key)

    def set(self, key: str, value: str) -> None:
        quota = self._backend.quota
        if quota is not None:
            used = sum(len(v.encode()) for k, v in self._backend.data.items() if k != key)
            if used + len(value.encode()) > quota:
                raise StorageQuotaExceeded(f"Storage quota of {quota} bytes exceeded writing '{key}'")
        self._backend.data[key] = value
        self._broadcast(key, value)

    def remove(self, key: str) -> None:
        if self._backend.data.pop(key, None) is not None:
            self._broadcast(key, None)

    def subscribe(self, listener: StorageListener) -> Callable[[], None]:
        return self._listeners.add(listener)

    def _broadcast(self, key: str, value: Optional[str]) -> None:
        for session in self._backend.sessions:
            if session is not self:
                session._listeners.notify(key, value)


class JsonFileStorage:
    """
    Stores each key as <directory>/<key>.json.

    Other processes may rewrite the files; refresh() compares them with the
    last content this instance saw and notifies listeners of any change.
    """

    def __init__(self, directory):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._listeners = _Listeners()
        self._known: Dict[str, Optional[str]] = {}

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Could not read '{path.name}': {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        value = self._read(key)
        self._known[key] = value
        return value

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp  = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)
        self._known[key] = value

    def subscribe(self, listener: StorageListener) -> Callable[[], None]:
        return self._listeners.add(listener)

    def refresh(self) -> int:
        """Notify listeners of keys changed on disk by someone else. Returns the count."""
        changed = 0
        for key, last in list(self._known.items()):
            try:
                current = self._read(key)
            except StorageError as exc:
                log.warning(f"Ignoring unreadable storage key '{key}': {exc}")
                continue
            if current != last:
                self._known[key] = current
                log.info(f"Storage key '{key}' changed externally")
                self._listeners.notify(key, current)
                changed += 1
        return changed
