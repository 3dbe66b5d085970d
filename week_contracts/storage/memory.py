"""In-process stores for local development and tests."""

from __future__ import annotations

from threading import RLock

from week_contracts.storage.base import BlobStore, KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})
        self._lock = RLock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def list_keys(self, prefix: str | None = None) -> list[str]:
        with self._lock:
            keys = list(self._data)
        if prefix:
            keys = [key for key in keys if key.startswith(prefix)]
        return sorted(keys)


class InMemoryBlobStore(BlobStore):
    def __init__(self):
        self._objects: dict[str, tuple[bytes, str | None]] = {}
        self._lock = RLock()

    def get(self, path: str) -> bytes | None:
        with self._lock:
            entry = self._objects.get(path)
        return entry[0] if entry else None

    def put(self, path: str, data: bytes, *, content_type: str | None = None) -> None:
        with self._lock:
            self._objects[path] = (bytes(data), content_type)

    def delete(self, path: str) -> None:
        with self._lock:
            self._objects.pop(path, None)

    def content_type(self, path: str) -> str | None:
        with self._lock:
            entry = self._objects.get(path)
        return entry[1] if entry else None

    def paths(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)
