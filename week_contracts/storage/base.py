"""Store interfaces shared by the in-memory and hosted backends."""

from __future__ import annotations

from abc import ABC, abstractmethod


class StorageError(RuntimeError):
    """A store call failed after retries."""


class KeyValueStore(ABC):
    """Hosted key-value namespace holding submission records."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key does not exist."""

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Write ``value`` under ``key`` (last write wins)."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; deleting a missing key is not an error."""

    @abstractmethod
    def list_keys(self, prefix: str | None = None) -> list[str]:
        """Return every key starting with ``prefix`` in lexicographic order."""

    def exists(self, key: str) -> bool:
        return self.get(key) is not None


class BlobStore(ABC):
    """Object storage for signature images."""

    @abstractmethod
    def get(self, path: str) -> bytes | None:
        """Return the object body, or None when it does not exist."""

    @abstractmethod
    def put(self, path: str, data: bytes, *, content_type: str | None = None) -> None:
        """Write ``data`` to ``path``."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove ``path``; deleting a missing object is not an error."""

    def copy(self, source: str, target: str, *, content_type: str | None = None) -> bool:
        """Copy ``source`` to ``target``; returns False when the source is missing."""
        data = self.get(source)
        if data is None:
            return False
        self.put(target, data, content_type=content_type)
        return True
