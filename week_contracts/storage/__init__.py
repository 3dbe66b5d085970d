"""
Storage backends for submission records and signature images.

Usage:
    from week_contracts.storage import build_blob_store, build_kv_store

    settings = get_settings()
    kv = build_kv_store(settings)        # KV_BACKEND=memory | cloudflare
    blobs = build_blob_store(settings)   # BLOB_BACKEND=memory | r2
"""

from week_contracts.settings import Settings
from week_contracts.storage.base import BlobStore, KeyValueStore, StorageError
from week_contracts.storage.cloudflare import CloudflareKVStore
from week_contracts.storage.memory import InMemoryBlobStore, InMemoryKeyValueStore
from week_contracts.storage.r2 import R2BlobStore


def build_kv_store(settings: Settings) -> KeyValueStore:
    """Create the key-value store selected by ``KV_BACKEND``."""
    if settings.kv_backend == "cloudflare":
        return CloudflareKVStore.from_settings(settings)
    return InMemoryKeyValueStore()


def build_blob_store(settings: Settings) -> BlobStore:
    """Create the blob store selected by ``BLOB_BACKEND``."""
    if settings.blob_backend == "r2":
        return R2BlobStore.from_settings(settings)
    return InMemoryBlobStore()


__all__ = [
    "BlobStore",
    "KeyValueStore",
    "StorageError",
    "CloudflareKVStore",
    "R2BlobStore",
    "InMemoryBlobStore",
    "InMemoryKeyValueStore",
    "build_blob_store",
    "build_kv_store",
]
