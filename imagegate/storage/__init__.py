from __future__ import annotations

from dataclasses import dataclass

from minio import Minio

from imagegate.config import Settings
from imagegate.storage.base import KeyValueStore, ObjectStore, StoredObject, StoreListing
from imagegate.storage.memory import MemoryKeyValueStore, MemoryObjectStore
from imagegate.storage.minio_store import MinioKeyValueStore, MinioObjectStore

__all__ = [
    "Backends",
    "KeyValueStore",
    "ObjectStore",
    "StoredObject",
    "StoreListing",
    "open_backends",
]

SHARES_NAMESPACE = "shares"
UPLOAD_PATHS_NAMESPACE = "upload-paths"


@dataclass
class Backends:
    objects: ObjectStore
    shares: KeyValueStore
    upload_paths: KeyValueStore

    def ensure_buckets(self) -> None:
        """Create missing buckets; the memory backend has none."""
        for store in (self.objects, self.shares, self.upload_paths):
            ensure = getattr(store, "ensure_bucket", None)
            if ensure is not None:
                ensure()


def open_backends(settings: Settings) -> Backends:
    """Build the object store and the two key-value namespaces."""
    if settings.storage_backend == "memory":
        return Backends(MemoryObjectStore(), MemoryKeyValueStore(), MemoryKeyValueStore())

    client = Minio(
        endpoint=settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=settings.minio_secure,
    )
    return Backends(
        objects=MinioObjectStore(client, settings.bucket_name),
        shares=MinioKeyValueStore(client, settings.metadata_bucket, SHARES_NAMESPACE),
        upload_paths=MinioKeyValueStore(client, settings.metadata_bucket, UPLOAD_PATHS_NAMESPACE),
    )
