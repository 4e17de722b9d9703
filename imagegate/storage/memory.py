"""In-process backends for local development and tests."""

from __future__ import annotations

import threading
from datetime import datetime, timezone

from imagegate.storage.base import KV_LIST_PAGE, StoredObject, StoreListing


class MemoryObjectStore:
    """Dict-backed object store. Lists keys in lexicographic order, like S3."""

    def __init__(self):
        self._objects: dict[str, tuple[bytes, StoredObject]] = {}
        self._lock = threading.Lock()

    def put(self, key: str, body: bytes, content_type: str) -> None:
        meta = StoredObject(key=key, size=len(body), uploaded=datetime.now(timezone.utc), content_type=content_type)
        with self._lock:
            self._objects[key] = (bytes(body), meta)

    def delete(self, key: str) -> None:
        with self._lock:
            self._objects.pop(key, None)

    def get(self, key: str) -> bytes | None:
        entry = self._objects.get(key)
        return entry[0] if entry else None

    def list(self, prefix: str, delimiter: str = "/") -> StoreListing:
        listing = StoreListing()
        with self._lock:
            keys = sorted(self._objects)
            for key in keys:
                if not key.startswith(prefix):
                    continue
                rest = key[len(prefix):]
                cut = rest.find(delimiter) if delimiter else -1
                if cut >= 0:
                    common = prefix + rest[: cut + len(delimiter)]
                    if common not in listing.common_prefixes:
                        listing.common_prefixes.append(common)
                else:
                    listing.objects.append(self._objects[key][1])
        return listing

    def __contains__(self, key: str) -> bool:
        return key in self._objects

    def __len__(self) -> int:
        return len(self._objects)


class MemoryKeyValueStore:
    def __init__(self):
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def put(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def list(self, limit: int = KV_LIST_PAGE) -> list[str]:
        return sorted(self._values)[:limit]
