"""Contracts the core needs from the object store and key-value registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

# Maximum number of keys a single native registry listing returns.
KV_LIST_PAGE = 1000


@dataclass(frozen=True)
class StoredObject:
    key: str
    size: int
    uploaded: datetime
    content_type: str | None = None


@dataclass
class StoreListing:
    """One level of a prefix/delimiter listing."""

    common_prefixes: list[str] = field(default_factory=list)
    objects: list[StoredObject] = field(default_factory=list)


class ObjectStore(Protocol):
    def put(self, key: str, body: bytes, content_type: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def list(self, prefix: str, delimiter: str = "/") -> StoreListing: ...


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def list(self, limit: int = KV_LIST_PAGE) -> list[str]: ...
