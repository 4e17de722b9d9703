"""Operations the HTTP routes and the Telegram bot call into."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from imagegate.errors import GatewayError, InvalidInput, UnsupportedMediaType
from imagegate.keys import check_segments, derive_key, normalize_prefix
from imagegate.listing import DIRECTORY_MARKER, DIRECTORY_MARKER_MIME, ListingPage, object_url, project_listing
from imagegate.logging_config import get_logger
from imagegate.shares import ShareRecord, ShareRegistry, join_scope
from imagegate.sniffer import classify
from imagegate.storage.base import ObjectStore

logger = get_logger(__name__)

DELETE_WORKERS = 16


class UploadResult(BaseModel):
    key: str
    url: str
    markdown: str
    mime: str
    size: int


class DeleteResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    deleted_keys: list[str]
    failed_keys: list[str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Gateway:
    def __init__(
        self,
        store: ObjectStore,
        shares: ShareRegistry,
        public_base_url: str,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.shares = shares
        self.public_base_url = public_base_url.rstrip("/")
        self.clock = clock

    def upload_object(self, data: bytes, user_prefix: str | None = None) -> UploadResult:
        kind = classify(data)
        if kind is None:
            raise UnsupportedMediaType("Only JPG/PNG/GIF/WEBP formats are supported")
        key = derive_key(self.clock(), kind.extension, user_prefix)
        self.store.put(key, data, kind.mime)
        url = object_url(self.public_base_url, key)
        logger.info("Stored object (%d bytes, %s)", len(data), kind.mime, extra={"key": key})
        return UploadResult(key=key, url=url, markdown=f"![img]({url})", mime=kind.mime, size=len(data))

    def list_path(self, prefix: str, page: int, page_size: int) -> ListingPage:
        prefix = prefix or ""
        check_segments(prefix)
        listing = self.store.list(prefix, delimiter="/")
        return project_listing(listing, prefix, page, page_size, self.public_base_url)

    def delete_objects(self, keys: list[str]) -> DeleteResult:
        """Delete ``keys`` concurrently. Best effort: no rollback on failure."""
        if not keys or not all(isinstance(k, str) and k for k in keys):
            raise InvalidInput("No valid keys provided for deletion")
        deleted, failed = [], []
        with ThreadPoolExecutor(max_workers=min(DELETE_WORKERS, len(keys))) as pool:
            futures = [(key, pool.submit(self.store.delete, key)) for key in keys]
            for key, future in futures:
                try:
                    future.result()
                except GatewayError as e:
                    logger.warning("Delete failed: %s", e, extra={"key": key})
                    failed.append(key)
                else:
                    deleted.append(key)
        logger.info("Deleted %d object(s), %d failed", len(deleted), len(failed))
        return DeleteResult(deleted_keys=deleted, failed_keys=failed)

    def create_folder(self, path: str) -> str:
        folder = normalize_prefix(path)
        if not folder:
            raise InvalidInput("Folder path is required")
        self.store.put(folder + DIRECTORY_MARKER, b"", DIRECTORY_MARKER_MIME)
        return folder

    def create_share(self, scope_path: str) -> ShareRecord:
        return self.shares.create(scope_path)

    def list_shares(self) -> list[ShareRecord]:
        return self.shares.list()

    def revoke_share(self, share_id: str) -> None:
        if not share_id:
            raise InvalidInput("shareId is required")
        self.shares.revoke(share_id)

    def list_shared_path(self, share_id: str, relative_path: str, page: int, page_size: int) -> ListingPage:
        scope = self.shares.resolve(share_id)
        return self.list_path(join_scope(scope, relative_path), page, page_size)
