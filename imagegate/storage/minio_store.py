"""MinIO / S3-compatible backends."""

from __future__ import annotations

import io
from itertools import islice

from minio import Minio
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError as TransportError

from imagegate.errors import StoreError
from imagegate.logging_config import get_logger
from imagegate.storage.base import KV_LIST_PAGE, StoredObject, StoreListing

logger = get_logger(__name__)

_BACKEND_ERRORS = (MinioException, TransportError)


def ensure_bucket(client: Minio, bucket_name: str) -> None:
    try:
        if not client.bucket_exists(bucket_name=bucket_name):
            client.make_bucket(bucket_name=bucket_name)
            logger.info("Created bucket %s", bucket_name)
    except _BACKEND_ERRORS as e:
        raise StoreError(f"Failed to access bucket {bucket_name}: {e}") from e


class MinioObjectStore:
    def __init__(self, client: Minio, bucket_name: str):
        self.client = client
        self.bucket_name = bucket_name

    def ensure_bucket(self) -> None:
        ensure_bucket(self.client, self.bucket_name)

    def put(self, key: str, body: bytes, content_type: str) -> None:
        try:
            self.client.put_object(
                bucket_name=self.bucket_name,
                object_name=key,
                data=io.BytesIO(body),
                length=len(body),
                content_type=content_type,
            )
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to store {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.remove_object(bucket_name=self.bucket_name, object_name=key)
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to delete {key}: {e}") from e

    def list(self, prefix: str, delimiter: str = "/") -> StoreListing:
        # a non-recursive listing is S3's delimiter="/" listing
        if delimiter != "/":
            raise ValueError("only '/' is supported as delimiter")
        listing = StoreListing()
        try:
            for obj in self.client.list_objects(bucket_name=self.bucket_name, prefix=prefix or None, recursive=False):
                if obj.is_dir:
                    listing.common_prefixes.append(obj.object_name)
                else:
                    listing.objects.append(
                        StoredObject(
                            key=obj.object_name,
                            size=obj.size or 0,
                            uploaded=obj.last_modified,
                            content_type=obj.content_type,
                        )
                    )
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to list {prefix!r}: {e}") from e
        return listing


class MinioKeyValueStore:
    """Key-value namespace stored as small UTF-8 objects under ``<namespace>/``."""

    def __init__(self, client: Minio, bucket_name: str, namespace: str):
        self.client = client
        self.bucket_name = bucket_name
        self.namespace = namespace.strip("/") + "/"

    def ensure_bucket(self) -> None:
        ensure_bucket(self.client, self.bucket_name)

    def _object_name(self, key: str) -> str:
        return self.namespace + key

    def get(self, key: str) -> str | None:
        response = None
        try:
            response = self.client.get_object(bucket_name=self.bucket_name, object_name=self._object_name(key))
            return response.read().decode("utf-8")
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject"):
                return None
            raise StoreError(f"Failed to read {key}: {e}") from e
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to read {key}: {e}") from e
        finally:
            if response is not None:
                response.close()
                response.release_conn()

    def put(self, key: str, value: str) -> None:
        body = value.encode("utf-8")
        try:
            self.client.put_object(
                bucket_name=self.bucket_name,
                object_name=self._object_name(key),
                data=io.BytesIO(body),
                length=len(body),
                content_type="application/json",
            )
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to write {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.remove_object(bucket_name=self.bucket_name, object_name=self._object_name(key))
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to delete {key}: {e}") from e

    def list(self, limit: int = KV_LIST_PAGE) -> list[str]:
        # One page only: no continuation past ``limit`` keys.
        try:
            objects = self.client.list_objects(bucket_name=self.bucket_name, prefix=self.namespace, recursive=True)
            return [obj.object_name[len(self.namespace):] for obj in islice(objects, limit)]
        except _BACKEND_ERRORS as e:
            raise StoreError(f"Failed to list {self.namespace}: {e}") from e
