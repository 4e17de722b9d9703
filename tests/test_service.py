from __future__ import annotations

import re

import pytest

from imagegate.errors import InvalidInput, NotFound, StoreError, UnsupportedMediaType
from imagegate.service import Gateway
from imagegate.shares import ShareRegistry
from imagegate.storage.memory import MemoryKeyValueStore, MemoryObjectStore
from tests.helpers import BASE_URL, FIXED_NOW, GIF, JPEG, PNG_10


class FlakyObjectStore(MemoryObjectStore):
    """Fails deletes for keys containing 'bad'."""

    def delete(self, key: str) -> None:
        if "bad" in key:
            raise StoreError(f"cannot delete {key}")
        super().delete(key)


class BrokenObjectStore(MemoryObjectStore):
    def list(self, prefix, delimiter="/"):
        raise StoreError("backend down")


def test_upload_png_under_nested_prefix(gateway: Gateway, backends) -> None:
    result = gateway.upload_object(PNG_10, "a/b")

    assert re.fullmatch(r"a/b/\d{8}_[A-Za-z0-9]+\.png", result.key)
    assert result.key.startswith("a/b/20240517_")
    assert result.mime == "image/png"
    assert result.size == 10
    assert result.url == BASE_URL + "/" + result.key.replace("/", "%2F")
    assert result.markdown == f"![img]({result.url})"
    assert backends.objects.get(result.key) == PNG_10

    page = gateway.list_path("a/b/", 1, 10)
    assert [(f.key, f.size) for f in page.files] == [(result.key, 10)]


def test_upload_then_list_round_trip(gateway: Gateway) -> None:
    result = gateway.upload_object(JPEG, "blog")
    page = gateway.list_path("blog/", 1, 50)
    assert len(page.files) == 1
    assert page.files[0].key == result.key
    assert page.files[0].size == len(JPEG)


def test_upload_rejects_unknown_bytes(gateway: Gateway, backends) -> None:
    with pytest.raises(UnsupportedMediaType):
        gateway.upload_object(b"GIF", "x")
    with pytest.raises(UnsupportedMediaType):
        gateway.upload_object(b"")
    assert len(backends.objects) == 0


def test_upload_rejects_traversal_prefix(gateway: Gateway) -> None:
    with pytest.raises(InvalidInput):
        gateway.upload_object(GIF, "../other")


@pytest.mark.parametrize("path", [" ../x", "../ ", "  ../secret"])
def test_padded_traversal_never_reaches_keys_or_scopes(gateway: Gateway, backends, path: str) -> None:
    with pytest.raises(InvalidInput):
        gateway.upload_object(PNG_10, path)
    with pytest.raises(InvalidInput):
        gateway.create_share(path)
    assert len(backends.objects) == 0
    assert gateway.list_shares() == []


def test_list_root_groups_folders(gateway: Gateway) -> None:
    gateway.upload_object(GIF)
    gateway.upload_object(GIF, "x")
    gateway.upload_object(GIF, "x/y")

    root = gateway.list_path("", 1, 50)
    assert [d.path for d in root.directories] == ["x/"]
    assert len(root.files) == 1

    inner = gateway.list_path("x/", 1, 50)
    assert [(d.name, d.path) for d in inner.directories] == [("y", "x/y/")]
    assert inner.parent_path == ""


def test_list_failure_surfaces_as_store_error(backends) -> None:
    gateway = Gateway(BrokenObjectStore(), ShareRegistry(backends.shares), BASE_URL)
    with pytest.raises(StoreError):
        gateway.list_path("", 1, 50)


def test_create_folder_writes_marker(gateway: Gateway, backends) -> None:
    assert gateway.create_folder("albums/2024") == "albums/2024/"
    assert backends.objects.get("albums/2024/.null") == b""

    root = gateway.list_path("albums/", 1, 50)
    assert [d.path for d in root.directories] == ["albums/2024/"]

    inside = gateway.list_path("albums/2024/", 1, 50)
    assert [(f.name, f.placeholder, f.size) for f in inside.files] == [(".null", True, 0)]


@pytest.mark.parametrize("path", ["", "/", None])
def test_create_folder_requires_path(gateway: Gateway, path) -> None:
    with pytest.raises(InvalidInput):
        gateway.create_folder(path)


def test_delete_objects(gateway: Gateway, backends) -> None:
    keys = [gateway.upload_object(PNG_10, "d").key for _ in range(3)]
    result = gateway.delete_objects(keys[:2])
    assert sorted(result.deleted_keys) == sorted(keys[:2])
    assert result.failed_keys == []
    assert [f.key for f in gateway.list_path("d/", 1, 50).files] == [keys[2]]


def test_delete_objects_is_best_effort(backends) -> None:
    store = FlakyObjectStore()
    store.put("good.png", PNG_10, "image/png")
    store.put("bad.png", PNG_10, "image/png")
    gateway = Gateway(store, ShareRegistry(MemoryKeyValueStore()), BASE_URL)

    result = gateway.delete_objects(["good.png", "bad.png", "missing.png"])

    assert result.deleted_keys == ["good.png", "missing.png"]
    assert result.failed_keys == ["bad.png"]
    assert "bad.png" in store and "good.png" not in store


@pytest.mark.parametrize("keys", [[], [""], None])
def test_delete_requires_keys(gateway: Gateway, keys) -> None:
    with pytest.raises(InvalidInput):
        gateway.delete_objects(keys)


def test_shared_listing_matches_direct_listing(gateway: Gateway) -> None:
    for prefix in ("docs", "docs", "docs/sub", "other"):
        gateway.upload_object(PNG_10, prefix)
    share = gateway.create_share("docs/")

    assert gateway.list_shared_path(share.share_id, "", 1, 50) == gateway.list_path("docs/", 1, 50)
    assert gateway.list_shared_path(share.share_id, "sub/", 1, 50) == gateway.list_path("docs/sub/", 1, 50)
    assert gateway.list_shared_path(share.share_id, "", 2, 1) == gateway.list_path("docs/", 2, 1)


def test_shared_listing_cannot_escape_scope(gateway: Gateway) -> None:
    gateway.upload_object(PNG_10, "private")
    share = gateway.create_share("docs/")
    with pytest.raises(InvalidInput):
        gateway.list_shared_path(share.share_id, "../private/", 1, 50)


def test_revoked_share_is_not_found(gateway: Gateway) -> None:
    share = gateway.create_share("docs/")
    gateway.revoke_share(share.share_id)
    with pytest.raises(NotFound):
        gateway.list_shared_path(share.share_id, "", 1, 50)
    gateway.revoke_share(share.share_id)
    assert gateway.list_shares() == []


def test_revoke_requires_id(gateway: Gateway) -> None:
    with pytest.raises(InvalidInput):
        gateway.revoke_share("")


def test_clock_is_injected(gateway: Gateway) -> None:
    assert gateway.upload_object(GIF).key.startswith(FIXED_NOW.strftime("%Y%m%d") + "_")
