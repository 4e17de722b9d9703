from __future__ import annotations

import json

import pytest

from imagegate.errors import InvalidInput, NotFound
from imagegate.shares import SHARE_ID_LENGTH, ShareRegistry, is_valid_share_id, join_scope
from imagegate.storage.memory import MemoryKeyValueStore


class SpyKeyValueStore(MemoryKeyValueStore):
    def __init__(self):
        super().__init__()
        self.calls = []

    def get(self, key):
        self.calls.append(("get", key))
        return super().get(key)

    def delete(self, key):
        self.calls.append(("delete", key))
        super().delete(key)


@pytest.fixture
def kv() -> SpyKeyValueStore:
    return SpyKeyValueStore()


@pytest.fixture
def registry(kv) -> ShareRegistry:
    return ShareRegistry(kv)


def test_create_then_resolve(registry: ShareRegistry, kv) -> None:
    share = registry.create("docs/")
    assert len(share.share_id) == SHARE_ID_LENGTH
    assert share.share_id.isalnum()
    assert share.path == "docs/"
    assert json.loads(kv.get(share.share_id)) == {"path": "docs/"}
    assert registry.resolve(share.share_id) == "docs/"


def test_scope_is_normalized(registry: ShareRegistry) -> None:
    assert registry.create("docs").path == "docs/"
    assert registry.create("").path == ""
    assert registry.create("/").path == ""


def test_scope_with_traversal_is_rejected(registry: ShareRegistry) -> None:
    with pytest.raises(InvalidInput):
        registry.create("../secret")


def test_create_regenerates_on_collision(monkeypatch, registry: ShareRegistry, kv) -> None:
    taken = "A" * SHARE_ID_LENGTH
    kv.put(taken, json.dumps({"path": "old/"}))
    ids = iter([taken, "B" * SHARE_ID_LENGTH])
    monkeypatch.setattr("imagegate.shares.new_share_id", lambda: next(ids))

    share = registry.create("new/")

    assert share.share_id == "B" * SHARE_ID_LENGTH
    assert registry.resolve(taken) == "old/"


def test_unknown_share_is_not_found(registry: ShareRegistry) -> None:
    with pytest.raises(NotFound):
        registry.resolve("Z" * SHARE_ID_LENGTH)


@pytest.mark.parametrize(
    "share_id",
    ["", "short", "A" * (SHARE_ID_LENGTH + 1), "A" * (SHARE_ID_LENGTH - 1) + "-", "../../../../etc/pa", "A" * 15 + "é"],
)
def test_malformed_ids_never_reach_the_registry(registry: ShareRegistry, kv, share_id: str) -> None:
    with pytest.raises(NotFound):
        registry.resolve(share_id)
    assert kv.calls == []
    assert not is_valid_share_id(share_id)


def test_malformed_record_is_not_found(registry: ShareRegistry, kv) -> None:
    kv.put("C" * SHARE_ID_LENGTH, "not json")
    with pytest.raises(NotFound):
        registry.resolve("C" * SHARE_ID_LENGTH)


def test_list_skips_malformed_records(registry: ShareRegistry, kv) -> None:
    first = registry.create("a/")
    second = registry.create("")
    kv.put("D" * SHARE_ID_LENGTH, json.dumps({"nope": 1}))

    listed = {s.share_id: s.path for s in registry.list()}

    assert listed == {first.share_id: "a/", second.share_id: ""}


def test_list_stops_after_one_registry_page(registry: ShareRegistry, kv) -> None:
    for i in range(1001):
        kv.put(f"{i:016d}", json.dumps({"path": ""}))
    assert len(registry.list()) == 1000


def test_revoke_is_idempotent(registry: ShareRegistry) -> None:
    share = registry.create("docs/")
    registry.revoke(share.share_id)
    registry.revoke(share.share_id)
    with pytest.raises(NotFound):
        registry.resolve(share.share_id)


def test_revoke_malformed_id_skips_store(registry: ShareRegistry, kv) -> None:
    registry.revoke("nope")
    assert kv.calls == []


@pytest.mark.parametrize(
    "scope, relative, expected",
    [("docs/", "", "docs/"), ("docs/", None, "docs/"), ("docs/", "sub/", "docs/sub/"), ("", "a/b/", "a/b/")],
)
def test_join_scope(scope: str, relative, expected: str) -> None:
    assert join_scope(scope, relative) == expected


@pytest.mark.parametrize("relative", ["../", "sub/../../", "/etc/", "./", "a\\..\\b", "sub/..", "a\x00"])
def test_join_scope_refuses_escape(relative: str) -> None:
    with pytest.raises(InvalidInput):
        join_scope("docs/", relative)
