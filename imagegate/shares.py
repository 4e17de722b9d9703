"""Share links: an opaque id mapped to the key prefix it may list."""

from __future__ import annotations

import json
import re
import secrets

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from imagegate.errors import InvalidInput, NotFound, StoreError
from imagegate.keys import TOKEN_ALPHABET, check_segments, normalize_prefix
from imagegate.logging_config import get_logger
from imagegate.storage.base import KeyValueStore

logger = get_logger(__name__)

SHARE_ID_LENGTH = 16
SHARE_ID_RE = re.compile(rf"[A-Za-z0-9]{{{SHARE_ID_LENGTH}}}")
_MAX_CREATE_ATTEMPTS = 5


class ShareRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    share_id: str
    path: str


def is_valid_share_id(share_id: str | None) -> bool:
    return bool(share_id) and SHARE_ID_RE.fullmatch(share_id) is not None


def new_share_id() -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(SHARE_ID_LENGTH))


def join_scope(scope: str, relative_path: str | None) -> str:
    """Prefix a share listing may see: the scope followed by ``relative_path``.

    ``relative_path`` must stay inside the scope, so absolute paths and
    ``.``/``..`` segments are refused.
    """
    if not relative_path:
        return scope
    if relative_path.startswith("/"):
        raise InvalidInput("Shared paths must be relative")
    check_segments(relative_path)
    return scope + relative_path


class ShareRegistry:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def create(self, scope_path: str) -> ShareRecord:
        if scope_path is None:
            raise InvalidInput("Path is required")
        scope = normalize_prefix(scope_path)
        for _ in range(_MAX_CREATE_ATTEMPTS):
            share_id = new_share_id()
            if self.kv.get(share_id) is None:
                self.kv.put(share_id, json.dumps({"path": scope}))
                logger.info("Created share for %r", scope, extra={"share_id": share_id})
                return ShareRecord(share_id=share_id, path=scope)
        raise StoreError("Could not allocate a unique share id")

    def resolve(self, share_id: str) -> str:
        # shape check first: malformed ids never reach the registry
        if not is_valid_share_id(share_id):
            raise NotFound("Share link not found")
        raw = self.kv.get(share_id)
        if raw is None:
            raise NotFound("Share link not found")
        scope = _parse_scope(raw)
        if scope is None:
            logger.warning("Share holds a malformed record", extra={"share_id": share_id})
            raise NotFound("Share link not found")
        return scope

    def list(self) -> list[ShareRecord]:
        """All shares found in one registry listing page.

        Registries holding more entries than one native page (1000 keys) are
        truncated; the listing cursor is not followed.
        """
        shares = []
        for share_id in self.kv.list():
            raw = self.kv.get(share_id)
            scope = _parse_scope(raw) if raw is not None else None
            if scope is None:
                logger.warning("Skipping malformed or missing share", extra={"share_id": share_id})
                continue
            shares.append(ShareRecord(share_id=share_id, path=scope))
        return shares

    def revoke(self, share_id: str) -> None:
        if not is_valid_share_id(share_id):
            return
        self.kv.delete(share_id)
        logger.info("Revoked share", extra={"share_id": share_id})


def _parse_scope(raw: str) -> str | None:
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(value, dict) or not isinstance(value.get("path"), str):
        return None
    return value["path"]
