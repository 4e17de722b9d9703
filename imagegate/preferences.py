"""Per-chat upload folder chosen through the Telegram bot."""

from __future__ import annotations

from imagegate.keys import normalize_prefix
from imagegate.storage.base import KeyValueStore


class UploadPathPreferences:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def get(self, chat_id) -> str:
        """Upload prefix for ``chat_id``; ``""`` is the bucket root."""
        return normalize_prefix(self.kv.get(str(chat_id)) or "")

    def set(self, chat_id, path: str) -> str:
        prefix = normalize_prefix(path)
        self.kv.put(str(chat_id), prefix or "/")
        return prefix
