"""Storage key derivation and path-prefix normalization."""

from __future__ import annotations

import secrets
import string
from datetime import datetime, timezone

from imagegate.errors import InvalidInput

TOKEN_ALPHABET = string.ascii_letters + string.digits
# 62**12 is about 3.2e21, collisions under one prefix on one day are negligible
TOKEN_LENGTH = 12


def random_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def check_segments(path: str) -> None:
    """Reject path strings that could step outside the prefix they are joined to."""
    if "\x00" in path:
        raise InvalidInput("Path contains a NUL byte")
    if "\\" in path:
        raise InvalidInput("Path must use '/' as separator")
    for segment in path.split("/"):
        if segment in (".", ".."):
            raise InvalidInput("Path traversal segments are not allowed")


def normalize_prefix(path: str | None) -> str:
    """Turn a user supplied folder path into a key prefix.

    ``None``, ``""`` and ``"/"`` mean the store root and give ``""``. Anything
    else loses its leading slashes and ends with exactly one ``/``.
    """
    if not path:
        return ""
    path = path.strip()
    check_segments(path)
    path = path.lstrip("/").rstrip("/")
    if not path:
        return ""
    return path + "/"


def derive_key(now: datetime, extension: str, user_prefix: str | None = None) -> str:
    """Build ``<prefix/>YYYYMMDD_<token>.<extension>`` for a new object.

    The date component is always taken in UTC.
    """
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    name = f"{now:%Y%m%d}_{random_token()}.{extension}"
    return normalize_prefix(user_prefix) + name
