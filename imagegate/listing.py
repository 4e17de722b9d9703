"""Directory view over a flat prefix/delimiter listing.

The object store only knows keys. A listing for ``prefix`` with delimiter
``/`` returns the common prefixes one level down and the objects directly
under ``prefix``; this module turns that into folders, files and a page of
results. It never talks to a store itself.
"""

from __future__ import annotations

import math
from datetime import datetime
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from imagegate.errors import InvalidInput
from imagegate.storage.base import StoreListing

DIRECTORY_MARKER = ".null"
DIRECTORY_MARKER_MIME = "application/x-directory"

# characters encodeURIComponent leaves alone
_URL_SAFE = "!'()*"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DirectoryEntry(_CamelModel):
    name: str
    path: str


class FileEntry(_CamelModel):
    name: str
    key: str
    size: int
    uploaded: datetime
    url: str
    placeholder: bool = False


class Pagination(_CamelModel):
    current_page: int
    page_size: int
    total_files: int
    total_pages: int


class ListingPage(_CamelModel):
    current_path: str
    parent_path: str
    directories: list[DirectoryEntry]
    files: list[FileEntry]
    pagination: Pagination


def object_url(public_base_url: str, key: str) -> str:
    """Public URL of ``key``. Slashes inside the key are percent-encoded."""
    return f"{public_base_url.rstrip('/')}/{quote(key, safe=_URL_SAFE)}"


def parent_path(prefix: str) -> str:
    """``a/b/`` -> ``a/``, ``a/`` -> ``""``; the root has no parent."""
    if not prefix:
        return ""
    parts = prefix.rstrip("/").split("/")
    parts.pop()
    parent = "/".join(parts)
    return parent + "/" if parent else ""


def is_directory_marker(key: str) -> bool:
    return key == DIRECTORY_MARKER or key.endswith("/" + DIRECTORY_MARKER)


def project_listing(
    listing: StoreListing,
    prefix: str,
    page: int,
    page_size: int,
    public_base_url: str,
) -> ListingPage:
    if page < 1:
        raise InvalidInput("page must be >= 1")
    if page_size < 1:
        raise InvalidInput("pageSize must be >= 1")

    directories = [
        DirectoryEntry(name=common[len(prefix):].rstrip("/"), path=common)
        for common in listing.common_prefixes
    ]

    files = []
    for obj in listing.objects:
        name = obj.key[len(prefix):] if obj.key.startswith(prefix) else obj.key
        if not name:
            # the prefix itself stored as an object
            continue
        files.append(
            FileEntry(
                name=name,
                key=obj.key,
                size=obj.size,
                uploaded=obj.uploaded,
                url=object_url(public_base_url, obj.key),
                placeholder=is_directory_marker(obj.key),
            )
        )

    total_files = len(files)
    start = (page - 1) * page_size
    return ListingPage(
        current_path=prefix,
        parent_path=parent_path(prefix),
        directories=directories,
        files=files[start:start + page_size],
        pagination=Pagination(
            current_page=page,
            page_size=page_size,
            total_files=total_files,
            total_pages=math.ceil(total_files / page_size),
        ),
    )
