"""Magic-byte classification of uploaded images.

Only the leading bytes decide the type. The client's filename and declared
content type are never consulted for storage decisions.
"""

from __future__ import annotations

from typing import NamedTuple

import filetype
from filetype.types.base import Type


class ImageKind(NamedTuple):
    mime: str
    extension: str


class Jpeg(Type):
    MIME = "image/jpeg"
    EXTENSION = "jpg"

    def __init__(self):
        super().__init__(mime=self.MIME, extension=self.EXTENSION)

    def match(self, buf):
        return len(buf) >= 3 and buf[0] == 0xFF and buf[1] == 0xD8 and buf[2] == 0xFF


class Png(Type):
    MIME = "image/png"
    EXTENSION = "png"
    SIGNATURE = b"\x89PNG\r\n\x1a\n"

    def __init__(self):
        super().__init__(mime=self.MIME, extension=self.EXTENSION)

    def match(self, buf):
        return len(buf) >= len(self.SIGNATURE) and bytes(buf[:8]) == self.SIGNATURE


class Gif(Type):
    MIME = "image/gif"
    EXTENSION = "gif"

    def __init__(self):
        super().__init__(mime=self.MIME, extension=self.EXTENSION)

    def match(self, buf):
        return len(buf) >= 4 and bytes(buf[:4]) == b"GIF8"


class Webp(Type):
    MIME = "image/webp"
    EXTENSION = "webp"

    def __init__(self):
        super().__init__(mime=self.MIME, extension=self.EXTENSION)

    def match(self, buf):
        # RIFF <4-byte size> WEBP
        return len(buf) >= 12 and bytes(buf[:4]) == b"RIFF" and bytes(buf[8:12]) == b"WEBP"


IMAGE_MATCHERS = (Jpeg(), Png(), Gif(), Webp())

SUPPORTED_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})


def classify(data: bytes) -> ImageKind | None:
    """Return the image kind of ``data`` or None when no signature matches."""
    if not data:
        return None
    kind = filetype.match(bytes(data), matchers=IMAGE_MATCHERS)
    if kind is None:
        return None
    return ImageKind(kind.mime, kind.extension)
