"""Shared constants for the test suite."""

from datetime import datetime, timezone

SECRET = "test-secret"
BASE_URL = "https://img.test"
FIXED_NOW = datetime(2024, 5, 17, 23, 30, tzinfo=timezone.utc)

# buffers starting with each supported image signature
PNG_10 = b"\x89PNG\r\n\x1a\n\x00\x00"
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 60
GIF = b"GIF89a" + b"\x00" * 20
WEBP = b"RIFF\x24\x00\x00\x00WEBPVP8 " + b"\x00" * 20
