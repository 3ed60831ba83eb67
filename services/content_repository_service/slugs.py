"""Slug, filename and content-hash helpers."""

from __future__ import annotations

import hashlib
import re
import secrets
import unicodedata
from pathlib import PurePosixPath

MAX_FILENAME_LENGTH = 100

PROCESSABLE_IMAGE_MIME_TYPES = frozenset(
    {"image/jpeg", "image/png", "image/webp", "image/gif", "image/avif"}
)

EXTENSIONS_BY_MIME = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/avif": ".avif",
    "image/svg+xml": ".svg",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/quicktime": ".mov",
    "application/pdf": ".pdf",
}

_NON_WORD = re.compile(r"[^\w-]+")
_SEPARATORS = re.compile(r"[\s_]+")
_NON_ALNUM_DASH = re.compile(r"[^a-z0-9-]")
_DASH_RUNS = re.compile(r"-{2,}")


def _strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def slugify(text: str) -> str:
    """
    Turn a title into a URL slug.

    "Hello, Wörld!" -> "hello-world". May return "" for input without
    any letters or digits.
    """
    slug = _strip_diacritics(text).lower().strip()
    slug = re.sub(r"\s+", "-", slug)
    slug = _NON_WORD.sub("", slug).replace("_", "-")
    slug = _DASH_RUNS.sub("-", slug)
    return slug.strip("-")


def sanitize_filename(filename: str) -> str:
    """
    Return a filesystem and URL safe base name without extension.

    "My Photo (2023) - Beach Sunset!.JPG" -> "my-photo-2023-beach-sunset"
    """
    name = PurePosixPath(filename).stem if "." in filename else filename
    name = _strip_diacritics(name.lower())
    name = _SEPARATORS.sub("-", name)
    name = _NON_ALNUM_DASH.sub("", name)
    name = _DASH_RUNS.sub("-", name).strip("-")
    return name[:MAX_FILENAME_LENGTH]


def generate_short_id() -> str:
    """Four hex characters used to disambiguate equal filenames."""
    return secrets.token_hex(2)


def compute_content_hash(content: bytes) -> str:
    """MD5 of the raw upload, stored as the deduplication key."""
    return hashlib.md5(content).hexdigest()


def extension_for_mime(mime: str, original_name: str = "") -> str:
    """Pick a file extension for a mime type, falling back to the uploaded one."""
    extension = EXTENSIONS_BY_MIME.get(mime.lower())
    if extension:
        return extension
    suffix = PurePosixPath(original_name).suffix.lower()
    return suffix if re.fullmatch(r"\.[a-z0-9]{1,8}", suffix) else ".bin"


def is_processable_image(mime: str) -> bool:
    return mime.lower() in PROCESSABLE_IMAGE_MIME_TYPES


def is_video(mime: str) -> bool:
    return mime.lower().startswith("video/")
