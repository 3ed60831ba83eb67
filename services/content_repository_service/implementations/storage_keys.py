"""Logical storage key helpers shared by every backend."""

from __future__ import annotations


def normalize_key(key: str) -> str:
    """Strip leading/trailing slashes and collapse empty segments."""
    return "/".join(part for part in key.split("/") if part)


def join_key(*parts: str) -> str:
    return normalize_key("/".join(part for part in parts if part))


def direct_child_name(dir_key: str, key: str) -> str | None:
    """Return the file name if key sits directly inside dir_key, else None."""
    prefix = normalize_key(dir_key)
    candidate = normalize_key(key)
    if prefix:
        if not candidate.startswith(prefix + "/"):
            return None
        candidate = candidate[len(prefix) + 1 :]
    if not candidate or "/" in candidate:
        return None
    return candidate


def to_bytes(content: bytes | str) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content
