from __future__ import annotations

import re

MARKDOWN_EXTENSION = ".md"
_REPEATED_SLASHES = re.compile(r"/+")


def normalize_path(path: str) -> str:
    """Trim whitespace, drop leading slashes and collapse repeated ones."""
    return _REPEATED_SLASHES.sub("/", path.strip().lstrip("/"))


def ensure_markdown_extension(path: str) -> str:
    normalized = normalize_path(path)
    if normalized.endswith(MARKDOWN_EXTENSION):
        return normalized
    return f"{normalized}{MARKDOWN_EXTENSION}"


def folder_prefix(path: str) -> str:
    normalized = normalize_path(path)
    if normalized and not normalized.endswith("/"):
        normalized = f"{normalized}/"
    return normalized


def is_note_key(key: str) -> bool:
    return key.endswith(MARKDOWN_EXTENSION)
