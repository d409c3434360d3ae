from __future__ import annotations

import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator

from vault.errors import NoteNotFoundError, VaultError
from vault.paths import ensure_markdown_extension, folder_prefix, is_note_key, normalize_path

LOGGER = logging.getLogger("vaultmcp.vault")

SEARCH_SCAN_LIMIT = 500
SNIPPET_CONTEXT = 50
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class NoteMetadata:
    path: str
    last_modified: datetime
    size: int


@dataclass
class ListResult:
    files: list[NoteMetadata] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)
    truncated: bool = False
    continuation_token: str | None = None


@dataclass(frozen=True)
class SearchHit:
    path: str
    snippet: str


def extract_snippet(content: str, index: int, match_length: int) -> str:
    start = max(0, index - SNIPPET_CONTEXT)
    end = min(len(content), index + match_length + SNIPPET_CONTEXT)

    snippet = content[start:end]
    if start > 0:
        snippet = f"...{snippet}"
    if end < len(content):
        snippet = f"{snippet}..."
    return _WHITESPACE.sub(" ", snippet).strip()


class VaultStore(ABC):
    """Note storage keyed by vault-relative path.

    Public methods take user-supplied paths; note paths get a ``.md``
    extension. Backends implement the underscore primitives on raw keys and
    raise :class:`VaultError` for anything other than a missing note.
    """

    @abstractmethod
    def _get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    def _put(self, key: str, content: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def _head(self, key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def list(
        self,
        prefix: str = "",
        limit: int = 100,
        continuation_token: str | None = None,
    ) -> ListResult:
        raise NotImplementedError

    @abstractmethod
    def iter_note_keys(self, prefix: str = "") -> Iterator[str]:
        raise NotImplementedError

    def read(self, path: str) -> str:
        content = self._get(ensure_markdown_extension(path))
        if content is None:
            raise NoteNotFoundError(path)
        return content

    def write(self, path: str, content: str) -> str:
        key = ensure_markdown_extension(path)
        self._put(key, content)
        return key

    def exists(self, path: str) -> bool:
        return self._head(ensure_markdown_extension(path))

    def search(self, query: str, prefix: str = "", limit: int = 10) -> list[SearchHit]:
        """Case-insensitive substring search over at most 500 notes."""
        keys: list[str] = []
        for key in self.iter_note_keys(normalize_path(prefix)):
            keys.append(key)
            if len(keys) >= SEARCH_SCAN_LIMIT:
                break

        needle = query.lower()
        hits: list[SearchHit] = []
        for key in keys:
            if len(hits) >= limit:
                break
            try:
                content = self._get(key)
            except VaultError as error:
                LOGGER.warning("Failed to read %s during search: %s", key, error)
                continue
            if not content:
                continue

            index = content.lower().find(needle)
            if index != -1:
                hits.append(SearchHit(path=key, snippet=extract_snippet(content, index, len(query))))

        return hits


class MemoryVaultStore(VaultStore):
    def __init__(self, notes: dict[str, str] | None = None) -> None:
        self._objects: dict[str, tuple[str, datetime]] = {}
        self._lock = threading.Lock()
        for path, content in (notes or {}).items():
            self._put(normalize_path(path), content)

    def _get(self, key: str) -> str | None:
        with self._lock:
            entry = self._objects.get(key)
        return entry[0] if entry is not None else None

    def _put(self, key: str, content: str) -> None:
        with self._lock:
            self._objects[key] = (content, datetime.now(timezone.utc))

    def _head(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    def list(
        self,
        prefix: str = "",
        limit: int = 100,
        continuation_token: str | None = None,
    ) -> ListResult:
        base = folder_prefix(prefix)
        with self._lock:
            snapshot = sorted(self._objects.items())

        # Mirror a delimiter listing: one entry per object or common prefix.
        entries: list[tuple[str, NoteMetadata | None]] = []
        seen_folders: set[str] = set()
        for key, (content, modified) in snapshot:
            if not key.startswith(base):
                continue
            remainder = key[len(base):]
            if "/" in remainder:
                folder = f"{base}{remainder.split('/', 1)[0]}/"
                if folder not in seen_folders:
                    seen_folders.add(folder)
                    entries.append((folder, None))
            else:
                meta = NoteMetadata(path=key, last_modified=modified, size=len(content.encode("utf-8")))
                entries.append((key, meta))

        offset = int(continuation_token) if continuation_token else 0
        page = entries[offset:offset + limit]
        truncated = offset + limit < len(entries)

        result = ListResult(truncated=truncated)
        if truncated:
            result.continuation_token = str(offset + limit)
        for name, meta in page:
            if meta is None:
                result.folders.append(name)
            elif is_note_key(name):
                result.files.append(meta)
        return result

    def iter_note_keys(self, prefix: str = "") -> Iterator[str]:
        with self._lock:
            keys = sorted(self._objects)
        for key in keys:
            if key.startswith(prefix) and is_note_key(key):
                yield key
