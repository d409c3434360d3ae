from __future__ import annotations

from enum import Enum


class VaultErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    TRANSIENT = "transient"


class VaultError(RuntimeError):
    def __init__(self, kind: VaultErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class NoteNotFoundError(VaultError):
    def __init__(self, path: str) -> None:
        super().__init__(VaultErrorKind.NOT_FOUND, f"Note not found: {path}")
        self.path = path
