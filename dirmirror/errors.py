from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Stable codes for startup failures, surfaced to the command line."""

    ARG_MISSING = "E_ARG_MISSING"
    SOURCE_MISSING = "E_IN_DIR_ERROR"
    SOURCE_UNREADABLE = "E_IN_DIR_ACCESS"
    DEST_TYPE_MISMATCH = "E_OUT_MISMATCH"
    DEST_UNWRITABLE = "E_OUT_DIR_ACCESS"
    DEST_UNCREATABLE = "E_OUT_DIR_CREATE"
    SAME_DIR = "E_SAME_DIR"
    NESTED_DIR = "E_NESTED_DIR"


class SyncConfigError(ValueError):
    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.args[0]}"
