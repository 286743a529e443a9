from __future__ import annotations

import os
from pathlib import Path

from .errors import ErrorKind, SyncConfigError
from .fs import can_read, can_write, is_directory, path_exists


def normalize_path(raw) -> Path:
    """Absolute form of a user supplied path, ``~`` expanded."""
    return Path(os.path.expanduser(str(raw))).resolve()


def _is_subpath(child: Path, parent: Path) -> bool:
    try:
        child.relative_to(parent)
        return True
    except ValueError:
        return False


def assert_source(source: Path) -> None:
    if not is_directory(source):
        raise SyncConfigError(
            ErrorKind.SOURCE_MISSING,
            f"The source directory does not exist or is not a directory: {source}",
        )
    if not can_read(source):
        raise SyncConfigError(
            ErrorKind.SOURCE_UNREADABLE,
            f"The current user has no read access to the source directory: {source}",
        )


def assert_dest(dest: Path) -> None:
    """The destination is created when missing and must be a writable directory otherwise."""
    if not path_exists(dest):
        try:
            dest.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SyncConfigError(
                ErrorKind.DEST_UNCREATABLE,
                f"Unable to create the destination directory {dest}: {e}",
            ) from e
        return
    if not is_directory(dest):
        raise SyncConfigError(
            ErrorKind.DEST_TYPE_MISMATCH,
            f"The destination exists but is not a directory: {dest}",
        )
    if not (can_read(dest) and can_write(dest)):
        raise SyncConfigError(
            ErrorKind.DEST_UNWRITABLE,
            f"Unable to write to the destination directory: {dest}",
        )


def validate_paths(source, dest) -> tuple[Path, Path]:
    source = normalize_path(source)
    dest = normalize_path(dest)

    assert_source(source)
    if source == dest:
        raise SyncConfigError(ErrorKind.SAME_DIR, "Source and destination folders must be different.")
    if _is_subpath(dest, source):
        raise SyncConfigError(ErrorKind.NESTED_DIR, "Destination must NOT be inside the source (would cause loops).")
    if _is_subpath(source, dest):
        raise SyncConfigError(ErrorKind.NESTED_DIR, "Source must NOT be inside the destination (it would be pruned).")
    assert_dest(dest)

    return source, dest
