"""Mirror primitives shared by the initial and the incremental sync.

``copy_file`` and ``copy_directory`` are idempotent: a destination file whose
modification time already equals the source's (rounded to the millisecond) is
left untouched. After a copy the destination gets the source's access and
modification times, so the next comparison is exact.

The probes (``path_exists``, ``can_read``, ``can_write``, ``is_directory``)
never raise. Everything else lets ``OSError`` through to the caller, except
``remove_path``, which treats an entry that is already gone as deleted.
"""
from __future__ import annotations

import logging
import os
import shutil
import stat
from enum import Enum
from pathlib import Path
from typing import Optional

from .console import LOGGER, log_action
from .paths import IgnoreMatcher
from .report import Outcome, SyncReport, SyncResult


class EntryKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"


# -------------------------
# Probes
# -------------------------

def path_exists(path: Path) -> bool:
    try:
        os.stat(path)
    except OSError:
        return False
    return True


def is_directory(path: Path) -> bool:
    try:
        return stat.S_ISDIR(os.stat(path).st_mode)
    except OSError:
        return False


def can_read(path: Path) -> bool:
    return path_exists(path) and os.access(path, os.R_OK)


def can_write(path: Path) -> bool:
    return path_exists(path) and os.access(path, os.W_OK)


def entry_kind(path: Path) -> Optional[EntryKind]:
    """File or directory, without following symlinks. None for anything else or a missing path."""
    try:
        mode = os.lstat(path).st_mode
    except FileNotFoundError:
        return None
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    if stat.S_ISREG(mode):
        return EntryKind.FILE
    return None


# -------------------------
# Comparator
# -------------------------

def mtime_equal(a: Path, b: Path) -> bool:
    # equal when the difference rounds to 0 ms, halves rounding up
    delta_ns = os.stat(a).st_mtime_ns - os.stat(b).st_mtime_ns
    return abs(delta_ns) < 500_000


# -------------------------
# Mirror operations
# -------------------------

def ensure_dir(path: Path) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def ensure_parent(path: Path) -> None:
    ensure_dir(Path(path).parent)


def copy_file(
    source: Path,
    dest: Path,
    report: Optional[SyncReport] = None,
    logger: logging.Logger = LOGGER,
) -> SyncResult:
    source, dest = Path(source), Path(dest)
    ensure_parent(dest)

    if path_exists(dest) and mtime_equal(source, dest):
        log_action(logger, "SKIP", f"unchanged {dest}", path=dest, is_dir=False, level=logging.DEBUG)
        return _record(report, SyncResult("copy", Outcome.SKIPPED, dest, "unchanged"))

    shutil.copyfile(source, dest)
    st = os.stat(source)
    os.utime(dest, ns=(st.st_atime_ns, st.st_mtime_ns))

    log_action(logger, "COPY", f"{source} -> {dest}", path=dest, is_dir=False)
    return _record(report, SyncResult("copy", Outcome.COPIED, dest))


def copy_directory(
    source: Path,
    dest: Path,
    report: Optional[SyncReport] = None,
    ignore: Optional[IgnoreMatcher] = None,
    logger: logging.Logger = LOGGER,
) -> SyncReport:
    source, dest = Path(source), Path(dest)
    if report is None:
        report = SyncReport()

    if not is_directory(dest):
        ensure_dir(dest)
        log_action(logger, "MKDIR", str(dest), path=dest, is_dir=True)

    for child in sorted(source.iterdir()):
        kind = entry_kind(child)
        if kind is None:
            continue
        if ignore and ignore.is_ignored(child, is_dir=kind is EntryKind.DIRECTORY):
            report.add(SyncResult("copy", Outcome.SKIPPED, dest / child.name, "ignored"))
            continue
        if kind is EntryKind.DIRECTORY:
            copy_directory(child, dest / child.name, report=report, ignore=ignore, logger=logger)
        else:
            copy_file(child, dest / child.name, report=report, logger=logger)

    return report


def remove_path(
    path: Path,
    report: Optional[SyncReport] = None,
    logger: logging.Logger = LOGGER,
) -> SyncResult:
    """Delete a file or a directory tree.

    Entries may disappear while this runs (another worker removing a parent or
    a child of *path*). Such entries are treated as already deleted. A target
    that is gone before anything was removed is reported as skipped/absent.
    """
    path = Path(path)
    kind = entry_kind(path)
    try:
        if kind is EntryKind.DIRECTORY:
            _rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        log_action(logger, "SKIP", f"delete absent: {path}", path=path, is_dir=False, level=logging.DEBUG)
        return _record(report, SyncResult("delete", Outcome.SKIPPED, path, "absent"))
    log_action(logger, "DELETE", str(path), path=path, is_dir=kind is EntryKind.DIRECTORY)
    return _record(report, SyncResult("delete", Outcome.DELETED, path))


def _rmtree(path: Path) -> None:
    # rmtree stops at the first child removed behind its back; start over
    # until the tree is gone
    while True:
        try:
            shutil.rmtree(path)
            return
        except FileNotFoundError:
            if not os.path.lexists(path):
                raise


def _record(report: Optional[SyncReport], result: SyncResult) -> SyncResult:
    if report is not None:
        report.add(result)
    return result
