"""Live mirroring of watcher events.

Events seen before the watcher reports readiness are dropped. Afterwards each
event is handed to a worker thread; operations on the same relative path run
one at a time, operations on different paths are unordered.

Unreadable sources and missing or unwritable destinations are skipped without
retry. The skip shows up in :attr:`IncrementalSync.report`.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

from .console import LOGGER, log_action
from .fs import can_read, can_write, copy_directory, copy_file, path_exists, remove_path
from .paths import IgnoreMatcher, PathMapping
from .report import Outcome, SyncReport, SyncResult
from .watcher import WatchListener, WatchSource

REPORT_LIMIT = 10_000


class _PathLock:
    """Lock for one relative path; dropped once no operation holds or awaits it."""

    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class IncrementalSync(WatchListener):
    def __init__(
        self,
        mapping: PathMapping,
        ignore: Optional[IgnoreMatcher] = None,
        workers: int = 4,
        logger: logging.Logger = LOGGER,
    ):
        self.mapping = mapping
        self.ignore = ignore
        self.logger = logger
        self.ready = False
        self.discarded = 0
        self._discarded_guard = threading.Lock()
        self.report = SyncReport(limit=REPORT_LIMIT)

        self._locks: dict[Path, _PathLock] = {}
        self._locks_guard = threading.Lock()
        self._executor = (
            ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dirmirror")
            if workers > 0
            else None
        )
        self._pending: set[Future] = set()
        self._pending_guard = threading.Lock()
        self._source: Optional[WatchSource] = None
        self._closed = False

    # -------------------------
    # Session
    # -------------------------

    def run(self, source: WatchSource) -> None:
        if self._closed:
            return
        self._source = source
        source.start(self)
        # abort() may have run while the source was starting
        if self._closed:
            source.close()

    def abort(self) -> None:
        """Stop taking events. Handlers already scheduled may still finish."""
        if self._closed:
            return
        self._closed = True
        source, self._source = self._source, None
        if source is not None:
            source.close()
        if self._executor is not None:
            self._executor.shutdown(wait=False)

    def drain(self, timeout: Optional[float] = None) -> bool:
        with self._pending_guard:
            pending = list(self._pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    # -------------------------
    # Listener
    # -------------------------

    def on_ready(self) -> None:
        self.ready = True
        self.logger.info("LIVE SYNC: ready (%d startup events ignored)", self.discarded)

    def on_added(self, path: Path) -> None:
        self._dispatch("add", path, self.handle_added)

    def on_added_directory(self, path: Path) -> None:
        self._dispatch("add_dir", path, self.handle_added_directory)

    def on_changed(self, path: Path) -> None:
        self._dispatch("change", path, self.handle_changed)

    def on_removed(self, path: Path) -> None:
        self._dispatch("remove", path, self.handle_removed)

    def on_removed_directory(self, path: Path) -> None:
        self._dispatch("remove_dir", path, self.handle_removed_directory)

    # -------------------------
    # Operations
    # -------------------------

    def handle_added(self, src: Path) -> None:
        dst = self.mapping.to_dest(src)
        if not can_read(src):
            self._skip("copy", dst, "unreadable")
            return
        if self.ignore and self.ignore.is_ignored(src, is_dir=False):
            self._skip("copy", dst, "ignored")
            return
        copy_file(src, dst, report=self.report, logger=self.logger)

    def handle_added_directory(self, src: Path) -> None:
        dst = self.mapping.to_dest(src)
        if not can_read(src):
            self._skip("copy", dst, "unreadable")
            return
        if self.ignore and self.ignore.is_ignored(src, is_dir=True):
            self._skip("copy", dst, "ignored")
            return
        copy_directory(src, dst, report=self.report, ignore=self.ignore, logger=self.logger)

    # copy_file compares modification times itself
    handle_changed = handle_added

    def handle_removed(self, src: Path) -> None:
        self._remove(self.mapping.to_dest(src))

    def handle_removed_directory(self, src: Path) -> None:
        self._remove(self.mapping.to_dest(src))

    def _remove(self, dst: Path) -> None:
        # a parent removal running on another worker may delete dst at any point
        if not can_write(dst):
            self._skip("delete", dst, "unwritable" if path_exists(dst) else "absent")
            return
        remove_path(dst, report=self.report, logger=self.logger)

    def _skip(self, action: str, dst: Path, reason: str) -> None:
        log_action(self.logger, "SKIP", f"{action} {reason}: {dst}", path=dst, is_dir=False, level=logging.DEBUG)
        self.report.add(SyncResult(action, Outcome.SKIPPED, dst, reason))

    # -------------------------
    # Dispatch
    # -------------------------

    @contextmanager
    def _path_lock(self, rel: Path) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.get(rel)
            if entry is None:
                entry = self._locks[rel] = _PathLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if not entry.users:
                    del self._locks[rel]

    def _dispatch(self, action: str, path: Path, handler: Callable[[Path], None]) -> None:
        path = Path(path)
        if not self.ready:
            with self._discarded_guard:
                self.discarded += 1
            return
        if self._closed:
            return

        if self._executor is None:
            self._run(action, path, handler)
            return

        try:
            future = self._executor.submit(self._run, action, path, handler)
        except RuntimeError:
            # executor shut down by abort() after the closed check
            return
        with self._pending_guard:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._pending_guard:
            self._pending.discard(future)

    def _run(self, action: str, path: Path, handler: Callable[[Path], None]) -> None:
        rel = self.mapping.relative(path)
        with self._path_lock(rel):
            try:
                handler(path)
            except OSError as e:
                dst = self.mapping.dest_root / rel
                log_action(self.logger, "ERROR", f"{action} {path} -> {dst} | {e}", path=dst, is_dir=False, level=logging.ERROR)
                self.report.add(SyncResult(action, Outcome.ERROR, dst, str(e)))
