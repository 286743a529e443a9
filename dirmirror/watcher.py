"""Change notification capability.

A :class:`WatchSource` reports one ``on_added`` / ``on_added_directory`` per
entry that already exists when it starts, then calls ``on_ready`` exactly once,
then reports live changes. Nothing is promised about ordering across paths,
and removing a directory may or may not be followed by removal events for its
descendants.
"""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .console import LOGGER
from .fs import EntryKind, entry_kind


class WatchListener:
    def on_added(self, path: Path) -> None:
        pass

    def on_added_directory(self, path: Path) -> None:
        pass

    def on_changed(self, path: Path) -> None:
        pass

    def on_removed(self, path: Path) -> None:
        pass

    def on_removed_directory(self, path: Path) -> None:
        pass

    def on_ready(self) -> None:
        pass


class WatchSource:
    def start(self, listener: WatchListener) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


# -------------------------
# Watchdog backend
# -------------------------

class _ListenerBridge(FileSystemEventHandler):
    """Translates watchdog events into listener calls until closed."""

    def __init__(self, listener: WatchListener):
        super().__init__()
        self.listener = listener
        self.closed = threading.Event()

    def on_created(self, event):
        if self.closed.is_set():
            return
        self._added(_event_path(event.src_path), event.is_directory)

    def on_modified(self, event):
        if self.closed.is_set() or event.is_directory:
            return
        self.listener.on_changed(_event_path(event.src_path))

    def on_deleted(self, event):
        if self.closed.is_set():
            return
        self._removed(_event_path(event.src_path), event.is_directory)

    def on_moved(self, event):
        if self.closed.is_set():
            return
        self._removed(_event_path(event.src_path), event.is_directory)
        self._added(_event_path(event.dest_path), event.is_directory)

    def _added(self, path: Path, is_dir: bool) -> None:
        if is_dir:
            self.listener.on_added_directory(path)
        else:
            self.listener.on_added(path)

    def _removed(self, path: Path, is_dir: bool) -> None:
        if is_dir:
            self.listener.on_removed_directory(path)
        else:
            self.listener.on_removed(path)


def _event_path(raw) -> Path:
    return Path(os.fsdecode(raw))


class WatchdogSource(WatchSource):
    def __init__(self, root: Path, logger: logging.Logger = LOGGER, join_timeout: float = 10.0):
        self.root = Path(root)
        self.logger = logger
        self.join_timeout = join_timeout
        self._observer: Optional[Observer] = None
        self._bridge: Optional[_ListenerBridge] = None

    def start(self, listener: WatchListener) -> None:
        bridge = _ListenerBridge(listener)
        observer = Observer()
        observer.schedule(bridge, str(self.root), recursive=True)
        self._bridge = bridge
        self._observer = observer
        observer.start()

        self._scan(self.root, listener, bridge)
        if not bridge.closed.is_set():
            listener.on_ready()
            self.logger.info("Watching %s", self.root)

    def _scan(self, directory: Path, listener: WatchListener, bridge: _ListenerBridge) -> None:
        try:
            children = sorted(directory.iterdir())
        except FileNotFoundError:
            # removed while scanning; the observer reports the deletion
            return
        for child in children:
            if bridge.closed.is_set():
                return
            kind = entry_kind(child)
            if kind is EntryKind.DIRECTORY:
                listener.on_added_directory(child)
                self._scan(child, listener, bridge)
            elif kind is EntryKind.FILE:
                listener.on_added(child)

    def close(self) -> None:
        if self._bridge is not None:
            self._bridge.closed.set()
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        if observer is not threading.current_thread():
            observer.join(timeout=self.join_timeout)
