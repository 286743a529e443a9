from __future__ import annotations

import logging
import signal
import time
from pathlib import Path

import pytest

from dirmirror.console import LOGGER_NAME
from dirmirror.paths import PathMapping
from dirmirror.watcher import WatchListener, WatchSource


def make_tree(root: Path, files: dict[str, str]) -> Path:
    """Create *files* (relative path -> text) under *root*; a trailing slash makes an empty directory."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        target = root / rel
        if rel.endswith("/"):
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


def tree_listing(root: Path) -> dict[str, str]:
    """Relative path -> content for files, relative path + '/' -> '' for directories."""
    listing = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        if path.is_dir():
            listing[rel + "/"] = ""
        else:
            listing[rel] = path.read_text(encoding="utf-8")
    return listing


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


class ScriptedWatchSource(WatchSource):
    """Deterministic stand-in for a real watcher.

    ``start`` replays the startup events and signals readiness; tests then
    call :meth:`emit` for live events.
    """

    def __init__(self, startup=(), send_ready: bool = True):
        self.startup = list(startup)
        self.send_ready = send_ready
        self.listener: WatchListener | None = None
        self.started = False
        self.closed = False

    def start(self, listener: WatchListener) -> None:
        self.listener = listener
        self.started = True
        for kind, path in self.startup:
            self.emit(kind, path)
        if self.send_ready:
            listener.on_ready()

    def emit(self, kind: str, path: Path) -> None:
        if self.closed:
            return
        getattr(self.listener, f"on_{kind}")(Path(path))

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def roots(tmp_path: Path) -> tuple[Path, Path]:
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    src.mkdir()
    dst.mkdir()
    return src, dst


@pytest.fixture()
def mapping(roots) -> PathMapping:
    return PathMapping(*roots)


@pytest.fixture(autouse=True)
def isolate_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture()
def restore_sigint():
    original = signal.getsignal(signal.SIGINT)
    yield
    signal.signal(signal.SIGINT, original)
