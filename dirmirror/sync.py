"""Runs the initial reconciliation, then keeps the mirror live until aborted.

The two phases never overlap: the watcher is only started once the initial
sync has returned. :meth:`Sync.abort` can be called at any time, from a signal
handler included. It does not wait for work in flight.
"""
from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional

from .cancel import CancelToken
from .console import LOGGER
from .incremental import IncrementalSync
from .initial import InitialSync
from .paths import IgnoreMatcher, PathMapping
from .report import SyncReport
from .validation import validate_paths
from .watcher import WatchdogSource, WatchSource

WatchFactory = Callable[[Path], WatchSource]


class Sync:
    def __init__(
        self,
        source,
        dest,
        ignore_patterns: Iterable[str] = (),
        workers: int = 4,
        watch_factory: WatchFactory = WatchdogSource,
        logger: logging.Logger = LOGGER,
    ):
        self.source_arg = source
        self.dest_arg = dest
        self.ignore_patterns = list(ignore_patterns)
        self.workers = workers
        self.watch_factory = watch_factory
        self.logger = logger

        self.token = CancelToken()
        self.initial: Optional[InitialSync] = None
        self.active: Optional[IncrementalSync] = None
        self._guard = threading.RLock()

    @property
    def aborted(self) -> bool:
        return self.token.cancelled

    def run(self) -> SyncReport:
        source, dest = validate_paths(self.source_arg, self.dest_arg)
        self.logger.info("Source: %s", source)
        self.logger.info("Dest  : %s", dest)

        mapping = PathMapping(source, dest)
        ignore = IgnoreMatcher(source, self.ignore_patterns)

        with self._guard:
            if self.aborted:
                return SyncReport()
            initial = self.initial = InitialSync(mapping, ignore, self.token, self.logger)
        try:
            report = initial.run()
        finally:
            self.initial = None

        with self._guard:
            if self.aborted:
                return report
            active = self.active = IncrementalSync(mapping, ignore, workers=self.workers, logger=self.logger)

        self.logger.info("Observing changes to %s (Ctrl+C to stop)", source)
        active.run(self.watch_factory(source))
        return report

    def abort(self) -> None:
        with self._guard:
            if self.aborted:
                return
            self.token.cancel()
            initial, active = self.initial, self.active
        self.logger.info("Stopping...")
        if initial is not None:
            initial.abort()
        if active is not None:
            active.abort()

    def wait(self, poll: float = 0.5) -> None:
        while not self.token.wait(poll):
            pass

    def install_signal_handler(self) -> None:
        signal.signal(signal.SIGINT, lambda signum, frame: self.abort())
