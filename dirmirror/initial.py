"""One-shot reconciliation of the destination with the source.

Cleanup runs to completion before anything is copied, so stale destination
entries are gone before new content lands. Cancellation is only looked at
before each top-level source entry of the copy pass; a running cleanup or a
recursive copy of one top-level entry always finishes.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .cancel import CancelToken
from .console import LOGGER, log_action
from .fs import EntryKind, copy_directory, copy_file, entry_kind, path_exists, remove_path
from .paths import IgnoreMatcher, PathMapping
from .report import Outcome, SyncReport, SyncResult


class InitialSync:
    def __init__(
        self,
        mapping: PathMapping,
        ignore: Optional[IgnoreMatcher] = None,
        token: Optional[CancelToken] = None,
        logger: logging.Logger = LOGGER,
    ):
        self.mapping = mapping
        self.ignore = ignore
        self.token = token or CancelToken()
        self.logger = logger

    @property
    def aborted(self) -> bool:
        return self.token.cancelled

    def abort(self) -> None:
        self.token.cancel()

    def run(self) -> SyncReport:
        report = SyncReport()
        if self.aborted:
            return report

        self.logger.info("INITIAL SYNC: start")
        self.cleanup(report=report)

        for src in sorted(self.mapping.source_root.iterdir()):
            if self.aborted:
                self.logger.info("INITIAL SYNC: aborted before %s", src)
                return report

            kind = entry_kind(src)
            if kind is None:
                continue
            dst = self.mapping.to_dest(src)
            if self._excluded(src, kind):
                report.add(SyncResult("copy", Outcome.SKIPPED, dst, "ignored"))
                continue
            if kind is EntryKind.DIRECTORY:
                copy_directory(src, dst, report=report, ignore=self.ignore, logger=self.logger)
            else:
                copy_file(src, dst, report=report, logger=self.logger)

        self.logger.info("INITIAL SYNC: done (%s)", report.summary())
        return report

    def cleanup(self, dest_dir: Optional[Path] = None, report: Optional[SyncReport] = None) -> SyncReport:
        """Delete destination entries that have no source counterpart.

        Only the destination entry's own kind is looked at: a destination
        file is kept whenever *something* exists at the source path, even a
        directory.
        """
        if report is None:
            report = SyncReport()
        if dest_dir is None:
            dest_dir = self.mapping.dest_root

        for dst in sorted(Path(dest_dir).iterdir()):
            src = self.mapping.to_source(dst)
            kind = entry_kind(dst)
            source_exists = path_exists(src) and not self._excluded(src)

            if source_exists and kind is EntryKind.FILE:
                continue
            if source_exists and kind is EntryKind.DIRECTORY:
                self.cleanup(dst, report)
                continue
            if kind is None:
                log_action(self.logger, "SKIP", f"not a file or directory {dst}", path=dst, is_dir=False, level=logging.DEBUG)
                continue

            remove_path(dst, report=report, logger=self.logger)

        return report

    def _excluded(self, src: Path, kind: Optional[EntryKind] = None) -> bool:
        if not self.ignore:
            return False
        is_dir = None if kind is None else kind is EntryKind.DIRECTORY
        return self.ignore.is_ignored(src, is_dir=is_dir)
