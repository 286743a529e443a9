"""Structured outcomes of mirror operations.

Every copy, delete or skip decided by the engine is recorded as a
:class:`SyncResult` so callers can inspect what happened without parsing logs.
"""
from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class Outcome(str, Enum):
    COPIED = "copied"
    SKIPPED = "skipped"
    DELETED = "deleted"
    ERROR = "error"


@dataclass(frozen=True)
class SyncResult:
    action: str
    outcome: Outcome
    path: Path
    reason: str = ""


@dataclass
class SyncReport:
    """Thread-safe log of results. With a *limit* only the newest results are kept."""

    limit: Optional[int] = None
    results: deque = field(default_factory=deque)
    _guard: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.results = deque(self.results, maxlen=self.limit)

    def add(self, result: SyncResult) -> SyncResult:
        with self._guard:
            self.results.append(result)
        return result

    def snapshot(self) -> list[SyncResult]:
        with self._guard:
            return list(self.results)

    def count(self, outcome: Outcome, action: Optional[str] = None) -> int:
        return len(self.select(outcome, action))

    def select(self, outcome: Outcome, action: Optional[str] = None) -> list[SyncResult]:
        return [
            r for r in self.snapshot()
            if r.outcome is outcome and (action is None or r.action == action)
        ]

    def paths(self, outcome: Outcome, action: Optional[str] = None) -> set[Path]:
        return {r.path for r in self.select(outcome, action)}

    def summary(self) -> str:
        return ", ".join(f"{o.value}={self.count(o)}" for o in Outcome)
