from __future__ import annotations

import threading


class CancelToken:
    """Advisory cancellation marker shared by both sync phases.

    Setting it never interrupts an operation already running; workers look at
    it only at their own check points.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        return self._event.wait(timeout)
