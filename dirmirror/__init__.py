"""Mirror a source directory onto a destination and keep it in sync."""
from .errors import ErrorKind, SyncConfigError
from .incremental import IncrementalSync
from .initial import InitialSync
from .paths import IgnoreMatcher, PathMapping
from .report import Outcome, SyncReport, SyncResult
from .sync import Sync
from .watcher import WatchdogSource, WatchListener, WatchSource

__all__ = [
    "ErrorKind",
    "IgnoreMatcher",
    "IncrementalSync",
    "InitialSync",
    "Outcome",
    "PathMapping",
    "Sync",
    "SyncConfigError",
    "SyncReport",
    "SyncResult",
    "WatchListener",
    "WatchSource",
    "WatchdogSource",
]

__version__ = "0.1.0"
