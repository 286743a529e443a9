from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import ErrorKind, SyncConfigError
from .paths import read_ignore_file

APP_DIR = Path.home() / ".dirmirror"
CONFIG_PATH = APP_DIR / "config.json"
DEFAULT_WORKERS = 4


@dataclass(frozen=True)
class AppConfig:
    source_dir: Path
    dest_dir: Path
    log_dir: Optional[Path] = None
    ignore_patterns: tuple[str, ...] = field(default_factory=tuple)
    workers: int = DEFAULT_WORKERS
    verbose: bool = False
    save: bool = True


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="dirmirror", description="Mirror one folder onto another and keep it in sync.")
    p.add_argument("--in", dest="source", type=str, default=None, help="Source folder to mirror.")
    p.add_argument("--sync", dest="dest", type=str, default=None, help="Destination folder, created when missing.")
    p.add_argument("--ignore", action="append", default=None, metavar="PATTERN",
                   help="gitignore-style pattern to leave out (repeatable).")
    p.add_argument("--ignore-file", type=str, default=None, help="File with gitignore-style patterns.")
    p.add_argument("--workers", type=int, default=None, help="Threads applying live changes (0 = inline).")
    p.add_argument("--log-dir", type=str, default=None, help="Directory for log files.")
    p.add_argument("--no-save", action="store_true", help="Do not remember the folders for the next run.")
    p.add_argument("-v", "--verbose", action="store_true", help="Also log skipped entries.")
    return p.parse_args(argv)


def load_config_file(path: Path = CONFIG_PATH) -> dict:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config_file(cfg: AppConfig, path: Path = CONFIG_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "source": str(cfg.source_dir),
        "dest": str(cfg.dest_dir),
        "log_dir": str(cfg.log_dir) if cfg.log_dir else None,
        "ignore": list(cfg.ignore_patterns),
        "workers": cfg.workers,
    }
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def build_effective_config(args: argparse.Namespace, saved: Optional[dict] = None) -> AppConfig:
    """Command line values win; the remembered config fills the gaps."""
    saved = saved or {}

    source = args.source or saved.get("source")
    dest = args.dest or saved.get("dest")
    if not source:
        raise SyncConfigError(ErrorKind.ARG_MISSING, 'The "--in" argument is required')
    if not dest:
        raise SyncConfigError(ErrorKind.ARG_MISSING, 'The "--sync" argument is required')

    log_dir = args.log_dir or saved.get("log_dir")

    if args.ignore is not None or args.ignore_file:
        patterns = list(args.ignore or [])
        if args.ignore_file:
            patterns.extend(read_ignore_file(Path(args.ignore_file)))
    else:
        patterns = list(saved.get("ignore", []))

    workers = args.workers if args.workers is not None else int(saved.get("workers", DEFAULT_WORKERS))

    return AppConfig(
        source_dir=Path(source),
        dest_dir=Path(dest),
        log_dir=Path(log_dir) if log_dir else None,
        ignore_patterns=tuple(patterns),
        workers=max(0, workers),
        verbose=args.verbose,
        save=not args.no_save,
    )
