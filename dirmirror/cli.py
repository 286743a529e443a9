from __future__ import annotations

import dataclasses
import sys
from typing import Optional

from .config import CONFIG_PATH, build_effective_config, load_config_file, parse_args, save_config_file
from .console import setup_logger
from .errors import SyncConfigError
from .sync import Sync
from .validation import normalize_path


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    try:
        cfg = build_effective_config(args, load_config_file(CONFIG_PATH))
    except SyncConfigError as e:
        setup_logger().error("Config error: %s", e)
        return 2

    logger = setup_logger(cfg.log_dir, cfg.verbose)

    sync = Sync(
        cfg.source_dir,
        cfg.dest_dir,
        ignore_patterns=cfg.ignore_patterns,
        workers=cfg.workers,
        logger=logger,
    )
    sync.install_signal_handler()

    try:
        sync.run()
    except SyncConfigError as e:
        logger.error("Config error: %s", e)
        return 2
    except OSError as e:
        logger.error("Sync failed, destination left partially mirrored: %s", e)
        sync.abort()
        return 1

    if cfg.save:
        remembered = dataclasses.replace(
            cfg,
            source_dir=normalize_path(cfg.source_dir),
            dest_dir=normalize_path(cfg.dest_dir),
            log_dir=normalize_path(cfg.log_dir) if cfg.log_dir else None,
        )
        try:
            save_config_file(remembered, CONFIG_PATH)
            logger.info("Saved config: %s", CONFIG_PATH)
        except OSError as e:
            logger.error("Could not save config: %s", e)

    try:
        sync.wait()
    finally:
        sync.abort()
        logger.info("Stopped.")
    return 0
