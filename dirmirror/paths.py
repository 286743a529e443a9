from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from pathspec import PathSpec


class PathMapping:
    """Prefix substitution between the source root and the destination root.

    Paths handed to the mapping must start with the matching root. Anything
    else is a caller bug and ``relative_to`` raises ``ValueError``.
    """

    def __init__(self, source_root: Path, dest_root: Path):
        self.source_root = Path(source_root)
        self.dest_root = Path(dest_root)

    def relative(self, src: Path) -> Path:
        return Path(src).relative_to(self.source_root)

    def to_dest(self, src: Path) -> Path:
        return self.dest_root / self.relative(src)

    def to_source(self, dst: Path) -> Path:
        return self.source_root / Path(dst).relative_to(self.dest_root)

    def __repr__(self) -> str:
        return f"PathMapping({str(self.source_root)!r} -> {str(self.dest_root)!r})"


class IgnoreMatcher:
    def __init__(self, source_root: Path, patterns: Iterable[str] = ()):
        self.source_root = Path(source_root)
        self.patterns = [p for p in patterns if p.strip() and not p.lstrip().startswith("#")]
        self.spec = PathSpec.from_lines("gitwildmatch", self.patterns)

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def is_ignored(self, path: Path, is_dir: Optional[bool] = None) -> bool:
        if not self.patterns:
            return False
        rel_posix = Path(path).relative_to(self.source_root).as_posix()
        if rel_posix == ".":
            return False
        if is_dir is None:
            is_dir = Path(path).is_dir()
        if is_dir and not rel_posix.endswith("/"):
            rel_posix += "/"
        return self.spec.match_file(rel_posix)


def read_ignore_file(path: Path) -> list[str]:
    """Lines of a gitignore-style file, comments and blanks dropped."""
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return [line.rstrip() for line in lines if line.strip() and not line.lstrip().startswith("#")]
