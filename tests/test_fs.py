from __future__ import annotations

import os
import shutil

import pytest

import dirmirror.fs as fs_mod
from conftest import make_tree, tree_listing
from dirmirror.fs import (
    EntryKind,
    can_read,
    can_write,
    copy_directory,
    copy_file,
    entry_kind,
    is_directory,
    mtime_equal,
    path_exists,
    remove_path,
)
from dirmirror.paths import IgnoreMatcher
from dirmirror.report import Outcome, SyncReport

OLD = 1_600_000_000_000_000_000


def test_probes_never_raise(tmp_path):
    missing = tmp_path / "nope"
    assert not path_exists(missing)
    assert not can_read(missing)
    assert not can_write(missing)
    assert not is_directory(missing)

    f = tmp_path / "f.txt"
    f.write_text("x", encoding="utf-8")
    assert path_exists(f)
    assert can_read(f)
    assert can_write(f)
    assert not is_directory(f)
    assert is_directory(tmp_path)


def test_entry_kind_does_not_follow_symlinks(tmp_path):
    f = tmp_path / "f.txt"
    f.write_text("x", encoding="utf-8")
    link = tmp_path / "link"
    link.symlink_to(f)

    assert entry_kind(f) is EntryKind.FILE
    assert entry_kind(tmp_path) is EntryKind.DIRECTORY
    assert entry_kind(link) is None
    assert entry_kind(tmp_path / "missing") is None


def test_mtime_equal_rounds_sub_millisecond_differences(tmp_path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.write_text("1", encoding="utf-8")
    b.write_text("2", encoding="utf-8")

    os.utime(a, ns=(OLD, OLD))
    os.utime(b, ns=(OLD, OLD + 400_000))
    assert mtime_equal(a, b)

    os.utime(b, ns=(OLD, OLD + 2_000_000))
    assert not mtime_equal(a, b)


def test_mtime_equal_rounds_half_millisecond_up(tmp_path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.write_text("1", encoding="utf-8")
    b.write_text("2", encoding="utf-8")

    os.utime(a, ns=(OLD, OLD))
    os.utime(b, ns=(OLD, OLD + 499_999))
    assert mtime_equal(a, b)

    os.utime(b, ns=(OLD, OLD + 500_000))
    assert not mtime_equal(a, b)
    assert not mtime_equal(b, a)


def test_copy_file_creates_parents_and_stamps_times(tmp_path):
    src = tmp_path / "src.txt"
    src.write_text("payload", encoding="utf-8")
    os.utime(src, ns=(OLD, OLD + 123_456_789))
    dst = tmp_path / "deep" / "er" / "dst.txt"

    result = copy_file(src, dst)

    assert result.outcome is Outcome.COPIED
    assert dst.stat().st_mtime_ns == src.stat().st_mtime_ns
    assert dst.stat().st_atime_ns == src.stat().st_atime_ns
    assert dst.read_text(encoding="utf-8") == "payload"


def test_copy_file_skips_when_mtime_matches(tmp_path):
    src = tmp_path / "src.txt"
    dst = tmp_path / "dst.txt"
    src.write_text("new content", encoding="utf-8")
    dst.write_text("old", encoding="utf-8")
    os.utime(src, ns=(OLD, OLD))
    os.utime(dst, ns=(OLD, OLD))

    report = SyncReport()
    result = copy_file(src, dst, report=report)

    assert result.outcome is Outcome.SKIPPED
    assert result.reason == "unchanged"
    # mtime is the only oracle: differing content is not looked at
    assert dst.read_text(encoding="utf-8") == "old"
    assert report.count(Outcome.SKIPPED) == 1


def test_copy_file_overwrites_when_mtime_differs(tmp_path):
    src = tmp_path / "src.txt"
    dst = tmp_path / "dst.txt"
    src.write_text("new", encoding="utf-8")
    dst.write_text("old", encoding="utf-8")
    os.utime(dst, ns=(OLD, OLD))

    assert copy_file(src, dst).outcome is Outcome.COPIED
    assert dst.read_text(encoding="utf-8") == "new"
    assert mtime_equal(src, dst)


def test_copy_file_is_idempotent(tmp_path):
    src = tmp_path / "src.txt"
    src.write_text("same", encoding="utf-8")
    dst = tmp_path / "dst.txt"

    copy_file(src, dst)
    before = dst.stat().st_mtime_ns
    assert copy_file(src, dst).outcome is Outcome.SKIPPED
    assert dst.stat().st_mtime_ns == before


def test_copy_file_missing_source_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        copy_file(tmp_path / "gone.txt", tmp_path / "out.txt")


def test_copy_directory_mirrors_tree(tmp_path):
    src = make_tree(tmp_path / "src", {"a.txt": "1", "sub/b.txt": "2", "sub/deeper/c.txt": "3", "empty/": ""})
    dst = tmp_path / "dst"

    report = copy_directory(src, dst)

    assert tree_listing(dst) == tree_listing(src)
    assert report.count(Outcome.COPIED) == 3
    for rel in ("a.txt", "sub/b.txt", "sub/deeper/c.txt"):
        assert (dst / rel).stat().st_mtime_ns == (src / rel).stat().st_mtime_ns


def test_copy_directory_skips_symlinks(tmp_path):
    src = make_tree(tmp_path / "src", {"a.txt": "1"})
    (src / "link.txt").symlink_to(src / "a.txt")
    dst = tmp_path / "dst"

    copy_directory(src, dst)

    assert not (dst / "link.txt").exists()
    assert (dst / "a.txt").exists()


def test_copy_directory_honours_ignore(tmp_path):
    src = make_tree(tmp_path / "src", {"keep.txt": "1", "drop.log": "2", "build/out.bin": "3"})
    dst = tmp_path / "dst"
    ignore = IgnoreMatcher(src, ["*.log", "build/"])

    report = copy_directory(src, dst, ignore=ignore)

    assert tree_listing(dst) == {"keep.txt": "1"}
    assert report.paths(Outcome.SKIPPED) == {dst / "drop.log", dst / "build"}


def test_copy_directory_onto_file_raises(tmp_path):
    src = make_tree(tmp_path / "src", {"x/inner.txt": "1"})
    dst = tmp_path / "dst"
    dst.write_text("I am a file", encoding="utf-8")

    with pytest.raises(FileExistsError):
        copy_directory(src / "x", dst)


def test_remove_path_handles_files_and_directories(tmp_path):
    tree = make_tree(tmp_path / "t", {"f.txt": "1", "d/e/g.txt": "2"})

    assert remove_path(tree / "f.txt").outcome is Outcome.DELETED
    assert remove_path(tree / "d").outcome is Outcome.DELETED
    assert list(tree.iterdir()) == []


def test_remove_path_missing_target_is_skipped(tmp_path):
    report = SyncReport()

    result = remove_path(tmp_path / "gone", report=report)

    assert result.outcome is Outcome.SKIPPED
    assert result.reason == "absent"
    assert report.snapshot() == [result]


def test_remove_path_survives_children_vanishing(tmp_path, monkeypatch):
    tree = make_tree(tmp_path / "t", {"d/a/x.txt": "1", "d/b/y.txt": "2"})
    real_rmtree = shutil.rmtree
    calls = []

    def racing_rmtree(path, *args, **kwargs):
        # another worker deletes part of the tree, this pass gives up on it
        calls.append(path)
        if len(calls) == 1:
            real_rmtree(tree / "d" / "a")
            raise FileNotFoundError(2, "No such file or directory", "a")
        real_rmtree(path, *args, **kwargs)

    monkeypatch.setattr(fs_mod.shutil, "rmtree", racing_rmtree)

    result = remove_path(tree / "d")

    assert result.outcome is Outcome.DELETED
    assert len(calls) == 2
    assert list(tree.iterdir()) == []


def test_remove_path_directory_removed_by_someone_else(tmp_path, monkeypatch):
    tree = make_tree(tmp_path / "t", {"d/a/x.txt": "1"})
    real_rmtree = shutil.rmtree

    def racing_rmtree(path, *args, **kwargs):
        real_rmtree(path)
        raise FileNotFoundError(2, "No such file or directory", str(path))

    monkeypatch.setattr(fs_mod.shutil, "rmtree", racing_rmtree)

    result = remove_path(tree / "d")

    assert result.outcome is Outcome.SKIPPED
    assert result.reason == "absent"
    assert not (tree / "d").exists()
