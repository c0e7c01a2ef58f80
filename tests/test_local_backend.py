# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_local_backend.py

import errno
import os
import pwd

import pytest

from uio.storage import BackendRegistry
from uio.system.exceptions import NotFoundError, PartialListingError, StorageOperationError


@pytest.fixture
def registry():
    return BackendRegistry()


def loc(path) -> str:
    return f"file://{path}"


class TestReadWrite:
    def test_write_then_read(self, registry, tmp_path):
        with registry.open_write(loc(tmp_path / "out.bin")) as out:
            out.write(b"payload")
        with registry.open_read(loc(tmp_path / "out.bin")) as src:
            assert src.read() == b"payload"

    def test_read_missing(self, registry, tmp_path):
        with pytest.raises(NotFoundError, match="Could not open"):
            registry.open_read(loc(tmp_path / "missing"))

    def test_size(self, registry, local_tree):
        assert registry.size(loc(local_tree / "b" / "y.txt")) == 6

    def test_size_of_directory(self, registry, local_tree):
        with pytest.raises(StorageOperationError):
            registry.size(loc(local_tree) + "/")


class TestExistsDeleteMkdir:
    def test_exists(self, registry, local_tree):
        assert registry.exists(loc(local_tree / "x.txt"))
        assert registry.exists(loc(local_tree) + "/")
        assert not registry.exists(loc(local_tree / "nope.txt"))

    def test_exists_propagates_other_errors(self, registry, local_tree):
        # A path through a regular file is ENOTDIR, not "missing"
        with pytest.raises(StorageOperationError):
            registry.exists(loc(local_tree / "x.txt" / "child"))

    def test_delete_file_and_empty_dir(self, registry, local_tree):
        registry.delete(loc(local_tree / "b" / "y.txt"))
        registry.delete(loc(local_tree / "b") + "/")
        assert not (local_tree / "b").exists()

    def test_delete_non_empty_dir_fails(self, registry, local_tree):
        with pytest.raises(StorageOperationError, match="Could not delete"):
            registry.delete(loc(local_tree / "b") + "/")

    def test_mkdir_creates_parents(self, registry, tmp_path):
        registry.mkdir(loc(tmp_path / "p" / "q") + "/")
        assert (tmp_path / "p" / "q").is_dir()


class TestCopy:
    def test_copy_local(self, registry, local_tree, tmp_path):
        registry.copy(loc(local_tree / "x.txt"), loc(tmp_path / "copy.txt"))
        assert (tmp_path / "copy.txt").read_bytes() == b"hello"

    def test_copy_from_resource(self, registry, tmp_path):
        registry.copy("res:///uio/data/default_config.yml", loc(tmp_path / "config.yml"))
        assert "scopes" in (tmp_path / "config.yml").read_text()

    def test_copy_missing_source(self, registry, tmp_path):
        with pytest.raises(NotFoundError):
            registry.copy(loc(tmp_path / "missing"), loc(tmp_path / "dest"))


class TestStat:
    def test_file(self, registry, local_tree):
        entry = registry.stat(loc(local_tree / "x.txt"))
        assert entry.locator == loc(local_tree / "x.txt")
        assert not entry.is_dir
        assert entry.size == 5
        assert entry.owner == pwd.getpwuid(os.getuid()).pw_name
        assert len(entry.permissions) == 9
        assert entry.modified is not None and entry.modified.tzinfo is not None

    def test_directory_gets_trailing_delimiter(self, registry, local_tree):
        entry = registry.stat(loc(local_tree))
        assert entry.is_dir
        assert entry.locator.endswith("/")
        assert entry.size is None

    def test_not_extended(self, registry, local_tree):
        entry = registry.stat(loc(local_tree / "x.txt"), extended=False)
        assert entry.owner is None and entry.modified is None

    def test_symlink(self, registry, local_tree):
        (local_tree / "link").symlink_to("x.txt")
        entry = registry.stat(loc(local_tree / "link"))
        assert entry.symlink == loc(local_tree / "x.txt")


class TestList:
    def test_recursive_order(self, registry, local_tree):
        with registry.list(loc(local_tree), recurse=True) as entries:
            locators = [e.locator for e in entries]
        base = loc(local_tree)
        assert locators == [f"{base}/.hidden", f"{base}/b/", f"{base}/b/y.txt", f"{base}/x.txt"]

    def test_non_recursive(self, registry, local_tree):
        locators = [e.locator for e in registry.list(loc(local_tree) + "/")]
        base = loc(local_tree)
        assert locators == [f"{base}/.hidden", f"{base}/b/", f"{base}/x.txt"]

    def test_single_file(self, registry, local_tree):
        entries = list(registry.list(loc(local_tree / "x.txt"), extended=True))
        assert len(entries) == 1
        assert entries[0].size == 5

    def test_missing_root(self, registry, tmp_path):
        with pytest.raises(NotFoundError):
            registry.list(loc(tmp_path / "missing"))

    def test_unreadable_subtree(self, registry, local_tree, monkeypatch):
        real_scandir = os.scandir
        unreadable = str(local_tree / "b") + "/"

        def scandir(path):
            if path == unreadable:
                raise PermissionError(errno.EACCES, "Permission denied", path)
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", scandir)
        entries = list(registry.list(loc(local_tree), recurse=True))
        base = loc(local_tree)
        assert [e.locator for e in entries] == [f"{base}/.hidden", f"{base}/b/", f"{base}/b/", f"{base}/x.txt"]
        failed = entries[2]
        assert isinstance(failed.error, PartialListingError)
        assert "Permission denied" in str(failed.error)
        assert failed.to_dict()["error"].startswith("Could not list")

    def test_symlinked_dirs_not_followed(self, registry, local_tree):
        (local_tree / "loop").symlink_to(local_tree)
        entries = list(registry.list(loc(local_tree), recurse=True, extended=True))
        link = next(e for e in entries if e.locator.endswith("/loop"))
        assert not link.is_dir
        assert link.symlink == loc(local_tree)
        assert len(entries) == 5

    def test_listed_locators_address_the_listed_files(self, registry, tmp_path):
        directory = tmp_path / "d"
        directory.mkdir()
        (directory / "what").write_bytes(b"unrelated content!")
        (directory / "what?.txt").write_bytes(b"target")
        (directory / "notes#1.txt").write_bytes(b"hash")

        entries = {e.locator: e.size for e in registry.list(loc(directory))}
        assert len(entries) == 3
        for locator, size in entries.items():
            assert registry.stat(locator).size == size

        target = next(locator for locator in entries if "%3F" in locator)
        registry.delete(target)
        assert (directory / "what").read_bytes() == b"unrelated content!"
        assert not (directory / "what?.txt").exists()
