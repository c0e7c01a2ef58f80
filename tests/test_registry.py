# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_registry.py

import errno
import io

import pytest

from uio.storage import Backend, BackendRegistry, DirectoryEntry, Listing, register_backend, registered_schemes
from uio.storage.base import Existence, ExistenceStatus
from uio.system.exceptions import (
    NotFoundError, OperationNotSupportedError, StorageOperationError, UnsupportedSchemeError, die,
)


@register_backend("mem")
class MemoryBackend(Backend):
    """Dict-backed backend exercising the default copy/exists/size paths."""

    def __init__(self, config, registry):
        super().__init__(config, registry)
        self.files = {}

    def open_read(self, locator, **opts):
        if locator.path not in self.files:
            raise NotFoundError(f"No such file {locator}", locator=str(locator))
        return io.BytesIO(self.files[locator.path])

    def open_write(self, locator, **opts):
        return _StoringBuffer(lambda data: self.files.__setitem__(locator.path, data))

    def stat(self, locator, extended=True):
        if locator.path.endswith("/"):
            return DirectoryEntry(locator=str(locator), is_dir=True)
        if locator.path not in self.files:
            raise NotFoundError(f"No such file {locator}", locator=str(locator))
        return DirectoryEntry(locator=str(locator), size=len(self.files[locator.path]))

    def list(self, locator, recurse=False, extended=False):
        return Listing(iter([self.stat(locator.child(p.strip("/"))) for p in sorted(self.files)]))


class _StoringBuffer(io.BytesIO):
    def __init__(self, store):
        super().__init__()
        self._store = store

    def close(self):
        if not self.closed:
            self._store(self.getvalue())
        super().close()


class _FullDisk(io.RawIOBase):
    def writable(self):
        return True

    def write(self, b):
        raise OSError(errno.ENOSPC, "No space left on device")


@register_backend("full")
class FullBackend(MemoryBackend):
    def open_write(self, locator, **opts):
        return _FullDisk()


class BrokenBackend(MemoryBackend):
    def stat(self, locator, extended=True):
        raise StorageOperationError("backend down")


class TestRegistry:
    def test_registered_schemes(self):
        assert {"file", "res", "sftp", "mem"} <= set(registered_schemes())

    def test_unknown_scheme(self):
        with pytest.raises(UnsupportedSchemeError, match="nope://"):
            BackendRegistry().open_read("nope://host/x")

    def test_backend_instances_cached(self):
        registry = BackendRegistry()
        assert registry.backend_for("mem:///a") is registry.backend_for("mem:///b")
        assert registry.backend_for("mem:///a").registry is registry

    def test_separate_registries_get_separate_backends(self):
        assert BackendRegistry().backend_for("mem:///a") is not BackendRegistry().backend_for("mem:///a")

    def test_write_read_size(self):
        registry = BackendRegistry()
        with registry.open_write("mem:///x.txt") as out:
            out.write(b"hello")
        with registry.open_read("mem:///x.txt") as src:
            assert src.read() == b"hello"
        assert registry.size("mem:///x.txt") == 5

    def test_size_of_directory_fails(self):
        with pytest.raises(StorageOperationError, match="directory"):
            BackendRegistry().size("mem:///dir/")

    def test_exists(self):
        registry = BackendRegistry()
        assert registry.exists("mem:///missing") is False
        assert registry.check_exists("mem:///missing").status is ExistenceStatus.NOT_FOUND
        with registry.open_write("mem:///present") as out:
            out.write(b"")
        assert registry.exists("mem:///present") is True

    def test_exists_propagates_other_failures(self):
        registry = BackendRegistry()
        registry._backends["mem"] = BrokenBackend(registry.config, registry)
        result = registry.check_exists("mem:///x")
        assert result.status is ExistenceStatus.ERROR
        assert isinstance(result.error, StorageOperationError)
        with pytest.raises(StorageOperationError, match="backend down"):
            registry.exists("mem:///x")

    def test_unsupported_operations(self):
        registry = BackendRegistry()
        with pytest.raises(OperationNotSupportedError):
            registry.delete("mem:///x")
        with pytest.raises(OperationNotSupportedError):
            registry.mkdir("mem:///d/")

    def test_copy_between_schemes(self, tmp_path):
        registry = BackendRegistry()
        source = tmp_path / "src.bin"
        source.write_bytes(b"payload")
        registry.copy(f"file://{source}", "mem:///copied.bin")
        assert registry.backend_for("mem:///").files["/copied.bin"] == b"payload"

        registry.copy("mem:///copied.bin", f"file://{tmp_path}/back.bin")
        assert (tmp_path / "back.bin").read_bytes() == b"payload"

    def test_copy_missing_source(self):
        with pytest.raises(NotFoundError):
            BackendRegistry().copy("mem:///missing", "mem:///dest")

    def test_copy_write_failure_names_destination(self):
        registry = BackendRegistry()
        with registry.open_write("mem:///src") as out:
            out.write(b"data")
        with pytest.raises(StorageOperationError, match="to full:///dest.*No space left") as excinfo:
            registry.copy("mem:///src", "full:///dest")
        assert excinfo.value.locator == "full:///dest"
        assert isinstance(excinfo.value.__cause__, OSError)


class TestExistence:
    def test_unwrap(self):
        assert Existence(ExistenceStatus.FOUND).unwrap() is True
        assert Existence(ExistenceStatus.NOT_FOUND).unwrap() is False
        with pytest.raises(RuntimeError):
            Existence(ExistenceStatus.ERROR, RuntimeError("x")).unwrap()


class TestDie:
    def test_not_found_cause(self):
        with pytest.raises(NotFoundError) as excinfo:
            die("Could not open file:///x", FileNotFoundError(2, "No such file"))
        assert isinstance(excinfo.value.__cause__, FileNotFoundError)
        assert "Could not open file:///x" in str(excinfo.value)

    def test_default_class(self):
        with pytest.raises(StorageOperationError, match="failed: boom"):
            die("failed", RuntimeError("boom"), locator="mem:///x")

    def test_keeps_uio_error_type(self):
        with pytest.raises(UnsupportedSchemeError):
            die("wrapped", UnsupportedSchemeError("inner"))


class TestDirectoryEntry:
    def test_to_dict_drops_unset_fields(self):
        entry = DirectoryEntry(locator="mem:///x", size=3)
        assert entry.to_dict() == {"locator": "mem:///x", "size": 3}

    def test_to_dict_directory(self):
        assert DirectoryEntry(locator="mem:///d/", is_dir=True).to_dict() == {"locator": "mem:///d/", "is_dir": True}
