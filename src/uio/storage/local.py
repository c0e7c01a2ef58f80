# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/storage/local.py

"""Local disk backend (file:///path)."""

from __future__ import annotations

import functools
import grp
import os
import pwd
import shutil
import stat as stat_module
from pathlib import Path
from typing import BinaryIO, Iterator, Union

from uio.locator import Locator
from uio.system.exceptions import die
from .base import Backend, DirectoryEntry, error_entry, resolve_link, utc
from .listing import Listing
from .registry import register_backend


@functools.lru_cache(maxsize=1024)
def _user_name(uid: int) -> Union[str, int]:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return uid


@functools.lru_cache(maxsize=1024)
def _group_name(gid: int) -> Union[str, int]:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return gid


def local_error_wrap(message: str):
    """Turn OSErrors from the wrapped call into uio errors naming the locator."""

    def decorator(cb):
        @functools.wraps(cb)
        def _inner(self, locator: Locator, *args, **kwargs):
            try:
                return cb(self, locator, *args, **kwargs)
            except OSError as ex:
                die(f"{message} {locator}", ex, locator=locator)
        return _inner

    return decorator


@register_backend("file")
class LocalBackend(Backend):
    """Files on a local disk or a mounted network drive."""

    @staticmethod
    def _path(locator: Locator) -> Path:
        return Path(locator.path)

    def _entry(self, locator: Locator, path: Path, st: os.stat_result, extended: bool) -> DirectoryEntry:
        is_dir = stat_module.S_ISDIR(st.st_mode)
        entry = DirectoryEntry(
            locator=str(locator.as_dir() if is_dir else locator.without_trailing_delimiter()),
            is_dir=is_dir,
            size=None if is_dir else st.st_size,
        )
        if extended:
            entry.accessed = utc(st.st_atime)
            entry.modified = utc(st.st_mtime)
            entry.owner = _user_name(st.st_uid)
            entry.group = _group_name(st.st_gid)
            entry.permissions = stat_module.filemode(st.st_mode)[1:]
            if stat_module.S_ISLNK(st.st_mode):
                entry.symlink = resolve_link(locator, os.readlink(path))
        return entry

    @local_error_wrap("Could not open")
    def open_read(self, locator: Locator, **opts) -> BinaryIO:
        return open(self._path(locator), "rb")

    @local_error_wrap("Could not write")
    def open_write(self, locator: Locator, **opts) -> BinaryIO:
        return open(self._path(locator), "wb")

    @local_error_wrap("Could not stat")
    def stat(self, locator: Locator, extended: bool = True) -> DirectoryEntry:
        path = self._path(locator)
        return self._entry(locator, path, path.lstat(), extended)

    @local_error_wrap("Could not delete")
    def delete(self, locator: Locator) -> None:
        path = self._path(locator)
        if path.is_dir() and not path.is_symlink():
            path.rmdir()
        else:
            path.unlink()

    @local_error_wrap("Could not create directory at")
    def mkdir(self, locator: Locator) -> None:
        self._path(locator).mkdir(parents=True, exist_ok=True)

    def copy(self, source: Locator, destination: Locator) -> None:
        if source.scheme != self.scheme:
            return super().copy(source, destination)
        try:
            shutil.copyfile(self._path(source), self._path(destination))
        except OSError as ex:
            die(f"Could not copy {source} to {destination}", ex, locator=destination)

    def list(self, locator: Locator, recurse: bool = False, extended: bool = False) -> Iterator[DirectoryEntry]:
        path = self._path(locator)
        if not path.is_dir():
            return Listing(iter([self.stat(locator, extended=extended)]))
        return Listing(self._walk(locator.normalized().as_dir(), recurse, extended), name=f"list {locator}")

    def _walk(self, directory: Locator, recurse: bool, extended: bool) -> Iterator[DirectoryEntry]:
        try:
            with os.scandir(directory.path) as it:
                children = sorted(it, key=lambda e: e.name)
        except OSError as ex:
            yield error_entry(directory, ex)
            return

        for child in children:
            is_dir = child.is_dir(follow_symlinks=False)
            child_locator = directory.child(child.name, as_dir=is_dir)
            try:
                entry = self._entry(child_locator, Path(child.path), child.stat(follow_symlinks=False), extended)
            except OSError as ex:
                yield error_entry(child_locator, ex)
                continue
            yield entry
            if recurse and is_dir:
                yield from self._walk(child_locator, recurse, extended)
