# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/storage/resource.py

"""
Read-only backend for data bundled with installed packages.

    res:///<package>/<path/inside/package>

e.g. res:///uio/data/default_config.yml
"""

from __future__ import annotations

import importlib.resources
from pathlib import Path
from typing import BinaryIO, Iterator

from uio.locator import Locator
from uio.system.exceptions import NotFoundError, die
from .base import Backend, DirectoryEntry
from .listing import Listing
from .registry import register_backend


@register_backend("res")
class ResourceBackend(Backend):
    """Package resources, addressed by package name and relative path."""

    @staticmethod
    def _traversable(locator: Locator):
        package, _, rest = locator.path.strip("/").partition("/")
        if not package:
            raise NotFoundError(f"No package in {locator}", locator=str(locator))
        try:
            root = importlib.resources.files(package)
        except ModuleNotFoundError as ex:
            raise NotFoundError(f"No package {package!r} for {locator}", locator=str(locator)) from ex
        resource = root.joinpath(rest) if rest else root
        if not (resource.is_file() or resource.is_dir()):
            raise NotFoundError(f"No resource at {locator}", locator=str(locator))
        return resource

    def open_read(self, locator: Locator, **opts) -> BinaryIO:
        resource = self._traversable(locator)
        try:
            return resource.open("rb")
        except OSError as ex:
            die(f"Could not open {locator}", ex, locator=locator)

    def stat(self, locator: Locator, extended: bool = True) -> DirectoryEntry:
        resource = self._traversable(locator)
        if resource.is_dir():
            return DirectoryEntry(locator=str(locator.as_dir()), is_dir=True)
        if isinstance(resource, Path):
            size = resource.stat().st_size
        else:
            size = len(resource.read_bytes())
        return DirectoryEntry(locator=str(locator.without_trailing_delimiter()), size=size)

    def list(self, locator: Locator, recurse: bool = False, extended: bool = False) -> Iterator[DirectoryEntry]:
        resource = self._traversable(locator)
        if not resource.is_dir():
            return Listing(iter([self.stat(locator, extended=extended)]))
        return Listing(self._walk(locator.as_dir(), resource, recurse))

    def _walk(self, directory: Locator, resource, recurse: bool) -> Iterator[DirectoryEntry]:
        for child in sorted(resource.iterdir(), key=lambda c: c.name):
            if child.is_dir():
                child_locator = directory.child(child.name, as_dir=True)
                yield DirectoryEntry(locator=str(child_locator), is_dir=True)
                if recurse:
                    yield from self._walk(child_locator, child, recurse)
            else:
                yield self.stat(directory.child(child.name))
