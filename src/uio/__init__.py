# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/__init__.py

"""
uio - one set of file operations for local disk, package resources and SFTP.

    import uio

    with uio.open_write("sftp://files.example.org/in/data.csv") as out:
        out.write(b"...")
    for entry in uio.ls("sftp://files.example.org/in/", recurse=True):
        print(entry.locator)

The module-level functions use a registry built from the user's config files
on first use; call use_config() to supply a Config explicitly, or build a
BackendRegistry yourself.
"""

import threading
from typing import BinaryIO, Iterator, Optional

from uio.config.manager import Config
from uio.locator import Locator, to_locator
from uio.storage import BackendRegistry, DirectoryEntry, Existence
from uio.storage.base import LocatorLike
from uio.system.exceptions import (
    UioError, ConfigurationError, NotFoundError, TransportError, PartialListingError,
)

_registry: Optional[BackendRegistry] = None
_registry_lock = threading.Lock()


def use_config(config: Optional[Config] = None) -> BackendRegistry:
    """Replace the default registry with one built from `config` (or the config files)."""
    global _registry
    with _registry_lock:
        _registry = BackendRegistry(config if config is not None else Config.load())
        return _registry


def default_registry() -> BackendRegistry:
    with _registry_lock:
        registry = _registry
    return registry if registry is not None else use_config()


def open_read(locator: LocatorLike, **opts) -> BinaryIO:
    return default_registry().open_read(locator, **opts)


def open_write(locator: LocatorLike, **opts) -> BinaryIO:
    return default_registry().open_write(locator, **opts)


def exists(locator: LocatorLike) -> bool:
    return default_registry().exists(locator)


def check_exists(locator: LocatorLike) -> Existence:
    return default_registry().check_exists(locator)


def delete(locator: LocatorLike) -> None:
    default_registry().delete(locator)


def mkdir(locator: LocatorLike) -> None:
    default_registry().mkdir(locator)


def copy(source: LocatorLike, destination: LocatorLike) -> None:
    default_registry().copy(source, destination)


def stat(locator: LocatorLike, extended: bool = True) -> DirectoryEntry:
    return default_registry().stat(locator, extended=extended)


def size(locator: LocatorLike) -> int:
    return default_registry().size(locator)


def ls(locator: LocatorLike, recurse: bool = False, extended: bool = False) -> Iterator[DirectoryEntry]:
    return default_registry().list(locator, recurse=recurse, extended=extended)


__all__ = [
    'Locator', 'to_locator', 'Config', 'BackendRegistry', 'DirectoryEntry', 'Existence',
    'UioError', 'ConfigurationError', 'NotFoundError', 'TransportError', 'PartialListingError',
    'use_config', 'default_registry',
    'open_read', 'open_write', 'exists', 'check_exists', 'delete', 'mkdir', 'copy', 'stat', 'size', 'ls',
]
