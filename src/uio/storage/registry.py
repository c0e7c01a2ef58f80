# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/storage/registry.py

"""
Scheme -> backend dispatch.

Backend classes register themselves with @register_backend("scheme"); the
BackendRegistry builds one instance per scheme on first use, handing it the
explicit Config. Every caller-facing operation goes through the registry.
"""

from __future__ import annotations

import threading
from typing import BinaryIO, Callable, Iterator, Optional, Type, TypeVar

from loguru import logger

from uio.config.manager import Config
from uio.locator import Locator
from uio.system.exceptions import UnsupportedSchemeError
from .base import Backend, DirectoryEntry, Existence, LocatorLike

B = TypeVar("B", bound=Type[Backend])

_BACKEND_CLASSES: dict[str, Type[Backend]] = {}


def register_backend(scheme: str) -> Callable[[B], B]:
    """Class decorator registering a backend for `scheme`."""
    def decorator(cls: B) -> B:
        key = scheme.lower()
        if key in _BACKEND_CLASSES and _BACKEND_CLASSES[key] is not cls:
            logger.debug(f"Replacing backend for {key}:// ({_BACKEND_CLASSES[key].__name__} -> {cls.__name__})")
        cls.scheme = key
        _BACKEND_CLASSES[key] = cls
        return cls
    return decorator


def registered_schemes() -> list[str]:
    return sorted(_BACKEND_CLASSES)


class BackendRegistry:
    """Dispatches operations to the backend registered for a locator's scheme."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self._backends: dict[str, Backend] = {}
        self._lock = threading.Lock()

    def backend_for(self, locator: LocatorLike) -> Backend:
        scheme = Locator.parse(locator).scheme
        with self._lock:
            backend = self._backends.get(scheme)
            if backend is None:
                cls = _BACKEND_CLASSES.get(scheme)
                if cls is None:
                    raise UnsupportedSchemeError(
                        f"No backend for {scheme}:// (available: {', '.join(registered_schemes())})",
                        locator=str(locator)
                    )
                backend = self._backends[scheme] = cls(self.config, self)
        return backend

    # ---- Driver contract ----

    def open_read(self, locator: LocatorLike, **opts) -> BinaryIO:
        locator = Locator.parse(locator)
        return self.backend_for(locator).open_read(locator, **opts)

    def open_write(self, locator: LocatorLike, **opts) -> BinaryIO:
        locator = Locator.parse(locator)
        return self.backend_for(locator).open_write(locator, **opts)

    def check_exists(self, locator: LocatorLike) -> Existence:
        locator = Locator.parse(locator)
        return self.backend_for(locator).check_exists(locator)

    def exists(self, locator: LocatorLike) -> bool:
        locator = Locator.parse(locator)
        return self.backend_for(locator).exists(locator)

    def delete(self, locator: LocatorLike) -> None:
        locator = Locator.parse(locator)
        self.backend_for(locator).delete(locator)

    def mkdir(self, locator: LocatorLike) -> None:
        locator = Locator.parse(locator)
        self.backend_for(locator).mkdir(locator)

    def copy(self, source: LocatorLike, destination: LocatorLike) -> None:
        """Copy between any two schemes; dispatched on the destination."""
        source, destination = Locator.parse(source), Locator.parse(destination)
        logger.debug(f"Copying {source} -> {destination}")
        self.backend_for(destination).copy(source, destination)

    def stat(self, locator: LocatorLike, extended: bool = True) -> DirectoryEntry:
        locator = Locator.parse(locator)
        return self.backend_for(locator).stat(locator, extended=extended)

    def size(self, locator: LocatorLike) -> int:
        locator = Locator.parse(locator)
        return self.backend_for(locator).size(locator)

    def list(self, locator: LocatorLike, recurse: bool = False, extended: bool = False) -> Iterator[DirectoryEntry]:
        locator = Locator.parse(locator)
        return self.backend_for(locator).list(locator, recurse=recurse, extended=extended)
