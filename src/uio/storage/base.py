# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/storage/base.py

"""Backend driver contract shared by every storage scheme."""

from __future__ import annotations

import datetime
import enum
import posixpath
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any, BinaryIO, Iterator, Optional, Union

from uio.locator import Locator
from uio.system.exceptions import (
    NotFoundError, OperationNotSupportedError, PartialListingError, UioError, die
)

if TYPE_CHECKING:
    from uio.config.manager import Config
    from .registry import BackendRegistry


COPY_BUFFER_SIZE = 64 * 1024

LocatorLike = Union[str, Locator]


@dataclass
class DirectoryEntry:
    """One entry produced by stat() or list().

    Extended fields are only filled when extended attributes were requested.
    Entries for directories that couldn't be read carry `error` instead.
    """
    locator: str
    is_dir: bool = False
    size: Optional[int] = None
    accessed: Optional[datetime.datetime] = None
    modified: Optional[datetime.datetime] = None
    owner: Optional[Union[str, int]] = None
    group: Optional[Union[str, int]] = None
    permissions: Optional[str] = None
    symlink: Optional[str] = None
    error: Optional[PartialListingError] = None

    def to_dict(self) -> dict[str, Any]:
        """Set fields only; datetimes and errors as strings."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or (f.name == "is_dir" and not value):
                continue
            if isinstance(value, datetime.datetime):
                value = value.isoformat()
            elif isinstance(value, BaseException):
                value = str(value)
            result[f.name] = value
        return result


def error_entry(locator: Locator, cause: BaseException) -> DirectoryEntry:
    """Entry standing in for a directory that couldn't be listed."""
    error = PartialListingError(f"Could not list {locator}: {cause}", locator=str(locator))
    error.__cause__ = cause
    return DirectoryEntry(locator=str(locator), error=error)


class ExistenceStatus(enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class Existence:
    """Typed result of an existence probe."""
    status: ExistenceStatus
    error: Optional[BaseException] = None

    @property
    def found(self) -> bool:
        return self.status is ExistenceStatus.FOUND

    def unwrap(self) -> bool:
        """True/False for found/not found; re-raise the probe's error otherwise."""
        if self.status is ExistenceStatus.ERROR:
            raise self.error
        return self.found


class Backend(ABC):
    """Operations every storage scheme implements.

    Backends are constructed by the BackendRegistry with the explicit
    configuration, and keep a reference to the registry so cross-backend
    operations (copy) can open the other side.
    """

    scheme: str = ""

    def __init__(self, config: Config, registry: BackendRegistry):
        self.config = config
        self.registry = registry

    def __repr__(self) -> str:
        return f"{type(self).__name__}(scheme={self.scheme!r})"

    @abstractmethod
    def open_read(self, locator: Locator, **opts) -> BinaryIO:
        """Open the object for reading; closing the stream releases all resources."""
        raise NotImplementedError("open_read() not implemented")

    def open_write(self, locator: Locator, **opts) -> BinaryIO:
        """Open the object for writing; data is committed when the stream is closed."""
        raise OperationNotSupportedError(f"{self.scheme}:// does not support writing ({locator})",
                                         locator=str(locator))

    @abstractmethod
    def stat(self, locator: Locator, extended: bool = True) -> DirectoryEntry:
        """Attributes of a single file or directory."""
        raise NotImplementedError("stat() not implemented")

    @abstractmethod
    def list(self, locator: Locator, recurse: bool = False, extended: bool = False) -> Iterator[DirectoryEntry]:
        """Lazily list a directory (or a single file), depth-first, sorted by name."""
        raise NotImplementedError("list() not implemented")

    def check_exists(self, locator: Locator) -> Existence:
        """Probe for the object, capturing any failure other than not-found."""
        try:
            self.stat(locator, extended=False)
        except FileNotFoundError:
            return Existence(ExistenceStatus.NOT_FOUND)
        except Exception as e:
            return Existence(ExistenceStatus.ERROR, e)
        return Existence(ExistenceStatus.FOUND)

    def exists(self, locator: Locator) -> bool:
        return self.check_exists(locator).unwrap()

    def size(self, locator: Locator) -> int:
        entry = self.stat(locator, extended=False)
        if entry.size is None:
            die(f"Can't get the size of directory {locator}", locator=locator)
        return entry.size

    def delete(self, locator: Locator) -> None:
        raise OperationNotSupportedError(f"{self.scheme}:// does not support delete ({locator})",
                                         locator=str(locator))

    def mkdir(self, locator: Locator) -> None:
        raise OperationNotSupportedError(f"{self.scheme}:// does not support mkdir ({locator})",
                                         locator=str(locator))

    def copy(self, source: Locator, destination: Locator) -> None:
        """Stream `source` (any scheme) into `destination` on this backend."""
        try:
            with self.registry.open_read(source) as src, self.open_write(destination) as dst:
                shutil.copyfileobj(src, dst, COPY_BUFFER_SIZE)
        except NotFoundError:
            raise
        except (UioError, OSError) as e:
            die(f"Could not copy {source} to {destination}", e, locator=destination)


def utc(timestamp: Optional[float]) -> Optional[datetime.datetime]:
    if timestamp is None:
        return None
    return datetime.datetime.fromtimestamp(timestamp, datetime.timezone.utc)


def resolve_link(locator: Locator, target: str) -> str:
    """Locator string for a symlink `target` read at `locator` (relative to its parent)."""
    parent = locator.parent()
    return str(parent.with_path(posixpath.normpath(posixpath.join(parent.path, target))))
