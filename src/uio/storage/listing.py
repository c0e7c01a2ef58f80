# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/storage/listing.py

"""Lazy, single-pass directory listings bound to a cleanup action."""

from typing import Callable, Iterator, Optional

from uio.system.finalizer import Finalizer
from .base import DirectoryEntry


class Listing:
    """Iterator over DirectoryEntry values that owns the resources behind them.

    The cleanup action (closing a session, for instance) runs once, whichever
    comes first: the entries are exhausted, close() is called, the `with`
    block exits, or the Listing is garbage-collected.
    """

    def __init__(self, entries: Iterator[DirectoryEntry],
                 cleanup: Optional[Callable[[], None]] = None,
                 name: Optional[str] = None):
        self._entries = entries
        self._finalizer = Finalizer(cleanup or (lambda: None), name).attach(self)

    def __iter__(self) -> 'Listing':
        return self

    def __next__(self) -> DirectoryEntry:
        if self._finalizer.closed:
            raise StopIteration
        try:
            return next(self._entries)
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        try:
            close_entries = getattr(self._entries, "close", None)
            if close_entries is not None:
                close_entries()
        finally:
            self._finalizer.close()

    @property
    def closed(self) -> bool:
        return self._finalizer.closed

    def __enter__(self) -> 'Listing':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
