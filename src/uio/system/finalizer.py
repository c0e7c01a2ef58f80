# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/system/finalizer.py

"""
Scoped cleanup of externally held resources.

A Finalizer wraps one zero-argument action (close a channel and its session,
delete a temp file, ...) and guarantees it runs at most once. The explicit
close() is the primary path. As a backstop the action also runs when the
Finalizer, or the owner it was attached to, is garbage-collected, or at
interpreter exit. The timing of that backstop is up to the garbage collector
and must not be relied on.
"""

import threading
import weakref
from typing import Callable, Optional

from loguru import logger


class _Action:
    """Holds the action separately so the weakref callback never references the Finalizer."""

    def __init__(self, action: Callable[[], None], name: str):
        self.action = action
        self.name = name
        self.lock = threading.Lock()

    def __call__(self) -> None:
        with self.lock:
            action, self.action = self.action, None
        if action is None:
            return
        logger.debug(f"Running cleanup: {self.name}")
        action()


class Finalizer:
    """Runs a cleanup action exactly once, explicitly or when unreachable."""

    def __init__(self, action: Callable[[], None], name: Optional[str] = None):
        if action is None:
            raise TypeError("Finalizer action can't be None")
        self._action = _Action(action, name or getattr(action, '__name__', repr(action)))
        self._finalizers = [weakref.finalize(self, self._action)]

    def attach(self, owner: object) -> 'Finalizer':
        """Also run the action when `owner` is garbage-collected."""
        self._finalizers.append(weakref.finalize(owner, self._action))
        return self

    def close(self) -> None:
        """Run the action if it hasn't run yet. Safe to call from several threads."""
        for finalizer in self._finalizers:
            finalizer.detach()
        self._action()

    @property
    def closed(self) -> bool:
        return self._action.action is None

    def __enter__(self) -> 'Finalizer':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Finalizer(name={self._action.name!r}, closed={self.closed})"
