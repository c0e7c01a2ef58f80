# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/system/exceptions.py

"""
uio-specific exception classes.

Every backend failure surfaces as a subclass of UioError so callers can tell
configuration problems, missing objects and transport failures apart without
knowing which backend served the locator.
"""

from typing import NoReturn, Optional, Type


class UioError(Exception):
    """Base exception for all uio errors."""

    def __init__(self, message: str, locator: Optional[str] = None):
        self.locator = locator
        super().__init__(message)


class ConfigurationError(UioError):
    """Raised when credentials, key material or config files are missing or malformed."""
    pass


class InvalidLocatorError(UioError, ValueError):
    """Raised when a string cannot be parsed as a scheme-qualified locator."""
    pass


class UnsupportedSchemeError(UioError):
    """Raised when no backend is registered for a locator's scheme."""
    pass


class OperationNotSupportedError(UioError):
    """Raised when a backend does not implement an operation (e.g. writing resources)."""
    pass


class NotFoundError(UioError, FileNotFoundError):
    """The addressed object does not exist."""
    pass


class StorageOperationError(UioError):
    """Any other failure of a backend operation."""
    pass


class PartialListingError(UioError):
    """One directory of a listing could not be read."""
    pass


# === TRANSPORT ERRORS ===

class TransportError(UioError):
    """Connection, authentication or channel failure."""

    def __init__(self, message: str, locator: Optional[str] = None, retry_possible: bool = True):
        self.retry_possible = retry_possible
        super().__init__(message, locator=locator)


class AuthenticationError(TransportError):
    """Authentication failures while opening a session."""

    def __init__(self, message: str, **kwargs):
        kwargs['retry_possible'] = False  # Bad credentials don't get better with retries
        super().__init__(message, **kwargs)


class ConnectionTimeoutError(TransportError):
    """Session or channel establishment exceeded its timeout."""
    pass


def die(message: str,
        cause: Optional[BaseException] = None,
        error_class: Type[UioError] = StorageOperationError,
        locator: Optional[object] = None) -> NoReturn:
    """Raise a uio error for `message`, chained to `cause`.

    A FileNotFoundError cause is always reported as NotFoundError so that
    callers (notably exists()) can rely on a single not-found type.
    """
    if isinstance(cause, UioError) and error_class is StorageOperationError:
        error_class = type(cause)
    if isinstance(cause, FileNotFoundError) and error_class is StorageOperationError:
        error_class = NotFoundError
    if cause is not None and str(cause):
        message = f"{message}: {cause}"
    raise error_class(message, locator=None if locator is None else str(locator)) from cause
