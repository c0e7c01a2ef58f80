# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/storage/__init__.py

"""
Storage layer for uio - every backend and the dispatch between them.

This module provides:
- The backend driver contract (base) and scheme registry
- Local disk, package resource and SFTP backends
- Stream decorators and lazy listings
"""

from .base import Backend, DirectoryEntry, Existence, ExistenceStatus
from .registry import BackendRegistry, register_backend, registered_schemes
from .listing import Listing
from .streams import (
    NullSink, CountingReader, CountingWriter, DigestingReader, DigestingWriter,
    ClosingReader, ClosingWriter,
)

# Importing the backends registers their schemes
from .local import LocalBackend
from .resource import ResourceBackend
from .sftp import SFTPBackend

__all__ = [
    'Backend',
    'DirectoryEntry',
    'Existence',
    'ExistenceStatus',
    'BackendRegistry',
    'register_backend',
    'registered_schemes',
    'Listing',
    'NullSink',
    'CountingReader',
    'CountingWriter',
    'DigestingReader',
    'DigestingWriter',
    'ClosingReader',
    'ClosingWriter',
    'LocalBackend',
    'ResourceBackend',
    'SFTPBackend',
]
