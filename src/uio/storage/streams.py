# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/storage/streams.py

"""
Transparent byte-stream decorators.

The wrappers only observe: they never change the length, order or content of
the bytes that pass through them. Counting and digesting work in both
directions; the closing wrappers tie a stream to a cleanup action so that
sessions and temp files are released when the caller closes the stream.
"""

import hashlib
import io
import threading
from typing import Any, BinaryIO, Callable, Optional

import xxhash
from loguru import logger

from uio.system.finalizer import Finalizer


def new_hasher(algorithm: str) -> Any:
    """Incremental hash state for `algorithm` (hashlib names, or xxh64/xxh3_64/xxh128)."""
    name = algorithm.lower().replace("-", "")
    if name.startswith("xxh"):
        factory = getattr(xxhash, name, None)
        if factory is None:
            raise ValueError(f"Unknown xxhash algorithm: {algorithm}")
        return factory()
    try:
        return hashlib.new(name)
    except ValueError as e:
        raise ValueError(f"Unknown digest algorithm: {algorithm}") from e


class _Counter:
    """Lock-protected byte counter, safe to read while another thread updates it."""

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def add(self, n: int) -> None:
        with self._lock:
            self._value += n

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class NullSink(io.RawIOBase):
    """A writable stream that accepts and discards everything."""

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        self._checkClosed()
        return memoryview(b).nbytes

    def __repr__(self) -> str:
        return "NullSink()"


class _ReaderBase(io.RawIOBase):
    """Readable pass-through; subclasses hook `_observe`."""

    def __init__(self, stream: BinaryIO):
        if stream is None:
            raise TypeError("Argument `stream` can't be None")
        super().__init__()
        self._stream = stream

    def _observe(self, data) -> None:
        raise NotImplementedError

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        view = memoryview(b).cast("B")
        data = self._stream.read(len(view))
        if not data:
            return 0
        n = len(data)
        view[:n] = data
        self._observe(view[:n])
        return n

    def read(self, size: int = -1) -> bytes:
        data = self._stream.read() if size is None or size < 0 else self._stream.read(size)
        if data:
            self._observe(data)
        return data

    def readall(self) -> bytes:
        return self.read()

    def close(self) -> None:
        if not self.closed:
            try:
                self._stream.close()
            finally:
                super().close()


class _WriterBase(io.RawIOBase):
    """Writable pass-through; subclasses hook `_observe`."""

    def __init__(self, stream: BinaryIO):
        if stream is None:
            raise TypeError("Argument `stream` can't be None")
        super().__init__()
        self._stream = stream

    def _observe(self, data) -> None:
        raise NotImplementedError

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        view = memoryview(b).cast("B")
        n = self._stream.write(bytes(view))
        # Buffered writers return None; they always take everything
        n = len(view) if n is None else n
        self._observe(view[:n])
        return n

    def flush(self) -> None:
        if not self.closed:
            self._stream.flush()

    def close(self) -> None:
        if not self.closed:
            # RawIOBase.close() flushes through self.flush(), so the inner stream must still be open
            try:
                super().close()
            finally:
                self._stream.close()


class CountingReader(_ReaderBase):
    """Counts bytes actually delivered to the caller."""

    def __init__(self, stream: BinaryIO):
        super().__init__(stream)
        self._count = _Counter()

    def _observe(self, data) -> None:
        self._count.add(len(data))

    @property
    def count(self) -> int:
        return self._count.value

    def __repr__(self) -> str:
        return f"CountingReader(count={self.count}, stream={type(self._stream).__name__})"


class CountingWriter(_WriterBase):
    """Counts bytes accepted by the wrapped stream."""

    def __init__(self, stream: BinaryIO):
        super().__init__(stream)
        self._count = _Counter()

    def _observe(self, data) -> None:
        self._count.add(len(data))

    @property
    def count(self) -> int:
        return self._count.value

    def __repr__(self) -> str:
        return f"CountingWriter(count={self.count}, stream={type(self._stream).__name__})"


class _DigestMixin:
    _hasher: Any
    _digest: Optional[bytes]
    _algorithm: str

    def _observe(self, data) -> None:
        self._hasher.update(data)

    def close_and_digest(self) -> bytes:
        """Close the wrapped stream and return the digest, computing it only once."""
        self.close()
        return self._digest

    def hexdigest(self) -> str:
        return self.close_and_digest().hex()

    def _finalize_digest(self) -> None:
        if self._digest is None:
            self._digest = self._hasher.digest()

    def __repr__(self) -> str:
        digest = None if self._digest is None else self._digest.hex()
        return f"{type(self).__name__}(algorithm={self._algorithm!r}, digest={digest})"


class DigestingReader(_DigestMixin, _ReaderBase):
    """Feeds every byte read into a hash; digest available after close."""

    def __init__(self, algorithm: str, stream: BinaryIO):
        super().__init__(stream)
        self._algorithm = algorithm
        self._hasher = new_hasher(algorithm)
        self._digest = None

    def close(self) -> None:
        try:
            super().close()
        finally:
            self._finalize_digest()


class DigestingWriter(_DigestMixin, _WriterBase):
    """Feeds every byte written into a hash; digest available after close."""

    def __init__(self, algorithm: str, stream: BinaryIO):
        super().__init__(stream)
        self._algorithm = algorithm
        self._hasher = new_hasher(algorithm)
        self._digest = None

    def close(self) -> None:
        try:
            super().close()
        finally:
            self._finalize_digest()


class ClosingReader(_ReaderBase):
    """Closes the stream, then runs a cleanup action (once, with GC backstop)."""

    def __init__(self, stream: BinaryIO, cleanup: Callable[[], None], name: Optional[str] = None):
        super().__init__(stream)
        self._finalizer = Finalizer(cleanup, name).attach(self)

    def _observe(self, data) -> None:
        pass

    def close(self) -> None:
        try:
            super().close()
        finally:
            self._finalizer.close()


class ClosingWriter(_WriterBase):
    """Closes the stream, runs a completion action, then a cleanup action.

    `on_close` is where buffered uploads are pushed, so its errors reach the
    caller of close(). `cleanup` always runs exactly once. A writer that is
    garbage-collected without being closed, or whose `with` block exits with
    an exception, only runs `cleanup`: abandoned writes are never completed.
    """

    def __init__(self,
                 stream: BinaryIO,
                 on_close: Callable[[], None],
                 cleanup: Optional[Callable[[], None]] = None,
                 name: Optional[str] = None):
        super().__init__(stream)
        self._on_close = on_close
        self._abandoned = False
        self._finalizer = Finalizer(cleanup or (lambda: None), name)

    def _observe(self, data) -> None:
        pass

    def close(self) -> None:
        if self.closed:
            return
        try:
            super().close()
            if not self._abandoned:
                self._on_close()
        finally:
            self._finalizer.close()

    def __exit__(self, exc_type, exc_value, traceback):
        if exc_type is not None:
            self._abandoned = True
        self.close()

    def __del__(self):
        self._abandoned = True
        try:
            self.close()
        except Exception as e:
            logger.warning(f"Cleanup of abandoned writer failed: {e}")
