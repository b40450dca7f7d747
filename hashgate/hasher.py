"""Streaming SHA-256 hashing backed by a pool of reusable read buffers."""

from __future__ import annotations

import hashlib
import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger("hashgate.hasher")

CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_IDLE_BUFFERS = 64


class HashingError(OSError):
    """Raised when a file cannot be opened or read for hashing."""

    def __init__(self, path: str | os.PathLike[str], cause: OSError) -> None:
        super().__init__(cause.errno, f"Cannot hash {path}: {cause.strerror or cause}")
        self.path = os.fspath(path)
        self.cause = cause


class BufferPool:
    """Thread-safe pool of fixed-size byte buffers.

    Buffers are handed out through :meth:`borrow`, which always puts the buffer
    back when the ``with`` block exits. At most ``max_idle`` buffers are kept
    between uses; extra buffers are dropped on release.
    """

    def __init__(
        self, buffer_size: int = CHUNK_SIZE, max_idle: int = DEFAULT_MAX_IDLE_BUFFERS
    ) -> None:
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        if max_idle < 0:
            raise ValueError("max_idle must not be negative")
        self.buffer_size = buffer_size
        self.max_idle = max_idle
        self._idle: list[bytearray] = []
        self._lock = threading.Lock()
        self.allocated = 0

    @property
    def idle_count(self) -> int:
        with self._lock:
            return len(self._idle)

    def _acquire(self) -> bytearray:
        with self._lock:
            if self._idle:
                return self._idle.pop()
            self.allocated += 1
        return bytearray(self.buffer_size)

    def _release(self, buffer: bytearray) -> None:
        with self._lock:
            if len(self._idle) < self.max_idle:
                self._idle.append(buffer)

    @contextmanager
    def borrow(self) -> Iterator[bytearray]:
        buffer = self._acquire()
        try:
            yield buffer
        finally:
            self._release(buffer)


_default_pool = BufferPool()


def hash_file(path: str | os.PathLike[str], pool: BufferPool | None = None) -> str:
    """Return the lowercase hex SHA-256 digest of the file at ``path``."""
    pool = pool or _default_pool
    digest = hashlib.sha256()
    with pool.borrow() as buffer, memoryview(buffer) as view:
        try:
            with open(path, "rb") as handle:
                while True:
                    read = handle.readinto(view)
                    if not read:
                        break
                    digest.update(view[:read])
        except OSError as exc:
            logger.debug("Hashing failed for %s: %s", path, exc)
            raise HashingError(path, exc) from exc
    return digest.hexdigest()
