"""
Stream-scoped scratch memory pool and the workspace release function.

This module defines `WorkspacePool`, which owns the temporary buffers that
GEMM-style compute paths need (e.g. float32 accumulation buffers), keyed by
execution stream, together with the process-wide default pool and
`free_workspace`, the lifecycle function that reclaims a stream's scratch.

Core Concepts
-------------
- **One workspace per stream**:
    Each stream owns at most one flat byte buffer. `acquire` grows it to the
    largest size requested so far and hands out a prefix of it; later
    requests of the same or smaller size reuse the buffer without allocating.

- **Explicit release**:
    Scratch attributed to a stream is reclaimed only by `release(stream)` (or
    `free_workspace(stream)` for the default pool). Releasing is idempotent;
    a stream with nothing attributed releases zero bytes.

- **Capacity**:
    An optional `capacity_bytes` bounds the total across all streams. A
    request that would exceed it fails with `AcceleratorFailure`, the host
    analogue of a device out-of-memory error.

Ownership
---------
Buffers handed out by `acquire` are scratch: their contents are unspecified
and they must not be used after the stream's workspace is released. Results
that compute paths copied out of scratch stay valid. The pool never holds
references to the networks that use it.

Thread Safety
-------------
All bookkeeping is protected by an internal lock. A stream's workspace is a
single buffer, so compute paths that write into it must hold it exclusively:
`borrow(stream, nbytes)` takes a per-stream lock for the duration of the
`with` block, which serializes work issued on one stream from several host
threads. `release` waits for an active borrow on the same stream to finish.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple, Union

import numpy as np

from ...domain._errors import AcceleratorFailure
from ...domain._stream import StreamLike
from .._stream import stream_key

logger = logging.getLogger(__name__)

StreamArg = Union[StreamLike, int, None]


@dataclass
class _Workspace:
    """
    Scratch allocation attributed to a single stream.

    Attributes
    ----------
    stream : int
        Handle of the owning stream.
    buffer : np.ndarray
        Flat uint8 buffer; its size is the workspace's current capacity.
    n_acquires : int
        Number of `acquire` calls served from this workspace.
    """

    stream: int
    buffer: np.ndarray = field(repr=False)
    n_acquires: int = 0

    @property
    def nbytes(self) -> int:
        return int(self.buffer.nbytes)


class WorkspacePool:
    """
    Thread-safe scratch memory pool keyed by execution stream.

    Parameters
    ----------
    capacity_bytes : Optional[int]
        Upper bound on the bytes held across all streams. None means
        unbounded.

    Raises
    ------
    ValueError
        If `capacity_bytes` is negative.
    """

    def __init__(self, capacity_bytes: Optional[int] = None) -> None:
        if capacity_bytes is not None and int(capacity_bytes) < 0:
            raise ValueError(f"capacity_bytes must be >= 0, got {capacity_bytes}")
        self._capacity = None if capacity_bytes is None else int(capacity_bytes)
        self._workspaces: Dict[int, _Workspace] = {}
        self._stream_locks: Dict[int, threading.RLock] = {}
        self._lock = threading.Lock()

    @property
    def capacity_bytes(self) -> Optional[int]:
        return self._capacity

    def acquire(self, stream: StreamArg, nbytes: int) -> np.ndarray:
        """
        Return a writable scratch buffer of `nbytes` bytes for `stream`.

        Parameters
        ----------
        stream : StreamLike | int | None
            The stream the scratch is attributed to.
        nbytes : int
            Requested size in bytes.

        Returns
        -------
        np.ndarray
            A uint8 view of exactly `nbytes` bytes into the stream's
            workspace. Its contents are unspecified.

        Raises
        ------
        ValueError
            If `nbytes` is negative.
        AcceleratorFailure
            If growing the workspace would exceed `capacity_bytes`, or the
            host allocation itself fails.
        """
        nbytes = int(nbytes)
        if nbytes < 0:
            raise ValueError(f"nbytes must be >= 0, got {nbytes}")
        key = stream_key(stream)

        with self._lock:
            ws = self._workspaces.get(key)
            current = ws.nbytes if ws is not None else 0

            if nbytes > current:
                total_other = self._total_locked() - current
                if self._capacity is not None and total_other + nbytes > self._capacity:
                    raise AcceleratorFailure(
                        "workspace.acquire",
                        f"requested {nbytes} bytes on stream {key} but only "
                        f"{self._capacity - total_other} of {self._capacity} "
                        "bytes are available",
                    )
                try:
                    buffer = np.empty(nbytes, dtype=np.uint8)
                except MemoryError as e:
                    raise AcceleratorFailure(
                        "workspace.acquire",
                        f"host allocation of {nbytes} bytes failed",
                    ) from e

                if ws is None:
                    ws = _Workspace(stream=key, buffer=buffer)
                    self._workspaces[key] = ws
                else:
                    ws.buffer = buffer
                logger.debug(
                    "workspace for stream %d grown from %d to %d bytes",
                    key,
                    current,
                    nbytes,
                )
            elif ws is None:
                # zero-byte request on a stream without a workspace
                ws = _Workspace(stream=key, buffer=np.empty(0, dtype=np.uint8))
                self._workspaces[key] = ws

            ws.n_acquires += 1
            return ws.buffer[:nbytes]

    @contextmanager
    def borrow(self, stream: StreamArg, nbytes: int) -> Iterator[np.ndarray]:
        """
        Hold the stream's workspace exclusively for the `with` block.

        Yields the same buffer `acquire` would return. Other host threads
        borrowing or releasing the same stream block until the block exits;
        other streams are unaffected. Reentrant within one thread.

        Raises
        ------
        ValueError
            If `nbytes` is negative.
        AcceleratorFailure
            If the workspace cannot be grown to `nbytes`.
        """
        key = stream_key(stream)
        with self._stream_lock(key):
            yield self.acquire(key, nbytes)

    def _stream_lock(self, key: int) -> threading.RLock:
        with self._lock:
            lock = self._stream_locks.get(key)
            if lock is None:
                lock = self._stream_locks[key] = threading.RLock()
            return lock

    def release(self, stream: StreamArg) -> int:
        """
        Free all scratch attributed to `stream`.

        Parameters
        ----------
        stream : StreamLike | int | None
            The stream whose workspace is reclaimed.

        Returns
        -------
        int
            Number of bytes freed. Zero when nothing was attributed.
        """
        key = stream_key(stream)
        with self._stream_lock(key):
            with self._lock:
                ws = self._workspaces.pop(key, None)
        if ws is None:
            return 0
        freed = ws.nbytes
        logger.debug(
            "released %d workspace bytes of stream %d (%d acquires)",
            freed,
            key,
            ws.n_acquires,
        )
        return freed

    def bytes_in_use(self, stream: StreamArg = None, *, all_streams: bool = False) -> int:
        """
        Return the number of workspace bytes held.

        Parameters
        ----------
        stream : StreamLike | int | None
            Stream to report on (None for the default stream).
        all_streams : bool
            If True, report the total across every stream instead.
        """
        with self._lock:
            if all_streams:
                return self._total_locked()
            ws = self._workspaces.get(stream_key(stream))
            return ws.nbytes if ws is not None else 0

    def streams(self) -> Tuple[int, ...]:
        """Return the handles of streams that currently hold a workspace."""
        with self._lock:
            return tuple(sorted(self._workspaces))

    def clear(self) -> int:
        """Release every stream's workspace and return the bytes freed."""
        with self._lock:
            freed = self._total_locked()
            self._workspaces.clear()
        return freed

    def _total_locked(self) -> int:
        return sum(ws.nbytes for ws in self._workspaces.values())

    def __repr__(self) -> str:
        return (
            f"WorkspacePool(streams={len(self._workspaces)}, "
            f"capacity_bytes={self._capacity})"
        )


_DEFAULT_POOL = WorkspacePool()


def default_workspace_pool() -> WorkspacePool:
    """Return the process-wide workspace pool used when none is injected."""
    return _DEFAULT_POOL


def free_workspace(stream: StreamArg, *, pool: Optional[WorkspacePool] = None) -> int:
    """
    Release the scratch memory attributed to `stream`.

    This is the workspace lifecycle function. It reclaims scratch left by any
    network's compute path on `stream`; outputs computed earlier stay valid.
    Calling it again on an idle stream is a no-op that returns 0.

    Parameters
    ----------
    stream : StreamLike | int | None
        The stream to release. Must be idle (no compute in flight).
    pool : Optional[WorkspacePool]
        Pool to release from. Defaults to the process-wide pool.

    Returns
    -------
    int
        Number of bytes freed.
    """
    target = _DEFAULT_POOL if pool is None else pool
    return target.release(stream)
