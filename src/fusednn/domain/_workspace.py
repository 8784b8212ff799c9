"""
Workspace pool contracts.

A workspace pool owns the scratch memory (e.g. GEMM accumulation buffers)
that compute paths attribute to an execution stream. Scratch is acquired by
compute operations and reclaimed only by an explicit per-stream release.

Callers must not release a stream's workspace while compute is still issued
on it; releasing between logical iterations is always safe.
"""

from __future__ import annotations

from typing import Any, ContextManager, Optional, Protocol, Tuple, runtime_checkable

from ._stream import StreamLike


@runtime_checkable
class IWorkspacePool(Protocol):
    """
    Stream-keyed scratch memory pool.

    Required methods
    ----------------
    - `acquire(stream, nbytes)` returns a writable scratch buffer of at least
      `nbytes` bytes attributed to `stream`.
    - `release(stream)` frees everything attributed to `stream` and returns
      the number of bytes freed. Releasing an empty stream is a no-op.
    - `borrow(stream, nbytes)` is a context manager yielding the same buffer
      while holding the stream's workspace exclusively.
    """

    def acquire(self, stream: Optional[StreamLike], nbytes: int) -> Any: ...

    def borrow(
        self, stream: Optional[StreamLike], nbytes: int
    ) -> ContextManager[Any]: ...

    def release(self, stream: Optional[StreamLike]) -> int: ...

    def bytes_in_use(self, stream: Optional[StreamLike] = None) -> int: ...

    def streams(self) -> Tuple[int, ...]: ...
