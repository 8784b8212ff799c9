"""
Execution stream handles.

This module defines `Stream`, the concrete execution stream handle used by
the host backend, and `stream_key`, which normalizes every accepted stream
spelling to the integer key used by stream-scoped resources.

The host backend executes work eagerly in call order, so work issued on the
same stream is always complete, and in order, when the call returns.
`synchronize()` therefore has nothing to wait for.
"""

from __future__ import annotations

import itertools
import threading
from typing import Optional, Union

from ..domain._stream import StreamLike

_DEFAULT_HANDLE = 0


class Stream:
    """
    Opaque execution stream handle.

    Parameters
    ----------
    name : Optional[str]
        Optional label used in `repr` and log records.

    Notes
    -----
    - Each instance receives a unique, positive integer `handle`.
    - `Stream.DEFAULT` (handle 0) is the stream denoted by `None`.
    - `__slots__` is used to prevent dynamic attribute creation.
    """

    __slots__ = ("handle", "name")

    _counter = itertools.count(1)
    _counter_lock = threading.Lock()

    DEFAULT: "Stream"

    def __init__(self, name: Optional[str] = None) -> None:
        with Stream._counter_lock:
            self.handle = next(Stream._counter)
        self.name = name

    @classmethod
    def _with_handle(cls, handle: int, name: Optional[str]) -> "Stream":
        s = cls.__new__(cls)
        s.handle = int(handle)
        s.name = name
        return s

    def synchronize(self) -> None:
        """
        Block until all work issued on this stream has completed.

        Host execution is eager, so this returns immediately.
        """
        return None

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Stream):
            return self.handle == other.handle
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Stream", self.handle))

    def __repr__(self) -> str:
        label = f", name={self.name!r}" if self.name else ""
        return f"Stream(handle={self.handle}{label})"


Stream.DEFAULT = Stream._with_handle(_DEFAULT_HANDLE, "default")


def stream_key(stream: Union[StreamLike, int, None]) -> int:
    """
    Normalize a stream argument to its integer handle.

    Parameters
    ----------
    stream : StreamLike | int | None
        A stream object, a raw integer handle, or None for the default stream.

    Returns
    -------
    int
        The stream handle.

    Raises
    ------
    TypeError
        If `stream` is not one of the accepted spellings.
    """
    if stream is None:
        return _DEFAULT_HANDLE
    # bool is an int subclass but never a valid handle
    if isinstance(stream, bool):
        raise TypeError("stream must be a Stream, an int handle or None, got bool")
    if isinstance(stream, int):
        if stream < 0:
            raise TypeError(f"stream handle must be non-negative, got {stream}")
        return stream
    handle = getattr(stream, "handle", None)
    if isinstance(handle, int) and not isinstance(handle, bool):
        return handle
    raise TypeError(
        f"stream must be a Stream, an int handle or None, got {type(stream).__name__}"
    )
