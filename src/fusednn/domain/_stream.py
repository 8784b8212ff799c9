"""
Execution stream contracts for fusednn.

This module defines a duck-typed `StreamLike` protocol that represents an
execution stream handle without coupling to a concrete stream class.

Networks never create or destroy streams; they only consume the handle the
caller supplies. Work issued on the same stream executes in issue order.
Work on different streams carries no ordering guarantee.

Design notes
------------
- Uses `typing.Protocol` and `@runtime_checkable` to enable both static and
  runtime validation of stream-like objects.
- `None` is accepted wherever a stream is expected and denotes the default
  stream (handle 0).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class StreamLike(Protocol):
    """
    Duck-typed execution stream contract.

    Any object exposing an integer `handle` and a `synchronize` method can be
    used as a stream.
    """

    handle: int

    def synchronize(self) -> None: ...
