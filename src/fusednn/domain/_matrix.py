"""
Matrix view interface definitions.

This module defines the domain-level contract for the 2-D numeric buffers
exchanged across the network boundary. A matrix view is externally owned;
the network only reads from or writes into it.

The contract is structural (`typing.Protocol`), so any buffer wrapper that
exposes dimensions, a layout and an element type can be passed to a network.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ._matrix_layout import MatrixLayout


@runtime_checkable
class IMatrix(Protocol):
    """
    Domain-level 2-D matrix view interface.

    Notes
    -----
    - `n_elements` must always equal ``n_rows * n_cols``.
    - `layout` is explicit on every view; there is no implicit default once a
      view exists.
    """

    @property
    def n_rows(self) -> int:
        """Number of logical rows (feature width at the network boundary)."""
        ...

    @property
    def n_cols(self) -> int:
        """Number of logical columns (batch size at the network boundary)."""
        ...

    @property
    def layout(self) -> MatrixLayout:
        """Memory layout of the underlying flat buffer."""
        ...

    @property
    def dtype(self) -> Any:
        """Element type of the underlying buffer."""
        ...

    @property
    def n_elements(self) -> int:
        """Total number of elements (``n_rows * n_cols``)."""
        ...
