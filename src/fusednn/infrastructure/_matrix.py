"""
Layout-aware 2-D matrix views over flat numpy buffers.

`Matrix` is the numeric buffer type exchanged across the network boundary.
It wraps an externally owned, contiguous 1-D numpy array and interprets it as
an (n_rows, n_cols) matrix in an explicit `MatrixLayout`:

- ColumnMajor: element (r, c) lives at flat index ``c * n_rows + r``.
- RowMajor: element (r, c) lives at flat index ``r * n_cols + c``.

Networks consume inputs with one column per batch item, so a ColumnMajor
(width, batch) matrix stores each sample's features contiguously.

Ownership
---------
A `Matrix` never copies its buffer on construction when one is supplied.
Views returned by `view()` and `transposed()` share memory with it.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from ..domain._errors import DimensionMismatchError
from ..domain._matrix_layout import MatrixLayout


class Matrix:
    """
    2-D matrix view with explicit memory layout.

    Parameters
    ----------
    n_rows : int
        Number of logical rows. Must be non-negative.
    n_cols : int
        Number of logical columns. Must be non-negative.
    dtype : numpy dtype-like, optional
        Element type. Defaults to float16. Ignored when `data` is given.
    layout : MatrixLayout, optional
        Memory layout. Defaults to ColumnMajor.
    data : Optional[np.ndarray]
        Flat, contiguous buffer of exactly ``n_rows * n_cols`` elements to
        wrap. When omitted, a zero-filled buffer is allocated.

    Raises
    ------
    ValueError
        If dimensions are negative or `layout` is not a MatrixLayout.
    DimensionMismatchError
        If `data` is not 1-D, not contiguous, or has the wrong element count.
    """

    __slots__ = ("_data", "_n_rows", "_n_cols", "_layout")

    def __init__(
        self,
        n_rows: int,
        n_cols: int,
        dtype: Any = np.float16,
        layout: MatrixLayout = MatrixLayout.ColumnMajor,
        data: Optional[np.ndarray] = None,
    ) -> None:
        n_rows, n_cols = int(n_rows), int(n_cols)
        if n_rows < 0 or n_cols < 0:
            raise ValueError(
                f"Matrix dimensions must be non-negative, got ({n_rows}, {n_cols})"
            )
        if not isinstance(layout, MatrixLayout):
            raise ValueError(f"layout must be a MatrixLayout, got {layout!r}")

        n_elements = n_rows * n_cols
        if data is None:
            data = np.zeros(n_elements, dtype=np.dtype(dtype))
        else:
            if not isinstance(data, np.ndarray) or data.ndim != 1:
                raise DimensionMismatchError(
                    "data.ndim", 1, getattr(data, "ndim", type(data).__name__)
                )
            if not data.flags["C_CONTIGUOUS"]:
                raise DimensionMismatchError("data.contiguous", True, False)
            if data.size != n_elements:
                raise DimensionMismatchError("data.size", n_elements, data.size)

        self._data = data
        self._n_rows = n_rows
        self._n_cols = n_cols
        self._layout = layout

    @classmethod
    def from_numpy(
        cls,
        arr: np.ndarray,
        dtype: Any = None,
        layout: MatrixLayout = MatrixLayout.ColumnMajor,
    ) -> "Matrix":
        """
        Build a new matrix holding a copy of a logical 2-D array.

        Parameters
        ----------
        arr : np.ndarray
            2-D array whose shape gives (n_rows, n_cols).
        dtype : optional
            Element type of the new matrix. Defaults to ``arr.dtype``.
        layout : MatrixLayout, optional
            Layout of the new matrix. Defaults to ColumnMajor.

        Returns
        -------
        Matrix
            A matrix owning a fresh buffer.
        """
        arr = np.asarray(arr)
        if arr.ndim != 2:
            raise DimensionMismatchError("arr.ndim", 2, arr.ndim)
        m = cls(
            arr.shape[0],
            arr.shape[1],
            dtype=arr.dtype if dtype is None else dtype,
            layout=layout,
        )
        m.copy_from_numpy(arr)
        return m

    # ------------------------------------------------------------------
    # Shape metadata
    # ------------------------------------------------------------------
    @property
    def n_rows(self) -> int:
        return self._n_rows

    @property
    def n_cols(self) -> int:
        return self._n_cols

    @property
    def shape(self) -> tuple[int, int]:
        return (self._n_rows, self._n_cols)

    @property
    def layout(self) -> MatrixLayout:
        return self._layout

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def n_elements(self) -> int:
        return self._n_rows * self._n_cols

    @property
    def n_bytes(self) -> int:
        return int(self._data.nbytes)

    @property
    def data(self) -> np.ndarray:
        """The flat underlying buffer (shared, not copied)."""
        return self._data

    # ------------------------------------------------------------------
    # Views and copies
    # ------------------------------------------------------------------
    def view(self) -> np.ndarray:
        """
        Return a logical (n_rows, n_cols) numpy view sharing memory.

        Writes through the view land in the underlying buffer at the
        positions the layout prescribes.
        """
        if self._layout is MatrixLayout.RowMajor:
            return self._data.reshape(self._n_rows, self._n_cols)
        return self._data.reshape(self._n_cols, self._n_rows).T

    def to_numpy(self) -> np.ndarray:
        """Return a logical (n_rows, n_cols) copy as a C-contiguous array."""
        return np.ascontiguousarray(self.view())

    def copy_from_numpy(self, arr: np.ndarray) -> None:
        """
        Overwrite every element from a logical (n_rows, n_cols) array.

        Values are cast to this matrix's dtype.

        Raises
        ------
        DimensionMismatchError
            If `arr` does not have shape (n_rows, n_cols).
        """
        arr = np.asarray(arr)
        if arr.shape != self.shape:
            raise DimensionMismatchError("arr.shape", self.shape, arr.shape)
        self.view()[...] = arr.astype(self.dtype, copy=False)

    def fill(self, value: float) -> None:
        """Set every element to `value`."""
        self._data.fill(value)

    def transposed(self) -> "Matrix":
        """
        Reinterpret the same buffer as the transposed matrix.

        A ColumnMajor (r, c) matrix becomes a RowMajor (c, r) matrix without
        touching memory, and vice versa.
        """
        return Matrix(
            self._n_cols,
            self._n_rows,
            layout=self._layout.transposed(),
            data=self._data,
        )

    def __repr__(self) -> str:
        return (
            f"Matrix(n_rows={self._n_rows}, n_cols={self._n_cols}, "
            f"dtype={self.dtype}, layout={self._layout.name})"
        )
