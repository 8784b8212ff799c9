"""
Matrix memory layout tags.

A `MatrixLayout` describes how the elements of a 2-D numeric buffer map onto
linear memory. It says nothing about the buffer's lifetime.

- RowMajor: element (r, c) is stored at offset ``r * n_cols + c``.
- ColumnMajor: element (r, c) is stored at offset ``c * n_rows + r``.

A ColumnMajor (rows, cols) buffer is bit-identical to a RowMajor
(cols, rows) buffer, which is what `transposed()` expresses.
"""

from enum import Enum


class MatrixLayout(Enum):
    """
    Enumeration of supported matrix memory layouts.

    Attributes
    ----------
    RowMajor : MatrixLayout
        Consecutive elements of a row are adjacent in memory.
    ColumnMajor : MatrixLayout
        Consecutive elements of a column are adjacent in memory. This is the
        default at every network boundary (one column per batch item).
    """

    RowMajor = "rm"
    ColumnMajor = "cm"

    def transposed(self) -> "MatrixLayout":
        """
        Return the layout that describes the same buffer with swapped dimensions.

        Returns
        -------
        MatrixLayout
            ColumnMajor for RowMajor and vice versa.
        """
        if self is MatrixLayout.RowMajor:
            return MatrixLayout.ColumnMajor
        return MatrixLayout.RowMajor


RM = MatrixLayout.RowMajor
CM = MatrixLayout.ColumnMajor
