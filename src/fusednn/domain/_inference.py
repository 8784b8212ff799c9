"""
Mixed-precision inference interface definitions.

This module defines the single-method capability that lets callers evaluate a
network through its inference-optimized, reduced-precision compute path.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from ._matrix import IMatrix
from ._matrix_layout import MatrixLayout
from ._stream import StreamLike


@runtime_checkable
class IMixedPrecisionInference(Protocol):
    """
    Domain-level mixed-precision inference interface.

    Notes
    -----
    - The input matrix is ColumnMajor with one column per batch item.
    - The output matrix is fully overwritten in `output_layout`.
    - No parameter, gradient or cached training state is mutated.
    """

    def inference_mixed_precision(
        self,
        stream: Optional[StreamLike],
        input: IMatrix,
        output: IMatrix,
        output_layout: MatrixLayout = MatrixLayout.ColumnMajor,
    ) -> None:
        """
        Evaluate the network through its reduced-precision compute path.

        Parameters
        ----------
        stream : Optional[StreamLike]
            Execution stream (None for the default stream).
        input : IMatrix
            ColumnMajor matrix of shape (input_width, batch_size).
        output : IMatrix
            Matrix of shape (output_width or padded_output_width, batch_size)
            whose layout equals `output_layout`.
        output_layout : MatrixLayout, optional
            Layout in which results are written. Defaults to ColumnMajor.

        Raises
        ------
        DimensionMismatchError
            If widths or batch sizes disagree with the network.
        LayoutMismatchError
            If `input` is not ColumnMajor or `output` is not in
            `output_layout`.
        """
        ...
