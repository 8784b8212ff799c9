# infrastructure/ops/gemm.py
"""
Mixed-precision matrix products for network layers.

Two product primitives are provided, matching the two compute styles the
networks use:

- `fused_matmul`: the in-register path of fully fused networks. Operands are
  widened to float32, multiplied, and the result is narrowed to the storage
  type. No scratch memory is involved.
- `gemm`: the general GEMM path. The float32 accumulation buffer is taken
  from the workspace pool and attributed to the caller's stream, so it stays
  pooled until the stream's workspace is released. The buffer is borrowed
  exclusively for the product, so concurrent calls on one stream serialize.

Scope
-----
- 2D products only: A: (M, K) @ B: (K, N) -> C: (M, N).
- Storage types are numpy float dtypes; accumulation is always float32.
- No broadcasting / batching (keep it explicit and strict).

Errors
------
Shape problems raise `DimensionMismatchError` before any work happens. Host
allocation failures surface as `AcceleratorFailure`.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

import numpy as np

from ...domain._errors import AcceleratorFailure, DimensionMismatchError
from ..workspace._pool import StreamArg, WorkspacePool, default_workspace_pool

_ACC = np.dtype(np.float32)


def _require_2d(x: np.ndarray, name: str) -> Tuple[int, int]:
    """Validate that an operand is 2D and return (rows, cols)."""
    if x.ndim != 2:
        raise DimensionMismatchError(f"{name}.ndim", 2, x.ndim)
    return int(x.shape[0]), int(x.shape[1])


def _require_float(dtype: Any, name: str) -> np.dtype:
    dt = np.dtype(dtype)
    if dt.kind != "f":
        raise TypeError(f"{name} must be a floating point dtype; got dtype={dt}")
    return dt


def _check_operands(a: np.ndarray, b: np.ndarray) -> Tuple[int, int, int]:
    M, K_a = _require_2d(a, "a")
    K_b, N = _require_2d(b, "b")
    if K_a != K_b:
        raise DimensionMismatchError(
            "b.shape[0]", K_a, f"{K_b} (a is ({M},{K_a}), b is ({K_b},{N}))"
        )
    return M, N, K_a


def fused_matmul(a: np.ndarray, b: np.ndarray, out_dtype: Any) -> np.ndarray:
    """
    Compute ``A @ B`` with float32 accumulation, without scratch memory.

    Parameters
    ----------
    a : np.ndarray
        Left operand of shape (M, K).
    b : np.ndarray
        Right operand of shape (K, N).
    out_dtype : numpy dtype-like
        Storage type of the returned product.

    Returns
    -------
    np.ndarray
        Newly allocated (M, N) array of `out_dtype`.
    """
    dt = _require_float(out_dtype, "out_dtype")
    _check_operands(a, b)
    try:
        acc = np.matmul(a.astype(_ACC, copy=False), b.astype(_ACC, copy=False))
        return acc.astype(dt, copy=False)
    except MemoryError as e:
        raise AcceleratorFailure("fused_matmul", "host allocation failed") from e


def gemm(
    stream: StreamArg,
    a: np.ndarray,
    b: np.ndarray,
    out_dtype: Any,
    pool: Optional[WorkspacePool] = None,
) -> np.ndarray:
    """
    Compute ``A @ B`` through a pooled float32 accumulation workspace.

    Parameters
    ----------
    stream : StreamLike | int | None
        Stream the workspace is attributed to.
    a : np.ndarray
        Left operand of shape (M, K).
    b : np.ndarray
        Right operand of shape (K, N).
    out_dtype : numpy dtype-like
        Storage type of the returned product.
    pool : Optional[WorkspacePool]
        Workspace pool to draw from. Defaults to the process-wide pool.

    Returns
    -------
    np.ndarray
        Newly allocated (M, N) array of `out_dtype`. It does not alias the
        workspace, so it stays valid after the workspace is released.

    Raises
    ------
    DimensionMismatchError
        If operands are not 2D or inner dimensions disagree.
    AcceleratorFailure
        If the workspace cannot be acquired or host memory runs out.
    """
    dt = _require_float(out_dtype, "out_dtype")
    M, N, _ = _check_operands(a, b)
    if pool is None:
        pool = default_workspace_pool()

    try:
        # the accumulator is shared per stream; hold it until the result is copied out
        with pool.borrow(stream, M * N * _ACC.itemsize) as scratch:
            acc = scratch.view(_ACC).reshape(M, N)
            np.matmul(a.astype(_ACC, copy=False), b.astype(_ACC, copy=False), out=acc)
            return acc.astype(dt, copy=True)
    except MemoryError as e:
        raise AcceleratorFailure("gemm", "host allocation failed") from e
