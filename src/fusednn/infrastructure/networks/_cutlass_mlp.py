"""
GEMM-backed multilayer perceptron.

`CutlassMLP` runs every matrix product (forward, inference and backward)
through the general `gemm` path. It supports arbitrary layer widths and
zero hidden layers, at the price of attributing float32 accumulation scratch
to the caller's stream in the workspace pool. That scratch stays pooled until
`free_workspace(stream)` (or `pool.release(stream)`) is called.
"""

from __future__ import annotations

from typing import ClassVar, Optional

import numpy as np

from ...domain._stream import StreamLike
from ..ops.gemm import gemm
from ._mlp import MLPBase
from ._registry import register_network


@register_network("CutlassMLP")
class CutlassMLP(MLPBase):
    """
    MLP of arbitrary width evaluated through pooled GEMM workspaces.

    See `MLPBase` for the constructor parameters.
    """

    otype: ClassVar[str] = "CutlassMLP"
    min_hidden_layers: ClassVar[int] = 0

    def _data_matmul(
        self, stream: Optional[StreamLike], w: np.ndarray, h: np.ndarray
    ) -> np.ndarray:
        return gemm(stream, w, h, self._dtype, self.workspace_pool)
