"""
Fully fused multilayer perceptron.

`FullyFusedMLP` evaluates the whole layer stack as one fused chain of
products: activations never leave the (simulated) register file, so the
forward and inference paths need no scratch memory at all. Only the
weight-gradient products of the backward pass go through the
workspace-backed GEMM path.

The fused kernels are specialized for a handful of layer widths, so
`n_neurons` must be one of 16, 32, 64 or 128 and at least one hidden layer
is required. Use `CutlassMLP` for other shapes.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional

import numpy as np

from ...domain._errors import ConfigurationError
from ...domain._stream import StreamLike
from ..ops.gemm import fused_matmul
from ._mlp import MLPBase
from ._registry import register_network

SUPPORTED_WIDTHS = (16, 32, 64, 128)


@register_network("FullyFusedMLP")
class FullyFusedMLP(MLPBase):
    """
    MLP whose forward pass runs without scratch memory.

    See `MLPBase` for the constructor parameters.
    """

    otype: ClassVar[str] = "FullyFusedMLP"
    min_hidden_layers: ClassVar[int] = 1

    @classmethod
    def supports_width(cls, n_neurons: Any) -> bool:
        return n_neurons in SUPPORTED_WIDTHS

    @classmethod
    def _check_architecture(cls, kwargs: Dict[str, Any]) -> None:
        n_neurons = kwargs["n_neurons"]
        if not cls.supports_width(n_neurons):
            raise ConfigurationError(
                "n_neurons",
                f"FullyFusedMLP only supports 16, 32, 64 and 128 neurons, got "
                f"{n_neurons}. Use CutlassMLP for other widths.",
            )

    def _data_matmul(
        self, stream: Optional[StreamLike], w: np.ndarray, h: np.ndarray
    ) -> np.ndarray:
        return fused_matmul(w, h, self._dtype)
