"""
Differentiable module interface definitions.

This module defines the domain-level contract for trainable, differentiable
modules using structural subtyping via `typing.Protocol`. It covers the
full-precision evaluation entry point, the training forward and backward
passes, and access to parameter and gradient storage.

The mixed-precision inference entry point is a separate capability (see
`_inference.py`); a network is any object satisfying both.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol, Sequence, runtime_checkable

from ._matrix import IMatrix
from ._stream import StreamLike
from ._weight_usage import WeightUsage


@runtime_checkable
class IDifferentiableModule(Protocol):
    """
    Domain-level differentiable module interface.

    Notes
    -----
    - All entry points take the execution stream explicitly; work is ordered
      after prior work on that stream.
    - `forward` caches whatever the module needs for a later `backward`.
      That cached state is internal and invisible to this contract.
    - `WeightUsage` is threaded through calls, never stored.
    """

    def inference(
        self, stream: Optional[StreamLike], input: IMatrix, output: IMatrix
    ) -> None:
        """
        Evaluate the module at full precision.

        Parameters
        ----------
        stream : Optional[StreamLike]
            Execution stream (None for the default stream).
        input : IMatrix
            ColumnMajor input matrix.
        output : IMatrix
            Output matrix, typically float32.
        """
        ...

    def forward(
        self,
        stream: Optional[StreamLike],
        input: IMatrix,
        output: Optional[IMatrix] = None,
        *,
        weight_usage: WeightUsage = WeightUsage.Forward,
        prepare_input_gradients: bool = False,
    ) -> None:
        """
        Run a training forward pass and cache activations for backward.
        """
        ...

    def backward(
        self,
        stream: Optional[StreamLike],
        input: IMatrix,
        output: IMatrix,
        dL_doutput: IMatrix,
        dL_dinput: Optional[IMatrix] = None,
        *,
        weight_usage: WeightUsage = WeightUsage.Backward,
        compute_param_gradients: bool = True,
    ) -> None:
        """
        Compute parameter gradients and, optionally, the input gradient.
        """
        ...

    def n_params(self) -> int:
        """Return the total number of scalar parameters."""
        ...

    def params(self) -> Any:
        """Return the flat training parameter buffer."""
        ...

    def gradients(self) -> Any:
        """Return the flat gradient buffer."""
        ...

    def set_params(
        self,
        params: Any,
        inference_params: Any = None,
        backward_params: Any = None,
        gradients: Any = None,
    ) -> None:
        """Bind externally owned parameter and gradient buffers."""
        ...

    def initialize_params(self, seed: int = 1337, scale: float = 1.0) -> None:
        """Initialize the parameter buffer deterministically from `seed`."""
        ...

    def layer_sizes(self) -> Sequence[tuple[int, int]]:
        """Return (rows, cols) of every weight matrix, in evaluation order."""
        ...

    def parameters(self) -> Iterable[Any]:
        """Return per-layer parameter blocks for optimizers."""
        ...
