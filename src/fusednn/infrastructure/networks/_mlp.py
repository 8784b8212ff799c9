"""
Shared implementation of bias-free multilayer perceptrons.

`MLPBase` implements the layer stack, configuration handling and the
forward / backward / inference arithmetic common to every MLP architecture.
Concrete architectures only decide *how* each matrix product is executed:

- `_data_matmul(stream, w, h)` multiplies a weight matrix with activations
  (forward, inference and the input-gradient chain of backward).
- Weight-gradient products always go through the workspace-backed `gemm`.

Layer structure
---------------
With ``n_hidden_layers = L``, the network holds ``L + 1`` weight matrices:

- layer 0: (n_neurons, n_input_dims), or (padded_output_width, n_input_dims)
  when ``L == 0``,
- layers 1..L-1: (n_neurons, n_neurons),
- layer L: (padded_output_width, n_neurons).

Hidden layers use `activation`; the last layer uses `output_activation`.
The output width is padded to a multiple of 16. The padding rows of the
last weight matrix are zero after initialization, so padded outputs are zero
as long as the output activation maps zero to zero.

Data is column-major at the boundary: activations are (width, batch).
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Type

import numpy as np

from ...domain._errors import (
    ConfigurationError,
    DimensionMismatchError,
    ForwardContextError,
)
from ...domain._matrix import IMatrix
from ...domain._matrix_layout import MatrixLayout
from ...domain._stream import StreamLike
from ...domain._weight_usage import WeightUsage
from .._activations import ActivationFn, get_activation
from ..ops.gemm import gemm
from ..workspace._pool import WorkspacePool
from ._config import get_int, get_str, warn_unknown_keys
from ._network import (
    DEFAULT_SEED,
    ForwardContext,
    Network,
    precision_name,
    resolve_precision,
)

logger = logging.getLogger(__name__)

OUTPUT_WIDTH_GRANULARITY = 16

_MLP_KEYS = (
    "otype",
    "n_input_dims",
    "n_output_dims",
    "n_neurons",
    "n_hidden_layers",
    "activation",
    "output_activation",
    "precision",
)


def _next_multiple(value: int, multiple: int) -> int:
    return ((value + multiple - 1) // multiple) * multiple


def _precision_arg(precision: Any) -> str:
    if isinstance(precision, str):
        return precision
    try:
        return precision_name(resolve_precision(precision))
    except (TypeError, ValueError) as e:
        raise ConfigurationError("precision", str(e)) from e


class MLPBase(Network):
    """
    Bias-free dense network with configurable activations.

    Parameters
    ----------
    n_input_dims : int
        Input width.
    n_output_dims : int
        Output width (before padding).
    n_neurons : int
        Width of every hidden layer.
    n_hidden_layers : int
        Number of hidden layers.
    activation : str
        Hidden activation name.
    output_activation : str
        Output activation name.
    precision : str
        Storage precision, "fp16" or "fp32".
    seed : int
        Seed for weight initialization.
    workspace_pool : Optional[WorkspacePool]
        Pool for GEMM scratch memory.

    Raises
    ------
    ConfigurationError
        If any hyperparameter is invalid. Raised before allocation.
    """

    #: Minimum number of hidden layers this architecture supports.
    min_hidden_layers: ClassVar[int] = 0

    def __init__(
        self,
        n_input_dims: int,
        n_output_dims: int,
        n_neurons: int = 128,
        n_hidden_layers: int = 5,
        activation: str = "ReLU",
        output_activation: str = "None",
        *,
        precision: Any = "fp16",
        seed: int = DEFAULT_SEED,
        workspace_pool: Optional[WorkspacePool] = None,
    ) -> None:
        cfg = type(self).validate_config(
            {
                "otype": self.otype,
                "n_input_dims": n_input_dims,
                "n_output_dims": n_output_dims,
                "n_neurons": n_neurons,
                "n_hidden_layers": n_hidden_layers,
                "activation": activation,
                "output_activation": output_activation,
                "precision": _precision_arg(precision),
            }
        )
        super().__init__(precision=cfg["precision"], workspace_pool=workspace_pool)

        self._n_input_dims: int = cfg["n_input_dims"]
        self._n_output_dims: int = cfg["n_output_dims"]
        self._n_neurons: int = cfg["n_neurons"]
        self._n_hidden_layers: int = cfg["n_hidden_layers"]
        self._activation: Type[ActivationFn] = get_activation(cfg["activation"])
        self._output_activation: Type[ActivationFn] = get_activation(
            cfg["output_activation"]
        )
        self._padded_output_width = _next_multiple(
            self._n_output_dims, OUTPUT_WIDTH_GRANULARITY
        )
        self._layer_sizes = self._build_layer_sizes()

        self._allocate_params()
        self.initialize_params(seed=seed)
        logger.debug(
            "created %s: %d -> %d (padded %d), %d hidden layers x %d neurons, "
            "%s, %d params",
            self.otype,
            self._n_input_dims,
            self._n_output_dims,
            self._padded_output_width,
            self._n_hidden_layers,
            self._n_neurons,
            self.precision,
            self.n_params(),
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    @classmethod
    def validate_config(cls, cfg: Mapping[str, Any]) -> Dict[str, Any]:
        warn_unknown_keys(cfg, _MLP_KEYS, cls.otype)

        n_input_dims = get_int(cfg, "n_input_dims", minimum=1)
        n_output_dims = get_int(cfg, "n_output_dims", minimum=1)
        n_neurons = get_int(cfg, "n_neurons", default=128, minimum=1)
        n_hidden_layers = get_int(
            cfg, "n_hidden_layers", default=5, minimum=cls.min_hidden_layers
        )

        activation = get_str(cfg, "activation", default="ReLU")
        output_activation = get_str(cfg, "output_activation", default="None")
        for key, name in (
            ("activation", activation),
            ("output_activation", output_activation),
        ):
            try:
                get_activation(name)
            except ValueError as e:
                raise ConfigurationError(key, str(e)) from e

        precision = get_str(cfg, "precision", default="fp16")
        try:
            precision = precision_name(resolve_precision(precision))
        except ValueError as e:
            raise ConfigurationError("precision", str(e)) from e

        kwargs = {
            "n_input_dims": n_input_dims,
            "n_output_dims": n_output_dims,
            "n_neurons": n_neurons,
            "n_hidden_layers": n_hidden_layers,
            "activation": get_activation(activation).name,
            "output_activation": get_activation(output_activation).name,
            "precision": precision,
        }
        cls._check_architecture(kwargs)
        return kwargs

    @classmethod
    def _check_architecture(cls, kwargs: Dict[str, Any]) -> None:
        """Hook for architecture-specific hyperparameter constraints."""
        return None

    def get_config(self) -> Dict[str, Any]:
        return {
            "otype": self.otype,
            "n_input_dims": self._n_input_dims,
            "n_output_dims": self._n_output_dims,
            "n_neurons": self._n_neurons,
            "n_hidden_layers": self._n_hidden_layers,
            "activation": self._activation.name,
            "output_activation": self._output_activation.name,
            "precision": self.precision,
        }

    # ------------------------------------------------------------------
    # Architecture description
    # ------------------------------------------------------------------
    @property
    def input_width(self) -> int:
        return self._n_input_dims

    @property
    def output_width(self) -> int:
        return self._n_output_dims

    @property
    def padded_output_width(self) -> int:
        return self._padded_output_width

    @property
    def n_neurons(self) -> int:
        return self._n_neurons

    @property
    def n_hidden_layers(self) -> int:
        return self._n_hidden_layers

    def _build_layer_sizes(self) -> List[tuple[int, int]]:
        if self._n_hidden_layers == 0:
            return [(self._padded_output_width, self._n_input_dims)]
        sizes = [(self._n_neurons, self._n_input_dims)]
        sizes += [(self._n_neurons, self._n_neurons)] * (self._n_hidden_layers - 1)
        sizes.append((self._padded_output_width, self._n_neurons))
        return sizes

    def layer_sizes(self) -> Sequence[tuple[int, int]]:
        return list(self._layer_sizes)

    def _layer_activation(self, layer: int) -> Type[ActivationFn]:
        if layer == len(self._layer_sizes) - 1:
            return self._output_activation
        return self._activation

    def _post_initialize_params(self) -> None:
        last = len(self._layer_sizes) - 1
        self.weight_matrix_at(WeightUsage.Forward, last)[self._n_output_dims :, :] = 0

    # ------------------------------------------------------------------
    # Compute paths
    # ------------------------------------------------------------------
    @abstractmethod
    def _data_matmul(
        self, stream: Optional[StreamLike], w: np.ndarray, h: np.ndarray
    ) -> np.ndarray:
        """
        Multiply a weight matrix with a (width, batch) activation block.
        """
        ...

    def _run_layers(
        self,
        stream: Optional[StreamLike],
        h: np.ndarray,
        weight_usage: WeightUsage,
        ctx: Optional[ForwardContext] = None,
    ) -> np.ndarray:
        T = self._dtype
        if ctx is not None:
            ctx.activations.append(h)
        for i in range(len(self._layer_sizes)):
            w = self.weight_matrix_at(weight_usage, i)
            z = self._data_matmul(stream, w, h)
            h = self._layer_activation(i).forward(z).astype(T, copy=False)
            if ctx is not None:
                ctx.pre_activations.append(z)
                ctx.activations.append(h)
        return h

    def _input_block(self, input: IMatrix) -> np.ndarray:
        return np.ascontiguousarray(input.view(), dtype=self._dtype)

    def inference_mixed_precision(
        self,
        stream: Optional[StreamLike],
        input: IMatrix,
        output: IMatrix,
        output_layout: MatrixLayout = MatrixLayout.ColumnMajor,
    ) -> None:
        """
        Evaluate the network in the storage precision.

        Uses the inference parameters, caches nothing and writes every
        element of `output` in `output_layout`.
        """
        self._check_inference_buffers(input, output, output_layout)
        h = self._run_layers(stream, self._input_block(input), WeightUsage.Inference)
        output.copy_from_numpy(h[: output.n_rows])

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
        Run a training forward pass and cache activations for `backward`.

        Parameters
        ----------
        stream : Optional[StreamLike]
            Execution stream.
        input : IMatrix
            ColumnMajor (input_width, batch) matrix.
        output : Optional[IMatrix]
            If given, receives the network output (any layout).
        weight_usage : WeightUsage
            Parameter set to evaluate with. Defaults to Forward.
        prepare_input_gradients : bool
            Must be True for a following `backward` to compute `dL_dinput`.
        """
        batch_size = self._check_input(input)
        if output is not None:
            self._check_output("output", output, batch_size)

        ctx = ForwardContext(
            batch_size=batch_size,
            weight_usage=weight_usage,
            prepare_input_gradients=bool(prepare_input_gradients),
        )
        h = self._run_layers(stream, self._input_block(input), weight_usage, ctx)
        self._forward_ctx = ctx

        if output is not None:
            output.copy_from_numpy(h[: output.n_rows])

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
        Back-propagate `dL_doutput` through the cached forward pass.

        Parameter gradients overwrite the gradient buffer. The input
        gradient is written into `dL_dinput` when given.

        Raises
        ------
        ForwardContextError
            If no forward pass is cached, or `dL_dinput` is requested after a
            forward pass that did not prepare input gradients.
        DimensionMismatchError
            If any buffer disagrees with the cached forward pass.
        """
        ctx = self._require_forward_ctx()
        batch_size = self._check_input(input)
        if batch_size != ctx.batch_size:
            raise DimensionMismatchError("input.n_cols", ctx.batch_size, batch_size)
        self._check_output("output", output, batch_size)
        self._check_output("dL_doutput", dL_doutput, batch_size)
        if dL_dinput is not None:
            if not ctx.prepare_input_gradients:
                raise ForwardContextError(
                    "dL_dinput requested but forward ran without prepare_input_gradients"
                )
            if dL_dinput.n_rows != self.input_width or dL_dinput.n_cols != batch_size:
                raise DimensionMismatchError(
                    "dL_dinput.shape",
                    (self.input_width, batch_size),
                    (dL_dinput.n_rows, dL_dinput.n_cols),
                )

        T = self._dtype
        pool = self.workspace_pool
        grad = np.zeros((self._padded_output_width, batch_size), dtype=np.float32)
        grad[: dL_doutput.n_rows] = dL_doutput.view()

        for i in reversed(range(len(self._layer_sizes))):
            act = self._layer_activation(i)
            delta = act.backward(
                ctx.pre_activations[i], ctx.activations[i + 1], grad
            ).astype(T, copy=False)

            if compute_param_gradients:
                self.gradient_matrix_at(i)[...] = gemm(
                    stream, delta, ctx.activations[i].T, T, pool
                )

            if i > 0 or dL_dinput is not None:
                w = self.weight_matrix_at(weight_usage, i)
                grad = self._data_matmul(stream, w.T, delta)

        if dL_dinput is not None:
            dL_dinput.copy_from_numpy(grad)
