"""
Infrastructure network base class.

This module provides `Network`, a concrete foundation that satisfies the
domain-level `INetwork` protocol. It implements the machinery every
architecture shares:

- flat parameter storage for the three weight usages (training, inference
  and backward parameters) plus the gradient buffer
- deterministic, registry-driven weight initialization
- per-layer parameter blocks for optimizers (`parameters`,
  `named_parameters`)
- fail-fast dimension and layout validation at the network boundary
- the full-precision `inference` path built on top of
  `inference_mixed_precision`
- bookkeeping for the cached forward state consumed by `backward`
- injection of the workspace pool used by GEMM compute paths

Subclasses describe their weight matrices through `layer_sizes()` and
implement the compute paths (`inference_mixed_precision`, `forward`,
`backward`) together with the `get_config` / `from_config` serialization
hooks.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterator, List, Mapping, Optional, Sequence

import numpy as np
from typing_extensions import Self

from ...domain._errors import (
    AcceleratorFailure,
    DimensionMismatchError,
    ForwardContextError,
    LayoutMismatchError,
)
from ...domain._matrix import IMatrix
from ...domain._matrix_layout import MatrixLayout
from ...domain._network import INetwork
from ...domain._stream import StreamLike
from ...domain._weight_usage import WeightUsage
from .._matrix import Matrix
from ..utils.weight_initializer import WeightInitializer
from ..workspace._pool import WorkspacePool, default_workspace_pool

logger = logging.getLogger(__name__)

DEFAULT_SEED = 1337


@dataclass
class ParameterBlock:
    """
    One weight matrix of a network together with its gradient.

    Attributes
    ----------
    name : str
        Qualified name, e.g. "layers.0.weight".
    value : np.ndarray
        (rows, cols) view into the network's training parameter buffer.
    grad : np.ndarray
        (rows, cols) view into the network's gradient buffer.
    """

    name: str
    value: np.ndarray = field(repr=False)
    grad: np.ndarray = field(repr=False)

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.value.shape)

    @property
    def dtype(self) -> np.dtype:
        return self.value.dtype

    def zero_grad(self) -> None:
        self.grad[...] = 0


@dataclass
class ForwardContext:
    """
    State cached by a training forward pass for the matching backward pass.

    Attributes
    ----------
    batch_size : int
        Number of columns of the forward input.
    weight_usage : WeightUsage
        Usage the forward pass ran with.
    prepare_input_gradients : bool
        Whether the caller asked for input gradients to be computable.
    activations : List[np.ndarray]
        Layer inputs: ``activations[0]`` is the network input and
        ``activations[i + 1]`` the output of layer ``i``; (width, batch).
    pre_activations : List[np.ndarray]
        Matrix product results of each layer before its activation.
    """

    batch_size: int
    weight_usage: WeightUsage
    prepare_input_gradients: bool
    activations: List[np.ndarray] = field(default_factory=list, repr=False)
    pre_activations: List[np.ndarray] = field(default_factory=list, repr=False)


_PRECISIONS: Dict[str, np.dtype] = {
    "fp16": np.dtype(np.float16),
    "float16": np.dtype(np.float16),
    "fp32": np.dtype(np.float32),
    "float32": np.dtype(np.float32),
}


def resolve_precision(precision: Any) -> np.dtype:
    """
    Map a precision spelling ("fp16", "fp32", a numpy dtype) to a dtype.

    Raises
    ------
    ValueError
        If the precision is not float16 or float32.
    """
    if isinstance(precision, str):
        try:
            return _PRECISIONS[precision.lower()]
        except KeyError as e:
            raise ValueError(
                f"Unsupported precision: {precision!r}. Expected 'fp16' or 'fp32'."
            ) from e
    dt = np.dtype(precision)
    if dt not in (np.float16, np.float32):
        raise ValueError(f"Unsupported precision dtype: {dt}. Expected float16 or float32.")
    return dt


def precision_name(dtype: np.dtype) -> str:
    return "fp16" if np.dtype(dtype) == np.float16 else "fp32"


class Network(INetwork, ABC):
    """
    Infrastructure base class for network architectures.

    Parameters
    ----------
    precision : str | numpy dtype
        Storage type `T` of parameters, gradients and activations
        ("fp16" or "fp32").
    workspace_pool : Optional[WorkspacePool]
        Pool that GEMM compute paths draw scratch memory from. Defaults to
        the process-wide pool.

    Notes
    -----
    - Parameter buffers are flat 1-D arrays of `n_params()` elements in
      dtype `T`. Layer `i` occupies the slice following layers ``0..i-1``
      and is viewed RowMajor as a (rows, cols) matrix.
    - Inference and backward parameters alias the training parameters
      unless distinct buffers are bound through `set_params`.
    - The cached forward state is internal. It is never read by
      `inference_mixed_precision` and is dropped by `clear_forward_state`.
    """

    otype: ClassVar[str] = ""

    def __init__(
        self,
        *,
        precision: Any = "fp16",
        workspace_pool: Optional[WorkspacePool] = None,
    ) -> None:
        self._dtype = resolve_precision(precision)
        self._workspace_pool = workspace_pool
        self._params: Optional[np.ndarray] = None
        self._inference_params: Optional[np.ndarray] = None
        self._backward_params: Optional[np.ndarray] = None
        self._gradients: Optional[np.ndarray] = None
        self._forward_ctx: Optional[ForwardContext] = None

    # ------------------------------------------------------------------
    # Architecture description (subclass responsibility)
    # ------------------------------------------------------------------
    @property
    @abstractmethod
    def input_width(self) -> int: ...

    @property
    @abstractmethod
    def output_width(self) -> int: ...

    @property
    def padded_output_width(self) -> int:
        return self.output_width

    @abstractmethod
    def layer_sizes(self) -> Sequence[tuple[int, int]]:
        """
        Return (rows, cols) of every weight matrix in evaluation order.
        """
        ...

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def precision(self) -> str:
        return precision_name(self._dtype)

    @property
    def workspace_pool(self) -> WorkspacePool:
        if self._workspace_pool is None:
            return default_workspace_pool()
        return self._workspace_pool

    # ------------------------------------------------------------------
    # Parameter storage
    # ------------------------------------------------------------------
    def n_params(self) -> int:
        return int(sum(r * c for r, c in self.layer_sizes()))

    def _zeros(self, n: int) -> np.ndarray:
        try:
            return np.zeros(n, dtype=self._dtype)
        except MemoryError as e:
            raise AcceleratorFailure(
                "network.allocate_params",
                f"host allocation of {n} {self._dtype} elements failed",
            ) from e

    def _allocate_params(self) -> None:
        n = self.n_params()
        self._params = self._zeros(n)
        self._gradients = self._zeros(n)
        self._inference_params = self._params
        self._backward_params = self._params

    def _require_params(self) -> np.ndarray:
        if self._params is None:
            raise RuntimeError(
                f"{type(self).__name__} has no parameters bound; call set_params() first."
            )
        return self._params

    def params(self) -> np.ndarray:
        return self._require_params()

    def inference_params(self) -> np.ndarray:
        self._require_params()
        return self._inference_params

    def backward_params(self) -> np.ndarray:
        self._require_params()
        return self._backward_params

    def gradients(self) -> np.ndarray:
        self._require_params()
        return self._gradients

    def _check_buffer(self, name: str, buf: np.ndarray) -> np.ndarray:
        if not isinstance(buf, np.ndarray) or buf.ndim != 1:
            raise DimensionMismatchError(
                f"{name}.ndim", 1, getattr(buf, "ndim", type(buf).__name__)
            )
        if buf.size != self.n_params():
            raise DimensionMismatchError(f"{name}.size", self.n_params(), buf.size)
        if buf.dtype != self._dtype:
            raise TypeError(f"{name} must have dtype {self._dtype}, got {buf.dtype}")
        if not buf.flags["C_CONTIGUOUS"]:
            raise ValueError(f"{name} must be contiguous")
        return buf

    def set_params(
        self,
        params: np.ndarray,
        inference_params: Optional[np.ndarray] = None,
        backward_params: Optional[np.ndarray] = None,
        gradients: Optional[np.ndarray] = None,
    ) -> None:
        """
        Bind externally owned parameter and gradient buffers.

        Parameters
        ----------
        params : np.ndarray
            Training parameters (used with WeightUsage.Forward).
        inference_params : Optional[np.ndarray]
            Parameters used with WeightUsage.Inference. Defaults to `params`.
        backward_params : Optional[np.ndarray]
            Parameters used with WeightUsage.Backward. Defaults to `params`.
        gradients : Optional[np.ndarray]
            Gradient buffer. A fresh zeroed buffer is allocated if omitted.

        Raises
        ------
        DimensionMismatchError
            If any buffer is not 1-D with `n_params()` elements.
        TypeError
            If any buffer's dtype differs from the network's storage type.
        AcceleratorFailure
            If the gradient buffer cannot be allocated.
        """
        params = self._check_buffer("params", params)
        inference_params = (
            params
            if inference_params is None
            else self._check_buffer("inference_params", inference_params)
        )
        backward_params = (
            params
            if backward_params is None
            else self._check_buffer("backward_params", backward_params)
        )
        if gradients is None:
            gradients = self._zeros(self.n_params())
        else:
            gradients = self._check_buffer("gradients", gradients)

        self._params = params
        self._inference_params = inference_params
        self._backward_params = backward_params
        self._gradients = gradients

    def initialize_params(
        self,
        seed: int = DEFAULT_SEED,
        scale: float = 1.0,
        initializer: str = "xavier_uniform",
    ) -> None:
        """
        Initialize the training parameters deterministically.

        Every weight matrix is filled in evaluation order from one
        `numpy.random.Generator` seeded with `seed`, so equal seeds produce
        bitwise-identical parameters. Distinct inference/backward buffers
        receive a copy of the result.

        Parameters
        ----------
        seed : int
            Seed of the random generator.
        scale : float
            Multiplier forwarded to the initializer.
        initializer : str
            Name of a registered weight initializer.
        """
        init = WeightInitializer(initializer)
        params = self._require_params()
        rng = np.random.default_rng(seed)
        for i in range(len(self.layer_sizes())):
            init(self._matrix_at(params, i), rng, scale)
        self._post_initialize_params()

        for other in (self._inference_params, self._backward_params):
            if other is not None and other is not params:
                other[...] = params
        self._gradients[...] = 0

    def _post_initialize_params(self) -> None:
        """Hook for architectures that constrain some weights after init."""
        return None

    def _layer_offsets(self) -> List[int]:
        offsets = [0]
        for r, c in self.layer_sizes():
            offsets.append(offsets[-1] + r * c)
        return offsets

    def _matrix_at(self, buf: np.ndarray, layer: int) -> np.ndarray:
        sizes = self.layer_sizes()
        if not 0 <= layer < len(sizes):
            raise IndexError(f"layer index {layer} out of range [0, {len(sizes)})")
        rows, cols = sizes[layer]
        start = self._layer_offsets()[layer]
        return buf[start : start + rows * cols].reshape(rows, cols)

    def _params_for(self, weight_usage: WeightUsage) -> np.ndarray:
        self._require_params()
        if weight_usage is WeightUsage.Inference:
            return self._inference_params
        if weight_usage is WeightUsage.Backward:
            return self._backward_params
        if weight_usage is WeightUsage.Forward:
            return self._params
        raise TypeError(f"weight_usage must be a WeightUsage, got {weight_usage!r}")

    def weight_matrix_at(self, weight_usage: WeightUsage, layer: int) -> np.ndarray:
        """
        Return the (rows, cols) weight view of `layer` for `weight_usage`.
        """
        return self._matrix_at(self._params_for(weight_usage), layer)

    def gradient_matrix_at(self, layer: int) -> np.ndarray:
        """Return the (rows, cols) gradient view of `layer`."""
        self._require_params()
        return self._matrix_at(self._gradients, layer)

    def named_parameters(self, prefix: str = "") -> Iterator[tuple[str, ParameterBlock]]:
        """
        Return an iterator over (name, parameter block) pairs.
        """
        base = prefix + "." if prefix else ""
        for i in range(len(self.layer_sizes())):
            name = f"{base}layers.{i}.weight"
            yield name, ParameterBlock(
                name=name,
                value=self.weight_matrix_at(WeightUsage.Forward, i),
                grad=self.gradient_matrix_at(i),
            )

    def parameters(self) -> Iterator[ParameterBlock]:
        for _, block in self.named_parameters():
            yield block

    # ------------------------------------------------------------------
    # Boundary validation
    # ------------------------------------------------------------------
    def _accepted_output_rows(self) -> tuple[int, ...]:
        return tuple(sorted({self.output_width, self.padded_output_width}))

    def _check_input(self, input: IMatrix) -> int:
        if input.layout is not MatrixLayout.ColumnMajor:
            raise LayoutMismatchError(
                "input.layout", MatrixLayout.ColumnMajor, input.layout
            )
        if input.n_rows != self.input_width:
            raise DimensionMismatchError("input.n_rows", self.input_width, input.n_rows)
        return input.n_cols

    def _check_output(self, name: str, output: IMatrix, batch_size: int) -> None:
        accepted = self._accepted_output_rows()
        if output.n_rows not in accepted:
            expected = accepted[0] if len(accepted) == 1 else f"one of {accepted}"
            raise DimensionMismatchError(f"{name}.n_rows", expected, output.n_rows)
        if output.n_cols != batch_size:
            raise DimensionMismatchError(f"{name}.n_cols", batch_size, output.n_cols)

    def _check_inference_buffers(
        self, input: IMatrix, output: IMatrix, output_layout: MatrixLayout
    ) -> int:
        """
        Validate the buffers of an inference call before any compute.

        Returns
        -------
        int
            The batch size.
        """
        if not isinstance(output_layout, MatrixLayout):
            raise TypeError(f"output_layout must be a MatrixLayout, got {output_layout!r}")
        batch_size = self._check_input(input)
        if output.layout is not output_layout:
            raise LayoutMismatchError("output.layout", output_layout, output.layout)
        self._check_output("output", output, batch_size)
        return batch_size

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def inference(
        self, stream: Optional[StreamLike], input: IMatrix, output: IMatrix
    ) -> None:
        """
        Evaluate the network and deliver results at the output's precision.

        The reduced-precision path writes into a temporary matrix of the
        network's storage type, which is then cast into `output` (typically
        float32). `output` may be in either layout.
        """
        batch_size = self._check_input(input)
        self._check_output("output", output, batch_size)
        tmp = Matrix(output.n_rows, output.n_cols, dtype=self._dtype, layout=output.layout)
        self.inference_mixed_precision(stream, input, tmp, output_layout=output.layout)
        output.copy_from_numpy(tmp.view())

    @abstractmethod
    def inference_mixed_precision(
        self,
        stream: Optional[StreamLike],
        input: IMatrix,
        output: IMatrix,
        output_layout: MatrixLayout = MatrixLayout.ColumnMajor,
    ) -> None: ...

    @abstractmethod
    def forward(
        self,
        stream: Optional[StreamLike],
        input: IMatrix,
        output: Optional[IMatrix] = None,
        *,
        weight_usage: WeightUsage = WeightUsage.Forward,
        prepare_input_gradients: bool = False,
    ) -> None: ...

    @abstractmethod
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
    ) -> None: ...

    # ------------------------------------------------------------------
    # Forward state
    # ------------------------------------------------------------------
    @property
    def has_forward_state(self) -> bool:
        return self._forward_ctx is not None

    def clear_forward_state(self) -> None:
        """Drop the activations cached by the last forward pass."""
        self._forward_ctx = None

    def forward_activations(self) -> tuple[np.ndarray, ...]:
        """
        Return the layer outputs cached by the last forward pass.

        Raises
        ------
        ForwardContextError
            If no forward pass has been cached.
        """
        return tuple(self._require_forward_ctx().activations[1:])

    def _require_forward_ctx(self) -> ForwardContext:
        if self._forward_ctx is None:
            raise ForwardContextError(
                f"{type(self).__name__}.backward requires a prior forward pass"
            )
        return self._forward_ctx

    # ------------------------------------------------------------------
    # Serialization hooks
    # ------------------------------------------------------------------
    @abstractmethod
    def get_config(self) -> Dict[str, Any]:
        """
        Return a configuration document the factory accepts.
        """
        ...

    @classmethod
    @abstractmethod
    def validate_config(cls, cfg: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Validate a configuration document and return constructor arguments.

        Raises
        ------
        ConfigurationError
            If any key is missing or invalid.
        """
        ...

    @classmethod
    def from_config(
        cls,
        cfg: Mapping[str, Any],
        *,
        seed: int = DEFAULT_SEED,
        workspace_pool: Optional[WorkspacePool] = None,
    ) -> Self:
        """
        Validate `cfg` and construct an initialized network from it.

        Validation completes before any memory is allocated.
        """
        kwargs = cls.validate_config(cfg)
        return cls(**kwargs, seed=seed, workspace_pool=workspace_pool)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(input_width={self.input_width}, "
            f"output_width={self.output_width}, precision={self.precision!r})"
        )
