"""
Backend-agnostic contracts of fusednn: layout and usage tags, protocols and
the error taxonomy.
"""

from ._errors import (
    AcceleratorFailure,
    ConfigurationError,
    DimensionMismatchError,
    ForwardContextError,
    LayoutMismatchError,
)
from ._matrix_layout import MatrixLayout
from ._weight_usage import WeightUsage
from ._matrix import IMatrix
from ._stream import StreamLike
from ._differentiable import IDifferentiableModule
from ._inference import IMixedPrecisionInference
from ._network import INetwork
from ._workspace import IWorkspacePool
from ._optimizers import IOptimizer, IParameterBlock
from .utils import IWeightInitializer

__all__ = [
    AcceleratorFailure.__name__,
    ConfigurationError.__name__,
    DimensionMismatchError.__name__,
    ForwardContextError.__name__,
    LayoutMismatchError.__name__,
    MatrixLayout.__name__,
    WeightUsage.__name__,
    IMatrix.__name__,
    StreamLike.__name__,
    IDifferentiableModule.__name__,
    IMixedPrecisionInference.__name__,
    INetwork.__name__,
    IWorkspacePool.__name__,
    IOptimizer.__name__,
    IParameterBlock.__name__,
    IWeightInitializer.__name__,
]
