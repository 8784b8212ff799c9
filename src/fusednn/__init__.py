"""
fusednn: pluggable, differentiable, mixed-precision network modules.

Typical use:

    from fusednn import Matrix, Stream, create_network, free_workspace

    net = create_network({"otype": "FullyFusedMLP", "n_input_dims": 3,
                          "n_output_dims": 1, "n_neurons": 64,
                          "n_hidden_layers": 2})
    stream = Stream()
    x = Matrix(3, 128)
    y = Matrix(1, 128)
    net.inference_mixed_precision(stream, x, y)
    free_workspace(stream)
"""

from .domain import (
    AcceleratorFailure,
    ConfigurationError,
    DimensionMismatchError,
    ForwardContextError,
    IDifferentiableModule,
    IMixedPrecisionInference,
    INetwork,
    LayoutMismatchError,
    MatrixLayout,
    WeightUsage,
)
from .infrastructure._matrix import Matrix
from .infrastructure._stream import Stream
from .infrastructure.workspace import (
    WorkspacePool,
    default_workspace_pool,
    free_workspace,
)
from .infrastructure.networks import (
    CutlassMLP,
    FullyFusedMLP,
    Network,
    NetworkRegistry,
    create_network,
    register_network,
)
from .infrastructure.optimizers import SGD

__version__ = "0.1.0"

__all__ = [
    "AcceleratorFailure",
    "ConfigurationError",
    "DimensionMismatchError",
    "ForwardContextError",
    "IDifferentiableModule",
    "IMixedPrecisionInference",
    "INetwork",
    "LayoutMismatchError",
    "MatrixLayout",
    "WeightUsage",
    "Matrix",
    "Stream",
    "WorkspacePool",
    "default_workspace_pool",
    "free_workspace",
    "CutlassMLP",
    "FullyFusedMLP",
    "Network",
    "NetworkRegistry",
    "create_network",
    "register_network",
    "SGD",
]
