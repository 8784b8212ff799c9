"""
Network architectures and the factory.

Importing this package registers every built-in architecture in the default
network registry.
"""

from ._network import Network, ParameterBlock, ForwardContext
from ._mlp import MLPBase
from ._fully_fused_mlp import FullyFusedMLP
from ._cutlass_mlp import CutlassMLP
from ._auto_mlp import MLP
from ._registry import (
    NetworkRegistry,
    create_network,
    default_network_registry,
    register_network,
)

__all__ = [
    Network.__name__,
    ParameterBlock.__name__,
    ForwardContext.__name__,
    MLPBase.__name__,
    FullyFusedMLP.__name__,
    CutlassMLP.__name__,
    MLP.__name__,
    NetworkRegistry.__name__,
    create_network.__name__,
    default_network_registry.__name__,
    register_network.__name__,
]
