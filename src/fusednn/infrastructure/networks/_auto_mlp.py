"""
Generic "MLP" network type.

Configurations with ``"otype": "MLP"`` pick the fastest architecture that
supports the requested shape: `FullyFusedMLP` when its fused kernels cover
`n_neurons` and there is at least one hidden layer, `CutlassMLP` otherwise.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Type

from ..workspace._pool import WorkspacePool
from ._config import get_int
from ._cutlass_mlp import CutlassMLP
from ._fully_fused_mlp import FullyFusedMLP
from ._mlp import MLPBase
from ._network import DEFAULT_SEED
from ._registry import register_network


@register_network("MLP")
class MLP:
    """
    Builder that dispatches to `FullyFusedMLP` or `CutlassMLP`.
    """

    @staticmethod
    def select(cfg: Mapping[str, Any]) -> Type[MLPBase]:
        n_neurons = get_int(cfg, "n_neurons", default=128, minimum=1)
        n_hidden_layers = get_int(cfg, "n_hidden_layers", default=5, minimum=0)
        if FullyFusedMLP.supports_width(n_neurons) and n_hidden_layers >= 1:
            return FullyFusedMLP
        return CutlassMLP

    @classmethod
    def _concrete_config(cls, cfg: Mapping[str, Any]) -> tuple[Type[MLPBase], Dict[str, Any]]:
        target = cls.select(cfg)
        return target, {**cfg, "otype": target.otype}

    @classmethod
    def validate_config(cls, cfg: Mapping[str, Any]) -> Dict[str, Any]:
        target, doc = cls._concrete_config(cfg)
        return target.validate_config(doc)

    @classmethod
    def from_config(
        cls,
        cfg: Mapping[str, Any],
        *,
        seed: int = DEFAULT_SEED,
        workspace_pool: Optional[WorkspacePool] = None,
    ) -> MLPBase:
        target, doc = cls._concrete_config(cfg)
        return target.from_config(doc, seed=seed, workspace_pool=workspace_pool)
