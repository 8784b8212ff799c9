"""
Network interface definitions.

A network is the composition of two capabilities:

- `IDifferentiableModule` (forward, backward, parameter access), and
- `IMixedPrecisionInference` (the reduced-precision inference entry point),

plus the declared input/output widths. No base/derived chain is imposed;
any object that structurally satisfies `INetwork` can be driven by callers.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol, runtime_checkable

from ._differentiable import IDifferentiableModule
from ._inference import IMixedPrecisionInference


@runtime_checkable
class INetwork(IDifferentiableModule, IMixedPrecisionInference, Protocol):
    """
    Domain-level network interface.

    Notes
    -----
    - `padded_output_width` is at least `output_width`; outputs may be
      requested at either width.
    - `get_config()` returns a document the factory accepts.
    """

    @property
    def input_width(self) -> int: ...

    @property
    def output_width(self) -> int: ...

    @property
    def padded_output_width(self) -> int: ...

    @property
    def dtype(self) -> Any: ...

    def get_config(self) -> Dict[str, Any]: ...
