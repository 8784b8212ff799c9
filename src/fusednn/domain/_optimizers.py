"""
Domain-level optimizer contracts for fusednn.

Networks expose their trainable state as parameter blocks: one weight
matrix plus the gradient the last backward pass wrote for it, both views
into the network's flat buffers. Optimizers consume those blocks and
update the values in-place.

Notes
-----
- Contracts are structural and carry no NumPy dependency; any array type
  supporting in-place arithmetic satisfies them.
- Gradients are overwritten by each backward pass, not accumulated, so
  `zero_grad` is only needed when a step is taken without a fresh backward.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable


@runtime_checkable
class IParameterBlock(Protocol):
    """
    One trainable weight matrix and its gradient.

    Attributes
    ----------
    name : str
        Qualified name such as "layers.0.weight".
    value : array
        Writable view of the weights.
    grad : array
        Writable view of the gradient, same shape as `value`.
    """

    name: str
    value: Any
    grad: Any

    def zero_grad(self) -> None: ...


@runtime_checkable
class IOptimizer(Protocol):
    """
    In-place update rule over a fixed set of parameter blocks.

    `step()` reads each block's `grad` and writes its `value`; `zero_grad()`
    clears every managed gradient.
    """

    params: Sequence[IParameterBlock]

    def step(self) -> None: ...

    def zero_grad(self) -> None: ...
