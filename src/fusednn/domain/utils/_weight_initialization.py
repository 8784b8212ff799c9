"""
Weight initialization contracts and shared fan arithmetic.

Networks fill each (fan_out, fan_in) weight matrix in evaluation order by
calling an initializer with the matrix and one shared random generator, so
the result depends only on the seed and the layer shapes. The registry of
named strategies lives in the infrastructure layer.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IWeightInitializer(Protocol):
    """
    A named strategy that fills one weight matrix in-place.

    Notes
    -----
    - `weight` is a (fan_out, fan_in) matrix; it is mutated and returned.
    - All randomness comes from `rng`.
    """

    name: str

    def __call__(self, weight: Any, rng: Any, scale: float = 1.0) -> Any: ...


def _calculate_fan_in_and_fan_out(shape: tuple[int, ...]) -> tuple[int, int]:
    """
    Compute both fan-in and fan-out values for a weight matrix shape.

    Network weight matrices are stored as (fan_out, fan_in): one row per
    output neuron, one column per input.

    Parameters
    ----------
    shape:
        Shape of the weight matrix.

    Returns
    -------
    tuple[int, int]
        A tuple of (fan_in, fan_out).
    """
    if len(shape) == 0:
        return 1, 1
    if len(shape) == 1:
        return shape[0], shape[0]
    if len(shape) != 2:
        raise ValueError(f"weight matrices must be 2D, got shape={shape}")
    fan_out, fan_in = shape
    return int(fan_in), int(fan_out)
