"""
Xavier/Glorot weight initializers.

Implemented variants
--------------------
- ``xavier_uniform`` (alias ``glorot_uniform``):
    ``U(-bound, +bound)`` with ``bound = scale * sqrt(6 / (fan_in + fan_out))``.
    This is what every built-in network uses by default.
- ``xavier`` (aliases ``xavier_normal``, ``glorot_normal``):
    Normal initialization with
    ``std = scale * sqrt(2 / (fan_in + fan_out))``.

Notes
-----
- Fan-in and fan-out are computed from the (fan_out, fan_in) weight matrix
  shape via ``_calculate_fan_in_and_fan_out``.
- Values are drawn in float64 from the caller's generator and cast into the
  weight's dtype, so results depend only on the seed and the layer shapes.
"""

import math

import numpy as np

from ._base import WeightInitializer
from ....domain.utils._weight_initialization import _calculate_fan_in_and_fan_out


def _fans(weight: np.ndarray) -> tuple[int, int]:
    fan_in, fan_out = _calculate_fan_in_and_fan_out(tuple(weight.shape))
    return max(1, int(fan_in)), max(1, int(fan_out))


@WeightInitializer.register_initializer("xavier_uniform", aliases=("glorot_uniform",))
def xavier_uniform(
    weight: np.ndarray, rng: np.random.Generator, scale: float = 1.0
) -> np.ndarray:
    """
    Apply Xavier (Glorot) uniform initialization in-place.

    Parameters
    ----------
    weight:
        The (fan_out, fan_in) matrix to initialize.
    rng:
        Random generator to draw from.
    scale:
        Multiplier applied to the distribution bound.

    Returns
    -------
    np.ndarray
        The initialized matrix (same object).
    """
    fan_in, fan_out = _fans(weight)
    bound = float(scale) * math.sqrt(6.0 / float(fan_in + fan_out))
    weight[...] = rng.uniform(-bound, bound, size=weight.shape).astype(
        weight.dtype, copy=False
    )
    return weight


@WeightInitializer.register_initializer("xavier", aliases=("xavier_normal", "glorot_normal"))
def xavier(
    weight: np.ndarray, rng: np.random.Generator, scale: float = 1.0
) -> np.ndarray:
    """
    Apply Xavier (Glorot) normal initialization in-place.
    """
    fan_in, fan_out = _fans(weight)
    std = float(scale) * math.sqrt(2.0 / float(fan_in + fan_out))
    weight[...] = (rng.standard_normal(size=weight.shape) * std).astype(
        weight.dtype, copy=False
    )
    return weight
