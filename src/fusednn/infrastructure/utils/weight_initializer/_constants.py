"""
Constant weight initializers.

Provided initializers
---------------------
- ``zeros``:
    Set every weight to zero.
- ``ones``:
    Set every weight to ``scale``.

These are mostly useful for tests and for deterministic network setups.
"""

import numpy as np

from ._base import WeightInitializer


@WeightInitializer.register_initializer("zeros")
def zeros(weight: np.ndarray, rng: np.random.Generator, scale: float = 1.0) -> np.ndarray:
    """
    Fill a weight matrix with zeros. `rng` and `scale` are unused.
    """
    weight[...] = 0
    return weight


@WeightInitializer.register_initializer("ones")
def ones(weight: np.ndarray, rng: np.random.Generator, scale: float = 1.0) -> np.ndarray:
    """
    Fill a weight matrix with the constant `scale`. `rng` is unused.
    """
    weight[...] = scale
    return weight
