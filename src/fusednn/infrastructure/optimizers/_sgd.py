"""
Stochastic Gradient Descent (SGD) optimizer implementation.

This module provides a minimal SGD optimizer that updates network parameter
blocks in-place from the gradients written by `Network.backward`.

Design notes
------------
- Optimizers operate on `ParameterBlock` objects (see
  `Network.parameters()`), each holding a weight view and its gradient view
  into the network's flat buffers.
- The update is evaluated in float32 and stored back in the parameter's
  storage type, so fp16 networks do not lose the update to fp16 arithmetic.
- Momentum, Nesterov and other SGD variants are intentionally omitted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from ..networks._network import ParameterBlock


@dataclass
class SGD:
    """
    Stochastic Gradient Descent (SGD) optimizer.

    Update rule
    -----------
    For each parameter block ``p`` with gradient ``g``:

    - If ``weight_decay > 0`` (classical L2 regularization):
        ``g <- g + weight_decay * p``
    - Parameter update:
        ``p <- p - lr * g``

    Parameters
    ----------
    params : Sequence[ParameterBlock]
        Parameter blocks to be optimized.
    lr : float, optional
        Learning rate. Must be positive. Defaults to 1e-3.
    weight_decay : float, optional
        Classical L2 weight decay coefficient (coupled). Must be non-negative.
        Defaults to 0.0.
    """

    params: Sequence[ParameterBlock]
    lr: float = 1e-3
    weight_decay: float = 0.0

    def __init__(
        self,
        params: Iterable[ParameterBlock],
        *,
        lr: float = 1e-3,
        weight_decay: float = 0.0,
    ) -> None:
        """
        Construct an SGD optimizer.

        Raises
        ------
        ValueError
            If ``lr <= 0`` or ``weight_decay < 0``.
        """
        self.params = list(params)
        self.lr = float(lr)
        self.weight_decay = float(weight_decay)

        if self.lr <= 0.0:
            raise ValueError(f"lr must be > 0, got {self.lr}")
        if self.weight_decay < 0.0:
            raise ValueError(f"weight_decay must be >= 0, got {self.weight_decay}")

    def zero_grad(self) -> None:
        """
        Clear gradients for all managed parameter blocks.
        """
        for p in self.params:
            p.zero_grad()

    def step(self) -> None:
        """
        Apply one SGD update step to all managed parameter blocks.
        """
        for p in self.params:
            w = p.value.astype(np.float32)
            g = p.grad.astype(np.float32)

            # Optional L2 weight decay (decoupled is AdamW; this is classical)
            if self.weight_decay != 0.0:
                g = g + (self.weight_decay * w)

            p.value[...] = (w - self.lr * g).astype(p.dtype, copy=False)
