"""
Elementwise activation functions used by network layers.

Each activation is an `ActivationFn` subclass with two static methods:

- `forward(z)` maps pre-activations to activations,
- `backward(z, y, grad)` maps the gradient w.r.t. the activation to the
  gradient w.r.t. the pre-activation, given the cached pre-activation `z`
  and activation `y` from the forward pass.

Activations are registered by name in a case-insensitive registry so that
network configurations can refer to them as strings ("ReLU", "None", ...).

Notes
-----
- Inputs may arrive in any float dtype. Evaluation happens in float32 and
  results are returned as float32; callers cast to their storage type.
- All activations are parameter-free.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, ClassVar, Dict, Type

import numpy as np

_F32 = np.float32


class ActivationFn(ABC):
    """
    Abstract base class for elementwise activations.

    Attributes
    ----------
    name : str
        Canonical spelling of the activation, as written in configurations.
    """

    name: ClassVar[str] = ""

    @staticmethod
    @abstractmethod
    def forward(z: np.ndarray) -> np.ndarray:
        """
        Apply the activation elementwise.

        Parameters
        ----------
        z : np.ndarray
            Pre-activation values.

        Returns
        -------
        np.ndarray
            Activation values in float32.
        """
        ...

    @staticmethod
    @abstractmethod
    def backward(z: np.ndarray, y: np.ndarray, grad: np.ndarray) -> np.ndarray:
        """
        Propagate a gradient through the activation.

        Parameters
        ----------
        z : np.ndarray
            Pre-activation values cached by the forward pass.
        y : np.ndarray
            Activation values cached by the forward pass.
        grad : np.ndarray
            Gradient of the loss w.r.t. the activation output.

        Returns
        -------
        np.ndarray
            Gradient of the loss w.r.t. the pre-activation, in float32.
        """
        ...


_ACTIVATIONS: Dict[str, Type[ActivationFn]] = {}


def register_activation(
    name: str,
) -> Callable[[Type[ActivationFn]], Type[ActivationFn]]:
    """
    Decorator to register an activation under a case-insensitive name.
    """

    def deco(cls: Type[ActivationFn]) -> Type[ActivationFn]:
        key = name.lower()
        if key in _ACTIVATIONS:
            raise ValueError(f"Activation already registered: {name!r}")
        cls.name = name
        _ACTIVATIONS[key] = cls
        return cls

    return deco


def get_activation(name: str) -> Type[ActivationFn]:
    """
    Look up an activation by name (case-insensitive).

    Raises
    ------
    ValueError
        If no activation is registered under `name`.
    """
    try:
        return _ACTIVATIONS[str(name).lower()]
    except KeyError as e:
        raise ValueError(
            f"Unsupported activation: {name!r}. Available: {', '.join(available_activations())}"
        ) from e


def available_activations() -> tuple[str, ...]:
    """Return the canonical names of all registered activations."""
    return tuple(sorted(cls.name for cls in _ACTIVATIONS.values()))


def _f32(x: np.ndarray) -> np.ndarray:
    return np.asarray(x, dtype=_F32)


@register_activation("None")
class IdentityFn(ActivationFn):
    @staticmethod
    def forward(z):
        return _f32(z).copy()

    @staticmethod
    def backward(z, y, grad):
        return _f32(grad).copy()


@register_activation("ReLU")
class ReLUFn(ActivationFn):
    """``max(0, z)``."""

    @staticmethod
    def forward(z):
        return np.maximum(_f32(z), _F32(0.0))

    @staticmethod
    def backward(z, y, grad):
        return np.where(_f32(z) > 0, _f32(grad), _F32(0.0))


@register_activation("LeakyReLU")
class LeakyReLUFn(ActivationFn):
    """``z`` for positive inputs, ``0.01 * z`` otherwise."""

    alpha: ClassVar[float] = 0.01

    @staticmethod
    def forward(z):
        z = _f32(z)
        return np.where(z > 0, z, _F32(LeakyReLUFn.alpha) * z)

    @staticmethod
    def backward(z, y, grad):
        g = _f32(grad)
        return np.where(_f32(z) > 0, g, _F32(LeakyReLUFn.alpha) * g)


@register_activation("Exponential")
class ExponentialFn(ActivationFn):
    """``exp(z)``; the derivative equals the output."""

    @staticmethod
    def forward(z):
        return np.exp(_f32(z))

    @staticmethod
    def backward(z, y, grad):
        return _f32(grad) * _f32(y)


@register_activation("Sine")
class SineFn(ActivationFn):
    @staticmethod
    def forward(z):
        return np.sin(_f32(z))

    @staticmethod
    def backward(z, y, grad):
        return _f32(grad) * np.cos(_f32(z))


@register_activation("Sigmoid")
class SigmoidFn(ActivationFn):
    """``1 / (1 + exp(-z))``."""

    @staticmethod
    def forward(z):
        return _F32(1.0) / (_F32(1.0) + np.exp(-_f32(z)))

    @staticmethod
    def backward(z, y, grad):
        s = SigmoidFn.forward(z)
        return _f32(grad) * s * (_F32(1.0) - s)


@register_activation("Squareplus")
class SquareplusFn(ActivationFn):
    """``0.5 * (z + sqrt(z^2 + 4))``, a smooth approximation of ReLU."""

    @staticmethod
    def forward(z):
        z = _f32(z)
        return _F32(0.5) * (z + np.sqrt(z * z + _F32(4.0)))

    @staticmethod
    def backward(z, y, grad):
        z = _f32(z)
        return _f32(grad) * _F32(0.5) * (_F32(1.0) + z / np.sqrt(z * z + _F32(4.0)))


@register_activation("Softplus")
class SoftplusFn(ActivationFn):
    """``log(1 + exp(z))``; the derivative is the sigmoid of `z`."""

    @staticmethod
    def forward(z):
        return np.logaddexp(_F32(0.0), _f32(z)).astype(_F32, copy=False)

    @staticmethod
    def backward(z, y, grad):
        return _f32(grad) * SigmoidFn.forward(z)


@register_activation("Tanh")
class TanhFn(ActivationFn):
    @staticmethod
    def forward(z):
        return np.tanh(_f32(z))

    @staticmethod
    def backward(z, y, grad):
        t = np.tanh(_f32(z))
        return _f32(grad) * (_F32(1.0) - t * t)
