"""
Named weight initialization strategies.

Strategies are plain functions ``(weight, rng, scale=1.0) -> weight`` that
fill a (fan_out, fan_in) numpy matrix in-place from the caller's
`numpy.random.Generator`. They are registered under a case-insensitive name
(plus optional aliases), and `WeightInitializer(name)` binds one of them:

    @WeightInitializer.register_initializer("xavier_uniform", aliases=("glorot_uniform",))
    def xavier_uniform(weight, rng, scale=1.0):
        ...

    WeightInitializer("Glorot_Uniform")(weight, rng)

Registration is all-or-nothing: if any of the requested names is taken and
`overwrite` is False, nothing is registered.
"""

from __future__ import annotations

from typing import Callable, ClassVar, Dict, Iterable, TypeVar

import numpy as np

InitializerFn = Callable[..., np.ndarray]
F = TypeVar("F", bound=InitializerFn)


class WeightInitializer:
    """
    A registered initialization strategy, bound by name.

    Parameters
    ----------
    initializer_name : str
        Name or alias of a registered strategy (case-insensitive).

    Attributes
    ----------
    name : str
        Canonical name of the bound strategy.

    Raises
    ------
    ValueError
        If no strategy is registered under `initializer_name`.
    """

    _strategies: ClassVar[Dict[str, InitializerFn]] = {}
    _canonical: ClassVar[Dict[str, str]] = {}

    def __init__(self, initializer_name: str) -> None:
        key = str(initializer_name).lower()
        if key not in self._strategies:
            available = ", ".join(self.available()) or "<none>"
            raise ValueError(
                f"Unsupported initializer name: {initializer_name!r}. "
                f"Available: {available}"
            )
        self._fn = self._strategies[key]
        self.name = self._canonical[key]

    @classmethod
    def register_initializer(
        cls,
        name: str,
        *,
        aliases: Iterable[str] = (),
        overwrite: bool = False,
    ) -> Callable[[F], F]:
        """
        Decorator registering a strategy under `name` and `aliases`.

        Raises
        ------
        ValueError
            If a name is empty, or already taken and `overwrite` is False.
        """
        tags = (name, *aliases)
        if not all(isinstance(t, str) and t for t in tags):
            raise ValueError("Initializer names must be non-empty strings")

        def decorator(fn: F) -> F:
            if not overwrite:
                taken = [t for t in tags if t.lower() in cls._strategies]
                if taken:
                    raise ValueError(
                        f"Initializer already registered: {', '.join(map(repr, taken))}"
                    )
            for t in tags:
                cls._strategies[t.lower()] = fn
                cls._canonical[t.lower()] = name
            return fn

        return decorator

    @classmethod
    def unregister(cls, name: str) -> None:
        """Remove a strategy together with all of its aliases."""
        key = name.lower()
        canonical = cls._canonical.get(key)
        if canonical is None:
            raise KeyError(name)
        for k in [k for k, c in cls._canonical.items() if c == canonical]:
            del cls._strategies[k]
            del cls._canonical[k]

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return the canonical names of registered strategies (sorted)."""
        return tuple(sorted(set(cls._canonical.values())))

    @classmethod
    def get(cls, name: str) -> InitializerFn:
        """Return the strategy function registered under `name`."""
        return cls._strategies[name.lower()]

    def __call__(
        self, weight: np.ndarray, rng: np.random.Generator, scale: float = 1.0
    ) -> np.ndarray:
        return self._fn(weight, rng, scale)

    def __repr__(self) -> str:
        return f"WeightInitializer({self.name!r})"
