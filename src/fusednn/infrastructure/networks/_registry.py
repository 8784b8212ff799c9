"""
Network registry and factory.

Architectures register themselves under an `otype` tag with
`@register_network(...)`. The factory `create_network` turns a configuration
document into a network by looking the tag up (case-insensitively) and
invoking the registered builder:

    {"otype": "FullyFusedMLP", "n_input_dims": 3, "n_output_dims": 1, ...}

A builder is any class or object exposing

- ``validate_config(cfg) -> dict``: checks the whole document and raises
  `ConfigurationError` on the first problem, and
- ``from_config(cfg, *, seed, workspace_pool)``: validates, then constructs.

Construction is all-or-nothing: unknown tags and invalid hyperparameters are
rejected before any parameter or workspace memory is allocated.

`NetworkRegistry` instances are independent. The module-level registry is
what `register_network` and `create_network` use by default; tests can pass
an isolated registry instead.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Protocol

from ...domain._errors import ConfigurationError
from ..workspace._pool import WorkspacePool
from ._config import load_config

logger = logging.getLogger(__name__)


class NetworkBuilder(Protocol):
    """Structural contract of registry entries."""

    def validate_config(self, cfg: Mapping[str, Any]) -> Dict[str, Any]: ...

    def from_config(
        self,
        cfg: Mapping[str, Any],
        *,
        seed: int = ...,
        workspace_pool: Optional[WorkspacePool] = ...,
    ) -> Any: ...


class NetworkRegistry:
    """
    Case-insensitive mapping from `otype` tags to network builders.

    Notes
    -----
    - Each builder has one canonical name plus optional aliases.
    - Registering an existing tag raises unless `overwrite=True`.
    """

    def __init__(self) -> None:
        self._builders: Dict[str, Any] = {}
        self._canonical: Dict[str, str] = {}

    def register(
        self,
        name: Optional[str] = None,
        *,
        aliases: Iterable[str] = (),
        overwrite: bool = False,
    ) -> Callable[[Any], Any]:
        """
        Decorator registering a builder under `name` (default: its class name).
        """

        def deco(builder: Any) -> Any:
            canonical = name or builder.__name__
            tags = (canonical, *aliases)
            # all-or-nothing: reject before touching the tables
            if not overwrite:
                taken = [tag for tag in tags if tag.lower() in self._builders]
                if taken:
                    raise ValueError(
                        f"Network type already registered: {', '.join(map(repr, taken))}"
                    )
            for tag in tags:
                key = tag.lower()
                self._builders[key] = builder
                self._canonical[key] = canonical
            return builder

        return deco

    def resolve(self, otype: Any) -> Any:
        """
        Return the builder registered for `otype`.

        Raises
        ------
        ConfigurationError
            If `otype` is not a string or names no registered architecture.
        """
        if not isinstance(otype, str):
            raise ConfigurationError(
                "otype", f"expected a string, got {type(otype).__name__} {otype!r}"
            )
        try:
            return self._builders[otype.lower()]
        except KeyError:
            available = ", ".join(self.available()) or "<none>"
            raise ConfigurationError(
                "otype", f"unknown network type {otype!r}. Available: {available}"
            ) from None

    def available(self) -> tuple[str, ...]:
        """Return the canonical names of registered architectures (sorted)."""
        return tuple(sorted(set(self._canonical.values())))

    def __contains__(self, otype: object) -> bool:
        return isinstance(otype, str) and otype.lower() in self._builders

    def validate(self, config: Any) -> Dict[str, Any]:
        """
        Validate a configuration document without constructing anything.
        """
        doc = load_config(config)
        return self._builder_for(doc).validate_config(doc)

    def create(
        self,
        config: Any,
        *,
        seed: int = 1337,
        workspace_pool: Optional[WorkspacePool] = None,
    ) -> Any:
        """
        Construct a network from a configuration document.

        See `create_network`.
        """
        doc = load_config(config)
        builder = self._builder_for(doc)
        network = builder.from_config(doc, seed=seed, workspace_pool=workspace_pool)
        logger.debug("factory built %r from otype=%r", network, doc["otype"])
        return network

    def _builder_for(self, doc: Mapping[str, Any]) -> Any:
        if "otype" not in doc:
            raise ConfigurationError("otype", "missing required key")
        return self.resolve(doc["otype"])


_DEFAULT_REGISTRY = NetworkRegistry()


def default_network_registry() -> NetworkRegistry:
    """Return the registry used when none is passed explicitly."""
    return _DEFAULT_REGISTRY


def register_network(
    name: Optional[str] = None,
    *,
    aliases: Iterable[str] = (),
    overwrite: bool = False,
) -> Callable[[Any], Any]:
    """
    Decorator to register a network builder in the default registry.
    """
    return _DEFAULT_REGISTRY.register(name, aliases=aliases, overwrite=overwrite)


def create_network(
    config: Any,
    *,
    seed: int = 1337,
    workspace_pool: Optional[WorkspacePool] = None,
    registry: Optional[NetworkRegistry] = None,
) -> Any:
    """
    Construct a network from a configuration document.

    Parameters
    ----------
    config : Mapping | str
        Configuration mapping, or a JSON string encoding one. Must contain
        an `otype` naming a registered architecture.
    seed : int
        Seed for weight initialization.
    workspace_pool : Optional[WorkspacePool]
        Pool the network's GEMM paths draw scratch from. Defaults to the
        process-wide pool.
    registry : Optional[NetworkRegistry]
        Registry to resolve `otype` in. Defaults to the module registry.

    Returns
    -------
    Network
        A fully initialized network owned by the caller.

    Raises
    ------
    ConfigurationError
        If the document is malformed, `otype` is missing or unknown, or a
        hyperparameter is missing or invalid. Nothing is allocated.
    """
    target = _DEFAULT_REGISTRY if registry is None else registry
    return target.create(config, seed=seed, workspace_pool=workspace_pool)
