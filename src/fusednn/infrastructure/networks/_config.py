"""
Configuration document helpers.

Network configurations are plain JSON-compatible dictionaries, e.g.

    {
      "otype": "FullyFusedMLP",
      "n_input_dims": 3,
      "n_output_dims": 1,
      "n_neurons": 64,
      "n_hidden_layers": 2,
      "activation": "ReLU",
      "output_activation": "None"
    }

The helpers here read and type-check individual keys and turn every problem
into a `ConfigurationError` naming the offending key. Unknown keys are not
errors; they are reported with a `UserWarning` and ignored.
"""

from __future__ import annotations

import json
import warnings
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional

from ...domain._errors import ConfigurationError

_MISSING = object()


def load_config(config: Any) -> Dict[str, Any]:
    """
    Normalize a configuration document to a dictionary.

    Parameters
    ----------
    config : Mapping | str
        A mapping, or a JSON string encoding a mapping.

    Returns
    -------
    Dict[str, Any]
        A shallow copy of the document.

    Raises
    ------
    ConfigurationError
        If the document is not a mapping or the JSON cannot be parsed.
    """
    if isinstance(config, str):
        try:
            config = json.loads(config)
        except json.JSONDecodeError as e:
            raise ConfigurationError("<document>", f"invalid JSON ({e.msg})") from e
    if not isinstance(config, Mapping):
        raise ConfigurationError(
            "<document>", f"expected a mapping, got {type(config).__name__}"
        )
    for key in config:
        if not isinstance(key, str):
            raise ConfigurationError(str(key), "configuration keys must be strings")
    return dict(config)


def get_int(
    cfg: Mapping[str, Any],
    key: str,
    *,
    default: Any = _MISSING,
    minimum: Optional[int] = None,
) -> int:
    """
    Read an integer key.

    Booleans are rejected even though they are `int` subclasses. Floats
    with an integral value (e.g. ``64.0`` from a JSON number) are accepted.
    """
    if key not in cfg:
        if default is _MISSING:
            raise ConfigurationError(key, "missing required key")
        return default
    value = cfg[key]
    if isinstance(value, bool):
        raise ConfigurationError(key, f"expected an integer, got {value!r}")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise ConfigurationError(
            key, f"expected an integer, got {type(value).__name__} {value!r}"
        )
    if minimum is not None and value < minimum:
        raise ConfigurationError(key, f"must be >= {minimum}, got {value}")
    return value


def get_str(cfg: Mapping[str, Any], key: str, *, default: Any = _MISSING) -> str:
    """Read a string key."""
    if key not in cfg:
        if default is _MISSING:
            raise ConfigurationError(key, "missing required key")
        return default
    value = cfg[key]
    if not isinstance(value, str):
        raise ConfigurationError(
            key, f"expected a string, got {type(value).__name__} {value!r}"
        )
    return value


def warn_unknown_keys(
    cfg: Mapping[str, Any], known: Iterable[str], otype: str
) -> None:
    """Emit one `UserWarning` listing keys the architecture does not use."""
    unknown = sorted(set(cfg) - set(known))
    if unknown:
        warnings.warn(
            f"{otype} ignores unknown configuration keys: {', '.join(unknown)}",
            UserWarning,
            stacklevel=3,
        )
