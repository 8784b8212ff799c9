"""
Network- and execution-related exceptions for fusednn.

This module defines the error taxonomy shared by every network architecture,
the factory, and the workspace pool:

- `ConfigurationError`: the factory rejected a configuration document.
- `DimensionMismatchError`: a matrix handed to a network disagrees with the
  network's declared dimensions.
- `LayoutMismatchError`: a matrix carries a different memory layout than the
  one the call requires.
- `AcceleratorFailure`: the compute/memory backend failed (e.g. out of
  memory). Fatal to the current operation.
- `ForwardContextError`: a backward pass was requested without a matching
  cached forward pass.

Configuration and dimension errors are caller-recoverable and carry enough
context (key name, expected vs actual) to act on. None of them are retried.
"""

from __future__ import annotations

from typing import Any


class ConfigurationError(ValueError):
    """
    Raised when a network configuration document is invalid or incomplete.

    The factory raises this before any parameter or workspace memory is
    allocated, so a failed construction never leaves a partial instance.

    Attributes
    ----------
    key : str
        The offending configuration key (e.g. "otype", "n_neurons"), or
        "<document>" when the document as a whole is malformed.
    reason : str
        Human-readable explanation of what is wrong with the key.
    """

    def __init__(self, key: str, reason: str) -> None:
        """
        Initialize the ConfigurationError.

        Parameters
        ----------
        key : str
            The configuration key that failed validation.
        reason : str
            Why the key was rejected.
        """
        super().__init__(f"Invalid network configuration at '{key}': {reason}")
        self.key = key
        self.reason = reason


class DimensionMismatchError(ValueError):
    """
    Raised when a matrix shape disagrees with a network's declared dimensions.

    Attributes
    ----------
    name : str
        Name of the offending buffer or dimension (e.g. "input.n_rows").
    expected : Any
        The expected value (an int, or a collection of accepted values).
    actual : Any
        The value that was supplied.
    """

    def __init__(self, name: str, expected: Any, actual: Any) -> None:
        """
        Initialize the DimensionMismatchError.

        Parameters
        ----------
        name : str
            Name of the offending buffer or dimension.
        expected : Any
            Expected value.
        actual : Any
            Supplied value.
        """
        super().__init__(
            f"Dimension mismatch for {name}: expected {expected}, got {actual}."
        )
        self.name = name
        self.expected = expected
        self.actual = actual


class LayoutMismatchError(DimensionMismatchError):
    """
    Raised when a matrix carries a memory layout other than the required one.

    Layout is part of the shape contract at the network boundary, hence the
    subclass relationship with `DimensionMismatchError`.
    """


class AcceleratorFailure(RuntimeError):
    """
    Raised when the underlying compute or memory subsystem fails.

    Examples are an exhausted workspace pool or a host allocation failure
    during a matrix product. The failure terminates the current operation and
    is never retried.

    Attributes
    ----------
    op : str
        The operation that failed (e.g. "gemm", "workspace.acquire").
    reason : str
        Description of the failure.
    """

    def __init__(self, op: str, reason: str) -> None:
        super().__init__(f"{op} failed: {reason}")
        self.op = op
        self.reason = reason


class ForwardContextError(RuntimeError):
    """
    Raised when `backward` runs without a cached forward pass.
    """
