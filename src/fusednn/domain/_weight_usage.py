"""
Weight usage tags.

`WeightUsage` tells a network which execution intent a call serves. Concrete
networks use it to select the parameter set that feeds their matrix products
(inference, training or backward parameters) and whether activations must be
retained for a later backward pass.

The tag is passed by value into each call. It is advisory to the concrete
implementation and never stored as persistent network state.
"""

from enum import Enum


class WeightUsage(Enum):
    """
    Execution intent of a network call.

    Attributes
    ----------
    Inference : WeightUsage
        Pure evaluation; no activations are retained.
    Forward : WeightUsage
        Training forward pass; activations are cached for backward.
    Backward : WeightUsage
        Gradient computation.
    """

    Inference = "inference"
    Forward = "forward"
    Backward = "backward"
