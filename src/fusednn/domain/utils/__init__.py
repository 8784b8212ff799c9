from ._weight_initialization import IWeightInitializer

__all__ = [
    IWeightInitializer.__name__,
]
