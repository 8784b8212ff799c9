from .gemm import fused_matmul, gemm

__all__ = [
    fused_matmul.__name__,
    gemm.__name__,
]
