"""
Concrete, numpy-backed implementations of the fusednn contracts.
"""
