import unittest

import numpy as np

from fusednn.domain._errors import AcceleratorFailure, DimensionMismatchError
from fusednn.infrastructure._stream import Stream
from fusednn.infrastructure.ops import fused_matmul, gemm
from fusednn.infrastructure.workspace import WorkspacePool


def _rand(shape, seed, dtype=np.float16):
    return np.random.default_rng(seed).standard_normal(shape).astype(dtype)


class TestFusedMatmul(unittest.TestCase):
    def test_matches_float32_reference(self):
        a = _rand((5, 7), 0)
        b = _rand((7, 3), 1)
        out = fused_matmul(a, b, np.float16)
        ref = a.astype(np.float32) @ b.astype(np.float32)
        self.assertEqual(out.dtype, np.float16)
        self.assertEqual(out.shape, (5, 3))
        np.testing.assert_array_equal(out, ref.astype(np.float16))

    def test_inner_dimension_mismatch(self):
        with self.assertRaises(DimensionMismatchError) as cm:
            fused_matmul(np.zeros((2, 3)), np.zeros((4, 2)), np.float32)
        self.assertEqual(cm.exception.expected, 3)

    def test_requires_2d(self):
        with self.assertRaises(DimensionMismatchError):
            fused_matmul(np.zeros(3), np.zeros((3, 2)), np.float32)

    def test_requires_float_output(self):
        with self.assertRaises(TypeError):
            fused_matmul(np.zeros((2, 2)), np.zeros((2, 2)), np.int32)


class TestGemm(unittest.TestCase):
    def setUp(self):
        self.pool = WorkspacePool()
        self.stream = Stream()

    def test_matches_fused_path(self):
        a = _rand((16, 8), 2)
        b = _rand((8, 12), 3)
        out = gemm(self.stream, a, b, np.float16, self.pool)
        np.testing.assert_allclose(
            out.astype(np.float32),
            fused_matmul(a, b, np.float32),
            rtol=1e-2,
            atol=1e-2,
        )

    def test_attributes_accumulator_to_stream(self):
        a = _rand((4, 6), 4, np.float32)
        b = _rand((6, 10), 5, np.float32)
        gemm(self.stream, a, b, np.float32, self.pool)
        self.assertEqual(self.pool.streams(), (self.stream.handle,))
        self.assertEqual(self.pool.bytes_in_use(self.stream), 4 * 10 * 4)

    def test_result_survives_release(self):
        a = _rand((3, 3), 6, np.float32)
        b = _rand((3, 3), 7, np.float32)
        out = gemm(self.stream, a, b, np.float32, self.pool)
        expected = out.copy()
        self.pool.release(self.stream)
        # reusing the stream writes new scratch; the earlier result is untouched
        gemm(self.stream, np.ones((3, 3), np.float32), b, np.float32, self.pool)
        np.testing.assert_array_equal(out, expected)

    def test_transposed_operands(self):
        a = _rand((6, 4), 8, np.float32)
        b = _rand((6, 5), 9, np.float32)
        out = gemm(self.stream, a.T, b, np.float32, self.pool)
        np.testing.assert_allclose(out, a.T @ b, rtol=1e-5, atol=1e-6)

    def test_shape_error_allocates_nothing(self):
        with self.assertRaises(DimensionMismatchError):
            gemm(self.stream, np.zeros((2, 3)), np.zeros((2, 3)), np.float32, self.pool)
        self.assertEqual(self.pool.streams(), ())

    def test_capacity_exhaustion(self):
        pool = WorkspacePool(capacity_bytes=16)
        with self.assertRaises(AcceleratorFailure):
            gemm(self.stream, np.zeros((4, 4)), np.zeros((4, 4)), np.float32, pool)


if __name__ == "__main__":
    unittest.main()
