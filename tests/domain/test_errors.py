import unittest

from fusednn.domain._errors import (
    AcceleratorFailure,
    ConfigurationError,
    DimensionMismatchError,
    ForwardContextError,
    LayoutMismatchError,
)
from fusednn.domain._matrix_layout import MatrixLayout


class TestConfigurationError(unittest.TestCase):
    def test_carries_key_and_reason(self):
        e = ConfigurationError("n_neurons", "must be >= 1, got 0")
        self.assertEqual(e.key, "n_neurons")
        self.assertEqual(e.reason, "must be >= 1, got 0")
        self.assertIn("n_neurons", str(e))
        self.assertIn("must be >= 1", str(e))

    def test_is_value_error(self):
        self.assertTrue(issubclass(ConfigurationError, ValueError))


class TestDimensionMismatchError(unittest.TestCase):
    def test_carries_expected_and_actual(self):
        e = DimensionMismatchError("output.n_cols", 10, 5)
        self.assertEqual(e.name, "output.n_cols")
        self.assertEqual(e.expected, 10)
        self.assertEqual(e.actual, 5)
        self.assertIn("expected 10", str(e))
        self.assertIn("got 5", str(e))

    def test_layout_mismatch_is_dimension_mismatch(self):
        e = LayoutMismatchError(
            "input.layout", MatrixLayout.ColumnMajor, MatrixLayout.RowMajor
        )
        self.assertIsInstance(e, DimensionMismatchError)
        self.assertIs(e.actual, MatrixLayout.RowMajor)


class TestRuntimeErrors(unittest.TestCase):
    def test_accelerator_failure_fields(self):
        e = AcceleratorFailure("gemm", "host allocation failed")
        self.assertIsInstance(e, RuntimeError)
        self.assertEqual(e.op, "gemm")
        self.assertIn("gemm failed", str(e))

    def test_forward_context_error_is_runtime_error(self):
        self.assertTrue(issubclass(ForwardContextError, RuntimeError))


if __name__ == "__main__":
    unittest.main()
