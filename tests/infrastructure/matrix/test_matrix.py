import unittest

import numpy as np

from fusednn.domain._errors import DimensionMismatchError
from fusednn.domain._matrix_layout import MatrixLayout
from fusednn.infrastructure._matrix import Matrix


def _logical(rows: int, cols: int) -> np.ndarray:
    return np.arange(rows * cols, dtype=np.float32).reshape(rows, cols)


class TestMatrixLayoutMapping(unittest.TestCase):
    def test_column_major_flat_index(self):
        arr = _logical(3, 4)
        m = Matrix.from_numpy(arr, layout=MatrixLayout.ColumnMajor)
        # element (r, c) at c * n_rows + r
        np.testing.assert_array_equal(m.data, arr.T.ravel())
        self.assertEqual(m.data[2 * 3 + 1], arr[1, 2])

    def test_row_major_flat_index(self):
        arr = _logical(3, 4)
        m = Matrix.from_numpy(arr, layout=MatrixLayout.RowMajor)
        np.testing.assert_array_equal(m.data, arr.ravel())
        self.assertEqual(m.data[1 * 4 + 2], arr[1, 2])

    def test_view_shares_memory(self):
        m = Matrix(2, 3, dtype=np.float32)
        m.view()[1, 2] = 5.0
        self.assertEqual(m.data[2 * 2 + 1], 5.0)

    def test_to_numpy_is_logical_copy(self):
        arr = _logical(2, 5)
        for layout in MatrixLayout:
            with self.subTest(layout=layout.name):
                m = Matrix.from_numpy(arr, layout=layout)
                out = m.to_numpy()
                np.testing.assert_array_equal(out, arr)
                out[0, 0] = -1.0
                self.assertEqual(m.view()[0, 0], 0.0)

    def test_transposed_reinterprets_same_buffer(self):
        arr = _logical(3, 2)
        m = Matrix.from_numpy(arr, layout=MatrixLayout.ColumnMajor)
        t = m.transposed()
        self.assertEqual(t.shape, (2, 3))
        self.assertIs(t.layout, MatrixLayout.RowMajor)
        self.assertIs(t.data, m.data)
        np.testing.assert_array_equal(t.to_numpy(), arr.T)


class TestMatrixConstruction(unittest.TestCase):
    def test_defaults(self):
        m = Matrix(4, 8)
        self.assertEqual(m.dtype, np.float16)
        self.assertIs(m.layout, MatrixLayout.ColumnMajor)
        self.assertEqual(m.n_elements, 32)
        self.assertEqual(m.n_bytes, 64)
        self.assertTrue(np.all(m.data == 0))

    def test_wraps_external_buffer_without_copy(self):
        buf = np.zeros(6, dtype=np.float32)
        m = Matrix(2, 3, data=buf)
        self.assertIs(m.data, buf)

    def test_wrong_element_count_raises(self):
        with self.assertRaises(DimensionMismatchError) as cm:
            Matrix(2, 3, data=np.zeros(5, dtype=np.float32))
        self.assertEqual(cm.exception.expected, 6)
        self.assertEqual(cm.exception.actual, 5)

    def test_non_flat_buffer_raises(self):
        with self.assertRaises(DimensionMismatchError):
            Matrix(2, 3, data=np.zeros((2, 3), dtype=np.float32))

    def test_non_contiguous_buffer_raises(self):
        with self.assertRaises(DimensionMismatchError):
            Matrix(2, 3, data=np.zeros(12, dtype=np.float32)[::2])

    def test_negative_dimensions_raise(self):
        with self.assertRaises(ValueError):
            Matrix(-1, 3)

    def test_invalid_layout_raises(self):
        with self.assertRaises(ValueError):
            Matrix(2, 2, layout="cm")

    def test_empty_batch_allowed(self):
        m = Matrix(3, 0)
        self.assertEqual(m.shape, (3, 0))
        self.assertEqual(m.to_numpy().shape, (3, 0))


class TestMatrixCopies(unittest.TestCase):
    def test_copy_from_numpy_casts(self):
        m = Matrix(2, 2, dtype=np.float16)
        m.copy_from_numpy(np.array([[0.5, 1.5], [2.5, 3.5]], dtype=np.float64))
        self.assertEqual(m.dtype, np.float16)
        np.testing.assert_array_equal(
            m.to_numpy(), np.array([[0.5, 1.5], [2.5, 3.5]], dtype=np.float16)
        )

    def test_copy_from_numpy_shape_mismatch(self):
        m = Matrix(2, 3)
        with self.assertRaises(DimensionMismatchError):
            m.copy_from_numpy(np.zeros((3, 2)))

    def test_from_numpy_requires_2d(self):
        with self.assertRaises(DimensionMismatchError):
            Matrix.from_numpy(np.zeros(4))

    def test_fill(self):
        m = Matrix(3, 3, dtype=np.float32)
        m.fill(np.nan)
        self.assertTrue(np.isnan(m.data).all())


if __name__ == "__main__":
    unittest.main()
