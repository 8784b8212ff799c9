import gc
import threading
import unittest
import weakref

import numpy as np

from fusednn.domain._errors import DimensionMismatchError, LayoutMismatchError
from fusednn.domain._matrix_layout import MatrixLayout
from fusednn.domain._weight_usage import WeightUsage
from fusednn.infrastructure._activations import get_activation
from fusednn.infrastructure._matrix import Matrix
from fusednn.infrastructure._stream import Stream
from fusednn.infrastructure.networks import create_network
from fusednn.infrastructure.workspace import WorkspacePool, free_workspace

CM = MatrixLayout.ColumnMajor
RM = MatrixLayout.RowMajor


def _config(otype="FullyFusedMLP", **overrides):
    cfg = {
        "otype": otype,
        "n_input_dims": 3,
        "n_output_dims": 1,
        "n_neurons": 64,
        "n_hidden_layers": 2,
    }
    if otype == "CutlassMLP":
        cfg["n_neurons"] = 48
    cfg.update(overrides)
    return cfg


def _random_input(rows, cols, seed=0, dtype=np.float16):
    arr = np.random.default_rng(seed).uniform(-1.0, 1.0, size=(rows, cols))
    return Matrix.from_numpy(arr, dtype=dtype, layout=CM)


class TestInferenceOutputs(unittest.TestCase):
    def setUp(self):
        self.pool = WorkspacePool()
        self.stream = Stream()
        self.nets = [
            create_network(_config("FullyFusedMLP"), workspace_pool=self.pool),
            create_network(_config("CutlassMLP"), workspace_pool=self.pool),
        ]

    def test_widths_follow_config(self):
        for net in self.nets:
            with self.subTest(net=net.otype):
                self.assertEqual(net.input_width, 3)
                self.assertEqual(net.output_width, 1)
                self.assertEqual(net.padded_output_width, 16)

    def test_every_output_element_written(self):
        x = _random_input(3, 32)
        for net in self.nets:
            for layout in MatrixLayout:
                for rows in (net.output_width, net.padded_output_width):
                    with self.subTest(net=net.otype, layout=layout.name, rows=rows):
                        y = Matrix(rows, 32, layout=layout)
                        y.fill(np.nan)
                        net.inference_mixed_precision(
                            self.stream, x, y, output_layout=layout
                        )
                        self.assertFalse(np.isnan(y.data).any())

    def test_padded_rows_are_zero(self):
        x = _random_input(3, 8)
        for net in self.nets:
            with self.subTest(net=net.otype):
                y = Matrix(net.padded_output_width, 8)
                net.inference_mixed_precision(self.stream, x, y)
                self.assertTrue(np.all(y.to_numpy()[net.output_width :] == 0))

    def test_layouts_agree_logically(self):
        x = _random_input(3, 20, seed=3)
        for net in self.nets:
            with self.subTest(net=net.otype):
                cm = Matrix(1, 20, layout=CM)
                rm = Matrix(1, 20, layout=RM)
                net.inference_mixed_precision(self.stream, x, cm, output_layout=CM)
                net.inference_mixed_precision(self.stream, x, rm, output_layout=RM)
                np.testing.assert_array_equal(cm.to_numpy(), rm.to_numpy())

    def test_layouts_differ_in_memory_order(self):
        net = self.nets[0]
        x = _random_input(3, 6, seed=4)
        cm = Matrix(16, 6, layout=CM)
        rm = Matrix(16, 6, layout=RM)
        net.inference_mixed_precision(self.stream, x, cm, output_layout=CM)
        net.inference_mixed_precision(self.stream, x, rm, output_layout=RM)
        logical = cm.to_numpy()
        np.testing.assert_array_equal(cm.data, logical.T.ravel())
        np.testing.assert_array_equal(rm.data, logical.ravel())

    def test_matches_dense_reference(self):
        net = create_network(
            _config("CutlassMLP", activation="Tanh", precision="fp32"),
            workspace_pool=self.pool,
        )
        x = _random_input(3, 10, seed=5, dtype=np.float32)
        y = Matrix(1, 10, dtype=np.float32)
        net.inference_mixed_precision(self.stream, x, y)

        h = x.to_numpy()
        n_layers = len(net.layer_sizes())
        for i in range(n_layers):
            w = net.weight_matrix_at(WeightUsage.Inference, i).astype(np.float32)
            act = "None" if i == n_layers - 1 else "Tanh"
            h = get_activation(act).forward(w @ h)
        np.testing.assert_allclose(y.to_numpy(), h[:1], rtol=1e-5, atol=1e-6)

    def test_empty_batch(self):
        for net in self.nets:
            with self.subTest(net=net.otype):
                y = Matrix(1, 0)
                net.inference_mixed_precision(self.stream, Matrix(3, 0), y)
                self.assertEqual(y.shape, (1, 0))


class TestInferenceDeterminism(unittest.TestCase):
    def test_zero_input_is_deterministic_across_constructions(self):
        outputs = []
        for _ in range(2):
            net = create_network(_config("FullyFusedMLP"), workspace_pool=WorkspacePool())
            x = Matrix(3, 128)
            y = Matrix(1, 128)
            y.fill(np.nan)
            net.inference_mixed_precision(None, x, y)
            self.assertEqual(y.shape, (1, 128))
            self.assertFalse(np.isnan(y.data).any())
            outputs.append(y.data.tobytes())
        self.assertEqual(outputs[0], outputs[1])

    def test_same_seed_same_output(self):
        x = _random_input(3, 16, seed=9)
        results = []
        for _ in range(2):
            net = create_network(_config("CutlassMLP"), seed=42, workspace_pool=WorkspacePool())
            y = Matrix(1, 16)
            net.inference_mixed_precision(None, x, y)
            results.append(y.to_numpy())
        np.testing.assert_array_equal(results[0], results[1])

    def test_repeated_calls_identical(self):
        net = create_network(_config("FullyFusedMLP"), workspace_pool=WorkspacePool())
        x = _random_input(3, 16, seed=10)
        a, b = Matrix(1, 16), Matrix(1, 16)
        net.inference_mixed_precision(None, x, a)
        net.inference_mixed_precision(None, x, b)
        np.testing.assert_array_equal(a.data, b.data)


class TestInferenceValidation(unittest.TestCase):
    def setUp(self):
        self.net = create_network(_config("FullyFusedMLP"), workspace_pool=WorkspacePool())

    def test_batch_mismatch_rejected_before_compute(self):
        x = Matrix(3, 10)
        y = Matrix(1, 5)
        y.fill(np.nan)
        with self.assertRaises(DimensionMismatchError) as cm:
            self.net.inference_mixed_precision(None, x, y)
        self.assertEqual(cm.exception.name, "output.n_cols")
        self.assertEqual(cm.exception.expected, 10)
        self.assertEqual(cm.exception.actual, 5)
        self.assertTrue(np.isnan(y.data).all())

    def test_input_width_mismatch(self):
        with self.assertRaises(DimensionMismatchError) as cm:
            self.net.inference_mixed_precision(None, Matrix(4, 8), Matrix(1, 8))
        self.assertEqual(cm.exception.name, "input.n_rows")

    def test_output_row_count_mismatch(self):
        with self.assertRaises(DimensionMismatchError):
            self.net.inference_mixed_precision(None, Matrix(3, 8), Matrix(2, 8))

    def test_row_major_input_rejected(self):
        with self.assertRaises(LayoutMismatchError):
            self.net.inference_mixed_precision(
                None, Matrix(3, 8, layout=RM), Matrix(1, 8)
            )

    def test_output_layout_must_match_buffer(self):
        with self.assertRaises(LayoutMismatchError):
            self.net.inference_mixed_precision(
                None, Matrix(3, 8), Matrix(1, 8, layout=RM), output_layout=CM
            )

    def test_output_layout_must_be_enum(self):
        with self.assertRaises(TypeError):
            self.net.inference_mixed_precision(
                None, Matrix(3, 8), Matrix(1, 8), output_layout="cm"
            )


class TestInferenceSideEffects(unittest.TestCase):
    def test_params_gradients_and_forward_state_untouched(self):
        net = create_network(_config("CutlassMLP"), workspace_pool=WorkspacePool())
        x = _random_input(3, 12, seed=11)
        net.forward(None, x, Matrix(1, 12))
        activations = [a.copy() for a in net.forward_activations()]
        params = net.params().copy()
        gradients = net.gradients().copy()

        net.inference_mixed_precision(None, _random_input(3, 12, seed=12), Matrix(1, 12))

        np.testing.assert_array_equal(net.params(), params)
        np.testing.assert_array_equal(net.gradients(), gradients)
        self.assertTrue(net.has_forward_state)
        for before, after in zip(activations, net.forward_activations()):
            np.testing.assert_array_equal(before, after)

    def test_inference_does_not_create_forward_state(self):
        net = create_network(_config("FullyFusedMLP"), workspace_pool=WorkspacePool())
        net.inference_mixed_precision(None, Matrix(3, 4), Matrix(1, 4))
        self.assertFalse(net.has_forward_state)

    def test_input_untouched(self):
        net = create_network(_config("FullyFusedMLP"), workspace_pool=WorkspacePool())
        x = _random_input(3, 4, seed=13)
        before = x.data.copy()
        net.inference_mixed_precision(None, x, Matrix(1, 4))
        np.testing.assert_array_equal(x.data, before)


class TestFullPrecisionInference(unittest.TestCase):
    def test_matches_mixed_precision_result(self):
        net = create_network(_config("FullyFusedMLP"), workspace_pool=WorkspacePool())
        x = _random_input(3, 16, seed=14)
        mixed = Matrix(1, 16)
        full = Matrix(1, 16, dtype=np.float32, layout=RM)
        net.inference_mixed_precision(None, x, mixed)
        net.inference(None, x, full)
        self.assertEqual(full.dtype, np.float32)
        np.testing.assert_array_equal(full.to_numpy(), mixed.to_numpy().astype(np.float32))


class TestInferenceWorkspace(unittest.TestCase):
    def test_cutlass_attributes_workspace_to_stream(self):
        pool = WorkspacePool()
        stream = Stream()
        net = create_network(_config("CutlassMLP"), workspace_pool=pool)
        y = Matrix(1, 32)
        net.inference_mixed_precision(stream, _random_input(3, 32), y)
        self.assertEqual(pool.streams(), (stream.handle,))
        self.assertGreater(pool.bytes_in_use(stream), 0)

        expected = y.to_numpy()
        self.assertGreater(free_workspace(stream, pool=pool), 0)
        self.assertEqual(free_workspace(stream, pool=pool), 0)
        np.testing.assert_array_equal(y.to_numpy(), expected)

    def test_fully_fused_inference_uses_no_workspace(self):
        pool = WorkspacePool()
        net = create_network(_config("FullyFusedMLP"), workspace_pool=pool)
        net.inference_mixed_precision(Stream(), _random_input(3, 32), Matrix(1, 32))
        self.assertEqual(pool.streams(), ())

    def test_streams_are_attributed_separately(self):
        pool = WorkspacePool()
        net = create_network(_config("CutlassMLP"), workspace_pool=pool)
        s1, s2 = Stream(), Stream()
        net.inference_mixed_precision(s1, _random_input(3, 8), Matrix(1, 8))
        net.inference_mixed_precision(s2, _random_input(3, 64), Matrix(1, 64))
        self.assertLess(pool.bytes_in_use(s1), pool.bytes_in_use(s2))
        free_workspace(s1, pool=pool)
        self.assertEqual(pool.streams(), (s2.handle,))

    def test_pool_does_not_keep_network_alive(self):
        pool = WorkspacePool()
        stream = Stream()
        net = create_network(_config("CutlassMLP"), workspace_pool=pool)
        net.inference_mixed_precision(stream, _random_input(3, 8), Matrix(1, 8))
        ref = weakref.ref(net)
        del net
        gc.collect()
        self.assertIsNone(ref())
        self.assertGreater(free_workspace(stream, pool=pool), 0)


class TestConcurrentInferenceOnOneStream(unittest.TestCase):
    def test_two_threads_sharing_stream_and_pool(self):
        pool = WorkspacePool()
        stream = Stream()
        nets = [
            create_network(
                _config(
                    "CutlassMLP",
                    n_input_dims=64,
                    n_output_dims=16,
                    n_neurons=256,
                    precision="fp32",
                ),
                seed=seed,
                workspace_pool=pool,
            )
            for seed in (1, 2)
        ]
        inputs = [_random_input(64, 128, seed=s, dtype=np.float32) for s in (1, 2)]
        references = []
        for net, x in zip(nets, inputs):
            y = Matrix(16, 128, dtype=np.float32)
            net.inference_mixed_precision(stream, x, y)
            references.append(y.to_numpy())

        mismatches = []

        def run(i):
            y = Matrix(16, 128, dtype=np.float32)
            for _ in range(50):
                nets[i].inference_mixed_precision(stream, inputs[i], y)
                if not np.array_equal(y.to_numpy(), references[i]):
                    mismatches.append(i)

        threads = [threading.Thread(target=run, args=(i,)) for i in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(mismatches, [])


if __name__ == "__main__":
    unittest.main()
