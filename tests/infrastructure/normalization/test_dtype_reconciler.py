import unittest

import numpy as np

from gpunorm.infrastructure.device._context import get_device_context
from gpunorm.infrastructure.normalization._dtype_reconciler import ParameterCast
from gpunorm.infrastructure.tensor._tensor import Tensor


def _params(dtype, c: int = 3):
    return dict(
        gamma=Tensor.from_numpy(np.ones(c, dtype=dtype)),
        beta=Tensor.from_numpy(np.zeros(c, dtype=dtype)),
        running_mean=Tensor.from_numpy(np.zeros(c, dtype=dtype)),
        running_var=Tensor.from_numpy(np.ones(c, dtype=dtype)),
    )


class _RecordingContext:
    """Host context that logs every `memory_copy` call."""

    def __init__(self) -> None:
        self._inner = get_device_context("cpu")
        self.copies = []

    def memory_copy(self, dst, src):
        self.copies.append((dst, src))
        self._inner.memory_copy(dst, src)


class TestParameterCast(unittest.TestCase):
    def setUp(self) -> None:
        self.context = get_device_context("cpu")

    def test_matching_dtype_passes_tensors_through(self):
        p = _params(np.float32)
        cast = ParameterCast(self.context, dtype="float32", **p)
        self.assertFalse(cast.cast_occurred)
        with cast as params:
            for name, t in p.items():
                self.assertIs(getattr(params, name), t)
            self.assertFalse(params.cast_occurred)

    def test_half_parameters_are_cast_to_single(self):
        p = _params(np.float16)
        with ParameterCast(self.context, dtype=np.float32, **p) as params:
            self.assertEqual(params.dtype, np.float32)
            self.assertTrue(params.cast_occurred)
            for name in p:
                self.assertEqual(getattr(params, name).dtype, np.float32)
                self.assertIsNot(getattr(params, name), p[name])

    def test_running_stats_are_written_back_on_clean_exit(self):
        mean_np = np.zeros(3, dtype=np.float16)
        var_np = np.ones(3, dtype=np.float16)
        p = _params(np.float16)
        p["running_mean"] = Tensor.from_numpy(mean_np)
        p["running_var"] = Tensor.from_numpy(var_np)

        with ParameterCast(self.context, dtype="float32", **p) as params:
            params.running_mean.data[...] = [0.5, 1.5, -2.0]
            params.running_var.data[...] = [4.0, 0.25, 8.0]

        np.testing.assert_array_equal(
            mean_np, np.array([0.5, 1.5, -2.0], dtype=np.float16)
        )
        np.testing.assert_array_equal(
            var_np, np.array([4.0, 0.25, 8.0], dtype=np.float16)
        )

    def test_matching_dtype_issues_no_copies(self):
        ctx = _RecordingContext()
        p = _params(np.float32)
        with ParameterCast(ctx, dtype="float32", **p) as params:
            params.running_mean.data[...] = 1.0
        self.assertEqual(ctx.copies, [])

    def test_write_back_copies_only_the_running_stats(self):
        ctx = _RecordingContext()
        p = _params(np.float16)
        with ParameterCast(ctx, dtype="float32", **p):
            pass
        destinations = [dst for dst, _ in ctx.copies]
        self.assertEqual(len(destinations), 2)
        self.assertIs(destinations[0], p["running_mean"])
        self.assertIs(destinations[1], p["running_var"])

    def test_no_write_back_when_the_block_raises(self):
        mean_np = np.zeros(3, dtype=np.float16)
        p = _params(np.float16)
        p["running_mean"] = Tensor.from_numpy(mean_np)

        with self.assertRaises(RuntimeError):
            with ParameterCast(self.context, dtype="float32", **p) as params:
                params.running_mean.data[...] = 9.0
                raise RuntimeError("primitive failed")

        np.testing.assert_array_equal(mean_np, np.zeros(3, dtype=np.float16))

    def test_gamma_and_beta_are_made_contiguous(self):
        p = _params(np.float32)
        p["gamma"] = Tensor.from_numpy(np.arange(6, dtype=np.float32)[::2])
        with ParameterCast(self.context, dtype="float32", **p) as params:
            self.assertTrue(params.gamma.is_contiguous())
            np.testing.assert_array_equal(params.gamma.to_numpy(), [0.0, 2.0, 4.0])
            self.assertIs(params.beta, p["beta"])


if __name__ == "__main__":
    unittest.main()
