import unittest

import numpy as np

from gpunorm.domain.device._device import Device
from gpunorm.infrastructure.tensor._tensor import Tensor


class TestTensorHostStorage(unittest.TestCase):
    def setUp(self) -> None:
        self.device = Device("cpu")

    def test_constructor_zero_fills(self):
        t = Tensor((2, 3), self.device, dtype=np.float64)
        self.assertEqual(t.shape, (2, 3))
        self.assertEqual(t.dtype, np.float64)
        self.assertEqual(t.nbytes, 6 * 8)
        np.testing.assert_array_equal(t.to_numpy(), np.zeros((2, 3)))

    def test_from_numpy_shares_memory_on_cpu(self):
        arr = np.arange(6, dtype=np.float32)
        t = Tensor.from_numpy(arr)
        t.data[0] = 42.0
        self.assertEqual(arr[0], 42.0)
        self.assertEqual(t.data_ptr, arr.ctypes.data)

    def test_strided_numpy_view_is_not_contiguous(self):
        arr = np.zeros(8, dtype=np.float32)
        t = Tensor.from_numpy(arr[::2])
        self.assertEqual(t.shape, (4,))
        self.assertFalse(t.is_contiguous())

    def test_reshape_is_a_view(self):
        arr = np.arange(24, dtype=np.float32)
        t = Tensor.from_numpy(arr).reshape((2, -1, 4))
        self.assertEqual(t.shape, (2, 3, 4))
        t.data[1, 2, 3] = -1.0
        self.assertEqual(arr[-1], -1.0)

    def test_reshape_rejects_bad_shapes(self):
        t = Tensor((2, 3), self.device)
        with self.assertRaises(ValueError):
            t.reshape((4, 2))
        with self.assertRaises(ValueError):
            t.reshape((-1, -1))

    def test_reshape_requires_contiguity(self):
        t = Tensor((2, 3), self.device).transpose()
        self.assertEqual(t.shape, (3, 2))
        self.assertFalse(t.is_contiguous())
        with self.assertRaises(ValueError):
            t.reshape((6,))

    def test_as_contiguous_returns_self_or_copy(self):
        t = Tensor((2, 3), self.device)
        self.assertIs(t.as_contiguous(), t)

        arr = np.arange(6, dtype=np.float32).reshape(2, 3)
        tt = Tensor.from_numpy(arr).transpose()
        c = tt.as_contiguous()
        self.assertIsNot(c, tt)
        self.assertTrue(c.is_contiguous())
        np.testing.assert_array_equal(c.to_numpy(), arr.T)

    def test_astype_without_copy_preserves_identity(self):
        t = Tensor((3,), self.device, dtype=np.float32)
        self.assertIs(t.astype(np.float32, copy=False), t)
        self.assertIsNot(t.astype(np.float32), t)

    def test_astype_converts_values(self):
        arr = np.array([1.5, -2.25, 3.0], dtype=np.float16)
        t = Tensor.from_numpy(arr).astype("float32", copy=False)
        self.assertEqual(t.dtype, np.float32)
        np.testing.assert_array_equal(t.to_numpy(), arr.astype(np.float32))
        t.data[0] = 7.0
        self.assertEqual(arr[0], np.float16(1.5))

    def test_empty_like_overrides(self):
        t = Tensor((2, 3), self.device, dtype=np.float16)
        e = Tensor.empty_like(t, dtype=np.float32, shape=(3,))
        self.assertEqual((e.shape, e.dtype, e.device), ((3,), np.float32, t.device))
        self.assertTrue(e.is_contiguous())

    def test_to_numpy_returns_a_copy(self):
        arr = np.ones((2, 2), dtype=np.float32)
        out = Tensor.from_numpy(arr).to_numpy()
        out[0, 0] = 5.0
        self.assertEqual(arr[0, 0], 1.0)


if __name__ == "__main__":
    unittest.main()
