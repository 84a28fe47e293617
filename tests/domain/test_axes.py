import unittest

import numpy as np

from gpunorm.domain._axes import normalize_axes, reduce_shape, shape_numel
from gpunorm.domain._errors import DimensionError


class TestNormalizeAxes(unittest.TestCase):
    def test_single_int_is_wrapped(self):
        self.assertEqual(normalize_axes(0, 4), (0,))

    def test_numpy_integer_axes_are_accepted(self):
        self.assertEqual(normalize_axes(np.int64(0), 4), (0,))
        self.assertEqual(normalize_axes(np.arange(4)[[0, 2, 3]], 4), (0, 2, 3))
        self.assertEqual(normalize_axes((np.int32(-1), np.int64(0)), 4), (0, 3))

    def test_negative_axes_count_from_the_end(self):
        self.assertEqual(normalize_axes((0, -2, -1), 4), (0, 2, 3))

    def test_result_is_sorted(self):
        self.assertEqual(normalize_axes([3, 0, 2], 4), (0, 2, 3))

    def test_duplicate_axis_raises(self):
        with self.assertRaises(DimensionError):
            normalize_axes((0, 2, 2), 4)

    def test_duplicate_through_negative_index_raises(self):
        with self.assertRaises(DimensionError):
            normalize_axes((3, -1), 4)

    def test_out_of_range_raises(self):
        with self.assertRaises(DimensionError):
            normalize_axes((0, 4), 4)
        with self.assertRaises(DimensionError):
            normalize_axes((-5,), 4)


class TestReduceShape(unittest.TestCase):
    def test_keepdims(self):
        self.assertEqual(reduce_shape((8, 3, 16, 16), (0, 2, 3)), (1, 3, 1, 1))
        self.assertEqual(reduce_shape((8, 3, 16, 16), (0,)), (1, 3, 16, 16))

    def test_without_keepdims(self):
        self.assertEqual(
            reduce_shape((8, 3, 16, 16), (0, 2, 3), keepdims=False), (3,)
        )

    def test_shape_numel(self):
        self.assertEqual(shape_numel((8, 3, 16, 16)), 8 * 3 * 16 * 16)
        self.assertEqual(shape_numel(()), 1)
        self.assertEqual(shape_numel((4, 0, 2)), 0)


if __name__ == "__main__":
    unittest.main()
