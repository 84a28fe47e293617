import unittest

from gpunorm.domain._errors import DimensionError
from gpunorm.domain.normalization._mode import BatchNormMode
from gpunorm.infrastructure.normalization._mode_selector import select_batch_norm_mode


class TestSelectBatchNormMode(unittest.TestCase):
    def test_batch_axis_only_is_per_activation(self):
        self.assertIs(select_batch_norm_mode((0,)), BatchNormMode.PER_ACTIVATION)

    def test_batch_and_spatial_axes_are_spatial(self):
        self.assertIs(select_batch_norm_mode((0, 2, 3)), BatchNormMode.SPATIAL)
        self.assertIs(select_batch_norm_mode((0, 2, 3, 4)), BatchNormMode.SPATIAL)

    def test_other_axis_sets_raise(self):
        for axis in ((1,), (0, 1), (0, 2), (0, 2, 3, 4, 5), (0, 1, 2, 3), ()):
            with self.subTest(axis=axis):
                with self.assertRaises(DimensionError) as cm:
                    select_batch_norm_mode(axis)
                self.assertIn("Expected 1, 3 or 4 dimensions", str(cm.exception))


if __name__ == "__main__":
    unittest.main()
