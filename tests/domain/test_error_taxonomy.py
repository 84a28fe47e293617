import unittest

from gpunorm.domain._errors import (
    ComputationError,
    DeviceError,
    DeviceMismatchError,
    DeviceNotSupportedError,
    DimensionError,
    DtypeError,
    GpuNormError,
)


class TestErrorTaxonomy(unittest.TestCase):
    def test_taxonomy_shares_a_base(self):
        for cls in (DimensionError, DtypeError, DeviceError, ComputationError):
            with self.subTest(cls=cls.__name__):
                self.assertTrue(issubclass(cls, GpuNormError))
                self.assertTrue(issubclass(cls, RuntimeError))

    def test_computation_error_status(self):
        self.assertIsNone(ComputationError("eps too small").status)
        err = ComputationError("primitive failed", status=3)
        self.assertEqual(err.status, 3)
        self.assertEqual(str(err), "primitive failed")

    def test_device_placement_errors_carry_context(self):
        e = DeviceNotSupportedError("memory_copy", "tpu:0")
        self.assertEqual((e.op, e.device), ("memory_copy", "tpu:0"))
        self.assertIn("tpu:0", str(e))

        m = DeviceMismatchError("cpu", "cuda:0")
        self.assertEqual((m.device_a, m.device_b), ("cpu", "cuda:0"))
        self.assertFalse(isinstance(m, GpuNormError))


if __name__ == "__main__":
    unittest.main()
