import unittest

from gpunorm.domain.device._device import Device, DeviceType


class TestDevice(unittest.TestCase):
    def test_cpu(self):
        d = Device("cpu")
        self.assertIs(d.type, DeviceType.CPU)
        self.assertIsNone(d.index)
        self.assertTrue(d.is_cpu())
        self.assertFalse(d.is_cuda())
        self.assertEqual(str(d), "cpu")

    def test_cuda_with_index(self):
        d = Device("cuda:2")
        self.assertIs(d.type, DeviceType.CUDA)
        self.assertEqual(d.index, 2)
        self.assertTrue(d.is_cuda())
        self.assertEqual(str(d), "cuda:2")

    def test_bare_cuda_means_index_zero(self):
        self.assertEqual(Device("cuda"), Device("cuda:0"))

    def test_invalid_strings_raise(self):
        for s in ("gpu", "cuda:", "cuda:-1", "CPU", "cuda:0:1"):
            with self.subTest(device=s):
                with self.assertRaises(ValueError):
                    Device(s)

    def test_equal_devices_hash_equal(self):
        self.assertEqual(hash(Device("cuda:1")), hash(Device("cuda:1")))
        self.assertNotEqual(Device("cuda:0"), Device("cuda:1"))
        self.assertNotEqual(Device("cpu"), Device("cuda:0"))
        self.assertEqual(len({Device("cpu"), Device("cpu")}), 1)


if __name__ == "__main__":
    unittest.main()
