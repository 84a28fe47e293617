import unittest

import numpy as np

from gpunorm.domain._errors import DimensionError, DtypeError
from gpunorm.domain.normalization._backend import ParamDescriptor
from gpunorm.domain.normalization._mode import BatchNormMode
from gpunorm.infrastructure.normalization._host_backend import HostNormalizationBackend
from gpunorm.infrastructure.normalization._param_descriptor import derive_param_descriptor
from gpunorm.infrastructure.tensor._tensor import Tensor
from gpunorm.domain.device._device import Device


class _RecordingBackend:
    def __init__(self) -> None:
        self.calls = []

    def derive_param_descriptor(self, x_shape, x_dtype, mode):
        self.calls.append((x_shape, x_dtype, mode))
        return ParamDescriptor((1, x_shape[1], 1, 1), "float64")


class TestDeriveParamDescriptor(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = HostNormalizationBackend()
        self.device = Device("cpu")

    def _x(self, shape, dtype=np.float32) -> Tensor:
        return Tensor(shape, self.device, dtype=dtype)

    def test_spatial(self):
        d = derive_param_descriptor(
            self._x((8, 3, 16, 16)), BatchNormMode.SPATIAL, self.backend
        )
        self.assertEqual(d, ParamDescriptor((1, 3, 1, 1), "float32"))
        self.assertEqual(d.numel(), 3)

    def test_per_activation(self):
        d = derive_param_descriptor(
            self._x((8, 3, 16, 16)), BatchNormMode.PER_ACTIVATION, self.backend
        )
        self.assertEqual(d.shape, (1, 3, 16, 16))
        self.assertEqual(d.numel(), 3 * 16 * 16)

    def test_dtype_mapping(self):
        for x_dtype, expected in (
            (np.float16, "float32"),
            (np.float32, "float32"),
            (np.float64, "float64"),
        ):
            with self.subTest(dtype=np.dtype(x_dtype).name):
                d = derive_param_descriptor(
                    self._x((2, 3, 1, 1), x_dtype), BatchNormMode.SPATIAL, self.backend
                )
                self.assertEqual(d.dtype, expected)

    def test_unsupported_input_dtype(self):
        with self.assertRaises(DtypeError):
            derive_param_descriptor(
                self._x((2, 3, 1, 1), np.int32), BatchNormMode.SPATIAL, self.backend
            )

    def test_requires_canonical_4d_view(self):
        with self.assertRaises(DimensionError):
            derive_param_descriptor(
                self._x((2, 3)), BatchNormMode.SPATIAL, self.backend
            )

    def test_delegates_to_backend(self):
        backend = _RecordingBackend()
        d = derive_param_descriptor(
            self._x((4, 7, 2, 2)), BatchNormMode.PER_ACTIVATION, backend
        )
        self.assertEqual(
            backend.calls, [((4, 7, 2, 2), "float32", BatchNormMode.PER_ACTIVATION)]
        )
        self.assertEqual(d.dtype, "float64")


if __name__ == "__main__":
    unittest.main()
