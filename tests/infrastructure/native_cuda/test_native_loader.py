import os
import unittest
from unittest import mock

from gpunorm.infrastructure.native_cuda.python import _native_loader
from gpunorm.infrastructure.native_cuda.python.cudnn_ctypes import (
    CUDNN_DATA_DOUBLE,
    CUDNN_DATA_FLOAT,
    CUDNN_DATA_HALF,
    cudnn_data_type,
    dtype_name_from_cudnn,
)
from gpunorm.domain._errors import DtypeError


class TestNativeLoader(unittest.TestCase):
    def test_explicit_path_failure_lists_the_candidate(self):
        missing = os.path.join(os.sep, "nonexistent", "libcudart_missing.so")
        with self.assertRaises(OSError) as cm:
            _native_loader.load_cudart(missing)
        self.assertIn("libcudart_missing.so", str(cm.exception))

    def test_environment_override_wins(self):
        missing = os.path.join(os.sep, "nonexistent", "libcudnn_from_env.so")
        _native_loader.load_cudnn.cache_clear()
        try:
            with mock.patch.dict(os.environ, {"GPUNORM_CUDNN_LIB": missing}):
                with self.assertRaises(OSError) as cm:
                    _native_loader.load_cudnn()
            message = str(cm.exception)
            self.assertIn("libcudnn_from_env.so", message)
            self.assertNotIn("libcudnn.so.8", message)
        finally:
            _native_loader.load_cudnn.cache_clear()


class TestCudnnDtypeMapping(unittest.TestCase):
    def test_input_types(self):
        self.assertEqual(cudnn_data_type("float32"), CUDNN_DATA_FLOAT)
        self.assertEqual(cudnn_data_type("float64"), CUDNN_DATA_DOUBLE)
        self.assertEqual(cudnn_data_type("float16"), CUDNN_DATA_HALF)
        with self.assertRaises(DtypeError):
            cudnn_data_type("int32")

    def test_derived_parameter_types(self):
        self.assertEqual(dtype_name_from_cudnn(CUDNN_DATA_FLOAT), "float32")
        self.assertEqual(dtype_name_from_cudnn(CUDNN_DATA_DOUBLE), "float64")
        with self.assertRaises(DtypeError):
            dtype_name_from_cudnn(CUDNN_DATA_HALF)


if __name__ == "__main__":
    unittest.main()
