import unittest

from gpunorm.domain._dtype import (
    bn_param_dtype_name,
    check_input_dtype,
    check_param_dtype,
)
from gpunorm.domain._errors import DtypeError


class TestBatchNormDtypeRules(unittest.TestCase):
    def test_half_input_gets_single_precision_parameters(self):
        self.assertEqual(bn_param_dtype_name("float16"), "float32")

    def test_full_precision_inputs_keep_their_dtype(self):
        self.assertEqual(bn_param_dtype_name("float32"), "float32")
        self.assertEqual(bn_param_dtype_name("float64"), "float64")

    def test_non_float_inputs_are_rejected(self):
        for name in ("int32", "int64", "bool", "uint8"):
            with self.subTest(dtype=name):
                with self.assertRaises(DtypeError):
                    bn_param_dtype_name(name)
                with self.assertRaises(DtypeError):
                    check_input_dtype(name)

    def test_half_parameters_are_not_supported(self):
        with self.assertRaises(DtypeError):
            check_param_dtype("float16")
        self.assertEqual(check_param_dtype("float64"), "float64")


if __name__ == "__main__":
    unittest.main()
