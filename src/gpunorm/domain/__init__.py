"""
Backend-free domain layer: devices, axis sets, dtypes, errors and the
normalization primitive contract.
"""

from ._axes import normalize_axes, reduce_shape, shape_numel
from ._dtype import bn_param_dtype_name, check_input_dtype, check_param_dtype
from ._errors import (
    ComputationError,
    DeviceError,
    DeviceMismatchError,
    DeviceNotSupportedError,
    DimensionError,
    DtypeError,
    GpuNormError,
)
from ._tensor import ITensor
from .device import Device, DeviceLike, DeviceType
from .normalization import (
    BN_MIN_EPSILON,
    BatchNormMode,
    NormalizationBackend,
    ParamDescriptor,
)

__all__ = [
    normalize_axes.__name__,
    reduce_shape.__name__,
    shape_numel.__name__,
    bn_param_dtype_name.__name__,
    check_input_dtype.__name__,
    check_param_dtype.__name__,
    GpuNormError.__name__,
    DimensionError.__name__,
    DtypeError.__name__,
    DeviceError.__name__,
    ComputationError.__name__,
    DeviceNotSupportedError.__name__,
    DeviceMismatchError.__name__,
    ITensor.__name__,
    Device.__name__,
    DeviceLike.__name__,
    DeviceType.__name__,
    BatchNormMode.__name__,
    NormalizationBackend.__name__,
    ParamDescriptor.__name__,
    "BN_MIN_EPSILON",
]
