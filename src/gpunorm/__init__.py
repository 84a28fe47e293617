"""
gpunorm: batch-normalization forward pass for GPU tensor backends.

The package adapts N-dimensional tensors and reduction-axis sets to the
4-dimensional contract of an accelerated normalization primitive (cuDNN on
CUDA devices, a NumPy emulation on the host), runs the primitive and writes
the results back into caller-owned storage.

Public API
----------
- ``Tensor``, ``Device``
- ``get_device_context``, ``DeviceContext``
- ``BatchNormForwardBackward``, ``batch_norm_forward``
- ``BatchNormMode``
- error taxonomy: ``DimensionError``, ``DtypeError``, ``DeviceError``,
  ``ComputationError``
"""

from .domain import (
    BatchNormMode,
    ComputationError,
    Device,
    DeviceError,
    DeviceMismatchError,
    DeviceNotSupportedError,
    DimensionError,
    DtypeError,
    GpuNormError,
)
from .infrastructure.device import DeviceContext, get_device_context
from .infrastructure.normalization import (
    BatchNormForwardBackward,
    batch_norm_forward,
)
from .infrastructure.tensor import Tensor

__version__ = "0.1.0"

__all__ = [
    Tensor.__name__,
    Device.__name__,
    DeviceContext.__name__,
    get_device_context.__name__,
    BatchNormForwardBackward.__name__,
    batch_norm_forward.__name__,
    BatchNormMode.__name__,
    GpuNormError.__name__,
    DimensionError.__name__,
    DtypeError.__name__,
    DeviceError.__name__,
    ComputationError.__name__,
    DeviceNotSupportedError.__name__,
    DeviceMismatchError.__name__,
]
