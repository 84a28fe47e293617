"""
Batch-normalization adaptation layer and primitive backends.

The forward pipeline runs leaf-first through:

- ``_axis_adapter``      : key axes and the canonical 4D view
- ``_mode_selector``     : axis set -> ``BatchNormMode``
- ``_param_descriptor``  : parameter shape/dtype derivation
- ``_dtype_reconciler``  : scoped parameter casts with write-back
- ``_batch_norm``        : validation, allocation, primitive call, cache

Backends implementing the primitive live in ``_host_backend`` (NumPy) and
``_cudnn_backend`` (cuDNN via ctypes).
"""

from ._axis_adapter import as_4d, compute_key_axes
from ._batch_norm import (
    BatchNormForwardBackward,
    BatchNormResultCache,
    batch_norm_forward,
)
from ._cudnn_backend import CudnnNormalizationBackend
from ._dtype_reconciler import ParameterCast
from ._host_backend import HostNormalizationBackend
from ._mode_selector import select_batch_norm_mode
from ._param_descriptor import derive_param_descriptor

__all__ = [
    compute_key_axes.__name__,
    as_4d.__name__,
    select_batch_norm_mode.__name__,
    derive_param_descriptor.__name__,
    ParameterCast.__name__,
    BatchNormForwardBackward.__name__,
    BatchNormResultCache.__name__,
    batch_norm_forward.__name__,
    HostNormalizationBackend.__name__,
    CudnnNormalizationBackend.__name__,
]
