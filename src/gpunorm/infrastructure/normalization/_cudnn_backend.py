"""
cuDNN implementation of the batch-normalization primitive.

`CudnnNormalizationBackend` owns one cuDNN handle for one CUDA device and
translates `NormalizationBackend` calls into
``cudnnDeriveBNTensorDescriptor`` and
``cudnnBatchNormalizationForwardTraining``. Tensor descriptors are created
per call and destroyed deterministically.

The primitive call is only enqueued on the handle's stream; it returns before
the device has finished computing.
"""

from __future__ import annotations

import weakref

from ...domain._dtype import check_input_dtype, check_param_dtype
from ...domain._errors import ComputationError, DeviceError
from ...domain.normalization._backend import BN_MIN_EPSILON, ParamDescriptor
from ...domain.normalization._mode import BatchNormMode
from ..native_cuda.python.cudart_ctypes import CudaRuntimeLib
from ..native_cuda.python.cudnn_ctypes import (
    CudnnLib,
    TensorDescriptor,
    dtype_name_from_cudnn,
)
from ..tensor._tensor import Tensor

# Mirrors CUDNN_STATUS_BAD_PARAM.
_STATUS_BAD_PARAM = 3


class CudnnNormalizationBackend:
    """
    Batch-normalization primitive backed by cuDNN.

    Parameters
    ----------
    cudnn : CudnnLib
        Bound cuDNN library.
    cudart : CudaRuntimeLib
        Bound CUDA runtime, used to select the device before each call.
    device_index : int
        CUDA device the handle is created on.

    Notes
    -----
    The cuDNN handle is created lazily on first use and destroyed when the
    backend is garbage collected or `close()` is called.
    """

    def __init__(self, cudnn: CudnnLib, cudart: CudaRuntimeLib, device_index: int) -> None:
        self._cudnn = cudnn
        self._cudart = cudart
        self._device_index = int(device_index)
        self._handle = 0
        self._finalizer: weakref.finalize | None = None

    @property
    def min_epsilon(self) -> float:
        return BN_MIN_EPSILON

    @property
    def handle(self) -> int:
        """The cuDNN handle, created on first access."""
        if not self._handle:
            self._cudart.set_device(self._device_index)
            self._handle = self._cudnn.create_handle()
            cudnn, cudart, index, h = (
                self._cudnn,
                self._cudart,
                self._device_index,
                self._handle,
            )

            def _destroy() -> None:
                try:
                    cudart.set_device(index)
                    cudnn.destroy_handle(h)
                except Exception:
                    # Never raise in finalizers.
                    pass

            self._finalizer = weakref.finalize(self, _destroy)
        return self._handle

    def close(self) -> None:
        """Destroy the cuDNN handle now (idempotent)."""
        if self._finalizer is not None and self._finalizer.alive:
            self._finalizer()
        self._handle = 0
        self._finalizer = None

    def derive_param_descriptor(
        self,
        x_shape: tuple[int, int, int, int],
        x_dtype: str,
        mode: BatchNormMode,
    ) -> ParamDescriptor:
        """
        Let cuDNN derive the scale/bias/mean/var descriptor for `x_shape`.
        """
        check_input_dtype(x_dtype)
        self._cudart.set_device(self._device_index)
        with TensorDescriptor.for_4d(
            self._cudnn, x_shape, x_dtype
        ) as x_desc, TensorDescriptor.derived_bn(self._cudnn, x_desc, int(mode)) as bn_desc:
            cudnn_dtype, shape = bn_desc.get_4d()
        return ParamDescriptor(shape, check_param_dtype(dtype_name_from_cudnn(cudnn_dtype)))

    def _check_cuda(self, t: Tensor, name: str) -> int:
        if not t.device.is_cuda() or int(t.device.index or 0) != self._device_index:
            raise DeviceError(
                f"{name} must live on cuda:{self._device_index}, got {t.device}"
            )
        if not t.is_contiguous():
            raise DeviceError(f"{name} must be contiguous")
        return t.data_ptr

    def forward_training(
        self,
        *,
        mode: BatchNormMode,
        x: Tensor,
        y: Tensor,
        param_desc: ParamDescriptor,
        gamma: Tensor,
        beta: Tensor,
        exponential_average_factor: float,
        running_mean: Tensor,
        running_var: Tensor,
        eps: float,
        save_mean: Tensor,
        save_inv_var: Tensor,
    ) -> None:
        """
        Enqueue ``cudnnBatchNormalizationForwardTraining``.

        Raises
        ------
        ComputationError
            If cuDNN returns a non-success status.
        DeviceError
            If any tensor is not a contiguous tensor on this backend's device.
        """
        ptrs = {
            name: self._check_cuda(t, name)
            for name, t in (
                ("x", x),
                ("y", y),
                ("gamma", gamma),
                ("beta", beta),
                ("running_mean", running_mean),
                ("running_var", running_var),
                ("save_mean", save_mean),
                ("save_inv_var", save_inv_var),
            )
        }

        x_dtype = x.dtype.name
        handle = self.handle
        self._cudart.set_device(self._device_index)
        with TensorDescriptor.for_4d(
            self._cudnn, tuple(x.shape), x_dtype
        ) as x_desc, TensorDescriptor.derived_bn(self._cudnn, x_desc, int(mode)) as bn_desc:
            _, derived_shape = bn_desc.get_4d()
            if derived_shape != tuple(param_desc.shape):
                raise ComputationError(
                    f"parameter descriptor {param_desc.shape} does not match the "
                    f"derived descriptor {derived_shape}",
                    status=_STATUS_BAD_PARAM,
                )
            self._cudnn.batch_norm_forward_training(
                handle=handle,
                mode=int(mode),
                data_dtype_name=x_dtype,
                x_desc=x_desc.handle,
                x=ptrs["x"],
                y_desc=x_desc.handle,
                y=ptrs["y"],
                bn_desc=bn_desc.handle,
                scale=ptrs["gamma"],
                bias=ptrs["beta"],
                exponential_average_factor=exponential_average_factor,
                running_mean=ptrs["running_mean"],
                running_var=ptrs["running_var"],
                eps=eps,
                save_mean=ptrs["save_mean"],
                save_inv_var=ptrs["save_inv_var"],
            )
