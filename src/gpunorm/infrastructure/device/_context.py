"""
Per-device execution contexts.

A `DeviceContext` bundles everything a batch-normalization call needs that
depends on where the tensors live:

- the `NormalizationBackend` implementing the primitive for that device;
- raw byte copies between tensors on the device (`memory_copy`);
- a stream barrier (`synchronize`);
- the factory for forward/backward objects
  (`get_batch_norm_forward_backward`).

Contexts are created through `get_device_context`, which caches one context
per device. CUDA contexts load libcudart/libcudnn and create the cuDNN handle
lazily, so constructing a CUDA context does not touch the GPU.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, Optional

import numpy as np

from ...domain._errors import (
    DeviceError,
    DeviceMismatchError,
    DeviceNotSupportedError,
)
from ...domain.device._device import Device
from ...domain.normalization._backend import NormalizationBackend
from ..native_cuda.python._native_loader import load_cudart, load_cudnn
from ..native_cuda.python.cudart_ctypes import CudaRuntimeLib, get_cudart
from ..native_cuda.python.cudnn_ctypes import get_cudnn
from ..normalization._cudnn_backend import CudnnNormalizationBackend
from ..normalization._host_backend import HostNormalizationBackend
from ..tensor._tensor import Tensor

if TYPE_CHECKING:
    from ..normalization._batch_norm import BatchNormForwardBackward


class DeviceContext:
    """
    Execution context bound to a single device.

    Subclasses provide the backend and the byte-copy primitive. The context
    itself holds no per-call state, so it can be shared by every forward
    object created on the device.
    """

    def __init__(self, device: Device) -> None:
        self._device = device

    def __repr__(self) -> str:
        return f"{type(self).__name__}(device={self._device})"

    @property
    def device(self) -> Device:
        return self._device

    @property
    def backend(self) -> NormalizationBackend:
        raise NotImplementedError

    def synchronize(self) -> None:
        """Block until all work queued on the device has finished."""

    def _check_copy(self, dst: Tensor, src: Tensor) -> None:
        for t in (dst, src):
            if t.device != self._device:
                raise DeviceMismatchError(str(t.device), str(self._device))
        if not (dst.is_contiguous() and src.is_contiguous()):
            raise DeviceError("memory_copy requires contiguous source and destination")
        if dst.nbytes != src.nbytes:
            raise DeviceError(
                f"memory_copy size mismatch: dst has {dst.nbytes} bytes, "
                f"src has {src.nbytes} bytes"
            )

    def memory_copy(self, dst: Tensor, src: Tensor) -> None:
        """
        Copy the raw bytes of `src` into `dst`.

        Both tensors must live on this context's device, be contiguous and
        have the same byte size. Shapes and dtypes are not interpreted.

        Raises
        ------
        DeviceMismatchError
            If either tensor lives on another device.
        DeviceError
            If either tensor is strided or the byte sizes differ.
        """
        raise NotImplementedError

    def get_batch_norm_forward_backward(self) -> "BatchNormForwardBackward":
        """
        Create a fresh forward/backward object bound to this context.

        Each call returns a new object, so result caches are never shared
        between call sites.
        """
        from ..normalization._batch_norm import BatchNormForwardBackward

        return BatchNormForwardBackward(self)


class HostDeviceContext(DeviceContext):
    """Context for host tensors, served by the NumPy backend."""

    def __init__(self, device: Device) -> None:
        super().__init__(device)
        self._backend = HostNormalizationBackend()

    @property
    def backend(self) -> HostNormalizationBackend:
        return self._backend

    def memory_copy(self, dst: Tensor, src: Tensor) -> None:
        self._check_copy(dst, src)
        np.copyto(
            dst.data.reshape(-1).view(np.uint8),
            src.data.reshape(-1).view(np.uint8),
        )


class CudaDeviceContext(DeviceContext):
    """
    Context for one CUDA device, served by cuDNN.

    Notes
    -----
    The CUDA runtime and cuDNN libraries are resolved on first use of
    `backend` or `memory_copy`, following the environment-variable policy of
    `load_cudart` / `load_cudnn`.
    """

    def __init__(self, device: Device) -> None:
        super().__init__(device)
        self._index = int(device.index or 0)
        self._cudart: Optional[CudaRuntimeLib] = None
        self._backend: Optional[CudnnNormalizationBackend] = None

    @property
    def cudart(self) -> CudaRuntimeLib:
        if self._cudart is None:
            self._cudart = get_cudart(load_cudart())
        return self._cudart

    @property
    def backend(self) -> CudnnNormalizationBackend:
        if self._backend is None:
            self._backend = CudnnNormalizationBackend(
                get_cudnn(load_cudnn()), self.cudart, self._index
            )
        return self._backend

    def synchronize(self) -> None:
        cudart = self.cudart
        cudart.set_device(self._index)
        cudart.synchronize()

    def memory_copy(self, dst: Tensor, src: Tensor) -> None:
        self._check_copy(dst, src)
        if dst.nbytes == 0:
            return
        cudart = self.cudart
        cudart.set_device(self._index)
        cudart.memcpy_d2d(dst.data_ptr, src.data_ptr, dst.nbytes)


@lru_cache(maxsize=None)
def _context_for(device: Device) -> DeviceContext:
    if device.is_cpu():
        return HostDeviceContext(device)
    if device.is_cuda():
        return CudaDeviceContext(device)
    raise DeviceNotSupportedError("get_device_context", str(device))


def get_device_context(device: Device | str) -> DeviceContext:
    """
    Return the cached execution context of `device`.

    Parameters
    ----------
    device : Device | str
        Device descriptor or its string form ("cpu", "cuda:0", ...).

    Raises
    ------
    DeviceNotSupportedError
        If no context exists for the device type.
    """
    if isinstance(device, str):
        device = Device(device)
    return _context_for(device)
