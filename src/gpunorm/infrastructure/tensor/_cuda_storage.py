"""
CUDA storage and lifetime management.

This module defines `_CudaStorage`, the owner of a single CUDA device
allocation. Tensors reference a storage object together with their own byte
offset, shape and strides, so reshapes and transposes are metadata-only views
that share one allocation.

Lifetime
--------
The device memory is freed exactly once, when the storage object is garbage
collected (i.e. when the last tensor view referencing it goes away). Freeing
is implemented with `weakref.finalize` instead of ``__del__`` to avoid
reference-cycle and interpreter-shutdown pitfalls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import weakref

from ..native_cuda.python.cudart_ctypes import CudaRuntimeLib


@dataclass
class _CudaStorage:
    """
    Owner of one contiguous CUDA device allocation.

    Attributes
    ----------
    cudart : CudaRuntimeLib
        Runtime binding used to free the allocation.
    device_index : int
        CUDA device the allocation lives on.
    dev_ptr : int
        Base device pointer (uintptr_t).
    nbytes : int
        Allocation size in bytes.
    """

    cudart: CudaRuntimeLib
    device_index: int
    dev_ptr: int
    nbytes: int

    _finalizer: weakref.finalize | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        # The finalizer captures plain values only, never `self`.
        cudart = self.cudart
        device_index = int(self.device_index)
        dev_ptr = int(self.dev_ptr)

        def _free_ptr() -> None:
            try:
                cudart.set_device(device_index)
                cudart.free(dev_ptr)
            except Exception:
                # Finalizers must never raise; at interpreter shutdown the
                # runtime may already be unloaded.
                pass

        if dev_ptr != 0 and int(self.nbytes) > 0:
            self._finalizer = weakref.finalize(self, _free_ptr)

    @classmethod
    def allocate(
        cls, cudart: CudaRuntimeLib, device_index: int, nbytes: int
    ) -> "_CudaStorage":
        """
        Allocate `nbytes` on `device_index` and wrap the result.
        """
        cudart.set_device(int(device_index))
        dev_ptr = cudart.malloc(int(nbytes))
        return cls(
            cudart=cudart,
            device_index=int(device_index),
            dev_ptr=int(dev_ptr),
            nbytes=int(nbytes),
        )
