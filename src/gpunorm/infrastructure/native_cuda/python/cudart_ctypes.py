"""
ctypes bindings for the subset of the CUDA runtime used by gpunorm.

Bound symbols
-------------
- cudaSetDevice / cudaDeviceSynchronize
- cudaMalloc / cudaFree
- cudaMemcpy (host-to-device, device-to-host, device-to-device)
- cudaGetErrorString

Device pointers are represented as uintptr_t handles (Python int). All
functions raise `DeviceError` on a non-zero ``cudaError_t``.
"""

from __future__ import annotations

import ctypes
from ctypes import c_char_p, c_int, c_size_t, c_void_p

import numpy as np

from ....domain._errors import DeviceError

DevPtr = int

_MEMCPY_H2D = 1
_MEMCPY_D2H = 2
_MEMCPY_D2D = 3


class CudaRuntimeLib:
    """
    Thin binding layer around a loaded CUDA runtime library.

    Performs one-time `argtypes`/`restype` binding and converts error codes
    into exceptions. This class does not track allocations; ownership of
    device memory lives in `_CudaStorage`.
    """

    def __init__(self, lib: ctypes.CDLL) -> None:
        self.lib = lib
        self._bound = False

    def _bind(self) -> None:
        if self._bound:
            return

        lib = self.lib
        lib.cudaSetDevice.argtypes = [c_int]
        lib.cudaSetDevice.restype = c_int

        lib.cudaDeviceSynchronize.argtypes = []
        lib.cudaDeviceSynchronize.restype = c_int

        lib.cudaMalloc.argtypes = [ctypes.POINTER(c_void_p), c_size_t]
        lib.cudaMalloc.restype = c_int

        lib.cudaFree.argtypes = [c_void_p]
        lib.cudaFree.restype = c_int

        # cudaMemcpy(void* dst, const void* src, size_t count, cudaMemcpyKind kind)
        lib.cudaMemcpy.argtypes = [c_void_p, c_void_p, c_size_t, c_int]
        lib.cudaMemcpy.restype = c_int

        lib.cudaGetErrorString.argtypes = [c_int]
        lib.cudaGetErrorString.restype = c_char_p

        self._bound = True

    def _check(self, status: int, what: str) -> None:
        if status != 0:
            msg = self.lib.cudaGetErrorString(int(status))
            text = msg.decode("utf-8", "replace") if msg else "unknown error"
            raise DeviceError(f"{what} failed with status={status}: {text}")

    def set_device(self, device: int = 0) -> None:
        self._bind()
        self._check(self.lib.cudaSetDevice(int(device)), "cudaSetDevice")

    def synchronize(self) -> None:
        self._bind()
        self._check(self.lib.cudaDeviceSynchronize(), "cudaDeviceSynchronize")

    def malloc(self, nbytes: int) -> DevPtr:
        """
        Allocate `nbytes` of device memory.

        A zero-byte request returns the null handle without calling the
        runtime.
        """
        self._bind()
        if int(nbytes) == 0:
            return 0
        ptr = c_void_p()
        self._check(
            self.lib.cudaMalloc(ctypes.byref(ptr), c_size_t(int(nbytes))),
            "cudaMalloc",
        )
        return int(ptr.value or 0)

    def free(self, dev_ptr: DevPtr) -> None:
        self._bind()
        if int(dev_ptr) == 0:
            return
        self._check(self.lib.cudaFree(c_void_p(int(dev_ptr))), "cudaFree")

    def memcpy_h2d(self, dst_dev: DevPtr, src_host: np.ndarray) -> None:
        self._bind()
        if not src_host.flags["C_CONTIGUOUS"]:
            src_host = np.ascontiguousarray(src_host)
        if src_host.nbytes == 0:
            return
        self._check(
            self.lib.cudaMemcpy(
                c_void_p(int(dst_dev)),
                c_void_p(int(src_host.ctypes.data)),
                c_size_t(int(src_host.nbytes)),
                _MEMCPY_H2D,
            ),
            "cudaMemcpy(H2D)",
        )

    def memcpy_d2h(self, dst_host: np.ndarray, src_dev: DevPtr) -> None:
        self._bind()
        if not dst_host.flags["C_CONTIGUOUS"]:
            raise ValueError("dst_host must be C-contiguous")
        if dst_host.nbytes == 0:
            return
        self._check(
            self.lib.cudaMemcpy(
                c_void_p(int(dst_host.ctypes.data)),
                c_void_p(int(src_dev)),
                c_size_t(int(dst_host.nbytes)),
                _MEMCPY_D2H,
            ),
            "cudaMemcpy(D2H)",
        )

    def memcpy_d2d(self, dst_dev: DevPtr, src_dev: DevPtr, nbytes: int) -> None:
        self._bind()
        if int(nbytes) == 0:
            return
        self._check(
            self.lib.cudaMemcpy(
                c_void_p(int(dst_dev)),
                c_void_p(int(src_dev)),
                c_size_t(int(nbytes)),
                _MEMCPY_D2D,
            ),
            "cudaMemcpy(D2D)",
        )


# ---------------------------------------------------------------------
# Singleton pattern (one binding wrapper per loaded library)
# ---------------------------------------------------------------------

_cudart_singleton: CudaRuntimeLib | None = None


def get_cudart(lib: ctypes.CDLL) -> CudaRuntimeLib:
    """
    Return a cached `CudaRuntimeLib` wrapper for a given `ctypes.CDLL`.
    """
    global _cudart_singleton
    if _cudart_singleton is None or _cudart_singleton.lib is not lib:
        _cudart_singleton = CudaRuntimeLib(lib)
    return _cudart_singleton

