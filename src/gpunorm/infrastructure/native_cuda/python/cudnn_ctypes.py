"""
ctypes bindings for the cuDNN batch-normalization API.

Bound symbols
-------------
- cudnnGetVersion / cudnnGetErrorString
- cudnnCreate / cudnnDestroy
- cudnnCreateTensorDescriptor / cudnnDestroyTensorDescriptor
- cudnnSetTensor4dDescriptor / cudnnGetTensor4dDescriptor
- cudnnDeriveBNTensorDescriptor
- cudnnBatchNormalizationForwardTraining

Design notes
------------
- Handles and descriptors are opaque pointers stored as `c_void_p`.
- Every non-zero ``cudnnStatus_t`` becomes a `ComputationError` carrying the
  status code and cuDNN's own error string.
- `TensorDescriptor` owns a cuDNN tensor descriptor and destroys it
  deterministically; use it as a context manager.
"""

from __future__ import annotations

import ctypes
from ctypes import byref, c_char_p, c_double, c_float, c_int, c_size_t, c_void_p

from ....domain._errors import ComputationError, DtypeError

DevPtr = int

CUDNN_TENSOR_NCHW = 0

CUDNN_DATA_FLOAT = 0
CUDNN_DATA_DOUBLE = 1
CUDNN_DATA_HALF = 2

_CUDNN_DTYPE_BY_NAME = {
    "float32": CUDNN_DATA_FLOAT,
    "float64": CUDNN_DATA_DOUBLE,
    "float16": CUDNN_DATA_HALF,
}


def cudnn_data_type(dtype_name: str) -> int:
    """
    Map a canonical dtype name to ``cudnnDataType_t``.

    Raises
    ------
    DtypeError
        If cuDNN has no matching data type.
    """
    try:
        return _CUDNN_DTYPE_BY_NAME[dtype_name]
    except KeyError:
        raise DtypeError(f"Unsupported dtype for cuDNN: {dtype_name}") from None


def dtype_name_from_cudnn(cudnn_dtype: int) -> str:
    """
    Map a ``cudnnDataType_t`` of a derived parameter descriptor back to a
    canonical dtype name.

    Raises
    ------
    DtypeError
        For any cuDNN type other than float/double.
    """
    if cudnn_dtype == CUDNN_DATA_DOUBLE:
        return "float64"
    if cudnn_dtype == CUDNN_DATA_FLOAT:
        return "float32"
    # TODO: map CUDNN_DATA_HALF once half-precision parameters are supported.
    raise DtypeError(f"Unsupported cudnn data type: {cudnn_dtype}")


class CudnnLib:
    """
    Thin binding layer around a loaded cuDNN library.
    """

    def __init__(self, lib: ctypes.CDLL) -> None:
        self.lib = lib
        self._bound = False

    def _bind(self) -> None:
        if self._bound:
            return

        lib = self.lib
        lib.cudnnGetVersion.argtypes = []
        lib.cudnnGetVersion.restype = c_size_t

        lib.cudnnGetErrorString.argtypes = [c_int]
        lib.cudnnGetErrorString.restype = c_char_p

        lib.cudnnCreate.argtypes = [ctypes.POINTER(c_void_p)]
        lib.cudnnCreate.restype = c_int

        lib.cudnnDestroy.argtypes = [c_void_p]
        lib.cudnnDestroy.restype = c_int

        lib.cudnnCreateTensorDescriptor.argtypes = [ctypes.POINTER(c_void_p)]
        lib.cudnnCreateTensorDescriptor.restype = c_int

        lib.cudnnDestroyTensorDescriptor.argtypes = [c_void_p]
        lib.cudnnDestroyTensorDescriptor.restype = c_int

        # (desc, format, dataType, n, c, h, w)
        lib.cudnnSetTensor4dDescriptor.argtypes = [
            c_void_p,
            c_int,
            c_int,
            c_int,
            c_int,
            c_int,
            c_int,
        ]
        lib.cudnnSetTensor4dDescriptor.restype = c_int

        # (desc, *dataType, *n, *c, *h, *w, *nStride, *cStride, *hStride, *wStride)
        lib.cudnnGetTensor4dDescriptor.argtypes = [c_void_p] + [
            ctypes.POINTER(c_int)
        ] * 9
        lib.cudnnGetTensor4dDescriptor.restype = c_int

        # (derivedBnDesc, xDesc, mode)
        lib.cudnnDeriveBNTensorDescriptor.argtypes = [c_void_p, c_void_p, c_int]
        lib.cudnnDeriveBNTensorDescriptor.restype = c_int

        lib.cudnnBatchNormalizationForwardTraining.argtypes = [
            c_void_p,  # handle
            c_int,  # mode
            c_void_p,  # alpha (host)
            c_void_p,  # beta (host)
            c_void_p,  # xDesc
            c_void_p,  # x
            c_void_p,  # yDesc
            c_void_p,  # y
            c_void_p,  # bnScaleBiasMeanVarDesc
            c_void_p,  # bnScale
            c_void_p,  # bnBias
            c_double,  # exponentialAverageFactor
            c_void_p,  # resultRunningMean
            c_void_p,  # resultRunningVariance
            c_double,  # epsilon
            c_void_p,  # resultSaveMean
            c_void_p,  # resultSaveInvVariance
        ]
        lib.cudnnBatchNormalizationForwardTraining.restype = c_int

        self._bound = True

    def check(self, status: int, what: str) -> None:
        """
        Raise `ComputationError` if `status` is not ``CUDNN_STATUS_SUCCESS``.
        """
        if status != 0:
            self._bind()
            msg = self.lib.cudnnGetErrorString(int(status))
            text = msg.decode("utf-8", "replace") if msg else "unknown error"
            raise ComputationError(
                f"{what} failed with status={status}: {text}", status=int(status)
            )

    def version(self) -> int:
        self._bind()
        return int(self.lib.cudnnGetVersion())

    def create_handle(self) -> int:
        self._bind()
        handle = c_void_p()
        self.check(self.lib.cudnnCreate(byref(handle)), "cudnnCreate")
        return int(handle.value or 0)

    def destroy_handle(self, handle: int) -> None:
        self._bind()
        self.check(self.lib.cudnnDestroy(c_void_p(int(handle))), "cudnnDestroy")

    def create_tensor_descriptor(self) -> int:
        self._bind()
        desc = c_void_p()
        self.check(
            self.lib.cudnnCreateTensorDescriptor(byref(desc)),
            "cudnnCreateTensorDescriptor",
        )
        return int(desc.value or 0)

    def destroy_tensor_descriptor(self, desc: int) -> None:
        self._bind()
        self.check(
            self.lib.cudnnDestroyTensorDescriptor(c_void_p(int(desc))),
            "cudnnDestroyTensorDescriptor",
        )

    def set_tensor_4d_descriptor(
        self, desc: int, shape: tuple[int, int, int, int], dtype_name: str
    ) -> None:
        self._bind()
        n, c, h, w = (int(d) for d in shape)
        self.check(
            self.lib.cudnnSetTensor4dDescriptor(
                c_void_p(int(desc)),
                CUDNN_TENSOR_NCHW,
                cudnn_data_type(dtype_name),
                n,
                c,
                h,
                w,
            ),
            "cudnnSetTensor4dDescriptor",
        )

    def get_tensor_4d_descriptor(
        self, desc: int
    ) -> tuple[int, tuple[int, int, int, int]]:
        """
        Return ``(cudnnDataType_t, (n, c, h, w))`` of a 4D descriptor.
        """
        self._bind()
        vals = [c_int() for _ in range(9)]
        self.check(
            self.lib.cudnnGetTensor4dDescriptor(
                c_void_p(int(desc)), *(byref(v) for v in vals)
            ),
            "cudnnGetTensor4dDescriptor",
        )
        dt, n, c, h, w = (v.value for v in vals[:5])
        return int(dt), (int(n), int(c), int(h), int(w))

    def derive_bn_tensor_descriptor(self, derived: int, x_desc: int, mode: int) -> None:
        self._bind()
        self.check(
            self.lib.cudnnDeriveBNTensorDescriptor(
                c_void_p(int(derived)), c_void_p(int(x_desc)), int(mode)
            ),
            "cudnnDeriveBNTensorDescriptor",
        )

    def batch_norm_forward_training(
        self,
        *,
        handle: int,
        mode: int,
        data_dtype_name: str,
        x_desc: int,
        x: DevPtr,
        y_desc: int,
        y: DevPtr,
        bn_desc: int,
        scale: DevPtr,
        bias: DevPtr,
        exponential_average_factor: float,
        running_mean: DevPtr,
        running_var: DevPtr,
        eps: float,
        save_mean: DevPtr,
        save_inv_var: DevPtr,
    ) -> None:
        """
        Enqueue ``cudnnBatchNormalizationForwardTraining``.

        Scaling factors are ``y = 1 * result + 0 * y``; they are passed as
        host ``double`` for double data and host ``float`` otherwise, as cuDNN
        requires.
        """
        self._bind()
        scalar = c_double if data_dtype_name == "float64" else c_float
        alpha = scalar(1.0)
        beta = scalar(0.0)

        self.check(
            self.lib.cudnnBatchNormalizationForwardTraining(
                c_void_p(int(handle)),
                int(mode),
                ctypes.cast(byref(alpha), c_void_p),
                ctypes.cast(byref(beta), c_void_p),
                c_void_p(int(x_desc)),
                c_void_p(int(x)),
                c_void_p(int(y_desc)),
                c_void_p(int(y)),
                c_void_p(int(bn_desc)),
                c_void_p(int(scale)),
                c_void_p(int(bias)),
                c_double(float(exponential_average_factor)),
                c_void_p(int(running_mean)),
                c_void_p(int(running_var)),
                c_double(float(eps)),
                c_void_p(int(save_mean)),
                c_void_p(int(save_inv_var)),
            ),
            "cudnnBatchNormalizationForwardTraining",
        )


class TensorDescriptor:
    """
    Owned cuDNN tensor descriptor.

    Parameters
    ----------
    cudnn : CudnnLib
        Binding used to create and destroy the descriptor.

    Notes
    -----
    The descriptor is created on construction and destroyed by `close()` or
    on leaving a ``with`` block.
    """

    def __init__(self, cudnn: CudnnLib) -> None:
        self._cudnn = cudnn
        self.handle = cudnn.create_tensor_descriptor()

    @classmethod
    def for_4d(
        cls, cudnn: CudnnLib, shape: tuple[int, int, int, int], dtype_name: str
    ) -> "TensorDescriptor":
        """Create a packed NCHW descriptor for `shape` / `dtype_name`."""
        desc = cls(cudnn)
        try:
            cudnn.set_tensor_4d_descriptor(desc.handle, shape, dtype_name)
        except BaseException:
            desc.close()
            raise
        return desc

    @classmethod
    def derived_bn(
        cls, cudnn: CudnnLib, x_desc: "TensorDescriptor", mode: int
    ) -> "TensorDescriptor":
        """Create the scale/bias/mean/var descriptor cuDNN derives for `x_desc`."""
        desc = cls(cudnn)
        try:
            cudnn.derive_bn_tensor_descriptor(desc.handle, x_desc.handle, mode)
        except BaseException:
            desc.close()
            raise
        return desc

    def get_4d(self) -> tuple[int, tuple[int, int, int, int]]:
        return self._cudnn.get_tensor_4d_descriptor(self.handle)

    def close(self) -> None:
        if self.handle:
            handle, self.handle = self.handle, 0
            self._cudnn.destroy_tensor_descriptor(handle)

    def __enter__(self) -> "TensorDescriptor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


_cudnn_singleton: CudnnLib | None = None


def get_cudnn(lib: ctypes.CDLL) -> CudnnLib:
    """
    Return a cached `CudnnLib` wrapper for a given `ctypes.CDLL`.
    """
    global _cudnn_singleton
    if _cudnn_singleton is None or _cudnn_singleton.lib is not lib:
        _cudnn_singleton = CudnnLib(lib)
    return _cudnn_singleton
