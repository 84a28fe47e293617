"""
Concrete strided Tensor (NumPy host backend, CUDA device backend).

This module provides the `Tensor` container the normalization backend works
on. It implements the domain-level `ITensor` contract:

- shape / dtype / device / byte-stride queries and a contiguity flag
- non-owning views (`reshape`, `transpose`)
- owning copies (`astype`, `as_contiguous`)
- raw pointer and byte-size access for handing buffers to native code

Storage
-------
- CPU tensors wrap a NumPy ndarray, which may itself be a strided view of a
  caller-owned array. `Tensor.from_numpy` does **not** copy on CPU, so
  in-place updates made through the tensor are visible in the original array.
- CUDA tensors reference a `_CudaStorage` allocation plus a byte offset and
  byte strides. Views share the allocation.

Notes
-----
CUDA dtype conversion and contiguous materialization of strided CUDA tensors
are staged through host memory. This keeps the container free of device
kernels; a `RuntimeWarning` is emitted the first time it happens.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union
import warnings

import numpy as np

from ...domain._axes import shape_numel
from ...domain._tensor import ITensor
from ...domain.device._device import Device
from ...domain._errors import DeviceNotSupportedError
from ..native_cuda.python._native_loader import load_cudart
from ..native_cuda.python.cudart_ctypes import CudaRuntimeLib, get_cudart
from ._cuda_storage import _CudaStorage

DTypeLike = Union[np.dtype, type, str]

_host_staging_warned = False


def _warn_host_staging(op: str) -> None:
    global _host_staging_warned
    if _host_staging_warned:
        return
    _host_staging_warned = True
    warnings.warn(
        f"Tensor.{op} on a CUDA tensor is staged through host memory; "
        "expect a device synchronization and two PCIe transfers.",
        RuntimeWarning,
        stacklevel=3,
    )


def _c_contiguous_strides(shape: tuple[int, ...], itemsize: int) -> tuple[int, ...]:
    strides: list[int] = []
    acc = int(itemsize)
    for d in reversed(shape):
        strides.append(acc)
        acc *= max(int(d), 1)
    return tuple(reversed(strides))


def _resolve_shape(new_shape: Sequence[int], numel: int) -> tuple[int, ...]:
    """
    Resolve a single ``-1`` entry and validate the element count.

    Raises
    ------
    ValueError
        If more than one ``-1`` is given or the element count differs.
    """
    shape = [int(d) for d in new_shape]
    unknown = [i for i, d in enumerate(shape) if d == -1]
    if len(unknown) > 1:
        raise ValueError(f"Only one dimension can be -1, got {tuple(shape)}")
    if unknown:
        known = shape_numel(tuple(d for d in shape if d != -1))
        if known == 0 or numel % known != 0:
            raise ValueError(f"Cannot reshape {numel} elements into {tuple(shape)}")
        shape[unknown[0]] = numel // known
    if shape_numel(tuple(shape)) != numel:
        raise ValueError(f"Cannot reshape {numel} elements into {tuple(shape)}")
    return tuple(shape)


def _cudart_for(device: Device) -> CudaRuntimeLib:
    cudart = get_cudart(load_cudart())
    cudart.set_device(int(device.index or 0))
    return cudart


class Tensor(ITensor):
    """
    Strided, device-resident tensor.

    Parameters
    ----------
    shape : tuple[int, ...]
        Tensor shape.
    device : Device
        Target device placement for the tensor.
    dtype : np.dtype, optional
        Element dtype. Defaults to np.float32.

    Notes
    -----
    - The constructor allocates fresh storage: zero-filled on CPU,
      uninitialized on CUDA.
    - `dtype` is always a normalized `np.dtype`.
    """

    def __init__(
        self,
        shape: tuple[int, ...],
        device: Device,
        *,
        dtype: DTypeLike = np.float32,
    ) -> None:
        self._shape = tuple(int(d) for d in shape)
        self._device = device
        self._dtype = np.dtype(dtype)

        if device.is_cpu():
            self._array: Optional[np.ndarray] = np.zeros(self._shape, dtype=self._dtype)
            self._storage: Optional[_CudaStorage] = None
            self._offset = 0
            self._strides = tuple(int(s) for s in self._array.strides)
        elif device.is_cuda():
            nbytes = shape_numel(self._shape) * self._dtype.itemsize
            self._array = None
            self._storage = _CudaStorage.allocate(
                _cudart_for(device), int(device.index or 0), nbytes
            )
            self._offset = 0
            self._strides = _c_contiguous_strides(self._shape, self._dtype.itemsize)
        else:
            raise DeviceNotSupportedError("Tensor allocation", str(device))

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def _host_view(cls, arr: np.ndarray, device: Device) -> "Tensor":
        obj = cls.__new__(cls)  # bypass __init__
        obj._shape = tuple(int(d) for d in arr.shape)
        obj._device = device
        obj._dtype = arr.dtype
        obj._array = arr
        obj._storage = None
        obj._offset = 0
        obj._strides = tuple(int(s) for s in arr.strides)
        return obj

    @classmethod
    def _cuda_view(
        cls,
        storage: _CudaStorage,
        *,
        shape: tuple[int, ...],
        strides: tuple[int, ...],
        offset: int,
        dtype: np.dtype,
        device: Device,
    ) -> "Tensor":
        obj = cls.__new__(cls)  # bypass __init__
        obj._shape = tuple(int(d) for d in shape)
        obj._device = device
        obj._dtype = np.dtype(dtype)
        obj._array = None
        obj._storage = storage
        obj._offset = int(offset)
        obj._strides = tuple(int(s) for s in strides)
        return obj

    @classmethod
    def from_numpy(cls, arr: np.ndarray, *, device: Optional[Device] = None) -> "Tensor":
        """
        Create a tensor from a NumPy array.

        Parameters
        ----------
        arr : np.ndarray
            Source array. Any layout is accepted.
        device : Device, optional
            Target device. Defaults to CPU.

        Returns
        -------
        Tensor
            - CPU: a tensor **sharing memory** with `arr` (same strides, so a
              non-contiguous array yields a non-contiguous tensor).
            - CUDA: a contiguous device copy of `arr`.
        """
        device = device if device is not None else Device("cpu")
        arr = np.asarray(arr)

        if device.is_cpu():
            return cls._host_view(arr, device)
        if device.is_cuda():
            out = cls(arr.shape, device, dtype=arr.dtype)
            out._storage.cudart.memcpy_h2d(out.data_ptr, np.ascontiguousarray(arr))
            return out
        raise DeviceNotSupportedError("Tensor.from_numpy", str(device))

    @staticmethod
    def empty_like(
        other: "Tensor",
        *,
        dtype: Optional[DTypeLike] = None,
        shape: Optional[tuple[int, ...]] = None,
    ) -> "Tensor":
        """
        Allocate a contiguous tensor on `other`'s device.

        Parameters
        ----------
        other : Tensor
            Template tensor.
        dtype : np.dtype, optional
            Overrides the template dtype.
        shape : tuple[int, ...], optional
            Overrides the template shape.
        """
        return Tensor(
            other.shape if shape is None else shape,
            other.device,
            dtype=other.dtype if dtype is None else dtype,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        if self._device.is_cuda():
            return (
                f"Tensor(shape={self._shape}, device={self._device}, "
                f"dtype={self._dtype}, data=DevPtr({self.data_ptr}))"
            )
        return f"Tensor(shape={self._shape}, device={self._device}, dtype={self._dtype})"

    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def ndim(self) -> int:
        return len(self._shape)

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def device(self) -> Device:
        return self._device

    @property
    def strides(self) -> tuple[int, ...]:
        """Byte strides, NumPy convention."""
        return self._strides

    @property
    def nbytes(self) -> int:
        return self.numel() * self._dtype.itemsize

    @property
    def data(self) -> int | np.ndarray:
        """
        Return the underlying storage for this tensor.

        Returns
        -------
        numpy.ndarray or int
            - CPU: the (possibly strided) NumPy ndarray backing the tensor.
            - CUDA: the device address of the first element, as a Python int.
        """
        if self._array is not None:
            return self._array
        return self.data_ptr

    @property
    def data_ptr(self) -> int:
        """Raw address of the first element (host or device)."""
        if self._array is not None:
            return int(self._array.ctypes.data)
        return int(self._storage.dev_ptr) + self._offset

    def numel(self) -> int:
        return shape_numel(self._shape)

    def is_contiguous(self) -> bool:
        """
        Return True if the elements are laid out densely in C order.

        Dimensions of size 1 do not affect contiguity.
        """
        if self._array is not None:
            return bool(self._array.flags["C_CONTIGUOUS"])
        if self.numel() == 0:
            return True
        expected = _c_contiguous_strides(self._shape, self._dtype.itemsize)
        return all(
            d == 1 or s == e for d, s, e in zip(self._shape, self._strides, expected)
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def reshape(self, new_shape: tuple[int, ...]) -> "Tensor":
        """
        Return a reshaped, non-owning view.

        Parameters
        ----------
        new_shape : tuple[int, ...]
            Target shape; one entry may be -1.

        Raises
        ------
        ValueError
            If the element count differs, or the tensor is not contiguous
            (call `as_contiguous()` first).
        """
        shape = _resolve_shape(new_shape, self.numel())
        if not self.is_contiguous():
            raise ValueError(
                f"Cannot reshape a non-contiguous tensor of shape {self._shape} "
                "without copying; call as_contiguous() first"
            )
        if shape == self._shape:
            return self

        if self._array is not None:
            # C-contiguous input: NumPy returns a view, never a copy.
            return Tensor._host_view(self._array.reshape(shape), self._device)

        return Tensor._cuda_view(
            self._storage,
            shape=shape,
            strides=_c_contiguous_strides(shape, self._dtype.itemsize),
            offset=self._offset,
            dtype=self._dtype,
            device=self._device,
        )

    def transpose(self, axes: Optional[Sequence[int]] = None) -> "Tensor":
        """
        Return a view with permuted dimensions (metadata only).

        Parameters
        ----------
        axes : Sequence[int], optional
            Permutation of ``range(ndim)``; reverses the dimensions if omitted.
        """
        perm = (
            tuple(reversed(range(self.ndim)))
            if axes is None
            else tuple(int(a) for a in axes)
        )
        if sorted(perm) != list(range(self.ndim)):
            raise ValueError(f"Invalid permutation {perm} for rank {self.ndim}")

        if self._array is not None:
            return Tensor._host_view(self._array.transpose(perm), self._device)

        return Tensor._cuda_view(
            self._storage,
            shape=tuple(self._shape[p] for p in perm),
            strides=tuple(self._strides[p] for p in perm),
            offset=self._offset,
            dtype=self._dtype,
            device=self._device,
        )

    # ------------------------------------------------------------------
    # Copies
    # ------------------------------------------------------------------

    def to_numpy(self) -> np.ndarray:
        """
        Return a C-contiguous host copy of the tensor's values.
        """
        if self._array is not None:
            return np.array(self._array, copy=True, order="C")

        if self.numel() == 0:
            return np.empty(self._shape, dtype=self._dtype)

        # Copy the byte span covered by the view, then gather on the host.
        span = sum((d - 1) * s for d, s in zip(self._shape, self._strides))
        span += self._dtype.itemsize
        raw = np.empty((span // self._dtype.itemsize,), dtype=self._dtype)
        cudart = self._storage.cudart
        cudart.set_device(int(self._storage.device_index))
        cudart.memcpy_d2h(raw, self.data_ptr)
        gathered = np.lib.stride_tricks.as_strided(
            raw, shape=self._shape, strides=self._strides
        )
        return np.ascontiguousarray(gathered)

    def astype(self, dtype: DTypeLike, *, copy: bool = True) -> "Tensor":
        """
        Cast to `dtype`, returning an owning contiguous copy.

        Parameters
        ----------
        dtype : np.dtype
            Target element dtype.
        copy : bool, optional
            If False and the dtype already matches, `self` is returned
            unchanged (no copy is made).
        """
        target = np.dtype(dtype)
        if not copy and target == self._dtype:
            return self

        if self._array is not None:
            return Tensor._host_view(
                np.array(self._array, dtype=target, copy=True, order="C"),
                self._device,
            )

        _warn_host_staging("astype")
        return Tensor.from_numpy(self.to_numpy().astype(target), device=self._device)

    def as_contiguous(self) -> "Tensor":
        """
        Return `self` if already contiguous, else a contiguous copy.
        """
        if self.is_contiguous():
            return self

        if self._array is not None:
            return Tensor._host_view(np.ascontiguousarray(self._array), self._device)

        _warn_host_staging("as_contiguous")
        return Tensor.from_numpy(self.to_numpy(), device=self._device)
