"""
Tensor interface consumed by the normalization backend.

`ITensor` captures exactly the surface the batch-normalization core needs
from a tensor container: shape/dtype/device queries, contiguity, non-owning
reshape, owning dtype cast and contiguous materialization, and raw pointer /
byte-size access for handing buffers to an accelerated primitive.

The concrete implementation lives in
`gpunorm.infrastructure.tensor._tensor.Tensor`.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .device._device_protocol import DeviceLike


@runtime_checkable
class ITensor(Protocol):
    """
    Structural tensor contract.

    Notes
    -----
    `dtype` is whatever dtype object the implementation uses; only its
    canonical name (``dtype.name``) is relied upon by domain code.
    """

    @property
    def shape(self) -> tuple[int, ...]: ...

    @property
    def ndim(self) -> int: ...

    @property
    def dtype(self) -> Any: ...

    @property
    def device(self) -> DeviceLike: ...

    @property
    def nbytes(self) -> int: ...

    @property
    def data_ptr(self) -> int: ...

    def numel(self) -> int: ...

    def is_contiguous(self) -> bool: ...

    def reshape(self, new_shape: tuple[int, ...]) -> "ITensor": ...

    def astype(self, dtype: Any, *, copy: bool = True) -> "ITensor": ...

    def as_contiguous(self) -> "ITensor": ...
