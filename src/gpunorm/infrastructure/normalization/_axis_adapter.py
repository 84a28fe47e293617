"""
Adaptation of N-dimensional tensors to the primitive's 4D layout.

The accelerated primitive only understands NCHW tensors whose parameter-bearing
("channel") dimension sits at index 1. This module computes which dimensions
survive the reduction (the key axes) and reshapes an input into that canonical
4D view when possible.
"""

from __future__ import annotations

from ...domain._errors import DimensionError
from ..tensor._tensor import Tensor


def compute_key_axes(ndim: int, axis: tuple[int, ...]) -> tuple[int, ...]:
    """
    Return the ascending complement of `axis` within ``range(ndim)``.

    Examples
    --------
    >>> compute_key_axes(4, (0, 2, 3))
    (1,)
    >>> compute_key_axes(4, (0,))
    (1, 2, 3)
    """
    return tuple(i for i in range(int(ndim)) if i not in axis)


def as_4d(x: Tensor, key_axis: tuple[int, ...]) -> Tensor:
    """
    Reshape `x` into the canonical 4D view expected by the primitive.

    Parameters
    ----------
    x : Tensor
        Contiguous input tensor.
    key_axis : tuple[int, ...]
        Dimensions that keep independent parameters (see `compute_key_axes`).

    Returns
    -------
    Tensor
        - `x` itself if it is rank 4 and its first key axis is 1;
        - a ``(numel // C, C, 1, 1)`` view if the first key axis is the last
          dimension (size ``C``), flattening every other dimension into the
          batch dimension.

    Raises
    ------
    DimensionError
        For any other combination, including an empty key-axis set.
    """
    if not key_axis:
        raise DimensionError(
            f"No dimension of shape {x.shape} survives the reduction; "
            "at least one key axis is required"
        )

    if x.ndim == 4 and key_axis[0] == 1:
        return x

    if key_axis[0] == x.ndim - 1:
        last_dim_size = x.shape[-1]
        if last_dim_size == 0:
            raise DimensionError(f"Cannot canonicalize shape {x.shape} with C=0")
        return x.reshape((x.numel() // last_dim_size, last_dim_size, 1, 1))

    raise DimensionError(
        f"Unexpected combination of array shape: {x.shape} and key_axis: {key_axis}"
    )
