"""
Axis-set utilities.

An axis set is the ordered set of dimension indices a reduction runs over.
Throughout gpunorm an axis set is represented as a plain ``tuple[int, ...]``
that is sorted ascending, free of duplicates and within ``[0, ndim)``.
`normalize_axes` is the single place where user-facing input (which may
contain negative indices or arrive unsorted) is turned into that form.
"""

from __future__ import annotations

import numbers
from typing import Iterable, Union

from ._errors import DimensionError

AxisLike = Union[int, Iterable[int]]


def normalize_axes(axis: AxisLike, ndim: int) -> tuple[int, ...]:
    """
    Validate and canonicalize an axis specification.

    Parameters
    ----------
    axis : int | Iterable[int]
        A single axis or an iterable of axes. Negative values count from the
        end, as in NumPy.
    ndim : int
        Rank of the tensor the axes refer to.

    Returns
    -------
    tuple[int, ...]
        Sorted tuple of unique, non-negative axis indices.

    Raises
    ------
    DimensionError
        If an axis is out of range or appears more than once.
    """
    raw = (axis,) if isinstance(axis, numbers.Integral) else tuple(axis)

    out: list[int] = []
    for a in raw:
        a = int(a)
        if a < -ndim or a >= ndim:
            raise DimensionError(
                f"Axis {a} is out of bounds for a tensor of rank {ndim}"
            )
        a = a % ndim if ndim > 0 else a
        if a in out:
            raise DimensionError(f"Duplicate axis {a} in {raw}")
        out.append(a)

    return tuple(sorted(out))


def reduce_shape(
    shape: tuple[int, ...], axis: tuple[int, ...], *, keepdims: bool = True
) -> tuple[int, ...]:
    """
    Shape of a tensor after reducing over `axis`.

    With ``keepdims=True`` reduced dimensions are kept with size 1, which is
    the shape scale/shift parameters have for a given axis set.

    Examples
    --------
    >>> reduce_shape((8, 3, 16, 16), (0, 2, 3))
    (1, 3, 1, 1)
    >>> reduce_shape((8, 3, 16, 16), (0, 2, 3), keepdims=False)
    (3,)
    """
    if keepdims:
        return tuple(1 if i in axis else int(d) for i, d in enumerate(shape))
    return tuple(int(d) for i, d in enumerate(shape) if i not in axis)


def shape_numel(shape: tuple[int, ...]) -> int:
    """Return the number of elements described by `shape`."""
    n = 1
    for d in shape:
        n *= int(d)
    return int(n)
