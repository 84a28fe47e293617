"""
Mapping of reduction-axis patterns onto primitive modes.
"""

from __future__ import annotations

from ...domain._errors import DimensionError
from ...domain.normalization._mode import BatchNormMode

# (N, C, [D,] H, W) layouts reduced over N and every spatial dimension.
_SPATIAL_AXES = ((0, 2, 3), (0, 2, 3, 4))


def select_batch_norm_mode(axis: tuple[int, ...]) -> BatchNormMode:
    """
    Classify a normalized axis set.

    Parameters
    ----------
    axis : tuple[int, ...]
        Sorted, validated axis set (see `normalize_axes`).

    Returns
    -------
    BatchNormMode
        ``PER_ACTIVATION`` for ``(0,)``; ``SPATIAL`` for ``(0, 2, 3)`` and
        ``(0, 2, 3, 4)``.

    Raises
    ------
    DimensionError
        For every other axis set.
    """
    axis = tuple(axis)
    if axis == (0,):
        return BatchNormMode.PER_ACTIVATION
    if axis in _SPATIAL_AXES:
        return BatchNormMode.SPATIAL
    raise DimensionError(
        f"Invalid axis for BatchNorm using cuDNN {axis}. Expected 1, 3 or 4 dimensions."
    )
