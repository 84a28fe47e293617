"""
Scoped dtype coercion of batch-normalization parameters.

The primitive chooses the dtype of scale, shift and running statistics (e.g.
float32 parameters for a float16 input). `ParameterCast` adapts the caller's
tensors to that dtype for the duration of one primitive call:

- on enter, it produces cast copies of gamma, beta, running_mean and
  running_var wherever their dtype differs from the required one; tensors that
  already match are passed through untouched (no copy);
- on clean exit, every running statistic that was cast is converted back to
  its original dtype and copied byte-for-byte into the caller's storage,
  because the primitive only updated the cast buffers;
- if the block raises, nothing is written back.

When no cast happens the write-back is a no-op, so calling code is the same
either way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import numpy as np
from typing_extensions import Self

from ..tensor._tensor import Tensor

if TYPE_CHECKING:
    from ..device._context import DeviceContext


class ParameterCast:
    """
    Context manager reconciling parameter dtypes with the primitive.

    Parameters
    ----------
    context : DeviceContext
        Execution context providing device-to-device copies.
    gamma, beta : Tensor
        Scale and shift parameters.
    running_mean, running_var : Tensor
        Caller-owned running statistics. Must be contiguous.
    dtype : np.dtype | str
        Dtype required by the primitive.

    Attributes
    ----------
    gamma, beta, running_mean, running_var : Tensor
        Tensors to hand to the primitive (available inside the ``with`` block).
    """

    def __init__(
        self,
        context: "DeviceContext",
        *,
        gamma: Tensor,
        beta: Tensor,
        running_mean: Tensor,
        running_var: Tensor,
        dtype,
    ) -> None:
        self._context = context
        self._dtype = np.dtype(dtype)
        self._originals = {
            "gamma": gamma,
            "beta": beta,
            "running_mean": running_mean,
            "running_var": running_var,
        }

        self.gamma: Optional[Tensor] = None
        self.beta: Optional[Tensor] = None
        self.running_mean: Optional[Tensor] = None
        self.running_var: Optional[Tensor] = None

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def cast_occurred(self) -> bool:
        """True if at least one tensor was replaced by a copy (False before enter)."""
        if self.gamma is None:
            return False
        return any(
            getattr(self, name) is not orig for name, orig in self._originals.items()
        )

    def __enter__(self) -> Self:
        o = self._originals
        # Scale/shift are read through raw pointers, so they must be dense too.
        self.gamma = o["gamma"].astype(self._dtype, copy=False).as_contiguous()
        self.beta = o["beta"].astype(self._dtype, copy=False).as_contiguous()
        self.running_mean = o["running_mean"].astype(self._dtype, copy=False)
        self.running_var = o["running_var"].astype(self._dtype, copy=False)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.write_back()

    def write_back(self) -> None:
        """
        Copy primitive-updated running statistics back into caller storage.

        Only statistics that were cast are copied; the rest were updated in
        place already.
        """
        for name in ("running_mean", "running_var"):
            original = self._originals[name]
            cast = getattr(self, name)
            if cast is None or cast is original:
                continue
            self._context.memory_copy(original, cast.astype(original.dtype))
