"""
Accelerated-primitive contract for batch normalization.

`NormalizationBackend` isolates the rigid contract of the external
normalization library (4-dimensional NCHW descriptors, two modes, a
library-chosen parameter dtype) from the axis/shape adaptation logic. The
forward executor only talks to this protocol, so a pure-software emulation
(`HostNormalizationBackend`) and the cuDNN binding
(`CudnnNormalizationBackend`) are interchangeable.

Design notes
------------
- Backends are owned by a device execution context and handed to the
  executor explicitly; there is no global backend state.
- `forward_training` receives already-reconciled tensors: the canonical 4D
  input/output views, parameters in the descriptor dtype, contiguous
  running statistics that it must update **in place**, and cache tensors it
  must fill with the per-call mean and inverse variance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .._tensor import ITensor
from ._mode import BatchNormMode

#: Minimum epsilon accepted by the primitive (``CUDNN_BN_MIN_EPSILON``).
BN_MIN_EPSILON: float = 1e-5


@dataclass(frozen=True)
class ParamDescriptor:
    """
    Shape/dtype contract of scale, shift and statistics tensors.

    Attributes
    ----------
    shape : tuple[int, int, int, int]
        4D shape derived by the primitive: ``(1, C, H, W)`` for per-activation
        mode, ``(1, C, 1, 1)`` for spatial mode.
    dtype : str
        Canonical dtype name required by the primitive (e.g. "float32").
    """

    shape: tuple[int, int, int, int]
    dtype: str

    def numel(self) -> int:
        """Number of independent parameter positions."""
        n = 1
        for d in self.shape:
            n *= int(d)
        return n


@runtime_checkable
class NormalizationBackend(Protocol):
    """
    Structural contract of an accelerated batch-normalization primitive.
    """

    @property
    def min_epsilon(self) -> float:
        """Smallest epsilon the primitive accepts."""
        ...

    def derive_param_descriptor(
        self,
        x_shape: tuple[int, int, int, int],
        x_dtype: str,
        mode: BatchNormMode,
    ) -> ParamDescriptor:
        """
        Derive the parameter descriptor for a canonical 4D input.

        Raises
        ------
        DtypeError
            If the input dtype cannot be described, or the derived dtype is
            not supported by the executor.
        """
        ...

    def forward_training(
        self,
        *,
        mode: BatchNormMode,
        x: ITensor,
        y: ITensor,
        param_desc: ParamDescriptor,
        gamma: ITensor,
        beta: ITensor,
        exponential_average_factor: float,
        running_mean: ITensor,
        running_var: ITensor,
        eps: float,
        save_mean: ITensor,
        save_inv_var: ITensor,
    ) -> None:
        """
        Run the training-mode forward pass.

        Raises
        ------
        ComputationError
            If the primitive reports failure.
        """
        ...
