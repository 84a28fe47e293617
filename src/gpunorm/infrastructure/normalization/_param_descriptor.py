"""
Derivation of the scale/shift/statistics descriptor.
"""

from __future__ import annotations

from ...domain._errors import DimensionError
from ...domain.normalization._backend import NormalizationBackend, ParamDescriptor
from ...domain.normalization._mode import BatchNormMode
from ..tensor._tensor import Tensor


def derive_param_descriptor(
    x4d: Tensor, mode: BatchNormMode, backend: NormalizationBackend
) -> ParamDescriptor:
    """
    Ask the primitive which shape and dtype the parameters must have.

    Parameters
    ----------
    x4d : Tensor
        Canonical 4D view of the input.
    mode : BatchNormMode
        Mode selected for the axis set.
    backend : NormalizationBackend
        Primitive that owns the derivation rules.

    Returns
    -------
    ParamDescriptor
        Required parameter shape and dtype. The dtype can differ from the
        input dtype only for reduced-precision inputs.

    Raises
    ------
    DimensionError
        If `x4d` is not rank 4.
    DtypeError
        If the input dtype cannot be described or the derived dtype is not
        supported yet.
    """
    if x4d.ndim != 4:
        raise DimensionError(f"Expected a canonical 4D view, got shape {x4d.shape}")

    return backend.derive_param_descriptor(
        tuple(int(d) for d in x4d.shape), x4d.dtype.name, mode
    )
