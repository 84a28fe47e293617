"""
Device-, dtype- and computation-related exceptions for gpunorm.

This module defines the error taxonomy raised by the batch-normalization
device backend. Every error is raised synchronously at the point of violation
and propagates directly to the caller; nothing in the backend retries or falls
back to an alternative computation path.

Taxonomy
--------
- `DimensionError`: unsupported axis / shape combination.
- `DtypeError`: unsupported or unmapped element type.
- `DeviceError`: a resource or layout precondition was violated
  (e.g. non-contiguous in-place target).
- `ComputationError`: a numerical precondition was violated or the
  accelerated primitive reported a failure.

The device-placement errors `DeviceNotSupportedError` and
`DeviceMismatchError` are kept separate from the taxonomy above because they
signal misuse of the device abstraction itself rather than of the
normalization routine.
"""

from __future__ import annotations

from typing import Optional


class GpuNormError(RuntimeError):
    """
    Base class of every error raised by the normalization backend.

    Catching `GpuNormError` catches all four taxonomy members at once.
    """


class DimensionError(GpuNormError):
    """
    Raised when an axis set or tensor shape cannot be mapped onto the
    4-dimensional layout required by the accelerated primitive.
    """


class DtypeError(GpuNormError):
    """
    Raised when an element type has no counterpart in the accelerated
    primitive, or when the primitive derives a parameter type the executor
    does not support yet.
    """


class DeviceError(GpuNormError):
    """
    Raised when a memory-layout or resource precondition is violated.

    The typical case is a running statistic that is not contiguous: the
    primitive updates running statistics in place through a raw pointer, so
    strided storage cannot be accepted.
    """


class ComputationError(GpuNormError):
    """
    Raised when a numerical precondition is violated (e.g. epsilon below the
    primitive's minimum) or when the primitive itself reports failure.

    Attributes
    ----------
    status : Optional[int]
        Diagnostic status code returned by the primitive, or None when the
        error was detected before the primitive was invoked.
    """

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        """
        Initialize the ComputationError.

        Parameters
        ----------
        message : str
            Human-readable description of the failure.
        status : Optional[int], optional
            Status code reported by the primitive, if any.
        """
        super().__init__(message)
        self.status = status


class DeviceNotSupportedError(RuntimeError):
    """
    Raised when an operation is requested on a device backend that is not
    implemented.

    Attributes
    ----------
    op : str
        The name of the operation that was attempted.
    device : str
        String representation of the device on which the operation
        was attempted.
    """

    def __init__(self, op: str, device: str) -> None:
        super().__init__(f"{op} is not implemented for device '{device}'.")
        self.op = op
        self.device = device


class DeviceMismatchError(RuntimeError):
    """
    Raised when an operation is attempted between tensors on different devices.
    """

    def __init__(self, device_a: str, device_b: str) -> None:
        super().__init__(f"Device mismatch: '{device_a}' vs '{device_b}'.")
        self.device_a = device_a
        self.device_b = device_b
