"""
Device descriptors.

This module defines the lightweight, backend-free representation of the
computation devices a tensor can live on:

- `DeviceType`: the device category (host CPU or CUDA GPU)
- `Device`: a validated descriptor parsed from strings such as "cpu",
  "cuda" or "cuda:1"

Descriptors do not own any resources. Backend handles (cuDNN handles,
allocators) are owned by the execution context associated with a device,
see `gpunorm.infrastructure.device.get_device_context`.
"""

from __future__ import annotations

from enum import Enum
import re


class DeviceType(Enum):
    """
    Enumeration of supported device categories.

    Attributes
    ----------
    CPU : DeviceType
        Host memory; served by the NumPy reference backend.
    CUDA : DeviceType
        NVIDIA CUDA device; served by the cuDNN backend.
    """

    CPU = "cpu"
    CUDA = "cuda"


class Device:
    """
    Concrete computation device descriptor.

    Parameters
    ----------
    device : str
        Device identifier string. One of:
        - "cpu"
        - "cuda" (shorthand for "cuda:0")
        - "cuda:<index>", where <index> is a non-negative integer

    Raises
    ------
    ValueError
        If the provided device string does not match the supported formats.

    Notes
    -----
    Two descriptors compare equal (and hash equal) when they name the same
    device type and index, so descriptors can key per-device caches.
    """

    __slots__ = ("type", "index")

    _CUDA_PATTERN = re.compile(r"^cuda(?::(\d+))?$")

    def __init__(self, device: str):
        if device == "cpu":
            self.type = DeviceType.CPU
            self.index = None
            return

        m = self._CUDA_PATTERN.match(device)
        if not m:
            raise ValueError(
                f"Invalid device '{device}'. Expected 'cpu' or 'cuda:<index>'"
            )
        self.type = DeviceType.CUDA
        self.index = int(m.group(1) or 0)

    def __str__(self) -> str:
        return "cpu" if self.type is DeviceType.CPU else f"cuda:{self.index}"

    def __repr__(self) -> str:
        return f"Device('{self}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Device):
            return NotImplemented
        return (self.type, self.index) == (other.type, other.index)

    def __hash__(self) -> int:
        return hash((self.type, self.index))

    def is_cpu(self) -> bool:
        """Return True if the device type is CPU."""
        return self.type is DeviceType.CPU

    def is_cuda(self) -> bool:
        """Return True if the device type is CUDA."""
        return self.type is DeviceType.CUDA
