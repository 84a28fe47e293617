"""
Device abstraction contracts for gpunorm.

`DeviceLike` is the duck-typed contract consumed by the execution-context
layer, so that backends can accept any device descriptor exposing a type, an
optional index and the two category predicates, without depending on the
concrete `Device` class.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class DeviceLike(Protocol):
    """
    Duck-typed device contract.

    Any object that provides these members can be used as a computation device
    descriptor, regardless of its concrete class identity.
    """

    type: object
    index: Optional[int]

    def is_cpu(self) -> bool: ...
    def is_cuda(self) -> bool: ...
    def __str__(self) -> str: ...
