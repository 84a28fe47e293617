from ._backend import BN_MIN_EPSILON, NormalizationBackend, ParamDescriptor
from ._mode import BatchNormMode

__all__ = [
    BatchNormMode.__name__,
    NormalizationBackend.__name__,
    ParamDescriptor.__name__,
    "BN_MIN_EPSILON",
]
