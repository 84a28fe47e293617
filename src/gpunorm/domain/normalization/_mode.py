"""
Batch-normalization modes understood by the accelerated primitive.

The integer values match cuDNN's ``cudnnBatchNormMode_t`` so a mode can be
handed to the C API unchanged.
"""

from enum import IntEnum


class BatchNormMode(IntEnum):
    """
    Parameter-sharing mode of a batch-normalization call.

    Attributes
    ----------
    PER_ACTIVATION : BatchNormMode
        Statistics are reduced over the batch dimension only; every remaining
        position carries its own scale/shift (``CUDNN_BATCHNORM_PER_ACTIVATION``).
    SPATIAL : BatchNormMode
        Statistics are reduced over batch and spatial dimensions; one
        scale/shift pair per channel (``CUDNN_BATCHNORM_SPATIAL``).
    """

    PER_ACTIVATION = 0
    SPATIAL = 1
