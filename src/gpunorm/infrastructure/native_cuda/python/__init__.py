"""
ctypes bindings to the CUDA runtime and cuDNN.

The shared libraries are located by `load_cudart` / `load_cudnn`; the
`CudaRuntimeLib` and `CudnnLib` wrappers bind signatures once per library
handle and translate status codes into gpunorm errors.
"""

from ._native_loader import load_cudart, load_cudnn
from .cudart_ctypes import CudaRuntimeLib, get_cudart
from .cudnn_ctypes import CudnnLib, TensorDescriptor, get_cudnn

__all__ = [
    load_cudart.__name__,
    load_cudnn.__name__,
    CudaRuntimeLib.__name__,
    get_cudart.__name__,
    CudnnLib.__name__,
    TensorDescriptor.__name__,
    get_cudnn.__name__,
]
