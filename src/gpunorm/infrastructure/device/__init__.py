from ._context import (
    CudaDeviceContext,
    DeviceContext,
    HostDeviceContext,
    get_device_context,
)

__all__ = [
    DeviceContext.__name__,
    HostDeviceContext.__name__,
    CudaDeviceContext.__name__,
    get_device_context.__name__,
]
