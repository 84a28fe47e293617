"""
NumPy emulation of the cuDNN batch-normalization primitive.

`HostNormalizationBackend` serves the ``cpu`` device. It implements the same
contract as `CudnnNormalizationBackend` (descriptor derivation, training
forward with in-place running-statistic updates and a mean / inverse-variance
cache) so the executor and its adaptation logic can run and be tested without
a GPU.

Numerics follow cuDNN:

- statistics are computed in the parameter dtype (float32 for float16 input);
- the normalization uses the biased batch variance;
- the running variance is updated with the unbiased variance ``var * m / (m - 1)``
  where ``m`` is the number of reduced elements per parameter;
- ``save_inv_var = 1 / sqrt(var + eps)``.
"""

from __future__ import annotations

import numpy as np

from ...domain._dtype import bn_param_dtype_name
from ...domain._errors import ComputationError, DeviceError
from ...domain.normalization._backend import BN_MIN_EPSILON, ParamDescriptor
from ...domain.normalization._mode import BatchNormMode
from ..tensor._tensor import Tensor

# Mirrors CUDNN_STATUS_BAD_PARAM.
_STATUS_BAD_PARAM = 3


class HostNormalizationBackend:
    """
    Pure-software batch-normalization primitive for host tensors.
    """

    @property
    def min_epsilon(self) -> float:
        return BN_MIN_EPSILON

    def derive_param_descriptor(
        self,
        x_shape: tuple[int, int, int, int],
        x_dtype: str,
        mode: BatchNormMode,
    ) -> ParamDescriptor:
        """
        Derive ``(1, C, H, W)`` (per-activation) or ``(1, C, 1, 1)`` (spatial).
        """
        dtype = bn_param_dtype_name(x_dtype)
        _, c, h, w = (int(d) for d in x_shape)
        if mode is BatchNormMode.PER_ACTIVATION:
            return ParamDescriptor((1, c, h, w), dtype)
        return ParamDescriptor((1, c, 1, 1), dtype)

    @staticmethod
    def _host_array(t: Tensor, name: str) -> np.ndarray:
        if not t.device.is_cpu():
            raise DeviceError(f"{name} must be a host tensor, got device {t.device}")
        if not t.is_contiguous():
            raise DeviceError(f"{name} must be contiguous")
        return t.data

    @staticmethod
    def _bad_param(message: str) -> ComputationError:
        return ComputationError(
            f"batch normalization forward failed: {message}",
            status=_STATUS_BAD_PARAM,
        )

    def forward_training(
        self,
        *,
        mode: BatchNormMode,
        x: Tensor,
        y: Tensor,
        param_desc: ParamDescriptor,
        gamma: Tensor,
        beta: Tensor,
        exponential_average_factor: float,
        running_mean: Tensor,
        running_var: Tensor,
        eps: float,
        save_mean: Tensor,
        save_inv_var: Tensor,
    ) -> None:
        """
        Normalize `x` into `y` and update the running statistics in place.

        Raises
        ------
        ComputationError
            With ``status`` set to the bad-parameter code if shapes or dtypes
            disagree with `param_desc`, or if `eps` is below the minimum.
        DeviceError
            If any tensor is not a contiguous host tensor.
        """
        if x.ndim != 4 or y.shape != x.shape:
            raise self._bad_param(f"x {x.shape} / y {y.shape} must be equal 4D shapes")
        if x.numel() == 0:
            raise self._bad_param(f"x {x.shape} has a zero-sized dimension")
        if float(eps) < self.min_epsilon:
            raise self._bad_param(f"epsilon {eps} is below {self.min_epsilon}")

        pdtype = np.dtype(param_desc.dtype)
        n_params = param_desc.numel()
        params = {
            "gamma": gamma,
            "beta": beta,
            "running_mean": running_mean,
            "running_var": running_var,
            "save_mean": save_mean,
            "save_inv_var": save_inv_var,
        }
        arrays = {}
        for name, t in params.items():
            if t.dtype != pdtype:
                raise self._bad_param(f"{name} dtype {t.dtype} != {pdtype}")
            if t.numel() != n_params:
                raise self._bad_param(
                    f"{name} has {t.numel()} elements, expected {n_params}"
                )
            arrays[name] = self._host_array(t, name).reshape(param_desc.shape)

        x_arr = self._host_array(x, "x").astype(pdtype, copy=False)
        y_arr = self._host_array(y, "y")

        reduce_axes = (0,) if mode is BatchNormMode.PER_ACTIVATION else (0, 2, 3)
        m = x.numel() // n_params if n_params else 0

        mean = x_arr.mean(axis=reduce_axes, keepdims=True)
        centered = x_arr - mean
        var = (centered * centered).mean(axis=reduce_axes, keepdims=True)
        inv_std = (1.0 / np.sqrt(var + pdtype.type(eps))).astype(pdtype)

        y_arr[...] = (centered * inv_std * arrays["gamma"] + arrays["beta"]).astype(
            y_arr.dtype
        )

        f = pdtype.type(exponential_average_factor)
        unbiased = var * pdtype.type(m / (m - 1)) if m > 1 else var
        arrays["running_mean"][...] = (1 - f) * arrays["running_mean"] + f * mean
        arrays["running_var"][...] = (1 - f) * arrays["running_var"] + f * unbiased

        arrays["save_mean"][...] = mean
        arrays["save_inv_var"][...] = inv_std
