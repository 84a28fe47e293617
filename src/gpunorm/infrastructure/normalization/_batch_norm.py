"""
Batch-normalization forward executor.

`BatchNormForwardBackward` is the device-side implementation of a training
batch-normalization step. A call to `forward`:

1. validates epsilon against the primitive's minimum and checks that the
   running statistics can be updated in place;
2. in debug mode, asserts the argument contract (parameter element counts,
   shared device and dtype, parameter contiguity);
3. adapts the input to the primitive's canonical 4D layout and selects the
   normalization mode from the axis set;
4. lets the primitive derive the parameter descriptor and reconciles the
   parameter dtypes with it (`ParameterCast`);
5. invokes the primitive, writes cast running statistics back into the
   caller's storage and keeps the batch mean / inverse variance in a
   per-object cache.

Gradients are not implemented; `backward` and `double_backward` raise
`NotImplementedError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from ...domain._axes import AxisLike, normalize_axes, reduce_shape, shape_numel
from ...domain._errors import ComputationError, DeviceError
from ..tensor._tensor import Tensor
from ._axis_adapter import as_4d, compute_key_axes
from ._dtype_reconciler import ParameterCast
from ._mode_selector import select_batch_norm_mode
from ._param_descriptor import derive_param_descriptor

if TYPE_CHECKING:
    from ..device._context import DeviceContext


@dataclass
class BatchNormResultCache:
    """
    Batch statistics saved by the most recent successful forward call.

    Attributes
    ----------
    mean : Optional[Tensor]
        Per-parameter batch mean, shaped like gamma.
    inv_var : Optional[Tensor]
        Per-parameter ``1 / sqrt(var + eps)``, shaped like gamma.
    """

    mean: Optional[Tensor] = None
    inv_var: Optional[Tensor] = None

    def store(self, mean: Tensor, inv_var: Tensor) -> None:
        self.mean = mean
        self.inv_var = inv_var


def _debug_check_arguments(
    x: Tensor,
    gamma: Tensor,
    beta: Tensor,
    running_mean: Tensor,
    running_var: Tensor,
    axis: tuple[int, ...],
) -> None:
    reduced = shape_numel(reduce_shape(x.shape, axis, keepdims=True))
    params = (
        ("gamma", gamma),
        ("beta", beta),
        ("running_mean", running_mean),
        ("running_var", running_var),
    )
    for name, t in params:
        assert t.numel() == reduced, (
            f"{name} has {t.numel()} elements, expected {reduced} for input "
            f"shape {x.shape} reduced over {axis}"
        )
        assert t.device == x.device, f"{name} is on {t.device}, x is on {x.device}"
        assert t.dtype == x.dtype, f"{name} dtype {t.dtype} != x dtype {x.dtype}"
        assert t.is_contiguous(), f"{name} must be contiguous"


class BatchNormForwardBackward:
    """
    Training batch normalization on one device.

    Parameters
    ----------
    context : DeviceContext
        Execution context of the device the tensors live on. It provides the
        primitive backend and device-to-device copies.

    Notes
    -----
    Instances are stateful: each successful `forward` replaces the cached
    batch mean and inverse variance. Obtain one instance per call site via
    `DeviceContext.get_batch_norm_forward_backward()`.
    """

    def __init__(self, context: "DeviceContext") -> None:
        self._context = context
        self._cache = BatchNormResultCache()

    @property
    def result_mean(self) -> Optional[Tensor]:
        """Batch mean of the last forward call, or None before the first."""
        return self._cache.mean

    @property
    def result_inv_var(self) -> Optional[Tensor]:
        """Inverse standard deviation of the last forward call, or None."""
        return self._cache.inv_var

    def forward(
        self,
        x: Tensor,
        gamma: Tensor,
        beta: Tensor,
        running_mean: Tensor,
        running_var: Tensor,
        eps: float,
        decay: float,
        axis: AxisLike,
    ) -> Tensor:
        """
        Normalize `x` over `axis` and update the running statistics.

        Parameters
        ----------
        x : Tensor
            Input of any rank whose layout maps onto NCHW (see `as_4d`).
        gamma, beta : Tensor
            Scale and shift, one value per key-axis position.
        running_mean, running_var : Tensor
            Contiguous running statistics, updated in place as
            ``r = decay * r + (1 - decay) * batch_stat``.
        eps : float
            Variance stabilizer; must be at least the primitive's minimum.
        decay : float
            Running-average decay.
        axis : int | Iterable[int]
            Reduction axes. ``(0,)`` selects per-activation normalization;
            ``(0, 2, 3)`` and ``(0, 2, 3, 4)`` select spatial normalization.

        Returns
        -------
        Tensor
            Normalized output with the shape and dtype of `x`.

        Raises
        ------
        ComputationError
            If `eps` is below the minimum or the primitive fails.
        DeviceError
            If a running statistic is not contiguous.
        DimensionError
            If the axis set or input shape has no 4D mapping.
        DtypeError
            If the input dtype is not supported by the primitive.
        """
        backend = self._context.backend

        if float(eps) < backend.min_epsilon:
            raise ComputationError(
                f"Minimum allowed epsilon is {backend.min_epsilon} but found {eps}."
            )

        if not running_mean.is_contiguous():
            raise DeviceError(
                "Running mean must be contiguous to be updated in place."
            )
        if not running_var.is_contiguous():
            raise DeviceError(
                "Running variance must be contiguous to be updated in place."
            )

        axis = normalize_axes(axis, x.ndim)

        if __debug__:
            _debug_check_arguments(x, gamma, beta, running_mean, running_var, axis)

        x_cont = x.as_contiguous()
        x4d = as_4d(x_cont, compute_key_axes(x.ndim, axis))
        mode = select_batch_norm_mode(axis)
        param_desc = derive_param_descriptor(x4d, mode, backend)

        with ParameterCast(
            self._context,
            gamma=gamma,
            beta=beta,
            running_mean=running_mean,
            running_var=running_var,
            dtype=param_desc.dtype,
        ) as params:
            out = Tensor.empty_like(x_cont)
            mean = Tensor.empty_like(params.gamma)
            inv_var = Tensor.empty_like(params.gamma)

            backend.forward_training(
                mode=mode,
                x=x4d,
                y=out.reshape(x4d.shape),
                param_desc=param_desc,
                gamma=params.gamma,
                beta=params.beta,
                exponential_average_factor=1.0 - float(decay),
                running_mean=params.running_mean,
                running_var=params.running_var,
                eps=float(eps),
                save_mean=mean,
                save_inv_var=inv_var,
            )

        self._cache.store(mean, inv_var)
        return out

    def backward(
        self,
        x: Tensor,
        gamma: Tensor,
        gout: Tensor,
        eps: float,
        axis: AxisLike,
    ) -> tuple[Tensor, Tensor, Tensor]:
        raise NotImplementedError("BatchNorm backward is not implemented")

    def double_backward(
        self,
        ggx: Tensor,
        gggamma: Tensor,
        ggbeta: Tensor,
    ) -> tuple[Tensor, Tensor, Tensor]:
        raise NotImplementedError("BatchNorm double backward is not implemented")


def batch_norm_forward(
    x: Tensor,
    gamma: Tensor,
    beta: Tensor,
    running_mean: Tensor,
    running_var: Tensor,
    *,
    eps: float = 2e-5,
    decay: float = 0.9,
    axis: Optional[Sequence[int]] = None,
) -> Tensor:
    """
    Run one training batch-normalization step on `x`'s device.

    Convenience wrapper creating a throw-away `BatchNormForwardBackward`.
    When `axis` is omitted the input is treated as ``(N, C, ...)`` and
    normalized over every dimension except the channel dimension.

    Returns
    -------
    Tensor
        Normalized output with the shape and dtype of `x`.
    """
    from ..device._context import get_device_context

    if axis is None:
        axis = (0,) + tuple(range(2, x.ndim))
    fb = get_device_context(x.device).get_batch_norm_forward_backward()
    return fb.forward(x, gamma, beta, running_mean, running_var, eps, decay, axis)
