"""Loss functions."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from inferno import shapes
from inferno.dtype import DType, promote
from inferno.tensor import Tensor

_NUMERIC = (DType.INT32, DType.FLOAT32, DType.FLOAT64)


def _logical_values(tensor: Tensor) -> Iterator[Any]:
    impl = tensor.impl
    return (
        impl.storage[shapes.unravel(linear, impl.shape, impl.strides, impl.offset)]
        for linear in range(impl.numel())
    )


class MSELoss:
    """Mean squared error between a prediction and a target of the same shape."""

    def forward(self, prediction: Tensor, target: Tensor) -> Tensor:
        """A one-element tensor holding the mean of the squared differences."""
        if prediction.device != target.device:
            raise ValueError("Incompatible device types on tensor parameters in mse_loss")
        if prediction.shape != target.shape:
            raise ValueError("Shape mismatch on tensor parameters in mse_loss")
        if prediction.dtype not in _NUMERIC or target.dtype not in _NUMERIC:
            raise ValueError("Unsupported dtype combination")

        dtype = promote(prediction.dtype, target.dtype)
        diffs = [
            p - t for p, t in zip(_logical_values(prediction), _logical_values(target))
        ]
        count = len(diffs)
        loss = sum(d * d for d in diffs) / count if count else 0.0
        out = Tensor(dtype, (1,), "mse_loss", prediction.device, [loss])

        def backward(grad: Tensor) -> tuple[Tensor, Tensor]:
            scale = grad.item() * 2.0 / count if count else 0.0
            pred_grad = [d * scale for d in diffs]
            return (
                Tensor(dtype, prediction.shape, "grad", prediction.device, pred_grad),
                Tensor(dtype, target.shape, "grad", target.device, (-g for g in pred_grad)),
            )

        out._record("mse_loss", (prediction, target), backward)
        return out

    def __call__(self, prediction: Tensor, target: Tensor) -> Tensor:
        return self.forward(prediction, target)