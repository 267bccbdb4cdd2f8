"""Optimisers that update parameters from their gradients."""

from __future__ import annotations

from collections.abc import Iterable

from inferno import shapes
from inferno.dtype import DType
from inferno.tensor import Tensor

_NUMERIC = (DType.INT32, DType.FLOAT32, DType.FLOAT64)


class OptimizerSGD:
    """Plain stochastic gradient descent: ``param -= lr * grad``."""

    def __init__(self, parameters: Iterable[Tensor], learning_rate: float) -> None:
        self.params = list(parameters)
        self.lr = DType.FLOAT32.cast(learning_rate)

    def step(self) -> None:
        """Update every parameter that has a gradient, in place."""
        for param in self.params:
            grad = param.grad
            if grad is None:
                continue
            if param.device != grad.device:
                raise ValueError("OptimizerSGD: param/grad device mismatch")
            if param.shape != grad.shape:
                raise ValueError("OptimizerSGD: param/grad shape mismatch")
            if param.dtype not in _NUMERIC or grad.dtype not in _NUMERIC:
                raise ValueError("Unsupported dtype combination")

            pimpl = param.impl
            gimpl = grad.impl
            storage = pimpl.storage
            for linear in range(pimpl.numel()):
                pidx = shapes.unravel(linear, pimpl.shape, pimpl.strides, pimpl.offset)
                gidx = shapes.unravel(linear, gimpl.shape, gimpl.strides, gimpl.offset)
                updated = float(storage[pidx]) - self.lr * float(gimpl.storage[gidx])
                storage[pidx] = param.dtype.cast(updated)

    def zero_grad(self) -> None:
        """Drop the gradients of all parameters."""
        for param in self.params:
            param.grad = None