"""Human-readable dump of a tensor's layout, data and gradient."""

from __future__ import annotations

from collections.abc import Iterator
from itertools import islice
from typing import Any

from inferno import shapes
from inferno.device import Device
from inferno.dtype import DType
from inferno.tensor import Tensor

_DATA_LIMIT = 100
_GRAD_LIMIT = 2048

_DTYPE_LABELS = {
    DType.INT32: "Int32",
    DType.FLOAT32: "Float32",
    DType.FLOAT64: "Float64",
}


def _format_value(value: Any, dtype: DType) -> str:
    if dtype.is_floating:
        return f"{float(value):.6f}"
    return str(int(value))


def _logical_values(tensor: Tensor) -> Iterator[Any]:
    impl = tensor.impl
    return (
        impl.storage[shapes.unravel(linear, impl.shape, impl.strides, impl.offset)]
        for linear in range(impl.numel())
    )


def _join(items: list[str]) -> str:
    return ", ".join(items)


def format_tensor(tensor: Tensor) -> str:
    """Describe ``tensor``: name, dtype, layout, up to 100 values and up to 2048 grad values."""
    if tensor.dtype not in _DTYPE_LABELS:
        raise ValueError("Unsupported dtype combination")

    host = tensor.to(Device.cpu())
    lines = [
        f'****** Tensor "{host.name}" ',
        f"dtype = {_DTYPE_LABELS[host.dtype]}",
        f"shape=[{_join([str(size) for size in host.shape])}]",
        f"strides=[{_join([str(stride) for stride in host.strides])}]",
        f"offset={host.offset}",
    ]

    count = host.numel()
    shown = [
        _format_value(value, host.dtype)
        for value in islice(_logical_values(host), _DATA_LIMIT)
    ]
    data = _join(shown)
    # More elements follow than are shown: the separator is kept after the last one.
    if count > len(shown):
        data += ", "
    lines.append(f"data = [{data}]")

    grad = host.grad
    lines.append(f"has_grad = {'yes' if grad is not None else 'no'}")
    grad_text = ""
    if grad is not None:
        if grad.dtype not in _DTYPE_LABELS:
            raise ValueError("Unsupported dtype combination")
        grad_text = _join(
            [
                _format_value(value, grad.dtype)
                for value in islice(_logical_values(grad), _GRAD_LIMIT)
            ]
        )
    lines.append(f"grad = [{grad_text}]")

    return "\n".join(lines) + "\n\n\n"