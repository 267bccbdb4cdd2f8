"""Shape, stride and broadcasting arithmetic."""

from __future__ import annotations

import math
from collections.abc import Sequence
from itertools import zip_longest


def numel(shape: Sequence[int]) -> int:
    """Number of elements in a tensor of the given shape."""
    return math.prod(shape)


def calculate_strides(shape: Sequence[int]) -> tuple[int, ...]:
    """Row-major strides, in elements, for a contiguous tensor of ``shape``."""
    strides = []
    stride = 1
    for size in reversed(shape):
        strides.append(stride)
        stride *= size
    return tuple(reversed(strides))


def broadcast_shape(a: Sequence[int], b: Sequence[int]) -> tuple[int, ...]:
    """Shape that two shapes broadcast to, aligned from the right."""
    result = []
    for a_dim, b_dim in zip_longest(reversed(a), reversed(b), fillvalue=1):
        if a_dim != b_dim and a_dim != 1 and b_dim != 1:
            raise ValueError("Incompatible shapes for broadcasting")
        result.append(max(a_dim, b_dim))
    return tuple(reversed(result))


def is_contiguous(shape: Sequence[int], strides: Sequence[int]) -> bool:
    """True when the strides are the row-major strides of the shape."""
    expected = 1
    for size, stride in zip(reversed(shape), reversed(strides)):
        if stride != expected:
            return False
        expected *= size
    return True


def unravel(
    linear: int,
    shape: Sequence[int],
    strides: Sequence[int],
    offset: int = 0,
) -> int:
    """Storage index of the element at row-major position ``linear``."""
    index = offset
    remaining = linear
    for size, stride in zip(reversed(shape), reversed(strides)):
        remaining, position = divmod(remaining, size)
        index += position * stride
    return index