"""Element types and the rules for combining them."""

from __future__ import annotations

import enum
import math
import struct

_INT32_SPAN = 1 << 32
_INT32_MIN = -(1 << 31)


class DType(enum.Enum):
    """Element type of a tensor."""

    FLOAT32 = "float32"
    FLOAT64 = "float64"
    INT32 = "int32"
    INT8 = "int8"
    BOOL = "bool"
    INVALID = "invalid"

    @property
    def itemsize(self) -> int:
        """Bytes taken by one element of this type."""
        try:
            return _ITEMSIZES[self]
        except KeyError:
            raise ValueError("Unknown DType") from None

    @property
    def is_floating(self) -> bool:
        return self in (DType.FLOAT32, DType.FLOAT64)

    def cast(self, value: int | float) -> int | float:
        """Convert a Python number to the value this type would store."""
        if self is DType.INT32:
            whole = math.trunc(value)
            return (whole - _INT32_MIN) % _INT32_SPAN + _INT32_MIN
        if self is DType.FLOAT32:
            number = float(value)
            try:
                return struct.unpack("f", struct.pack("f", number))[0]
            except OverflowError:
                return math.copysign(math.inf, number)
        if self is DType.FLOAT64:
            return float(value)
        raise ValueError(f"Unsupported dtype: {self.value}")


_ITEMSIZES = {
    DType.FLOAT32: struct.calcsize("f"),
    DType.FLOAT64: struct.calcsize("d"),
    DType.INT32: struct.calcsize("i"),
    DType.BOOL: struct.calcsize("?"),
}

_RANK = {DType.INT32: 0, DType.FLOAT32: 1, DType.FLOAT64: 2}


def promote(a: DType, b: DType) -> DType:
    """Result type of a binary operation on elements of types ``a`` and ``b``."""
    if a not in _RANK or b not in _RANK:
        raise ValueError("Unsupported dtype combination")
    return a if _RANK[a] >= _RANK[b] else b


def dtype_of(value: object) -> DType:
    """Element type that a Python scalar maps to."""
    if isinstance(value, bool):
        raise TypeError("bool scalars have no tensor dtype")
    if isinstance(value, int):
        return DType.INT32
    if isinstance(value, float):
        return DType.FLOAT64
    raise TypeError(f"no tensor dtype for {type(value).__name__}")