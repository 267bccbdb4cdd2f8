"""Storage and bookkeeping that sits behind a tensor handle."""

from __future__ import annotations

import itertools
import weakref
from collections.abc import Iterable, Sequence
from typing import Any

from inferno import shapes
from inferno.device import Device
from inferno.dtype import DType

_ids = itertools.count(1)

_NUMERIC = (DType.INT32, DType.FLOAT32, DType.FLOAT64)


def _store(dtype: DType, value: Any) -> Any:
    if dtype in _NUMERIC:
        return dtype.cast(value)
    return bool(value)


class TensorImpl:
    """Element storage, layout and autograd state shared by tensor handles.

    Elements are held as Python numbers already converted to what ``dtype``
    stores. The layout (``shape``, ``strides``, ``offset``) maps a logical
    position onto ``storage``.
    """

    def __init__(
        self,
        dtype: DType,
        shape: Sequence[int],
        name: str = "",
        device: Device | None = None,
        data: Iterable[Any] | None = None,
    ) -> None:
        itemsize = dtype.itemsize  # rejects types without a storage size
        self.dtype = dtype
        self.shape: tuple[int, ...] = tuple(shape)
        self.strides: tuple[int, ...] = shapes.calculate_strides(self.shape)
        self.offset = 0
        self.name = name
        self.device = device if device is not None else Device.cpu()
        self.grad: Any = None
        self.grad_fn: Any = None
        self.grad_accumulator: Any = None
        self.requires_grad = True
        self.is_view = False
        self._base: weakref.ref[TensorImpl] | None = None
        self.id = next(_ids)

        count = shapes.numel(self.shape)
        if data is None:
            self.storage: list[Any] = [_store(dtype, 0)] * count
        else:
            self.storage = [_store(dtype, value) for value in data]
            if len(self.storage) != count:
                raise ValueError(
                    f"data holds {len(self.storage)} elements but shape "
                    f"{list(self.shape)} needs {count}"
                )
        self._itemsize = itemsize

    def numel(self) -> int:
        """Number of logical elements."""
        return shapes.numel(self.shape)

    def ndim(self) -> int:
        """Number of dimensions."""
        return len(self.shape)

    def nbytes(self) -> int:
        """Bytes the logical elements take at this dtype."""
        return self.numel() * self._itemsize

    @property
    def storage_nbytes(self) -> int:
        """Bytes taken by the whole underlying storage."""
        return len(self.storage) * self._itemsize

    def is_contiguous(self) -> bool:
        """True when the layout is plain row-major."""
        return shapes.is_contiguous(self.shape, self.strides)

    def set_grad(self, grad: Any) -> None:
        """Store ``grad``, or add it to the gradient already stored."""
        if self.grad is None:
            self.grad = grad
        else:
            self.grad = self.grad + grad

    def set_base(self, base: TensorImpl | None) -> None:
        """Remember, without keeping alive, the tensor this one views."""
        self._base = weakref.ref(base) if base is not None else None

    def get_base(self) -> TensorImpl | None:
        """The tensor this one views, or None if unset or gone."""
        return self._base() if self._base is not None else None

    def __repr__(self) -> str:
        return (
            f"TensorImpl(id={self.id}, name={self.name!r}, "
            f"dtype={self.dtype.value}, shape={list(self.shape)}, "
            f"device={self.device})"
        )