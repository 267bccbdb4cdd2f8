"""Tensors: strided views over shared storage with reverse-mode autograd."""

from __future__ import annotations

import contextlib
import contextvars
import math
import random
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from inferno import shapes
from inferno.device import Device
from inferno.dtype import DType, dtype_of, promote
from inferno.tensorimpl import TensorImpl

_NUMERIC = (DType.INT32, DType.FLOAT32, DType.FLOAT64)

_grad_enabled: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "inferno_grad_enabled", default=True
)


@contextlib.contextmanager
def _no_grad() -> Iterator[None]:
    token = _grad_enabled.set(False)
    try:
        yield
    finally:
        _grad_enabled.reset(token)


@dataclass
class _Node:
    """A recorded operation: its inputs and how to push a gradient back to them."""

    name: str
    inputs: tuple[Tensor, ...]
    fn: Callable[[Tensor], Sequence[Tensor | None]]

    def apply(self, grad: Tensor) -> Sequence[Tensor | None]:
        return self.fn(grad)


def _check_numeric(dtype: DType) -> None:
    if dtype not in _NUMERIC:
        raise ValueError(f"Unsupported dtype: {dtype.value}")


def _divide(x: Any, y: Any, dtype: DType) -> Any:
    if dtype is DType.INT32:
        if y == 0:
            raise ZeroDivisionError("integer division by zero")
        quotient = abs(x) // abs(y)
        return quotient if (x < 0) == (y < 0) else -quotient
    if y == 0:
        if x == 0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)
    return x / y


_OPS: dict[str, Callable[[Any, Any, DType], Any]] = {
    "add": lambda x, y, _: x + y,
    "subtract": lambda x, y, _: x - y,
    "multiply": lambda x, y, _: x * y,
    "divide": _divide,
}

_BACKWARD: dict[str, Callable[[Tensor, Tensor, Tensor], tuple[Tensor, Tensor]]] = {
    "add": lambda a, b, g: (g, g),
    "subtract": lambda a, b, g: (g, -g),
    "multiply": lambda a, b, g: (g * b, g * a),
    "divide": lambda a, b, g: (g / b, -(g * a) / (b * b)),
}


def _expand_strides(
    shape: Sequence[int], strides: Sequence[int], target: Sequence[int]
) -> tuple[int, ...]:
    """Strides that read a tensor of ``shape`` as if it had the broadcast ``target`` shape."""
    lead = len(target) - len(shape)
    expanded = [0] * lead
    for size, stride, want in zip(shape, strides, target[lead:]):
        expanded.append(stride if size == want else 0)
    return tuple(expanded)


def _broadcast_values(tensor: Tensor, target: tuple[int, ...]) -> Iterator[Any]:
    impl = tensor.impl
    strides = _expand_strides(impl.shape, impl.strides, target)
    storage = impl.storage
    return (
        storage[shapes.unravel(linear, target, strides, impl.offset)]
        for linear in range(shapes.numel(target))
    )


def _reduce_to(grad: Tensor, shape: Sequence[int]) -> Tensor:
    """Sum a gradient over the dimensions that were broadcast to reach its shape."""
    target = tuple(shape)
    mapping = _expand_strides(target, shapes.calculate_strides(target), grad.shape)
    sums: list[Any] = [0] * shapes.numel(target)
    for linear, value in enumerate(grad._values()):
        sums[shapes.unravel(linear, grad.shape, mapping)] += value
    return Tensor(grad.dtype, target, "grad", grad.device, sums)


def _binary(a: Tensor, b: Tensor, name: str) -> Tensor:
    if a.device != b.device:
        raise ValueError(f"Incompatible device types in {name}: {a.device} and {b.device}")
    out_shape = shapes.broadcast_shape(a.shape, b.shape)
    dtype = promote(a.dtype, b.dtype)
    op = _OPS[name]
    data = [
        op(x, y, dtype)
        for x, y in zip(_broadcast_values(a, out_shape), _broadcast_values(b, out_shape))
    ]
    out = Tensor(dtype, out_shape, name, a.device, data)

    def backward(grad: Tensor) -> tuple[Tensor, ...]:
        grads = _BACKWARD[name](a, b, grad)
        return tuple(_reduce_to(g, t.shape) for g, t in zip(grads, (a, b)))

    out._record(name, (a, b), backward)
    return out


class Tensor:
    """An n-dimensional array of one dtype on one device, with gradient tracking."""

    def __init__(
        self,
        dtype: DType,
        shape: Sequence[int],
        name: str = "",
        device: Device | None = None,
        data: Iterable[Any] | None = None,
    ) -> None:
        self._impl = TensorImpl(dtype, shape, name, device, data)

    @classmethod
    def _from_impl(cls, impl: TensorImpl) -> Tensor:
        tensor = cls.__new__(cls)
        tensor._impl = impl
        return tensor

    # ---- attributes ----

    @property
    def impl(self) -> TensorImpl:
        return self._impl

    @property
    def dtype(self) -> DType:
        return self._impl.dtype

    @property
    def shape(self) -> tuple[int, ...]:
        return self._impl.shape

    @property
    def strides(self) -> tuple[int, ...]:
        return self._impl.strides

    @property
    def offset(self) -> int:
        return self._impl.offset

    @property
    def name(self) -> str:
        return self._impl.name

    @property
    def device(self) -> Device:
        return self._impl.device

    @property
    def grad(self) -> Tensor | None:
        return self._impl.grad

    @grad.setter
    def grad(self, value: Tensor | None) -> None:
        self._impl.grad = value

    @property
    def grad_fn(self) -> Any:
        return self._impl.grad_fn

    @grad_fn.setter
    def grad_fn(self, node: Any) -> None:
        self._impl.grad_fn = node

    @property
    def requires_grad(self) -> bool:
        return self._impl.requires_grad

    @requires_grad.setter
    def requires_grad(self, flag: bool) -> None:
        self._impl.requires_grad = flag

    def numel(self) -> int:
        return self._impl.numel()

    def ndim(self) -> int:
        return self._impl.ndim()

    def is_contiguous(self) -> bool:
        return self._impl.is_contiguous()

    # ---- element access ----

    def _values(self) -> Iterator[Any]:
        impl = self._impl
        count = impl.numel()
        if impl.is_contiguous():
            return iter(impl.storage[impl.offset:impl.offset + count])
        return (
            impl.storage[shapes.unravel(linear, impl.shape, impl.strides, impl.offset)]
            for linear in range(count)
        )

    def item(self) -> Any:
        """The first element as a Python number."""
        if self.numel() == 0:
            raise ValueError("item() called on an empty tensor")
        return self._impl.storage[self.offset]

    def tolist(self) -> Any:
        """Elements as nested lists following the shape."""
        flat = list(self._values())
        if not self.shape:
            return flat[0]
        return _nest(flat, self.shape)

    def allclose(self, other: Tensor, eps: float = 1e-5) -> bool:
        """True when shapes match and elements agree within ``eps`` (exactly for integers)."""
        if self.shape != other.shape:
            return False
        exact = not (self.dtype.is_floating or other.dtype.is_floating)
        for x, y in zip(self._values(), other._values()):
            if exact:
                if x != y:
                    return False
            elif abs(x - y) > eps:
                return False
        return True

    # ---- devices ----

    def to(self, device: Device) -> Tensor:
        """This tensor on ``device``; itself if already there."""
        if self.device == device:
            return self
        source = self._impl
        impl = TensorImpl(
            source.dtype, (len(source.storage),), source.name, device, source.storage
        )
        impl.shape = source.shape
        impl.strides = source.strides
        impl.offset = source.offset
        if source.grad is not None:
            impl.grad = source.grad.to(device)
        return Tensor._from_impl(impl)

    # ---- arithmetic ----

    def _operand(self, other: Any) -> Tensor | None:
        if isinstance(other, Tensor):
            return other
        if isinstance(other, bool) or not isinstance(other, (int, float)):
            return None
        return Tensor(dtype_of(other), (1,), "scalar", self.device, [other])

    def _forward(self, other: Any, name: str, reflected: bool = False) -> Tensor:
        operand = self._operand(other)
        if operand is None:
            return NotImplemented
        return _binary(operand, self, name) if reflected else _binary(self, operand, name)

    def __add__(self, other: Any) -> Tensor:
        return self._forward(other, "add")

    def __radd__(self, other: Any) -> Tensor:
        return self._forward(other, "add", reflected=True)

    def __sub__(self, other: Any) -> Tensor:
        return self._forward(other, "subtract")

    def __rsub__(self, other: Any) -> Tensor:
        return self._forward(other, "subtract", reflected=True)

    def __mul__(self, other: Any) -> Tensor:
        return self._forward(other, "multiply")

    def __rmul__(self, other: Any) -> Tensor:
        return self._forward(other, "multiply", reflected=True)

    def __truediv__(self, other: Any) -> Tensor:
        return self._forward(other, "divide")

    def __rtruediv__(self, other: Any) -> Tensor:
        return self._forward(other, "divide", reflected=True)

    def __neg__(self) -> Tensor:
        _check_numeric(self.dtype)
        out = Tensor(self.dtype, self.shape, "negate", self.device, (-x for x in self._values()))
        out._record("negate", (self,), lambda grad: (-grad,))
        return out

    # ---- autograd ----

    def _record(
        self,
        name: str,
        inputs: tuple[Tensor, ...],
        fn: Callable[[Tensor], Sequence[Tensor | None]],
    ) -> None:
        if _grad_enabled.get() and any(t.requires_grad for t in inputs):
            self._impl.grad_fn = _Node(name, inputs, fn)

    def backward(self) -> None:
        """Propagate a gradient of ones back through the recorded graph into leaf grads."""
        order: list[Tensor] = []
        seen: set[int] = set()
        stack: list[tuple[Tensor, bool]] = [(self, False)]
        while stack:
            tensor, finished = stack.pop()
            if finished:
                order.append(tensor)
                continue
            key = tensor.impl.id
            if key in seen:
                continue
            seen.add(key)
            stack.append((tensor, True))
            node = tensor.grad_fn
            if node is not None:
                stack.extend((inp, False) for inp in node.inputs if inp.impl.id not in seen)

        with _no_grad():
            pending: dict[int, Tensor] = {self.impl.id: Tensor.ones_like(self)}
            for tensor in reversed(order):
                grad = pending.pop(tensor.impl.id, None)
                if grad is None:
                    continue
                node = tensor.grad_fn
                if node is None:
                    if tensor.requires_grad:
                        tensor.impl.set_grad(grad)
                    continue
                for inp, inp_grad in zip(node.inputs, node.apply(grad)):
                    if inp_grad is None or not inp.requires_grad:
                        continue
                    key = inp.impl.id
                    pending[key] = pending[key] + inp_grad if key in pending else inp_grad

    # ---- views ----

    def _view(
        self,
        shape: Sequence[int],
        strides: Sequence[int],
        offset: int,
        name: str,
    ) -> Tensor:
        source = self._impl
        impl = TensorImpl(source.dtype, (0,), name, source.device)
        impl.storage = source.storage
        impl.shape = tuple(shape)
        impl.strides = tuple(strides)
        impl.offset = offset
        impl.is_view = True
        root = source.get_base() if source.is_view else None
        impl.set_base(root or source)
        view = Tensor._from_impl(impl)

        parent_layout = (source.shape, source.strides, source.offset)
        view_layout = (impl.shape, impl.strides, impl.offset)
        size = len(impl.storage)

        def backward(grad: Tensor) -> tuple[Tensor]:
            buffer: list[Any] = [0] * size
            for linear, value in enumerate(grad._values()):
                buffer[shapes.unravel(linear, *view_layout)] += value
            pshape, pstrides, poffset = parent_layout
            data = [
                buffer[shapes.unravel(linear, pshape, pstrides, poffset)]
                for linear in range(shapes.numel(pshape))
            ]
            return (Tensor(grad.dtype, pshape, "grad", grad.device, data),)

        view._record(name, (self,), backward)
        return view

    def broadcast_to(self, shape: Sequence[int]) -> Tensor:
        """A view of this tensor read as the broadcast ``shape``."""
        desired = tuple(shape)
        if desired == self.shape:
            return self
        if shapes.broadcast_shape(self.shape, desired) != desired:
            raise ValueError(f"cannot broadcast {list(self.shape)} to {list(desired)}")
        strides = _expand_strides(self.shape, self.strides, desired)
        return self._view(desired, strides, self.offset, "broadcast_to")

    def unsqueeze(self, dim: int) -> Tensor:
        """A view with a new dimension of size one inserted at ``dim``."""
        ndim = self.ndim()
        if not -ndim - 1 <= dim <= ndim:
            raise IndexError(f"dimension {dim} out of range for unsqueeze of {ndim}-d tensor")
        if dim < 0:
            dim += ndim + 1
        stride = self.strides[dim] * self.shape[dim] if dim < ndim else 1
        new_shape = self.shape[:dim] + (1,) + self.shape[dim:]
        new_strides = self.strides[:dim] + (stride,) + self.strides[dim:]
        return self._view(new_shape, new_strides, self.offset, "unsqueeze")

    def transpose(self, dima: int, dimb: int) -> Tensor:
        """A view with dimensions ``dima`` and ``dimb`` swapped."""
        dima = self._normalize_dim(dima)
        dimb = self._normalize_dim(dimb)
        new_shape = list(self.shape)
        new_strides = list(self.strides)
        new_shape[dima], new_shape[dimb] = new_shape[dimb], new_shape[dima]
        new_strides[dima], new_strides[dimb] = new_strides[dimb], new_strides[dima]
        return self._view(new_shape, new_strides, self.offset, "transpose")

    def slice(self, axis: int, start: int, end: int, step: int = 1) -> Tensor:
        """A view of positions ``start:end:step`` along ``axis``."""
        axis = self._normalize_dim(axis)
        if step < 1:
            raise ValueError("slice step must be positive")
        size = self.shape[axis]
        if not 0 <= start <= end <= size:
            raise IndexError(f"slice [{start}, {end}) out of range for axis of size {size}")
        new_shape = list(self.shape)
        new_strides = list(self.strides)
        new_shape[axis] = (end - start + step - 1) // step
        new_strides[axis] = self.strides[axis] * step
        offset = self.offset + start * self.strides[axis]
        return self._view(new_shape, new_strides, offset, "slice")

    def reshape(self, shape: Sequence[int]) -> Tensor:
        """A view with a new shape of the same element count; needs a contiguous tensor."""
        if not self.is_contiguous():
            raise ValueError("reshape only supported on contiguous tensors")
        new_shape = tuple(shape)
        if shapes.numel(new_shape) != self.numel():
            raise ValueError("reshape: new shape has different number of elements")
        return self._view(new_shape, shapes.calculate_strides(new_shape), self.offset, "reshape")

    def _normalize_dim(self, dim: int) -> int:
        ndim = self.ndim()
        if not -ndim <= dim < ndim:
            raise IndexError(f"dimension {dim} out of range for {ndim}-d tensor")
        return dim + ndim if dim < 0 else dim

    # ---- factories ----

    @staticmethod
    def ones_like(tensor: Tensor) -> Tensor:
        _check_numeric(tensor.dtype)
        return Tensor(tensor.dtype, tensor.shape, "ones_like", tensor.device, [1] * tensor.numel())

    @staticmethod
    def zeros_like(tensor: Tensor) -> Tensor:
        _check_numeric(tensor.dtype)
        return Tensor(tensor.dtype, tensor.shape, "zeroes_like", tensor.device)

    @staticmethod
    def randn(
        dtype: DType,
        shape: Sequence[int],
        name: str = "randn",
        device: Device | None = None,
    ) -> Tensor:
        """Uniformly random values: [-1, 1] for float32, [-0.1, 0.1] for float64, {-1, 0, 1} for int32."""
        count = shapes.numel(shape)
        if dtype is DType.FLOAT32:
            data: list[Any] = [random.uniform(-1.0, 1.0) for _ in range(count)]
        elif dtype is DType.FLOAT64:
            data = [random.uniform(-0.1, 0.1) for _ in range(count)]
        elif dtype is DType.INT32:
            data = [random.randint(-1, 1) for _ in range(count)]
        else:
            raise ValueError("Unsupported dtype in randn")
        return Tensor(dtype, shape, name, device, data)

    def __repr__(self) -> str:
        return (
            f"Tensor(name={self.name!r}, dtype={self.dtype.value}, "
            f"shape={list(self.shape)}, device={self.device})"
        )


def _nest(flat: list[Any], shape: Sequence[int]) -> list[Any]:
    if len(shape) == 1:
        return list(flat)
    step = shapes.numel(shape[1:])
    return [_nest(flat[i * step:(i + 1) * step], shape[1:]) for i in range(shape[0])]