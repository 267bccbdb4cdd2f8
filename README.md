# inferno

A small tensor library in pure Python. It provides typed n-dimensional
tensors with broadcasting arithmetic, strided views, reverse-mode automatic
differentiation, a mean-squared-error loss and a plain SGD optimizer. It has
no dependencies beyond the standard library.

## Installation

```
pip install .
```

Install the test extra to run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `inferno.dtype`: `DType` (`FLOAT32`, `FLOAT64`, `INT32`, `INT8`, `BOOL`,
  `INVALID`). `DType.itemsize` gives the bytes per element, `DType.cast(value)`
  converts a Python number to what the type stores (32-bit wrap-around for
  `INT32`, single-precision rounding for `FLOAT32`). `promote(a, b)` gives the
  result type of mixed arithmetic on `INT32`, `FLOAT32` and `FLOAT64`;
  `dtype_of(value)` maps a Python `int` to `INT32` and a `float` to `FLOAT64`.
- `inferno.device`: `DeviceType` and the frozen dataclass `Device`;
  `Device.cpu()` and `Device.cuda(index)` name where a tensor lives.
- `inferno.shapes`: `numel`, `calculate_strides`, `broadcast_shape`,
  `is_contiguous` and `unravel` (row-major position to storage index).
- `inferno.tensorimpl`: `TensorImpl`, the storage, layout and gradient state
  behind a tensor.
- `inferno.tensor`: the `Tensor` class.
- `inferno.display`: `format_tensor(tensor)` returns a readable dump of a
  tensor: name, dtype, shape, strides, offset, up to 100 data values and up to
  2048 gradient values.
- `inferno.loss`: `MSELoss`.
- `inferno.optim`: `OptimizerSGD`.

## Tensors

`Tensor(dtype, shape, name="", device=None, data=None)` creates a tensor; with
no data it is filled with zeros, and data of the wrong length raises
`ValueError`. Tensors support:

- `+`, `-`, `*`, `/` between tensors, or with a Python scalar on either side,
  broadcasting shapes from the right; unary `-`. Integer division truncates
  toward zero and raises `ZeroDivisionError` on a zero divisor.
- Views sharing storage: `broadcast_to`, `unsqueeze`, `transpose`,
  `slice(axis, start, end, step=1)` and `reshape` (contiguous tensors only).
- `backward()`, which seeds a gradient of ones and accumulates gradients into
  the `grad` of leaf tensors, summing over broadcast dimensions.
- `item()`, `tolist()`, `allclose(other, eps=1e-5)`, `numel()`, `ndim()`,
  `is_contiguous()` and `to(device)`.
- Factories `Tensor.ones_like`, `Tensor.zeros_like` and
  `Tensor.randn(dtype, shape, name="randn", device=None)`, which draws uniform
  values in [-1, 1] for `FLOAT32`, [-0.1, 0.1] for `FLOAT64` and {-1, 0, 1}
  for `INT32`.

## Example

```python
from inferno.device import Device
from inferno.dtype import DType
from inferno.tensor import Tensor
from inferno.loss import MSELoss
from inferno.optim import OptimizerSGD

cpu = Device.cpu()
a = Tensor(DType.FLOAT32, [5], "a", cpu, [1, 0, 1, 0, 1])
b = Tensor(DType.FLOAT32, [2, 5], "b", cpu, [1, 0, 1, 0, 1, 0, 1, 0, 1, 0])

c = a + b                 # broadcasts to shape [2, 5]
c.backward()
print(a.grad.tolist())    # [2.0, 2.0, 2.0, 2.0, 2.0]

prediction = Tensor(DType.FLOAT32, [2], "prediction", cpu, [2.0, 3.0])
target = Tensor(DType.FLOAT32, [2], "target", cpu, [1.0, 5.0])
loss = MSELoss()(prediction, target)
print(loss.item())        # 2.5
loss.backward()
print(prediction.grad.tolist())  # [1.0, -2.0]

opt = OptimizerSGD([prediction], 0.1)
opt.step()
opt.zero_grad()
```

Errors such as incompatible broadcast shapes, mismatched devices, shape
mismatches in `MSELoss` or `OptimizerSGD`, and reshaping to a different number
of elements raise exceptions.

## What it does not do

All computation runs in Python on the host. A `Device.cuda(index)` device is
only a label carried by a tensor: `to()` copies the data between devices, and
tensors on different devices cannot be combined, but nothing runs on a GPU.
There are no layers, activation functions or optimizers beyond
`OptimizerSGD`, and no command-line tool.