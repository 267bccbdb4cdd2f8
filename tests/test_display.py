import pytest

from inferno.display import format_tensor
from inferno.dtype import DType
from inferno.tensor import Tensor


def _line(text, prefix):
    return next(line for line in text.split("\n") if line.startswith(prefix))


def test_int32_full_dump():
    t = Tensor(DType.INT32, (3,), "a", None, [1, 2, 3])
    expected = (
        '****** Tensor "a" \n'
        "dtype = Int32\n"
        "shape=[3]\n"
        "strides=[1]\n"
        "offset=0\n"
        "data = [1, 2, 3]\n"
        "has_grad = no\n"
        "grad = []\n\n\n"
    )
    assert format_tensor(t) == expected


def test_float64_data_line_uses_six_decimals():
    t = Tensor(DType.FLOAT64, (2,), "f", None, [0.5, 2.25])
    text = format_tensor(t)
    assert _line(text, "data = ") == "data = [0.500000, 2.250000]"
    assert _line(text, "dtype = ") == "dtype = Float64"


def test_float32_label_and_shape_layout():
    t = Tensor(DType.FLOAT32, (2, 3), "m", None, list(range(6)))
    text = format_tensor(t)
    assert _line(text, "dtype = ") == "dtype = Float32"
    assert _line(text, "shape=") == "shape=[2, 3]"
    assert _line(text, "strides=") == "strides=[3, 1]"
    assert text.startswith('****** Tensor "m" \n')
    assert text.endswith("\n\n\n")


def test_data_truncated_to_one_hundred_values():
    t = Tensor(DType.INT32, (150,), "big", None, list(range(150)))
    data = _line(format_tensor(t), "data = ")
    inner = data[len("data = ["):-1]
    values = [item for item in inner.split(", ") if item]
    assert values == [str(i) for i in range(100)]
    assert inner.endswith(", ")


def test_grad_after_backward():
    a = Tensor(DType.FLOAT32, (2,), "a", None, [1.0, 2.0])
    b = Tensor(DType.FLOAT32, (2,), "b", None, [3.0, 4.0])
    (a + b).backward()
    text = format_tensor(a)
    assert _line(text, "has_grad = ") == "has_grad = yes"
    assert _line(text, "grad = ") == "grad = [1.000000, 1.000000]"


def test_view_prints_logical_order_and_own_layout():
    t = Tensor(DType.INT32, (2, 3), "t", None, list(range(6)))
    view = t.transpose(0, 1)
    text = format_tensor(view)
    same = Tensor(DType.INT32, (3, 2), "same", None, [v for row in view.tolist() for v in row])
    assert _line(text, "data = ") == _line(format_tensor(same), "data = ")
    assert _line(text, "strides=") == "strides=[" + ", ".join(map(str, view.strides)) + "]"


def test_slice_offset_reported():
    t = Tensor(DType.INT32, (5,), "s", None, [10, 11, 12, 13, 14])
    view = t.slice(0, 2, 5)
    text = format_tensor(view)
    assert _line(text, "offset=") == f"offset={view.offset}"
    assert view.offset > 0
    assert _line(text, "data = ") == "data = [" + ", ".join(str(v) for v in view.tolist()) + "]"


def test_empty_tensor_has_empty_data():
    t = Tensor(DType.FLOAT32, (0,), "e")
    assert _line(format_tensor(t), "data = ") == "data = []"


def test_unsupported_dtype_rejected():
    t = Tensor(DType.BOOL, (2,), "flags")
    with pytest.raises(ValueError):
        format_tensor(t)