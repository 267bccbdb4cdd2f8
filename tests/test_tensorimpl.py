import gc

import pytest

from inferno import shapes
from inferno.device import Device
from inferno.dtype import DType
from inferno.tensorimpl import TensorImpl


def test_zero_filled_storage_matches_numel():
    impl = TensorImpl(DType.FLOAT32, (2, 3), "z", Device.cpu())
    assert impl.numel() == 2 * 3
    assert len(impl.storage) == impl.numel()
    assert all(value == 0 for value in impl.storage)


def test_layout_defaults():
    impl = TensorImpl(DType.INT32, [4, 5, 6], "layout", Device.cpu())
    assert impl.shape == (4, 5, 6)
    assert impl.strides == shapes.calculate_strides((4, 5, 6))
    assert impl.offset == 0
    assert impl.ndim() == 3
    assert impl.is_contiguous()
    assert impl.requires_grad
    assert impl.is_view is False
    assert impl.grad is None


def test_data_round_trip_int32():
    values = [1, 0, -3, 7, 2, 9]
    impl = TensorImpl(DType.INT32, (2, 3), "a", Device.cpu(), values)
    assert impl.storage == values


def test_data_is_cast_to_dtype():
    impl = TensorImpl(DType.FLOAT32, (2,), "f", Device.cpu(), [0.1, 2])
    assert impl.storage == [DType.FLOAT32.cast(0.1), DType.FLOAT32.cast(2)]
    assert all(isinstance(v, float) for v in impl.storage)


def test_cuda_device_kept():
    device = Device.cuda(0)
    impl = TensorImpl(DType.FLOAT64, (3,), "c", device, [1.0, 2.0, 3.0])
    assert impl.device == device
    assert impl.storage == [1.0, 2.0, 3.0]


def test_nbytes_uses_itemsize():
    impl = TensorImpl(DType.FLOAT64, (3, 4), "b", Device.cpu())
    assert impl.nbytes() == impl.numel() * DType.FLOAT64.itemsize
    assert impl.storage_nbytes == impl.nbytes()


def test_scalar_shape_has_one_element():
    impl = TensorImpl(DType.FLOAT32, (), "s", Device.cpu(), [5.0])
    assert impl.numel() == 1
    assert impl.ndim() == 0
    assert impl.is_contiguous()


def test_data_length_mismatch_raises():
    with pytest.raises(ValueError):
        TensorImpl(DType.INT32, (2, 2), "bad", Device.cpu(), [1, 2, 3])


@pytest.mark.parametrize("dtype", [DType.INVALID, DType.INT8])
def test_unsized_dtype_raises(dtype):
    with pytest.raises(ValueError):
        TensorImpl(dtype, (2,), "bad", Device.cpu())


def test_ids_are_unique_and_increasing():
    first = TensorImpl(DType.INT32, (1,), "x", Device.cpu())
    second = TensorImpl(DType.INT32, (1,), "y", Device.cpu())
    assert second.id > first.id


def test_changed_strides_not_contiguous():
    impl = TensorImpl(DType.FLOAT32, (2, 3), "t", Device.cpu())
    impl.shape = (3, 2)
    impl.strides = (1, 3)
    assert not impl.is_contiguous()
    assert impl.numel() == 2 * 3


def test_set_grad_stores_then_accumulates():
    impl = TensorImpl(DType.FLOAT32, (1,), "g", Device.cpu())
    impl.set_grad(1.5)
    assert impl.grad == 1.5
    impl.set_grad(2.5)
    assert impl.grad == 1.5 + 2.5


def test_set_grad_uses_addition_of_grad_objects():
    impl = TensorImpl(DType.FLOAT32, (1,), "g", Device.cpu())
    impl.set_grad([1])
    impl.set_grad([2])
    assert impl.grad == [1, 2]


def test_base_round_trip():
    base = TensorImpl(DType.FLOAT32, (4,), "base", Device.cpu())
    view = TensorImpl(DType.FLOAT32, (2,), "view", Device.cpu())
    assert view.get_base() is None
    view.set_base(base)
    assert view.get_base() is base


def test_base_is_not_kept_alive():
    view = TensorImpl(DType.FLOAT32, (2,), "view", Device.cpu())
    base = TensorImpl(DType.FLOAT32, (4,), "base", Device.cpu())
    view.set_base(base)
    del base
    gc.collect()
    assert view.get_base() is None