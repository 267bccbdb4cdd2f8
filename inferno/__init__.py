"""A small pure-Python tensor library with broadcasting arithmetic, autograd, MSE loss and SGD."""

__version__ = "0.1.0"
__all__ = ["device", "display", "dtype", "loss", "optim", "shapes", "tensor", "tensorimpl"]