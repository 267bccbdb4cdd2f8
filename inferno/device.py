"""Where a tensor's storage lives."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class DeviceType(enum.Enum):
    CPU = "cpu"
    CUDA = "cuda"


@dataclass(frozen=True)
class Device:
    """A device kind together with its index."""

    type: DeviceType = DeviceType.CPU
    index: int = 0

    @staticmethod
    def cpu() -> Device:
        return Device(DeviceType.CPU, 0)

    @staticmethod
    def cuda(index: int) -> Device:
        return Device(DeviceType.CUDA, index)

    def is_cpu(self) -> bool:
        return self.type is DeviceType.CPU

    def is_cuda(self) -> bool:
        return self.type is DeviceType.CUDA

    def __str__(self) -> str:
        if self.is_cpu():
            return self.type.value
        return f"{self.type.value}:{self.index}"