"""Background samplers turning monotonic counters into rates."""

from .base import CounterSnapshot, DeltaSampler, counter_rate, tick_ratio
from .cpu import CpuSampler
from .network import ByteRate, NetworkSampler

__all__ = [
    "ByteRate",
    "CounterSnapshot",
    "CpuSampler",
    "DeltaSampler",
    "NetworkSampler",
    "counter_rate",
    "tick_ratio",
]
