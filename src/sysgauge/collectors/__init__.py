"""Per-domain collectors.

Importing this package registers every probe with ``ProbeRegistry``.
"""

from . import cpu, docker, drive, gpu, memory, net, os_info, temperature
from .cpu import CpuProbe, get_cpu_core_count
from .docker import DockerProbe
from .drive import DriveProbe
from .gpu import GpuProbe
from .memory import MemoryProbe
from .net import NetworkProbe, is_port_in_use
from .os_info import OsProbe
from .temperature import TemperatureProbe

__all__ = [
    "CpuProbe",
    "DockerProbe",
    "DriveProbe",
    "GpuProbe",
    "MemoryProbe",
    "NetworkProbe",
    "OsProbe",
    "TemperatureProbe",
    "cpu",
    "docker",
    "drive",
    "get_cpu_core_count",
    "gpu",
    "is_port_in_use",
    "memory",
    "net",
    "os_info",
    "temperature",
]
