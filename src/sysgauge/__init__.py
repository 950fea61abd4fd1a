"""sysgauge - local hardware and OS telemetry with a cross-platform schema.

The module-level functions delegate to a default ``SystemMonitor`` created
on first use. Call ``configure()`` to replace it with one built from
different settings.
"""

from sysgauge.collectors.cpu import get_cpu_core_count
from sysgauge.config import ConfigError, Settings, load_settings
from sysgauge.logging_setup import configure_logging
from sysgauge.models import (
    CpuInfo,
    CpuUtilization,
    DockerContainer,
    Drive,
    Gpu,
    MemoryInfo,
    MemoryUtilization,
    NetworkInterface,
    OsInfo,
    PortMapping,
    Temperatures,
)
from sysgauge.monitor import SystemMonitor
from sysgauge.utils.command import CommandFailed, CommandTimeout

__version__ = "1.0.0"

_monitor: SystemMonitor | None = None


def get_monitor() -> SystemMonitor:
    """Return the default monitor, creating it on first use."""
    global _monitor
    if _monitor is None:
        _monitor = SystemMonitor()
    return _monitor


def configure(settings: Settings | None = None) -> SystemMonitor:
    """Replace the default monitor with one built from ``settings``.

    The previous monitor's samplers are stopped.
    """
    global _monitor
    if _monitor is not None:
        _monitor.close()
    _monitor = SystemMonitor(settings)
    return _monitor


async def get_cpu_info() -> CpuInfo:
    return await get_monitor().get_cpu_info()


async def get_cpu_utilization() -> CpuUtilization:
    return await get_monitor().get_cpu_utilization()


def stop_cpu_utilization_computation() -> None:
    get_monitor().stop_cpu_utilization_computation()


def set_cpu_utilization_interval(interval_ms: int) -> None:
    get_monitor().cpu_interval_ms = interval_ms


async def get_memory_info() -> MemoryInfo:
    return await get_monitor().get_memory_info()


async def get_memory_utilization() -> MemoryUtilization:
    return await get_monitor().get_memory_utilization()


async def get_drives(include_virtual: bool = False) -> list[Drive]:
    return await get_monitor().get_drives(include_virtual)


async def get_gpus() -> list[Gpu]:
    return await get_monitor().get_gpus()


async def get_network_interfaces() -> list[NetworkInterface]:
    return await get_monitor().get_network_interfaces()


def stop_network_utilization_computation() -> None:
    get_monitor().stop_network_utilization_computation()


def set_network_utilization_interval(interval_ms: int) -> None:
    get_monitor().network_interval_ms = interval_ms


async def get_temperatures() -> Temperatures:
    return await get_monitor().get_temperatures()


async def get_docker_containers(include_stopped: bool = False) -> list[DockerContainer]:
    return await get_monitor().get_docker_containers(include_stopped)


async def get_os_info() -> OsInfo | None:
    return await get_monitor().get_os_info()


async def is_port_in_use(port: int, bind_address: str = "0.0.0.0") -> bool:
    return await get_monitor().is_port_in_use(port, bind_address)


__all__ = [
    "CommandFailed",
    "CommandTimeout",
    "ConfigError",
    "CpuInfo",
    "CpuUtilization",
    "DockerContainer",
    "Drive",
    "Gpu",
    "MemoryInfo",
    "MemoryUtilization",
    "NetworkInterface",
    "OsInfo",
    "PortMapping",
    "Settings",
    "SystemMonitor",
    "Temperatures",
    "configure",
    "configure_logging",
    "get_cpu_core_count",
    "get_cpu_info",
    "get_cpu_utilization",
    "get_docker_containers",
    "get_drives",
    "get_gpus",
    "get_memory_info",
    "get_memory_utilization",
    "get_monitor",
    "get_network_interfaces",
    "get_os_info",
    "get_temperatures",
    "is_port_in_use",
    "load_settings",
    "set_cpu_utilization_interval",
    "set_network_utilization_interval",
    "stop_cpu_utilization_computation",
    "stop_network_utilization_computation",
]
