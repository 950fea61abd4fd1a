"""SystemMonitor: one object owning the samplers and platform probes."""

import logging
from collections.abc import Awaitable
from pathlib import Path
from typing import Any, TypeVar

import sysgauge.collectors  # noqa: F401  (registers the probes)
from sysgauge.collectors.cpu import get_cpu_core_count
from sysgauge.collectors.memory import memory_utilization
from sysgauge.collectors.net import is_port_in_use
from sysgauge.config.models import Settings
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
    Temperatures,
)
from sysgauge.platforms import ProbeRegistry, current_platform
from sysgauge.result import Outcome
from sysgauge.sampling import ByteRate, CpuSampler, NetworkSampler
from sysgauge.utils.command import Runner, run_command

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SystemMonitor:
    """Queries local hardware and OS state.

    Probes are chosen once per monitor for the platform. CPU and network
    utilization come from background samplers that start on first use and
    run until stopped; use the monitor as an async context manager, or call
    ``close()``, to stop them.

    Example:
        >>> async with SystemMonitor() as monitor:
        ...     cpu = await monitor.get_cpu_utilization()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        platform: str | None = None,
        runner: Runner = run_command,
        sysfs_root: Path | str | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.platform = platform or current_platform()
        probe_kwargs: dict[str, Any] = {
            "runner": runner,
            "timeout": self.settings.commands.timeout_s,
            "sysfs_root": Path(sysfs_root or self.settings.sysfs_root),
        }

        sampling = self.settings.sampling
        self.cpu_sampler = CpuSampler(
            interval_ms=sampling.cpu_interval_ms,
            warmup_delay_ms=sampling.warmup_delay_ms,
        )
        self.network_sampler = NetworkSampler(
            interval_ms=sampling.network_interval_ms,
            warmup_delay_ms=sampling.warmup_delay_ms,
            platform=self.platform,
            **probe_kwargs,
        )

        def probe(domain: str, **extra: Any) -> Any:
            return ProbeRegistry.create(domain, self.platform, **probe_kwargs, **extra)

        self.cpu_probe = probe("cpu")
        self.memory_probe = probe("memory")
        self.gpu_probe = probe("gpu")
        self.drive_probe = probe(
            "drive", virtual_types=self.settings.drives.virtual_types
        )
        self.network_probe = probe("net")
        self.temperature_probe = probe("temperature")
        self.docker_probe = probe("docker")
        self.os_probe = probe("os")

    async def __aenter__(self) -> "SystemMonitor":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    # Sampler control

    @property
    def cpu_interval_ms(self) -> int:
        return self.cpu_sampler.interval_ms

    @cpu_interval_ms.setter
    def cpu_interval_ms(self, value: int) -> None:
        self.cpu_sampler.interval_ms = value

    @property
    def network_interval_ms(self) -> int:
        return self.network_sampler.interval_ms

    @network_interval_ms.setter
    def network_interval_ms(self, value: int) -> None:
        self.network_sampler.interval_ms = value

    def stop_cpu_utilization_computation(self) -> None:
        self.cpu_sampler.stop()

    def stop_network_utilization_computation(self) -> None:
        self.network_sampler.stop()

    def close(self) -> None:
        """Stop both background samplers."""
        self.stop_cpu_utilization_computation()
        self.stop_network_utilization_computation()

    # Queries

    async def _collect(self, what: str, pending: Awaitable[Outcome[T]], default: T) -> T:
        try:
            outcome = await pending
        except Exception as e:
            logger.debug(f"Collecting {what} failed: {e}", exc_info=True)
            return default
        if not outcome.ok:
            logger.debug(f"No {what} available: {outcome.reason}")
        return outcome.unwrap_or(default)

    async def get_cpu_utilization(self) -> CpuUtilization:
        """Overall and per-core busy fractions over the last interval."""
        try:
            return await self.cpu_sampler.read()
        except Exception as e:
            logger.debug(f"CPU utilization failed: {e}", exc_info=True)
            return CpuUtilization()

    async def get_cpu_info(self) -> CpuInfo:
        utilization = await self.get_cpu_utilization()
        return await self._collect(
            "CPU info",
            self.cpu_probe.collect(utilization),
            CpuInfo(
                name="Unknown",
                core_count=get_cpu_core_count(),
                architecture="",
                endian="",
                speed_mhz=None,
                utilization=utilization,
            ),
        )

    def get_cpu_core_count(self) -> int:
        return get_cpu_core_count()

    async def get_memory_utilization(self) -> MemoryUtilization:
        return memory_utilization()

    async def get_memory_info(self) -> MemoryInfo:
        utilization = memory_utilization()
        return await self._collect(
            "memory info",
            self.memory_probe.collect(),
            MemoryInfo(size=utilization.used + utilization.free, utilization=utilization),
        )

    async def get_gpus(self) -> list[Gpu]:
        return await self._collect("GPUs", self.gpu_probe.collect(), [])

    async def get_drives(self, include_virtual: bool = False) -> list[Drive]:
        return await self._collect(
            "drives", self.drive_probe.collect(include_virtual=include_virtual), []
        )

    async def get_network_throughput(self) -> dict[str, ByteRate]:
        """Receive/transmit bytes per second per interface."""
        try:
            return await self.network_sampler.read()
        except Exception as e:
            logger.debug(f"Network throughput failed: {e}", exc_info=True)
            return {}

    async def get_network_interfaces(self) -> list[NetworkInterface]:
        rates = await self.get_network_throughput()
        return await self._collect(
            "network interfaces", self.network_probe.collect(rates), []
        )

    async def get_temperatures(self) -> Temperatures:
        return await self._collect(
            "temperatures", self.temperature_probe.collect(), Temperatures()
        )

    async def get_docker_containers(self, include_stopped: bool = False) -> list[DockerContainer]:
        return await self._collect(
            "docker containers",
            self.docker_probe.collect(include_stopped=include_stopped),
            [],
        )

    async def get_os_info(self) -> OsInfo | None:
        return await self._collect("OS info", self.os_probe.collect(), None)

    async def is_port_in_use(self, port: int, bind_address: str = "0.0.0.0") -> bool:
        return await is_port_in_use(port, bind_address)
