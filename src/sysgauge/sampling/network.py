"""Network throughput from per-interface byte counters."""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import psutil

from sysgauge.platforms import LINUX, WINDOWS, ProbeRegistry
from sysgauge.probe import Probe
from sysgauge.utils.parsing import parse_int, parse_key_value_blocks

from .base import CounterSnapshot, Counters, DeltaSampler, counter_rate

logger = logging.getLogger(__name__)

WINDOWS_STATISTICS_COMMAND = (
    'powershell -Command "Get-NetAdapterStatistics '
    '| Select-Object Name, ReceivedBytes, SentBytes | Format-List"'
)


@dataclass(frozen=True)
class ByteRate:
    """Receive and transmit throughput in bytes per second."""

    receive: float
    transmit: float


class NetCounterSource(Probe, ABC):
    """Reads (received, transmitted) byte counters per interface."""

    @abstractmethod
    async def read(self) -> Counters:
        """Return ``{interface: (rx_bytes, tx_bytes)}``."""


@ProbeRegistry.register("net_counters", LINUX)
class SysfsNetCounterSource(NetCounterSource):
    """Reads /sys/class/net/<nic>/statistics/{rx,tx}_bytes."""

    async def read(self) -> Counters:
        net_dir = self.sysfs_root / "class" / "net"
        nics = [p.name for p in await self.list_dir(net_dir)]
        paths: list[Path] = []
        for nic in nics:
            stats = net_dir / nic / "statistics"
            paths.extend([stats / "rx_bytes", stats / "tx_bytes"])
        contents = await self.read_many(paths)

        counters: Counters = {}
        for nic in nics:
            stats = net_dir / nic / "statistics"
            rx = parse_int(contents.get(stats / "rx_bytes"))
            tx = parse_int(contents.get(stats / "tx_bytes"))
            if rx is None and tx is None:
                continue
            counters[nic] = (rx or 0, tx or 0)
        return counters


@ProbeRegistry.register("net_counters", WINDOWS)
class PowerShellNetCounterSource(NetCounterSource):
    """Parses Get-NetAdapterStatistics output."""

    async def read(self) -> Counters:
        output = (await self.run(WINDOWS_STATISTICS_COMMAND)).unwrap_or("")
        counters: Counters = {}
        for block in parse_key_value_blocks(output, " : "):
            name = block.get("Name")
            if not name:
                continue
            counters[name] = (
                parse_int(block.get("ReceivedBytes")) or 0,
                parse_int(block.get("SentBytes")) or 0,
            )
        return counters


@ProbeRegistry.register("net_counters")
class PsutilNetCounterSource(NetCounterSource):
    """Portable fallback through psutil."""

    async def read(self) -> Counters:
        stats = psutil.net_io_counters(pernic=True) or {}
        return {
            nic: (counters.bytes_recv, counters.bytes_sent)
            for nic, counters in stats.items()
        }


class NetworkSampler(DeltaSampler[dict[str, ByteRate]]):
    """Samples interface byte counters and derives bytes/s per interface."""

    def __init__(
        self,
        interval_ms: int = 1000,
        warmup_delay_ms: int = 50,
        platform: str | None = None,
        source: NetCounterSource | None = None,
        clock: Callable[[], float] = time.monotonic,
        **probe_kwargs: Any,
    ) -> None:
        super().__init__(
            interval_ms=interval_ms, warmup_delay_ms=warmup_delay_ms, clock=clock
        )
        self.source = source or ProbeRegistry.create(
            "net_counters", platform, **probe_kwargs
        )

    async def take_snapshot(self) -> Counters:
        return await self.source.read()

    def compute_rates(
        self, previous: CounterSnapshot, current: CounterSnapshot
    ) -> dict[str, ByteRate]:
        elapsed = current.timestamp - previous.timestamp
        rates: dict[str, ByteRate] = {}
        # interfaces that vanished drop out; new ones appear once they have
        # two snapshots
        for nic, (rx, tx) in current.counters.items():
            if nic not in previous.counters:
                continue
            prev_rx, prev_tx = previous.counters[nic]
            rates[nic] = ByteRate(
                receive=counter_rate(prev_rx, rx, elapsed),
                transmit=counter_rate(prev_tx, tx, elapsed),
            )
        return rates

    def empty_rates(self) -> dict[str, ByteRate]:
        return {}
