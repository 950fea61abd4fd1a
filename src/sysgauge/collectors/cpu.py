"""CPU identification and utilization."""

import asyncio
import logging
import platform
import sys
from functools import lru_cache

import cpuinfo
import psutil

from sysgauge.models import CpuInfo, CpuUtilization
from sysgauge.platforms import ProbeRegistry
from sysgauge.probe import Probe
from sysgauge.result import Outcome

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def cpu_brand() -> str:
    """Marketing name of the CPU, e.g. ``AMD Ryzen 9 7950X 16-Core Processor``.

    py-cpuinfo can take a second or more, so the result is cached for the
    life of the process.
    """
    try:
        brand = cpuinfo.get_cpu_info().get("brand_raw")
    except Exception as e:
        logger.debug(f"py-cpuinfo lookup failed: {e}")
        brand = None
    return brand or platform.processor() or "Unknown"


def get_cpu_core_count() -> int:
    """Number of logical CPUs."""
    return psutil.cpu_count(logical=True) or 0


def cpu_speed_mhz() -> float | None:
    try:
        freq = psutil.cpu_freq()
    except (OSError, NotImplementedError) as e:
        logger.debug(f"CPU frequency unavailable: {e}")
        return None
    if freq is None or not freq.current:
        return None
    return float(freq.current)


def endianness() -> str:
    return "LE" if sys.byteorder == "little" else "BE"


@ProbeRegistry.register("cpu")
class CpuProbe(Probe):
    """Static CPU facts combined with a utilization reading."""

    async def collect(self, utilization: CpuUtilization | None = None) -> Outcome[CpuInfo]:
        name = await asyncio.to_thread(cpu_brand)
        return Outcome.of(
            CpuInfo(
                name=name,
                core_count=get_cpu_core_count(),
                architecture=platform.machine(),
                endian=endianness(),
                speed_mhz=cpu_speed_mhz(),
                utilization=utilization or CpuUtilization(),
            )
        )
