"""CPU utilization from per-core tick counters."""

import psutil

from sysgauge.models import CpuUtilization

from .base import CounterSnapshot, Counters, DeltaSampler, tick_ratio

BUSY_FIELDS = ("user", "nice", "system", "irq")


def core_ticks(times) -> tuple[int, int]:
    """Return (busy, total) ticks for one core's ``cpu_times`` entry.

    Fields missing on a platform (``nice`` on Windows, ``irq`` on macOS)
    count as zero.
    """
    busy = sum(getattr(times, name, 0.0) or 0.0 for name in BUSY_FIELDS)
    idle = getattr(times, "idle", 0.0) or 0.0
    # psutil reports seconds; scale to integer centiseconds like /proc/stat
    return round(busy * 100), round((busy + idle) * 100)


class CpuSampler(DeltaSampler[CpuUtilization]):
    """Samples busy/total ticks per core and derives utilization fractions."""

    async def take_snapshot(self) -> Counters:
        per_core = psutil.cpu_times(percpu=True)
        return {str(i): core_ticks(times) for i, times in enumerate(per_core)}

    def compute_rates(
        self, previous: CounterSnapshot, current: CounterSnapshot
    ) -> CpuUtilization:
        # cores present in both snapshots; hot-plugged cores shrink or grow
        # the list on the next tick
        count = min(len(previous.counters), len(current.counters))
        cores: list[float] = []
        busy_sum = 0
        total_sum = 0
        for i in range(count):
            key = str(i)
            if key not in previous.counters or key not in current.counters:
                cores.append(0.0)
                continue
            prev_busy, prev_total = previous.counters[key]
            busy, total = current.counters[key]
            cores.append(tick_ratio(prev_busy, busy, prev_total, total))
            busy_sum += max(busy - prev_busy, 0)
            total_sum += max(total - prev_total, 0)

        overall = min(busy_sum / total_sum, 1.0) if total_sum > 0 else 0.0
        return CpuUtilization(overall=overall, cores=cores)

    def empty_rates(self) -> CpuUtilization:
        return CpuUtilization()
