"""Delta-rate sampling of monotonic OS counters.

A sampler keeps the previous and current snapshot of a set of counters and
turns the difference into rates. Sampling starts lazily on the first read:
two snapshots are taken a short warm-up apart so the first caller gets a real
rate, then a background task keeps sampling on a fixed interval until
``stop()`` is called.
"""

import asyncio
import copy
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")

Counters = dict[str, tuple[int, ...]]


@dataclass(frozen=True)
class CounterSnapshot:
    """Counters per key captured at one instant (monotonic seconds)."""

    timestamp: float
    counters: Counters = field(default_factory=dict)


def tick_ratio(
    prev_busy: float, busy: float, prev_total: float, total: float
) -> float:
    """Fraction of elapsed ticks spent busy; 0 when no ticks elapsed."""
    total_delta = total - prev_total
    if total_delta <= 0:
        return 0.0
    return min(max(busy - prev_busy, 0) / total_delta, 1.0)


def counter_rate(previous: float, current: float, elapsed: float) -> float:
    """Per-second rate of a counter; 0 for no elapsed time or a counter reset."""
    if elapsed <= 0:
        return 0.0
    return max(current - previous, 0) / elapsed


class DeltaSampler(ABC, Generic[R]):
    """Base class for self-managing background counter samplers."""

    MIN_INTERVAL_MS = 1

    def __init__(
        self,
        interval_ms: int = 1000,
        warmup_delay_ms: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval_ms = max(int(interval_ms), self.MIN_INTERVAL_MS)
        self._warmup_delay_ms = max(int(warmup_delay_ms), 0)
        self._clock = clock
        self._previous: CounterSnapshot | None = None
        self._current: CounterSnapshot | None = None
        self._rates: R = self.empty_rates()
        self._running = False
        self._generation = 0
        self._task: asyncio.Task | None = None
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def interval_ms(self) -> int:
        """Milliseconds between background samples."""
        return self._interval_ms

    @interval_ms.setter
    def interval_ms(self, value: int) -> None:
        self._interval_ms = max(int(value), self.MIN_INTERVAL_MS)

    @property
    def running(self) -> bool:
        """True while a live background task is sampling."""
        return self._running and self._task is not None and not self._task.done()

    @property
    def previous(self) -> CounterSnapshot | None:
        return self._previous

    @property
    def current(self) -> CounterSnapshot | None:
        return self._current

    @abstractmethod
    async def take_snapshot(self) -> Counters:
        """Read the raw counters, keyed by core index or interface name."""

    @abstractmethod
    def compute_rates(self, previous: CounterSnapshot, current: CounterSnapshot) -> R:
        """Derive rates from two consecutive snapshots."""

    @abstractmethod
    def empty_rates(self) -> R:
        """Rates reported before any sample exists."""

    async def read(self) -> R:
        """Return the latest rates, starting sampling if it is not running.

        The first call after a stop blocks for the warm-up delay; later calls
        return immediately with whatever the last tick computed. Each caller
        gets its own copy.

        A ``stop()`` during the warm-up aborts the start: the caller gets the
        empty rates and the sampler stays stopped.
        """
        if not self.running:
            async with self._get_lock():
                if not self.running:
                    await self._start()
        return copy.deepcopy(self._rates)

    def stop(self) -> None:
        """Stop background sampling. Safe to call repeatedly."""
        was_running = self.running
        self._generation += 1
        self._reset()
        if was_running:
            logger.debug(f"{self.name} stopped")

    def _reset(self) -> None:
        self._running = False
        task, self._task = self._task, None
        if task is not None and not task.done():
            try:
                task.cancel()
            except RuntimeError:
                # the loop owning the task is already closed
                pass
        self._previous = None
        self._current = None

    async def sample(self) -> None:
        """Take one snapshot and update rates from the previous one."""
        counters = await self.take_snapshot()
        snapshot = CounterSnapshot(timestamp=self._clock(), counters=counters)
        self._previous, self._current = self._current, snapshot
        if self._previous is not None:
            self._rates = self.compute_rates(self._previous, self._current)

    async def _safe_sample(self) -> None:
        try:
            await self.sample()
        except Exception as e:
            logger.debug(f"{self.name} sample failed: {e}", exc_info=True)

    async def _start(self) -> None:
        self._reset()
        self._rates = self.empty_rates()
        generation = self._generation
        await self._safe_sample()
        await asyncio.sleep(self._warmup_delay_ms / 1000.0)
        if self._start_aborted(generation):
            return
        await self._safe_sample()
        if self._start_aborted(generation):
            return
        self._running = True
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"{self.name}-loop"
        )
        logger.debug(f"{self.name} started ({self._interval_ms} ms interval)")

    def _start_aborted(self, generation: int) -> bool:
        # stop() was called while the warm-up was in flight
        if generation == self._generation:
            return False
        self._previous = None
        self._current = None
        self._rates = self.empty_rates()
        logger.debug(f"{self.name} stopped during warm-up")
        return True

    async def _run(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval_ms / 1000.0)
            await self._safe_sample()

    def _get_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock
