"""Sampling and rate-derivation engine for hostop.

Every metric family is sampled through a :class:`Sampler`. Families reported
by the OS as cumulative counters (CPU ticks, network bytes) use a
:class:`DeltaSampler`, which keeps the previous sample in an
:class:`EngineState` and derives percentages or rates from the difference.
Families the OS already reports as current values (disk, memory, processes,
power) are mapped directly without any stored state.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Hashable, Iterable, Mapping
from typing import Any, Generic, TypeVar

from hostop.models import (
    CounterSample,
    CpuTicks,
    CpuUsage,
    DiskUsage,
    InterfaceRate,
    MemoryUsage,
    NetCounters,
    PowerInfo,
    ProcessSnapshot,
    percent_of,
)
from hostop.sources import SnapshotSource, is_loopback

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

PSEUDO_FILESYSTEMS = frozenset(
    {
        "autofs",
        "binfmt_misc",
        "cgroup",
        "cgroup2",
        "configfs",
        "debugfs",
        "devfs",
        "devpts",
        "devtmpfs",
        "fusectl",
        "hugetlbfs",
        "mqueue",
        "nsfs",
        "proc",
        "pstore",
        "securityfs",
        "squashfs",
        "sysfs",
        "tmpfs",
        "tracefs",
    }
)

DEFAULT_MIN_ELAPSED = 1.0  # seconds


class EngineState(Generic[K]):
    """
    Last-seen counter sample per entity for one metric family.

    Holds at most one sample per entity key. Samplers build the complete next
    mapping and install it with :meth:`replace`, so the stored samples and
    their timestamps always advance together. Callers must hold :attr:`lock`
    across a read-compute-replace cycle.
    """

    def __init__(self) -> None:
        self._samples: dict[K, CounterSample] = {}
        self.lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._samples)

    def __contains__(self, key: object) -> bool:
        return key in self._samples

    def get(self, key: K) -> CounterSample | None:
        return self._samples.get(key)

    def replace(self, samples: Mapping[K, CounterSample]) -> None:
        """Install ``samples`` as the complete new state."""
        self._samples = dict(samples)

    def clear(self) -> None:
        self._samples = {}

    def snapshot(self) -> dict[K, CounterSample]:
        """Return a copy of the stored samples."""
        return dict(self._samples)


class Sampler(ABC):
    """Produces the derived metrics of one family for the current cycle."""

    family: str = ""

    def __init__(self, source: SnapshotSource) -> None:
        self._source = source

    @abstractmethod
    def sample(self) -> Any:
        """Query the source and return this cycle's derived metrics."""


class DeltaSampler(Sampler, Generic[K, T]):
    """
    Sampler for families reported as monotonically increasing counters.

    Construction takes a bootstrap sample (unless ``bootstrap=False``) so the
    first call to :meth:`sample` already has a baseline to diff against.
    """

    def __init__(
        self,
        source: SnapshotSource,
        clock: Callable[[], float] = time.monotonic,
        bootstrap: bool = True,
    ) -> None:
        super().__init__(source)
        self._clock = clock
        self._state: EngineState[K] = EngineState()
        if bootstrap:
            self.reset()

    @property
    def state(self) -> EngineState[K]:
        return self._state

    def reset(self, bootstrap: bool = True) -> None:
        """
        Forget all previous samples and optionally take a fresh baseline.

        If the baseline read fails, the previous samples are kept.
        """
        with self._state.lock:
            if not bootstrap:
                self._state.clear()
                return
            raw = self._read()
            now = self._clock()
            self._state.replace(
                {key: CounterSample(counters, now) for key, counters in self._entities(raw)}
            )
            logger.debug("Bootstrapped %s sampler with %d entities", self.family, len(self._state))

    def sample(self) -> T:
        with self._state.lock:
            # A failed read propagates here and leaves the state untouched
            raw = self._read()
            now = self._clock()
            derived, samples = self._derive(raw, now)
            self._state.replace(samples)
        return derived

    @abstractmethod
    def _read(self) -> Any:
        """Fetch the raw counters from the source."""

    @abstractmethod
    def _entities(self, raw: Any) -> Iterable[tuple[K, Any]]:
        """Split a raw read into (entity key, counters) pairs."""

    @abstractmethod
    def _derive(self, raw: Any, now: float) -> tuple[T, dict[K, CounterSample]]:
        """Diff ``raw`` against the stored state; return output and next state."""


def core_utilization(prev: CpuTicks, cur: CpuTicks) -> float:
    """Busy percentage of one core between two tick samples."""
    total_diff = cur.total - prev.total
    if total_diff <= 0:
        return 0.0
    idle_diff = cur.idle - prev.idle
    usage = 100.0 * (1.0 - idle_diff / total_diff)
    return min(max(usage, 0.0), 100.0)


class CpuSampler(DeltaSampler[int, CpuUsage]):
    """Per-core CPU utilization from tick-counter deltas."""

    family = "cpu"

    def _read(self) -> list[CpuTicks]:
        return self._source.cpu_ticks()

    def _entities(self, raw: list[CpuTicks]) -> Iterable[tuple[int, CpuTicks]]:
        return enumerate(raw)

    def _derive(self, raw: list[CpuTicks], now: float) -> tuple[CpuUsage, dict[int, CounterSample]]:
        if self._state and len(raw) != len(self._state):
            logger.info("Core count changed from %d to %d", len(self._state), len(raw))

        per_core: list[float] = []
        samples: dict[int, CounterSample] = {}
        for index, ticks in self._entities(raw):
            prev = self._state.get(index)
            # A core without a baseline is bootstrapped and reads as idle
            per_core.append(0.0 if prev is None else core_utilization(prev.counters, ticks))
            samples[index] = CounterSample(ticks, now)

        return CpuUsage.from_cores(per_core), samples


def counter_rate(prev: int, cur: int, elapsed: float) -> float:
    """Per-second rate of a counter, clamped to zero when it went backwards."""
    delta = cur - prev
    if delta <= 0:
        return 0.0
    return delta / elapsed


class NetworkSampler(DeltaSampler[str, dict[str, InterfaceRate]]):
    """Per-interface throughput from byte-counter deltas."""

    family = "network"

    def __init__(
        self,
        source: SnapshotSource,
        clock: Callable[[], float] = time.monotonic,
        bootstrap: bool = True,
        min_elapsed: float = DEFAULT_MIN_ELAPSED,
    ) -> None:
        self._min_elapsed = min_elapsed
        super().__init__(source, clock=clock, bootstrap=bootstrap)

    def _read(self) -> dict[str, NetCounters]:
        return self._source.network_counters()

    def _entities(self, raw: dict[str, NetCounters]) -> Iterable[tuple[str, NetCounters]]:
        return ((name, counters) for name, counters in raw.items() if not is_loopback(name))

    def _derive(
        self, raw: dict[str, NetCounters], now: float
    ) -> tuple[dict[str, InterfaceRate], dict[str, CounterSample]]:
        rates: dict[str, InterfaceRate] = {}
        samples: dict[str, CounterSample] = {}

        for name, counters in self._entities(raw):
            samples[name] = CounterSample(counters, now)
            prev = self._state.get(name)
            if prev is None:
                logger.debug("New interface %s, no rate until next cycle", name)
                continue

            elapsed = max(now - prev.timestamp, self._min_elapsed)
            rates[name] = InterfaceRate(
                bytes_in_per_sec=counter_rate(prev.counters.bytes_in, counters.bytes_in, elapsed),
                bytes_out_per_sec=counter_rate(prev.counters.bytes_out, counters.bytes_out, elapsed),
            )

        return rates, samples


class DiskSampler(Sampler):
    """Occupancy of every real mounted filesystem."""

    family = "disk"

    def __init__(
        self,
        source: SnapshotSource,
        pseudo_filesystems: frozenset[str] = PSEUDO_FILESYSTEMS,
    ) -> None:
        super().__init__(source)
        self._pseudo_filesystems = pseudo_filesystems

    def sample(self) -> list[DiskUsage]:
        disks: list[DiskUsage] = []
        seen: set[str] = set()

        for mount in self._source.mount_table():
            if mount.fs_type in self._pseudo_filesystems or mount.mount_point in seen:
                continue
            seen.add(mount.mount_point)

            total = mount.total_blocks * mount.block_size
            free = min(mount.free_blocks, mount.total_blocks) * mount.block_size
            disks.append(
                DiskUsage(
                    mount_point=mount.mount_point,
                    used=total - free,
                    total=total,
                    fs_type=mount.fs_type,
                )
            )

        return disks


class MemorySampler(Sampler):
    """Physical and swap memory usage."""

    family = "memory"

    def sample(self) -> MemoryUsage:
        mem = self._source.memory()
        return MemoryUsage(
            total=mem.total,
            used=mem.used,
            percent=percent_of(mem.used, mem.total),
            swap_total=mem.swap_total,
            swap_used=mem.swap_used,
            swap_percent=percent_of(mem.swap_used, mem.swap_total),
        )


def top_k(items: Iterable[T], limit: int, key: Callable[[T], float]) -> list[T]:
    """
    Return the ``limit`` items with the highest ``key``, highest first.

    Always a full stable sort of ``items``, so the result is exact for the
    given input and ties keep their original order.
    """
    if limit <= 0:
        return []
    # sorted() stays stable with reverse=True
    return sorted(items, key=key, reverse=True)[:limit]


def lifetime_cpu_percent(cpu_time: float, started_at: float, now: float, cpu_count: int) -> float:
    """Average CPU share of a process since it started, across all cores."""
    elapsed = max(now - started_at, 1.0)
    share = 100.0 * cpu_time / (elapsed * max(cpu_count, 1))
    return min(max(share, 0.0), 100.0)


class ProcessSampler(Sampler):
    """
    Top processes ranked by CPU usage.

    The CPU percentage of a process is its lifetime average: cumulative
    user+system CPU time divided by wall time since the process started,
    divided by the number of logical cores. It is not an instantaneous rate
    and will not match the per-core figures from :class:`CpuSampler` for
    short bursts of activity.
    """

    family = "process"

    def __init__(
        self,
        source: SnapshotSource,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(source)
        self._clock = clock

    def sample(self, limit: int = 5) -> list[ProcessSnapshot]:
        now = self._clock()
        cpu_count = self._source.cpu_count()

        processes = [
            ProcessSnapshot(
                pid=record.pid,
                name=record.name,
                username=record.username,
                cpu_percent=lifetime_cpu_percent(record.cpu_time, record.started_at, now, cpu_count),
                memory_rss=record.memory_rss,
            )
            for record in self._source.process_table()
        ]
        return top_k(processes, limit, key=lambda p: p.cpu_percent)


class PowerSampler(Sampler):
    """Battery state, or ``None`` on machines without a battery."""

    family = "power"

    def sample(self) -> PowerInfo | None:
        power = self._source.power_source()
        if power is None:
            return None

        minutes = power.minutes_remaining
        if minutes is not None and minutes <= 0:
            minutes = None

        return PowerInfo(
            percentage=min(max(power.percentage, 0.0), 100.0),
            is_charging=power.is_charging,
            minutes_remaining=minutes,
            cycle_count=power.cycle_count,
            is_present=power.is_present,
        )
