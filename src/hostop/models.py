"""Data models for hostop."""

from dataclasses import dataclass
from typing import Any, NamedTuple


class CpuTicks(NamedTuple):
    """Cumulative tick counters for one logical core."""

    user: int
    system: int
    idle: int
    nice: int

    @property
    def total(self) -> int:
        return self.user + self.system + self.idle + self.nice


class NetCounters(NamedTuple):
    """Cumulative byte counters for one network interface."""

    bytes_in: int
    bytes_out: int


class MountInfo(NamedTuple):
    """statfs-style description of a mounted filesystem."""

    mount_point: str
    block_size: int
    total_blocks: int
    free_blocks: int
    fs_type: str


class MemoryCounters(NamedTuple):
    """Current physical and swap memory occupancy in bytes."""

    total: int
    used: int
    swap_total: int
    swap_used: int


class ProcessRecord(NamedTuple):
    """Raw process table row."""

    pid: int
    name: str
    username: str
    cpu_time: float  # cumulative user + system seconds
    memory_rss: int  # Bytes
    started_at: float  # epoch seconds


class PowerSource(NamedTuple):
    """Raw power-source description as reported by the OS."""

    percentage: float
    is_charging: bool
    minutes_remaining: int | None
    cycle_count: int | None
    is_present: bool


@dataclass(slots=True, frozen=True)
class CounterSample:
    """Immutable counter record plus the time it was captured."""

    counters: Any  # CpuTicks or NetCounters
    timestamp: float


@dataclass(slots=True, frozen=True)
class CpuUsage:
    """Per-core utilization and their arithmetic mean."""

    per_core: tuple[float, ...]
    total: float

    @classmethod
    def from_cores(cls, per_core: list[float]) -> "CpuUsage":
        total = sum(per_core) / len(per_core) if per_core else 0.0
        return cls(per_core=tuple(per_core), total=total)


@dataclass(slots=True, frozen=True)
class InterfaceRate:
    """Network throughput for one interface over the last interval."""

    bytes_in_per_sec: float
    bytes_out_per_sec: float


def percent_of(part: float, whole: float) -> float:
    """Return ``100 * part / whole``, or 0.0 when ``whole`` is not positive."""
    if whole <= 0:
        return 0.0
    return 100.0 * part / whole


@dataclass(slots=True, frozen=True)
class DiskUsage:
    """Occupancy of one mounted filesystem."""

    mount_point: str
    used: int  # Bytes
    total: int  # Bytes
    fs_type: str = ""

    @property
    def percent(self) -> float:
        return percent_of(self.used, self.total)


@dataclass(slots=True, frozen=True)
class MemoryUsage:
    """Physical and swap memory usage."""

    total: int
    used: int
    percent: float
    swap_total: int
    swap_used: int
    swap_percent: float


@dataclass(slots=True, frozen=True)
class ProcessSnapshot:
    """Immutable snapshot of a process state."""

    pid: int
    name: str
    username: str
    cpu_percent: float  # lifetime average, 0.0 - 100.0
    memory_rss: int  # Bytes


@dataclass(slots=True, frozen=True)
class PowerInfo:
    """Battery state. Absence of a battery is represented by ``None``."""

    percentage: float
    is_charging: bool
    minutes_remaining: int | None
    cycle_count: int | None
    is_present: bool

    @property
    def state(self) -> str:
        return "Charging" if self.is_charging else "Discharging"
