"""Shared fixtures: a scriptable snapshot source and a manual clock."""

import pytest

from hostop.exceptions import SourceUnavailableError
from hostop.models import (
    CpuTicks,
    MemoryCounters,
    MountInfo,
    NetCounters,
    PowerSource,
    ProcessRecord,
)


class FakeClock:
    """Clock whose time only moves when a test says so."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeSource:
    """SnapshotSource whose raw data is set directly by the test."""

    def __init__(self) -> None:
        self.ticks: list[CpuTicks] = [
            CpuTicks(user=100, system=50, idle=800, nice=0),
            CpuTicks(user=200, system=100, idle=700, nice=0),
        ]
        self.counters: dict[str, NetCounters] = {
            "en0": NetCounters(bytes_in=1_000_000, bytes_out=500_000),
        }
        self.mounts: list[MountInfo] = [
            MountInfo("/", block_size=4096, total_blocks=1000, free_blocks=250, fs_type="apfs"),
        ]
        self.mem = MemoryCounters(total=16 * 1024**3, used=8 * 1024**3, swap_total=0, swap_used=0)
        self.processes: list[ProcessRecord] = []
        self.power: PowerSource | None = None
        self.cores = 4
        self.facts = {"Hostname": "testhost", "CPU Cores": "4"}
        self.failing: set[str] = set()
        self.calls: dict[str, int] = {}

    def _query(self, family: str) -> None:
        self.calls[family] = self.calls.get(family, 0) + 1
        if family in self.failing:
            raise SourceUnavailableError(family, OSError("simulated failure"))

    def cpu_ticks(self) -> list[CpuTicks]:
        self._query("cpu")
        return list(self.ticks)

    def cpu_count(self) -> int:
        return self.cores

    def network_counters(self) -> dict[str, NetCounters]:
        self._query("network")
        return dict(self.counters)

    def mount_table(self) -> list[MountInfo]:
        self._query("disk")
        return list(self.mounts)

    def memory(self) -> MemoryCounters:
        self._query("memory")
        return self.mem

    def process_table(self) -> list[ProcessRecord]:
        self._query("process")
        return list(self.processes)

    def power_source(self) -> PowerSource | None:
        self._query("power")
        return self.power

    def machine_facts(self) -> dict[str, str]:
        return dict(self.facts)


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
