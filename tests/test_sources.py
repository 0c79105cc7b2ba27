"""Tests for the psutil-backed snapshot source."""

import os
from collections import namedtuple
from contextlib import contextmanager

import psutil
import pytest

from hostop.exceptions import SourceUnavailableError
from hostop.models import CpuTicks, MountInfo, NetCounters, PowerSource, ProcessRecord
from hostop.sources import PsutilSource, is_loopback

FakeIO = namedtuple("FakeIO", ["bytes_recv", "bytes_sent"])
FakeStats = namedtuple("FakeStats", ["isup"])
FakeTimes = namedtuple("FakeTimes", ["user", "system", "idle"])
FakeBattery = namedtuple("FakeBattery", ["percent", "secsleft", "power_plugged"])
FakeCpuTimes = namedtuple("FakeCpuTimes", ["user", "system"])
FakeMemInfo = namedtuple("FakeMemInfo", ["rss"])


class FakeProcess:
    """Stand-in for psutil.Process as yielded by process_iter."""

    def __init__(self, info, error=None):
        self.info = info
        self._error = error

    @contextmanager
    def oneshot(self):
        if self._error is not None:
            raise self._error
        yield


def process_info(pid, cpu_times=FakeCpuTimes(2.0, 1.0), memory_info=FakeMemInfo(4096)):
    return {
        "pid": pid,
        "name": f"proc{pid}",
        "username": "user",
        "cpu_times": cpu_times,
        "memory_info": memory_info,
        "create_time": 1000.0,
    }


@pytest.mark.parametrize("name", ["lo", "lo0", "lo1", "Loopback Pseudo-Interface 1"])
def test_is_loopback(name):
    assert is_loopback(name)


@pytest.mark.parametrize("name", ["en0", "eth0", "wlan0", "lowpan0", "bridge0"])
def test_is_not_loopback(name):
    assert not is_loopback(name)


class TestPsutilSourceLive:
    """Smoke tests against the running host."""

    def test_cpu_ticks(self):
        ticks = PsutilSource().cpu_ticks()

        assert len(ticks) == len(psutil.cpu_times(percpu=True))
        for core in ticks:
            assert isinstance(core, CpuTicks)
            assert core.total > 0

    def test_cpu_count(self):
        assert PsutilSource().cpu_count() >= 1

    def test_network_counters_exclude_loopback(self):
        counters = PsutilSource().network_counters()

        for name, io in counters.items():
            assert not is_loopback(name)
            assert isinstance(io, NetCounters)
            assert io.bytes_in >= 0

    def test_mount_table(self):
        for mount in PsutilSource().mount_table():
            assert isinstance(mount, MountInfo)
            assert mount.free_blocks <= mount.total_blocks

    def test_memory(self):
        mem = PsutilSource().memory()
        assert mem.total > 0
        assert 0 <= mem.used <= mem.total

    def test_process_table_includes_current_process(self):
        records = PsutilSource().process_table()

        own = [record for record in records if record.pid == os.getpid()]
        assert len(own) == 1
        assert own[0].memory_rss > 0
        assert own[0].cpu_time >= 0.0

    def test_power_source(self):
        power = PsutilSource().power_source()
        assert power is None or isinstance(power, PowerSource)

    def test_machine_facts(self):
        facts = PsutilSource().machine_facts()

        assert facts["Hostname"]
        assert int(facts["CPU Cores"]) >= 1
        assert "OS Version" in facts


class TestPsutilSourcePatched:
    """Tests with psutil calls replaced."""

    def test_cpu_ticks_without_nice(self, monkeypatch):
        monkeypatch.setattr(
            psutil, "cpu_times", lambda percpu: [FakeTimes(user=1.5, system=0.25, idle=10.0)]
        )

        (core,) = PsutilSource().cpu_ticks()

        assert core == CpuTicks(user=150, system=25, idle=1000, nice=0)

    def test_cpu_failure_is_unavailable(self, monkeypatch):
        def broken(percpu):
            raise OSError("no /proc/stat")

        monkeypatch.setattr(psutil, "cpu_times", broken)

        with pytest.raises(SourceUnavailableError) as excinfo:
            PsutilSource().cpu_ticks()
        assert excinfo.value.family == "cpu"
        assert isinstance(excinfo.value.cause, OSError)

    def test_network_skips_loopback_and_down_links(self, monkeypatch):
        monkeypatch.setattr(
            psutil,
            "net_io_counters",
            lambda pernic: {
                "lo": FakeIO(10, 10),
                "eth0": FakeIO(100, 200),
                "eth1": FakeIO(1, 1),
                "tun0": FakeIO(5, 6),
            },
        )
        monkeypatch.setattr(
            psutil,
            "net_if_stats",
            lambda: {"lo": FakeStats(True), "eth0": FakeStats(True), "eth1": FakeStats(False)},
        )

        counters = PsutilSource().network_counters()

        assert counters == {
            "eth0": NetCounters(bytes_in=100, bytes_out=200),
            "tun0": NetCounters(bytes_in=5, bytes_out=6),
        }

    def test_unreadable_mount_is_skipped(self, monkeypatch):
        Partition = namedtuple("Partition", ["mountpoint", "fstype"])
        Usage = namedtuple("Usage", ["total", "used"])
        monkeypatch.setattr(
            psutil,
            "disk_partitions",
            lambda all: [Partition("/", "ext4"), Partition("/secret", "ext4")],
        )

        def disk_usage(path):
            if path == "/secret":
                raise PermissionError(path)
            return Usage(total=1000, used=400)

        monkeypatch.setattr(psutil, "disk_usage", disk_usage)

        mounts = PsutilSource().mount_table()

        assert mounts == [MountInfo("/", block_size=1, total_blocks=1000, free_blocks=600, fs_type="ext4")]

    def test_incomplete_processes_are_skipped(self, monkeypatch):
        processes = [
            FakeProcess(process_info(1)),
            FakeProcess(process_info(2, memory_info=None)),
            FakeProcess(process_info(3, cpu_times=None)),
            FakeProcess(process_info(4), error=psutil.AccessDenied(pid=4)),
            FakeProcess(process_info(5), error=psutil.ZombieProcess(pid=5)),
            FakeProcess(process_info(6), error=psutil.NoSuchProcess(pid=6)),
        ]
        monkeypatch.setattr(psutil, "process_iter", lambda attrs: iter(processes))

        records = PsutilSource().process_table()

        assert records == [
            ProcessRecord(
                pid=1,
                name="proc1",
                username="user",
                cpu_time=3.0,
                memory_rss=4096,
                started_at=1000.0,
            )
        ]

    def test_no_battery(self, monkeypatch):
        monkeypatch.setattr(psutil, "sensors_battery", lambda: None)
        assert PsutilSource().power_source() is None

    def test_battery(self, monkeypatch):
        monkeypatch.setattr(
            psutil,
            "sensors_battery",
            lambda: FakeBattery(percent=64, secsleft=5400, power_plugged=False),
        )

        power = PsutilSource().power_source()

        assert power == PowerSource(
            percentage=64.0,
            is_charging=False,
            minutes_remaining=90,
            cycle_count=None,
            is_present=True,
        )

    def test_battery_unknown_time(self, monkeypatch):
        monkeypatch.setattr(
            psutil,
            "sensors_battery",
            lambda: FakeBattery(percent=100, secsleft=psutil.POWER_TIME_UNLIMITED, power_plugged=True),
        )

        power = PsutilSource().power_source()

        assert power.is_charging is True
        assert power.minutes_remaining is None

    def test_platform_without_battery_support(self, monkeypatch):
        monkeypatch.delattr(psutil, "sensors_battery", raising=False)
        assert PsutilSource().power_source() is None
