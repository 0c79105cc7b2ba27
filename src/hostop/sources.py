"""Raw snapshot sources for hostop.

A source answers "what are the counters right now" for each metric family and
nothing more. It performs no diffing and keeps no history; that is the job of
the samplers in :mod:`hostop.engine`.
"""

import getpass
import logging
import platform
import socket
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

import psutil

from hostop.exceptions import SourceUnavailableError
from hostop.models import (
    CpuTicks,
    MemoryCounters,
    MountInfo,
    NetCounters,
    PowerSource,
    ProcessRecord,
)

logger = logging.getLogger(__name__)

# psutil reports CPU times in seconds; ticks are centiseconds (USER_HZ).
TICKS_PER_SECOND = 100

LOOPBACK_INTERFACES = frozenset({"lo", "lo0", "Loopback Pseudo-Interface 1"})


def is_loopback(name: str) -> bool:
    """Return True if ``name`` looks like a loopback interface."""
    return name in LOOPBACK_INTERFACES or (name.startswith("lo") and name[2:].isdigit())


class SnapshotSource(Protocol):
    """Raw, cumulative OS metrics for every family the engine samples."""

    def cpu_ticks(self) -> list[CpuTicks]: ...

    def cpu_count(self) -> int: ...

    def network_counters(self) -> dict[str, NetCounters]: ...

    def mount_table(self) -> list[MountInfo]: ...

    def memory(self) -> MemoryCounters: ...

    def process_table(self) -> list[ProcessRecord]: ...

    def power_source(self) -> PowerSource | None: ...

    def machine_facts(self) -> dict[str, str]: ...


@contextmanager
def _unavailable_on_error(family: str) -> Iterator[None]:
    """Turn a failing OS query into a SourceUnavailableError."""
    try:
        yield
    except (OSError, psutil.Error) as exc:
        raise SourceUnavailableError(family, exc) from exc


class PsutilSource:
    """SnapshotSource backed by psutil."""

    def cpu_ticks(self) -> list[CpuTicks]:
        with _unavailable_on_error("cpu"):
            times = psutil.cpu_times(percpu=True)

        return [
            CpuTicks(
                user=round(t.user * TICKS_PER_SECOND),
                system=round(t.system * TICKS_PER_SECOND),
                idle=round(t.idle * TICKS_PER_SECOND),
                # 'nice' is absent on Windows
                nice=round(getattr(t, "nice", 0.0) * TICKS_PER_SECOND),
            )
            for t in times
        ]

    def cpu_count(self) -> int:
        return psutil.cpu_count(logical=True) or 1

    def network_counters(self) -> dict[str, NetCounters]:
        with _unavailable_on_error("network"):
            counters = psutil.net_io_counters(pernic=True)
            stats = psutil.net_if_stats()

        result: dict[str, NetCounters] = {}
        for name, io in counters.items():
            if is_loopback(name):
                continue
            # Interfaces without stats are kept; only a known-down link is skipped
            if name in stats and not stats[name].isup:
                continue
            result[name] = NetCounters(bytes_in=io.bytes_recv, bytes_out=io.bytes_sent)
        return result

    def mount_table(self) -> list[MountInfo]:
        with _unavailable_on_error("disk"):
            partitions = psutil.disk_partitions(all=False)

        mounts: list[MountInfo] = []
        for part in partitions:
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except OSError as exc:
                logger.debug("Skipping mount %s: %s", part.mountpoint, exc)
                continue
            # disk_usage already reports bytes, so a block is one byte
            mounts.append(
                MountInfo(
                    mount_point=part.mountpoint,
                    block_size=1,
                    total_blocks=usage.total,
                    free_blocks=usage.total - usage.used,
                    fs_type=part.fstype,
                )
            )
        return mounts

    def memory(self) -> MemoryCounters:
        with _unavailable_on_error("memory"):
            mem = psutil.virtual_memory()
            swap = psutil.swap_memory()
        return MemoryCounters(
            total=mem.total,
            used=mem.used,
            swap_total=swap.total,
            swap_used=swap.used,
        )

    def process_table(self) -> list[ProcessRecord]:
        """
        Describe every live process that can be fully described.

        Processes that die mid-poll, deny access or are zombies are skipped.
        """
        attrs = ["pid", "name", "username", "cpu_times", "memory_info", "create_time"]
        records: list[ProcessRecord] = []

        with _unavailable_on_error("process"):
            procs = psutil.process_iter(attrs=attrs)

            for proc in procs:
                try:
                    with proc.oneshot():
                        info = proc.info
                except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                    continue

                cpu_times = info.get("cpu_times")
                mem_info = info.get("memory_info")
                if cpu_times is None or mem_info is None:
                    logger.debug("Skipping pid %s: incomplete metadata", info.get("pid"))
                    continue

                records.append(
                    ProcessRecord(
                        pid=info.get("pid", 0),
                        name=info.get("name") or "",
                        username=info.get("username") or "",
                        cpu_time=cpu_times.user + cpu_times.system,
                        memory_rss=mem_info.rss,
                        started_at=info.get("create_time") or 0.0,
                    )
                )

        return records

    def power_source(self) -> PowerSource | None:
        sensors_battery = getattr(psutil, "sensors_battery", None)
        if sensors_battery is None:
            return None

        with _unavailable_on_error("power"):
            battery = sensors_battery()
        if battery is None:
            return None

        minutes: int | None = None
        if battery.secsleft not in (psutil.POWER_TIME_UNLIMITED, psutil.POWER_TIME_UNKNOWN):
            minutes = int(battery.secsleft // 60)

        return PowerSource(
            percentage=float(battery.percent),
            is_charging=bool(battery.power_plugged),
            minutes_remaining=minutes,
            cycle_count=None,  # psutil does not expose cycle counts
            is_present=True,
        )

    def machine_facts(self) -> dict[str, str]:
        """Static machine identity. Facts that cannot be determined are omitted."""
        facts: dict[str, str] = {}

        if model := platform.machine():
            facts["Model"] = model
        if cpu := platform.processor():
            facts["CPU"] = cpu
        facts["CPU Cores"] = str(self.cpu_count())
        facts["OS Version"] = f"{platform.system()} {platform.release()}".strip()

        try:
            total = psutil.virtual_memory().total
            facts["Total Memory"] = f"{total // 1024**3} GB"
        except (OSError, psutil.Error) as exc:
            logger.debug("Total memory unavailable: %s", exc)

        facts["Hostname"] = socket.gethostname()

        try:
            facts["User"] = getpass.getuser()
        except (OSError, KeyError) as exc:
            logger.debug("Login name unavailable: %s", exc)

        return facts
