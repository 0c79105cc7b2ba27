"""Sampling cycle driver for hostop."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from queue import Queue

from hostop.engine import (
    CpuSampler,
    DiskSampler,
    MemorySampler,
    NetworkSampler,
    PowerSampler,
    ProcessSampler,
)
from hostop.exceptions import HostopError
from hostop.models import (
    CpuUsage,
    DiskUsage,
    InterfaceRate,
    MemoryUsage,
    PowerInfo,
    ProcessSnapshot,
)
from hostop.sources import PsutilSource, SnapshotSource

logger = logging.getLogger(__name__)

MIN_POLL_RATE = 0.1  # seconds


@dataclass(slots=True)
class DashboardSnapshot:
    """Derived metrics of every family for one sampling cycle."""

    cpu: CpuUsage
    memory: MemoryUsage
    disks: list[DiskUsage]
    network: dict[str, InterfaceRate]
    battery: PowerInfo | None
    processes: list[ProcessSnapshot]
    captured_at: float = field(default_factory=time.time)


class SystemMonitor:
    """
    System monitor that samples every metric family once per cycle.

    Cycles can be driven synchronously with :meth:`run_blocking`, or from a
    daemon thread started with :meth:`start` that pushes each
    DashboardSnapshot to a thread-safe Queue. Either way at most one cycle is
    in flight at a time.
    """

    def __init__(
        self,
        update_queue: Queue[DashboardSnapshot] | None = None,
        poll_rate: float = 2.0,
        source: SnapshotSource | None = None,
        top_count: int = 5,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            update_queue: Thread-safe queue the background thread pushes to.
            poll_rate: How often to poll the system (in seconds). Default 2.0s.
            source: Raw metric source. Defaults to a PsutilSource.
            top_count: Number of processes to keep in each snapshot.
        """
        self._queue: Queue[DashboardSnapshot] = update_queue if update_queue is not None else Queue()
        self._poll_rate = max(MIN_POLL_RATE, poll_rate)
        self._source: SnapshotSource = source if source is not None else PsutilSource()
        self._top_count = top_count
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._cycle_lock = threading.Lock()

        # Delta samplers take their bootstrap sample here
        self._cpu = CpuSampler(self._source)
        self._network = NetworkSampler(self._source)
        self._disk = DiskSampler(self._source)
        self._memory = MemorySampler(self._source)
        self._processes = ProcessSampler(self._source)
        self._power = PowerSampler(self._source)

        self._machine_facts = self._source.machine_facts()

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(MIN_POLL_RATE, value)

    @property
    def queue(self) -> Queue[DashboardSnapshot]:
        return self._queue

    @property
    def machine_facts(self) -> dict[str, str]:
        """Static machine identity, queried once at construction."""
        return dict(self._machine_facts)

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def reset(self) -> None:
        """Discard all previous counter samples and take a fresh baseline."""
        with self._cycle_lock:
            self._cpu.reset()
            self._network.reset()

    def collect_snapshot(self) -> DashboardSnapshot:
        """
        Run one sampling cycle.

        Stateless families are read first, so a failure there leaves every
        counter baseline where it was. Each delta family commits its own
        state as soon as it has been sampled.

        Raises:
            HostopError: If a raw metric family could not be read at all.
        """
        with self._cycle_lock:
            memory = self._memory.sample()
            disks = self._disk.sample()
            battery = self._power.sample()
            processes = self._processes.sample(self._top_count)
            network = self._network.sample()
            cpu = self._cpu.sample()

            return DashboardSnapshot(
                cpu=cpu,
                memory=memory,
                disks=disks,
                network=network,
                battery=battery,
                processes=processes,
            )

    def run_blocking(
        self,
        callback: Callable[[DashboardSnapshot], None],
        cycles: int | None = None,
    ) -> int:
        """
        Sample on the calling thread, sleeping poll_rate between cycles.

        A cycle whose raw data is unavailable is skipped. Runs forever unless
        ``cycles`` is given or :meth:`stop` is called.

        Returns:
            The number of snapshots delivered to ``callback``.
        """
        self._stop_event.clear()
        delivered = 0
        completed = 0

        while not self._stop_event.is_set():
            try:
                callback(self.collect_snapshot())
                delivered += 1
            except HostopError as exc:
                logger.warning("Skipping cycle: %s", exc)

            completed += 1
            if cycles is not None and completed >= cycles:
                break
            time.sleep(self._poll_rate)

        return delivered

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SystemMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(self.collect_snapshot())
            except HostopError as exc:
                logger.warning("Skipping cycle: %s", exc)
            except Exception:
                # Keep the dashboard alive; the traceback goes to the log
                logger.exception("Unexpected error while sampling")

            # Wait for poll_rate seconds or until stop is requested
            self._stop_event.wait(timeout=self._poll_rate)
