"""hostop - Textual dashboard."""

import logging
import time
from queue import Empty

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import DataTable, Footer, Static

from hostop.formatting import (
    color_for_process,
    format_bytes,
    format_minutes,
    format_rate,
    load_bar,
)
from hostop.exceptions import HostopError
from hostop.models import ProcessSnapshot
from hostop.monitor import DashboardSnapshot, SystemMonitor

logger = logging.getLogger(__name__)


class HeaderStats(Static):
    """Header widget showing CPU and memory statistics."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, machine_facts: dict[str, str] | None = None, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._snapshot: DashboardSnapshot | None = None
        self._machine_facts: dict[str, str] = machine_facts or {}

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_cpu_info(), id="cpu-info"),
            Static(self._get_mem_info(), id="mem-info"),
            Static(self._get_system_info(), id="system-info"),
        )

    def update_stats(self, snapshot: DashboardSnapshot) -> None:
        """Update the statistics from a dashboard snapshot."""
        self._snapshot = snapshot
        self._refresh_display()

    def _refresh_display(self) -> None:
        """Refresh the display with current data."""
        if not self.is_mounted:
            return
        self.query_one("#cpu-info", Static).update(self._get_cpu_info())
        self.query_one("#mem-info", Static).update(self._get_mem_info())
        self.query_one("#system-info", Static).update(self._get_system_info())

    def _get_cpu_info(self) -> str:
        """Get CPU info display."""
        if self._snapshot is None:
            return "Loading CPU info..."
        cpu = self._snapshot.cpu
        lines = [f"Total  {load_bar(cpu.total)}"]
        for i, usage in enumerate(cpu.per_core):
            lines.append(f"CPU{i:<3} {load_bar(usage)}")
        return "\n".join(lines)

    def _get_mem_info(self) -> str:
        """Get memory info display."""
        if self._snapshot is None or self._snapshot.memory.total == 0:
            return "Loading memory info..."
        mem = self._snapshot.memory
        return (
            f"Mem {load_bar(mem.percent)} {format_bytes(mem.used)}/{format_bytes(mem.total)}\n"
            f"Swp {load_bar(mem.swap_percent)} "
            f"{format_bytes(mem.swap_used)}/{format_bytes(mem.swap_total)}"
        )

    def _get_system_info(self) -> str:
        if not self._machine_facts:
            return ""
        return "\n".join(f"{key}: {value}" for key, value in self._machine_facts.items())


class ResourcePanel(Static):
    """Disk, network and battery sections."""

    DEFAULT_CSS = """
    ResourcePanel {
        height: auto;
        padding: 0 1;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._snapshot: DashboardSnapshot | None = None

    def compose(self) -> ComposeResult:
        battery = Static(self._get_battery_info(), id="battery-info")
        battery.display = False
        yield Horizontal(
            Static(self._get_disk_info(), id="disk-info"),
            Static(self._get_network_info(), id="network-info"),
            battery,
        )

    def update_stats(self, snapshot: DashboardSnapshot) -> None:
        self._snapshot = snapshot
        if not self.is_mounted:
            return
        self.query_one("#disk-info", Static).update(self._get_disk_info())
        self.query_one("#network-info", Static).update(self._get_network_info())
        battery = self.query_one("#battery-info", Static)
        # No battery means no battery section at all
        battery.display = snapshot.battery is not None
        battery.update(self._get_battery_info())

    def _get_disk_info(self) -> str:
        if self._snapshot is None:
            return "Loading disk info..."
        lines = ["[b]Disk[/b]"]
        for disk in self._snapshot.disks:
            lines.append(f"{disk.mount_point}")
            lines.append(
                f"  {load_bar(disk.percent, width=10)} "
                f"{format_bytes(disk.used)}/{format_bytes(disk.total)}"
            )
        return "\n".join(lines)

    def _get_network_info(self) -> str:
        if self._snapshot is None:
            return "Loading network info..."
        lines = ["[b]Network[/b]"]
        for name, rate in sorted(self._snapshot.network.items()):
            lines.append(
                f"{name}: ↓{format_rate(rate.bytes_in_per_sec)} ↑{format_rate(rate.bytes_out_per_sec)}"
            )
        return "\n".join(lines)

    def _get_battery_info(self) -> str:
        if self._snapshot is None or self._snapshot.battery is None:
            return ""
        battery = self._snapshot.battery
        lines = [
            "[b]Battery[/b]",
            f"Level {load_bar(battery.percentage, width=10)}",
            f"State: {battery.state}",
        ]
        if battery.minutes_remaining is not None:
            lines.append(f"Time Remaining: {format_minutes(battery.minutes_remaining)}")
        if battery.cycle_count is not None:
            lines.append(f"Cycle Count: {battery.cycle_count}")
        lines.append(f"Is Present: {'Yes' if battery.is_present else 'No'}")
        return "\n".join(lines)


class ProcessTable(Container):
    """Container for the top-process table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("USER", key="user", width=10)
        table.add_column("CPU%", key="cpu", width=8)
        table.add_column("MEMORY", key="rss", width=8)
        table.add_column("NAME", key="name")

    def update_processes(self, processes: list[ProcessSnapshot]) -> None:
        """
        Replace the table rows with ``processes``.

        The rows arrive already ranked, so the table keeps their order.
        """
        table = self.query_one("#process-table", DataTable)
        table.clear()

        for proc in processes:
            color = color_for_process(proc.cpu_percent)
            table.add_row(
                str(proc.pid),
                proc.username[:10],
                f"[{color}]{proc.cpu_percent:5.1f}[/{color}]",
                format_bytes(proc.memory_rss),
                proc.name[:50],
                key=str(proc.pid),
            )


class HostopApp(App):
    """Main hostop application."""

    TITLE = "hostop"
    SUB_TITLE = "System Resource Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 6;
    }

    Horizontal {
        height: auto;
    }

    #cpu-info, #disk-info {
        width: 2fr;
        padding-right: 2;
    }

    #mem-info, #system-info, #network-info, #battery-info {
        width: 1fr;
        padding-left: 2;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "reset", "Reset counters"),
    ]

    def __init__(self, monitor: SystemMonitor | None = None) -> None:
        """Initialize the HostopApp."""
        super().__init__()
        self._monitor = monitor if monitor is not None else SystemMonitor(poll_rate=2.0)
        self._update_queue = self._monitor.queue

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(self._monitor.machine_facts, id="header-stats")
        yield ResourcePanel(id="resource-panel")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the system monitor when the app is mounted."""
        self._monitor.start()
        # Set up a timer to poll the queue for updates
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Check the queue for system updates and refresh the UI."""
        # Drain the queue; only the most recent snapshot is rendered
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self._update_ui(snapshot)

    def _update_ui(self, snapshot: DashboardSnapshot) -> None:
        """Update the UI with the new dashboard snapshot."""
        self.sub_title = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(snapshot.captured_at))
        self.query_one("#header-stats", HeaderStats).update_stats(snapshot)
        self.query_one("#resource-panel", ResourcePanel).update_stats(snapshot)
        self.query_one(ProcessTable).update_processes(snapshot.processes)

    def on_unmount(self) -> None:
        self._monitor.stop()

    def action_reset(self) -> None:
        """Drop the stored counter baselines and start over."""
        try:
            self._monitor.reset()
        except HostopError as exc:
            logger.warning("Reset failed: %s", exc)
            self.notify(f"Reset failed: {exc}", severity="error")
            return
        self.notify("Counters reset")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()
