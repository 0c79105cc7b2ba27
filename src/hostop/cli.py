"""Entry point for the hostop command."""

import dataclasses
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any, TextIO

from hostop.config import MonitorConfig, parse_args
from hostop.exceptions import HostopError
from hostop.log_config import setup_logger
from hostop.monitor import DashboardSnapshot, SystemMonitor

logger = logging.getLogger(__name__)


def snapshot_to_dict(snapshot: DashboardSnapshot) -> dict[str, Any]:
    """Plain-data view of a snapshot, suitable for json.dumps."""
    data = dataclasses.asdict(snapshot)
    data["cpu"]["per_core"] = list(snapshot.cpu.per_core)
    for disk, entry in zip(snapshot.disks, data["disks"]):
        entry["percent"] = disk.percent
    if snapshot.battery is not None:
        data["battery"]["state"] = snapshot.battery.state
    return data


def run_json(monitor: SystemMonitor, config: MonitorConfig, stream: TextIO = sys.stdout) -> int:
    """Print one JSON document per cycle until interrupted or ``config.count`` is reached."""

    def emit(snapshot: DashboardSnapshot) -> None:
        stream.write(json.dumps(snapshot_to_dict(snapshot)) + "\n")
        stream.flush()

    return monitor.run_blocking(emit, cycles=config.count)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the hostop application."""
    config = parse_args(argv)
    setup_logger(config.log_level, log_file=config.log_file, console=config.json)

    try:
        monitor = SystemMonitor(poll_rate=config.interval, top_count=config.top)
    except HostopError as exc:
        logger.error("Cannot start monitor: %s", exc)
        return 1

    try:
        if config.json:
            run_json(monitor, config)
        else:
            # Imported lazily so JSON mode does not pay for Textual start-up
            from hostop.app import HostopApp

            HostopApp(monitor).run()
    except KeyboardInterrupt:
        pass
    finally:
        monitor.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
