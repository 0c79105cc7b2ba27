"""Command-line configuration for hostop."""

import argparse
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from hostop.monitor import MIN_POLL_RATE

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@dataclass(slots=True, frozen=True)
class MonitorConfig:
    """Runtime settings for one hostop session."""

    interval: float = 2.0
    top: int = 5
    json: bool = False
    count: int | None = None
    log_level: int = logging.WARNING
    log_file: Path | None = None


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hostop", description="Terminal resource monitor")

    parser.add_argument(
        "-i", "--interval",
        type=float,
        default=2.0,
        help=f"Refresh interval in seconds (default: 2.0, minimum: {MIN_POLL_RATE})",
    )
    parser.add_argument(
        "-n", "--top",
        type=_positive_int,
        default=5,
        help="Number of top processes to show (default: 5)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print one JSON document per refresh instead of the dashboard",
    )
    parser.add_argument(
        "-c", "--count",
        type=_positive_int,
        default=None,
        help="Stop after this many refreshes (JSON mode only)",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write log records to this file",
    )

    return parser


def parse_args(argv: Sequence[str] | None = None) -> MonitorConfig:
    """Parse command-line arguments into a MonitorConfig."""
    args = build_parser().parse_args(argv)
    return MonitorConfig(
        interval=max(MIN_POLL_RATE, args.interval),
        top=args.top,
        json=args.json,
        count=args.count,
        log_level=getattr(logging, args.log_level),
        log_file=args.log_file,
    )
