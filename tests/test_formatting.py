"""Tests for hostop formatting helpers."""

import pytest

from hostop.formatting import (
    color_for_percent,
    color_for_process,
    format_bytes,
    format_minutes,
    format_rate,
    load_bar,
)


def test_format_bytes_bytes():
    """Test format_bytes with byte values."""
    assert format_bytes(500) == "  500B"


def test_format_bytes_kilobytes():
    """Test format_bytes with kilobyte values."""
    assert "K" in format_bytes(2048)


def test_format_bytes_megabytes():
    """Test format_bytes with megabyte values."""
    assert "M" in format_bytes(5242880)


def test_format_bytes_gigabytes():
    """Test format_bytes with gigabyte values."""
    assert format_bytes(1073741824) == "  1.0G"


def test_format_bytes_fractional_bytes():
    assert format_bytes(12.7) == "   12B"


def test_format_rate():
    assert format_rate(200_000) == "195.3K/s"


def test_format_minutes():
    assert format_minutes(135) == "2h 15m"
    assert format_minutes(None) == "unknown"


@pytest.mark.parametrize(
    ("percent", "color"),
    [(0.0, "green"), (69.9, "green"), (70.0, "yellow"), (89.9, "yellow"), (90.0, "red"), (100.0, "red")],
)
def test_color_for_percent(percent, color):
    assert color_for_percent(percent) == color


@pytest.mark.parametrize(("percent", "color"), [(5.0, "green"), (20.0, "yellow"), (50.0, "red")])
def test_color_for_process(percent, color):
    assert color_for_process(percent) == color


def test_load_bar_fill():
    bar = load_bar(50.0, width=10)
    assert bar.count("█") == 5
    assert bar.count("░") == 5
    assert "[green]" in bar
    assert "50.0%" in bar


def test_load_bar_clamps_out_of_range():
    assert load_bar(150.0, width=4).count("█") == 4
    assert load_bar(-5.0, width=4).count("█") == 0
