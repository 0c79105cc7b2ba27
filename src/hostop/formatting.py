"""Human-readable formatting helpers for hostop renderers."""

WARNING_PERCENT = 70.0
CRITICAL_PERCENT = 90.0


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{int(size):5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_rate(bytes_per_sec: float) -> str:
    """Format a throughput as e.g. ``'  1.5M/s'``."""
    return f"{format_bytes(bytes_per_sec)}/s"


def format_minutes(minutes: int | None) -> str:
    if minutes is None:
        return "unknown"
    return f"{minutes // 60}h {minutes % 60}m"


def color_for_percent(percent: float) -> str:
    """Color tier for a utilization percentage: green, yellow or red."""
    if percent >= CRITICAL_PERCENT:
        return "red"
    if percent >= WARNING_PERCENT:
        return "yellow"
    return "green"


def load_bar(percent: float, width: int = 20) -> str:
    """Rich-markup bar for ``percent`` with the bracket escaped for Textual."""
    filled = min(max(int(percent / 100.0 * width), 0), width)
    color = color_for_percent(percent)
    bar = f"[{color}]" + "█" * filled + f"[/{color}]" + "[dim]░[/dim]" * (width - filled)
    return f"\\[{bar}] [{color}]{percent:5.1f}%[/{color}]"


def color_for_process(percent: float) -> str:
    """Color tier for a process CPU share, which uses lower thresholds."""
    if percent >= 50.0:
        return "red"
    if percent >= 20.0:
        return "yellow"
    return "green"
