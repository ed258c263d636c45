# telelink/app/display.py
from __future__ import annotations

from typing import List, Mapping

RULE = "=" * 50
CLEAR_SCREEN = "\x1b[2J\x1b[1;1H"

KB_PER_MB = 1024.0
KB_PER_GB = 1024.0 * 1024.0


def format_memory_kb(kb: float) -> str:
    if kb >= KB_PER_GB:
        return f"{kb / KB_PER_GB:.2f} GB"
    if kb >= KB_PER_MB:
        return f"{kb / KB_PER_MB:.2f} MB"
    return f"{kb:.2f} KB"


def format_metric(name: str, value: float) -> str:
    key = name.upper()
    if key == "CPU":
        return f"CPU:         {value:.1f}%"
    if key in ("MEM", "MEMORY"):
        return f"Memory:      {format_memory_kb(value)}"
    if key in ("DISK", "STORAGE"):
        return f"Disk:        {value:.1f}%"
    if key in ("NETWORK", "NET"):
        return f"Network:     {value:.2f} MB/s"
    if key in ("TEMPERATURE", "TEMP"):
        return f"Temperature: {value:.1f} C"
    return f"{name}: {value:.2f}"


def render_sample(peer: str, sample: Mapping[str, float]) -> str:
    lines: List[str] = [
        "LIVE TELEMETRY",
        f"Client: {peer}",
        RULE,
    ]
    if not sample:
        lines.append("(no metrics received)")
    else:
        lines.extend(format_metric(name, value) for name, value in sample.items())
    lines.append(RULE)
    lines.append("Type H for commands, Q to quit")
    return "\n".join(lines)
