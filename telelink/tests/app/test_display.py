from __future__ import annotations

import pytest

from telelink.app.display import RULE, format_memory_kb, format_metric, render_sample


@pytest.mark.parametrize(
    "kb,expected",
    [
        (512.0, "512.00 KB"),
        (1024.0, "1.00 MB"),
        (2048.0, "2.00 MB"),
        (1024.0 * 1024.0 * 3.5, "3.50 GB"),
    ],
)
def test_format_memory_units(kb, expected):
    assert format_memory_kb(kb) == expected


def test_format_known_metrics():
    assert format_metric("CPU", 12.5).endswith("12.5%")
    assert "2.00 MB" in format_metric("MEM", 2048)
    assert format_metric("disk", 40).endswith("40.0%")
    assert format_metric("NET", 1.5).endswith("1.50 MB/s")
    assert format_metric("temp", 55).endswith("55.0 C")


def test_format_unknown_metric_uses_name():
    assert format_metric("FAN", 1200) == "FAN: 1200.00"


def test_render_sample_keeps_order_and_peer():
    text = render_sample("127.0.0.1:50000", {"MEM": 2048.0, "CPU": 12.5})
    lines = text.splitlines()
    assert lines[0] == "LIVE TELEMETRY"
    assert "127.0.0.1:50000" in lines[1]
    assert lines[2] == RULE
    assert lines[3].startswith("Memory:")
    assert lines[4].startswith("CPU:")


def test_render_empty_sample():
    assert "(no metrics received)" in render_sample("p", {})
