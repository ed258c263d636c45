from __future__ import annotations

import socket

import pytest

import telelink.cli.main as main_mod
import telelink.runtime.producer as producer_mod
from telelink.cli.args import parse_args
from telelink.model.metrics import MetricRegistry, MetricSource
from telelink.transport.base import Transport
from telelink.transport.errors import TransportIOError, TransportOpenError


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch):
    monkeypatch.setattr(main_mod, "configure_logging", lambda *a, **k: None)


def test_parse_client_args_converts_ms():
    args = parse_args(["client", "--address", "10.0.0.1:9000", "--interval-ms", "250", "--metric", "MEM"])
    assert args.cmd == "client"
    assert args.address == "10.0.0.1:9000"
    assert args.interval_s == 0.25
    assert args.backoff_s is None
    assert args.metric == ["MEM"]


def test_parse_server_args():
    args = parse_args(["server", "--no-clear", "--record", "out.csv", "--no-commands"])
    assert args.cmd == "server"
    assert args.no_clear is True
    assert args.record == "out.csv"
    assert args.no_commands is True
    assert args.helper_app is None


def test_subcommand_is_required():
    with pytest.raises(SystemExit):
        parse_args([])


def test_bad_address_prints_error_and_hint(capsys):
    rc = main_mod.main(["client", "--address", "nowhere"])
    err = capsys.readouterr().err
    assert rc == 1
    assert "ERROR: Invalid address 'nowhere'." in err
    assert "Hint: Use the form host:port" in err


def test_missing_config_file_exits_one(tmp_path, capsys):
    rc = main_mod.main(["server", "--config", str(tmp_path / "missing.yaml")])
    assert rc == 1
    assert "Config file not found" in capsys.readouterr().err


def test_client_connect_refused_exits_one(monkeypatch, capsys):
    monkeypatch.setattr(
        "telelink.app.client.default_registry",
        lambda logger=None: MetricRegistry([MetricSource("CPU", lambda: 1.0), MetricSource("MEM", lambda: 2.0)]),
    )
    # bound but not listening: connects are refused
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    try:
        rc = main_mod.main(["client", "--address", f"127.0.0.1:{port}"])
    finally:
        s.close()

    assert rc == 1
    assert f"ERROR: Could not connect to 127.0.0.1:{port}." in capsys.readouterr().err


def test_metrics_command_lists_sources(monkeypatch, capsys):
    monkeypatch.setattr(
        main_mod,
        "default_registry",
        lambda: MetricRegistry([MetricSource("CPU", lambda: 12.5, unit="%"), MetricSource("MEM", lambda: 2048, unit="KB")]),
    )
    monkeypatch.setattr(main_mod.time, "sleep", lambda s: None)

    assert main_mod.main(["metrics"]) == 0
    out = capsys.readouterr().out
    assert "CPU" in out and "12.5%" in out
    assert "2.00 MB" in out


def _fake_registry(logger=None):
    return MetricRegistry([MetricSource("CPU", lambda: 1.0), MetricSource("MEM", lambda: 2.0)])


class BrokenLinkTransport(Transport):
    """Opens (or refuses to) and fails every flush."""

    def __init__(self, *, refuse: bool = False):
        self.refuse = refuse

    def open(self) -> None:
        if self.refuse:
            raise TransportOpenError("connection refused")

    def close(self) -> None:
        pass

    def read(self, n: int) -> bytes:
        return b""

    def write(self, data: bytes) -> int:
        return len(data)

    def flush(self) -> None:
        raise TransportIOError("broken pipe")


def test_client_exits_one_when_redial_fails(monkeypatch, capsys):
    monkeypatch.setattr("telelink.app.client.default_registry", _fake_registry)
    transports = [BrokenLinkTransport(), BrokenLinkTransport(refuse=True)]
    dialed = []

    class FakeTCP:
        @staticmethod
        def from_address(address, connect_timeout=None):
            dialed.append(address)
            return transports.pop(0)

    monkeypatch.setattr(producer_mod, "TCPTransport", FakeTCP)

    rc = main_mod.main(["client", "--address", "127.0.0.1:9000", "--backoff-ms", "0"])

    assert rc == 1
    assert dialed == ["127.0.0.1:9000", "127.0.0.1:9000"]
    assert "ERROR: Lost connection to 127.0.0.1:9000" in capsys.readouterr().err


def test_repeated_metric_flag_exits_one(monkeypatch, capsys):
    monkeypatch.setattr("telelink.app.client.default_registry", _fake_registry)

    rc = main_mod.main(["client", "--address", "127.0.0.1:9000", "--metric", "CPU", "--metric", "CPU"])

    assert rc == 1
    assert "ERROR: Metric 'CPU' listed more than once." in capsys.readouterr().err


def test_config_directory_exits_one(tmp_path, capsys):
    rc = main_mod.main(["server", "--config", str(tmp_path)])
    assert rc == 1
    assert "ERROR: Cannot read config file" in capsys.readouterr().err
