from __future__ import annotations

import logging

import pytest

from telelink.app.config import ClientConfig
from telelink.core.errors import ConnectError, ReconnectFailedError
from telelink.model.metrics import MetricRegistry, MetricSource
from telelink.protocol.codec import decode_record
from telelink.runtime.producer import TelemetryProducer
from telelink.runtime.state import ReconnectState
from telelink.transport.base import Transport
from telelink.transport.errors import TransportIOError, TransportOpenError


class FakeTransport(Transport):
    """Records writes; can be told to fail on open or on the Nth flush."""

    def __init__(self, *, fail_open: bool = False, fail_flush_at: int | None = None):
        self.fail_open = fail_open
        self.fail_flush_at = fail_flush_at
        self.opened = False
        self.closed = False
        self.pending = b""
        self.delivered: list[bytes] = []
        self.flushes = 0

    def open(self) -> None:
        if self.fail_open:
            raise TransportOpenError("connection refused")
        self.opened = True

    def close(self) -> None:
        self.closed = True

    def read(self, n: int) -> bytes:
        return b""

    def write(self, data: bytes) -> int:
        self.pending += data
        return len(data)

    def flush(self) -> None:
        self.flushes += 1
        if self.fail_flush_at is not None and self.flushes >= self.fail_flush_at:
            raise TransportIOError("broken pipe")
        self.delivered.append(self.pending)
        self.pending = b""


class Dialer:
    """Hands out pre-built transports in order and counts dial attempts."""

    def __init__(self, *transports: FakeTransport):
        self._transports = list(transports)
        self.calls = 0

    def __call__(self) -> FakeTransport:
        self.calls += 1
        return self._transports.pop(0)


def _registry(values=None) -> MetricRegistry:
    seq = iter(values or [(12.5, 2048.0), (13.0, 2049.0), (14.0, 2050.0), (15.0, 2051.0)])
    current = {}

    def cpu():
        current["v"] = next(seq)
        return current["v"][0]

    def mem():
        return current["v"][1]

    return MetricRegistry([MetricSource("CPU", cpu), MetricSource("MEM", mem)])


def _producer(dialer, *, registry=None, sleeps=None, states=None, **cfg):
    config = ClientConfig(address="127.0.0.1:9", interval_s=1.0, reconnect_backoff_s=2.0, **cfg)
    return TelemetryProducer(
        config,
        registry=registry or _registry(),
        dial=dialer,
        sleep=(sleeps.append if sleeps is not None else (lambda s: None)),
        on_state=(states.append if states is not None else None),
    )


def test_connect_transitions_to_connected():
    states = []
    p = _producer(Dialer(FakeTransport()), states=states)
    assert p.state is ReconnectState.DISCONNECTED

    p.connect()

    assert p.state is ReconnectState.CONNECTED
    assert p.is_connected
    assert states == [ReconnectState.CONNECTED]


def test_initial_connect_failure_raises_connect_error():
    p = _producer(Dialer(FakeTransport(fail_open=True)))
    with pytest.raises(ConnectError) as ei:
        p.connect()
    assert ei.value.code == "connect_error"
    assert "connection refused" in (ei.value.hint or "")
    assert p.state is ReconnectState.DISCONNECTED


def test_tick_sends_one_flushed_record_per_tick():
    t = FakeTransport()
    p = _producer(Dialer(t))
    p.connect()

    assert p.tick() is True
    assert p.tick() is True

    assert t.pending == b""
    assert [decode_record(r) for r in t.delivered] == [
        {"CPU": 12.5, "MEM": 2048.0},
        {"CPU": 13.0, "MEM": 2049.0},
    ]
    assert p.status().messages_sent == 2


def test_tick_before_connect_raises():
    p = _producer(Dialer(FakeTransport()))
    with pytest.raises(RuntimeError):
        p.tick()


def test_run_sleeps_interval_between_ticks():
    t = FakeTransport()
    sleeps = []
    p = _producer(Dialer(t), sleeps=sleeps)

    p.run(max_ticks=3)

    assert len(t.delivered) == 3
    assert sleeps == [1.0, 1.0, 1.0]
    assert t.closed is True
    assert p.state is ReconnectState.DISCONNECTED


def test_fail_once_then_reconnect_succeeds():
    first = FakeTransport(fail_flush_at=2)
    second = FakeTransport()
    dialer = Dialer(first, second)
    sleeps = []
    states = []
    p = _producer(dialer, sleeps=sleeps, states=states)

    p.connect()
    assert p.tick() is True
    assert p.tick() is False
    assert p.tick() is True

    assert states == [
        ReconnectState.CONNECTED,
        ReconnectState.RECONNECTING,
        ReconnectState.CONNECTED,
    ]
    assert dialer.calls == 2
    assert sleeps == [2.0]
    assert first.closed is True
    # the record whose flush failed is dropped, not resent
    assert [decode_record(r) for r in second.delivered] == [{"CPU": 14.0, "MEM": 2050.0}]
    st = p.status()
    assert st.reconnects == 1
    assert st.messages_sent == 1
    assert st.total_sent == 2
    assert "broken pipe" in (st.last_error or "")


def test_redial_failure_is_fatal_after_exactly_one_attempt():
    first = FakeTransport(fail_flush_at=1)
    dialer = Dialer(first, FakeTransport(fail_open=True), FakeTransport())
    sleeps = []
    states = []
    p = _producer(dialer, sleeps=sleeps, states=states)

    with pytest.raises(ReconnectFailedError) as ei:
        p.run()

    assert dialer.calls == 2
    assert sleeps == [2.0]
    assert states[-2:] == [ReconnectState.RECONNECTING, ReconnectState.FATAL]
    assert p.state is ReconnectState.FATAL
    assert ei.value.code == "reconnect_failed"


def test_fatal_producer_cannot_reconnect():
    p = _producer(Dialer(FakeTransport(fail_flush_at=1), FakeTransport(fail_open=True)))
    p.connect()
    with pytest.raises(ReconnectFailedError):
        p.tick()
    with pytest.raises(RuntimeError):
        p.connect()


def test_state_transitions_are_logged(caplog):
    p = _producer(Dialer(FakeTransport(fail_flush_at=1), FakeTransport(fail_open=True)))
    with caplog.at_level(logging.INFO):
        p.connect()
        with pytest.raises(ReconnectFailedError):
            p.tick()

    msgs = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("CONNECTED") for m in msgs)
    assert any(m.startswith("RECONNECT_START") for m in msgs)
    assert any(m.startswith("RECONNECT_FAILED") for m in msgs)


def test_progress_logged_every_n_messages(caplog):
    values = [(float(i), float(i)) for i in range(4)]
    p = _producer(Dialer(FakeTransport()), registry=_registry(values), report_every=2)
    with caplog.at_level(logging.INFO):
        p.run(max_ticks=4)

    counts = [r.getMessage() for r in caplog.records if r.getMessage().startswith("MESSAGES_SENT")]
    assert counts == ["MESSAGES_SENT count=2", "MESSAGES_SENT count=4"]


def test_state_callback_errors_do_not_break_producer():
    def boom(state):
        raise RuntimeError("callback failed")

    config = ClientConfig(address="127.0.0.1:9")
    p = TelemetryProducer(config, registry=_registry(), dial=Dialer(FakeTransport()), on_state=boom)
    p.connect()
    assert p.is_connected


def test_context_manager_connects_and_closes():
    t = FakeTransport()
    with _producer(Dialer(t)) as p:
        assert p.is_connected
    assert t.closed is True


def test_send_sample_goes_through_transport_send():
    class SendCountingTransport(FakeTransport):
        def __init__(self):
            super().__init__()
            self.sends = 0

        def send(self, data: bytes) -> None:
            self.sends += 1
            super().send(data)

    t = SendCountingTransport()
    p = _producer(Dialer(t))
    p.connect()
    p.tick()

    assert t.sends == 1
    assert len(t.delivered) == 1
