# telelink/runtime/producer.py
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from telelink.app.config import ClientConfig
from telelink.core.errors import ConnectError, ReconnectFailedError
from telelink.model.metrics import MetricRegistry
from telelink.protocol.codec import MetricSample, encode_sample
from telelink.runtime.state import ProducerStatus, ReconnectState
from telelink.transport.base import Transport
from telelink.transport.errors import TransportError, TransportIOError
from telelink.transport.tcp import TCPTransport

Dialer = Callable[[], Transport]
StateCallback = Callable[[ReconnectState], None]


class TelemetryProducer:
    """
    Client side of the pipeline: sample, encode, send, flush, sleep.

    Owns exactly one connection at a time. When a send fails the connection
    is dropped, the producer sleeps for the configured backoff and dials once.
    If that single re-dial fails the producer goes FATAL and raises
    ReconnectFailedError. The record whose send failed is not resent.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        registry: MetricRegistry,
        dial: Optional[Dialer] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_state: Optional[StateCallback] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._registry = registry
        self._dial = dial or self._dial_tcp
        self._sleep = sleep
        self._log = logger or logging.getLogger(__name__)
        self.on_state = on_state

        self._transport: Optional[Transport] = None
        self._state = ReconnectState.DISCONNECTED

        self._messages_sent = 0
        self._total_sent = 0
        self._reconnects = 0
        self._last_error: Optional[str] = None

    # ---------------- State ----------------
    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def state(self) -> ReconnectState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ReconnectState.CONNECTED and self._transport is not None

    def status(self) -> ProducerStatus:
        return ProducerStatus(
            state=self._state,
            peer=self._config.address,
            messages_sent=self._messages_sent,
            total_sent=self._total_sent,
            reconnects=self._reconnects,
            last_error=self._last_error,
        )

    def _set_state(self, new: ReconnectState) -> None:
        old, self._state = self._state, new
        if old is new:
            return
        self._log.debug("PRODUCER_STATE %s -> %s", old.value, new.value)
        cb = self.on_state
        if cb is not None:
            try:
                cb(new)
            except Exception:
                self._log.exception("ON_STATE_CALLBACK_ERROR")

    # ---------------- Connection ----------------
    def _dial_tcp(self) -> Transport:
        return TCPTransport.from_address(
            self._config.address,
            connect_timeout=self._config.connect_timeout_s,
        )

    def _open_new(self) -> Transport:
        transport = self._dial()
        transport.open()
        return transport

    def connect(self) -> None:
        """First dial. Failure here is a startup error, not a reconnect."""
        if self.is_connected:
            return
        if self._state is ReconnectState.FATAL:
            raise RuntimeError("TelemetryProducer is FATAL; create a new producer")

        self._log.info("CONNECTING address=%s", self._config.address)
        try:
            self._transport = self._open_new()
        except TransportError as e:
            self._last_error = str(e)
            self._log.error("CONNECT_FAILED address=%s err=%s", self._config.address, e)
            raise ConnectError(
                f"Could not connect to {self._config.address}.",
                hint=str(e),
                details={"address": self._config.address},
            ) from None

        self._messages_sent = 0
        self._set_state(ReconnectState.CONNECTED)
        self._log.info("CONNECTED address=%s", self._config.address)

    def close(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            try:
                transport.close()
            except Exception:
                self._log.exception("Failed to close transport")
        if self._state is ReconnectState.CONNECTED:
            self._set_state(ReconnectState.DISCONNECTED)

    def _reconnect(self, cause: Exception) -> None:
        self._set_state(ReconnectState.RECONNECTING)
        self._reconnects += 1
        self._last_error = str(cause)
        self._log.warning(
            "RECONNECT_START address=%s backoff_s=%.2f cause=%s",
            self._config.address,
            self._config.reconnect_backoff_s,
            cause,
        )

        # the old connection is never reused
        old, self._transport = self._transport, None
        if old is not None:
            try:
                old.close()
            except Exception:
                self._log.debug("OLD_TRANSPORT_CLOSE_FAILED", exc_info=True)

        self._sleep(self._config.reconnect_backoff_s)

        try:
            self._transport = self._open_new()
        except TransportError as e:
            self._last_error = str(e)
            self._set_state(ReconnectState.FATAL)
            self._log.error("RECONNECT_FAILED address=%s err=%s", self._config.address, e)
            raise ReconnectFailedError(
                f"Lost connection to {self._config.address} and could not reconnect.",
                hint=str(e),
                details={"address": self._config.address, "cause": str(cause)},
            ) from None

        self._messages_sent = 0
        self._set_state(ReconnectState.CONNECTED)
        self._log.info("RECONNECTED address=%s", self._config.address)

    # ---------------- Data path ----------------
    def send_sample(self, sample: MetricSample) -> None:
        """Encode and deliver one sample; raises TransportIOError on failure."""
        if self._transport is None:
            raise TransportIOError("send while producer not connected")
        record = encode_sample(sample)
        self._transport.send(record)

    def tick(self) -> bool:
        """
        One sample -> encode -> send -> flush cycle.

        Returns True if the record was delivered, False if the send failed
        and a reconnect succeeded. Raises ReconnectFailedError otherwise.
        """
        if not self.is_connected:
            raise RuntimeError(f"tick() while producer is {self._state.value}")

        sample = self._registry.sample()
        try:
            self.send_sample(sample)
        except TransportIOError as e:
            self._log.error("SEND_FAILED address=%s err=%s", self._config.address, e)
            self._reconnect(e)
            return False

        self._messages_sent += 1
        self._total_sent += 1
        every = self._config.report_every
        if every > 0 and self._messages_sent % every == 0:
            self._log.info("MESSAGES_SENT count=%d", self._messages_sent)
        return True

    def run(self, *, max_ticks: Optional[int] = None) -> None:
        """
        Connect if needed, then tick every interval_s until max_ticks
        (forever when None). ReconnectFailedError propagates.
        """
        if not self.is_connected:
            self.connect()

        self._log.info(
            "PRODUCER_RUN interval_s=%.3f metrics=%s",
            self._config.interval_s,
            list(self._registry.names()),
        )
        ticks = 0
        try:
            while max_ticks is None or ticks < max_ticks:
                self.tick()
                ticks += 1
                self._sleep(self._config.interval_s)
        finally:
            if self._state is not ReconnectState.FATAL:
                self.close()

    def __enter__(self) -> "TelemetryProducer":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
