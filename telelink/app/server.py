# telelink/app/server.py
from __future__ import annotations

import logging
from typing import List, Optional, TextIO

from telelink.app.config import ServerConfig
from telelink.interfaces.sample_sink import SampleSink
from telelink.runtime.state import SessionStats
from telelink.server.acceptor import ConnectionAcceptor
from telelink.server.commands import CommandExecutor, Launcher, terminate_process
from telelink.server.intake import CommandIntake
from telelink.server.launcher import ProcessLauncher, default_helper_app
from telelink.server.session import SessionHandler
from telelink.transport.base import Transport


class TelemetryServer:
    """
    App-level server: acceptor + session handling on the calling thread,
    operator command intake on its own daemon thread.

    The two sides share nothing but the process; a QUIT command ends the
    process regardless of what the session is doing.
    """

    def __init__(
        self,
        config: ServerConfig,
        *,
        sinks: Optional[List[SampleSink]] = None,
        launcher: Optional[Launcher] = None,
        command_stream: Optional[TextIO] = None,
        terminate=terminate_process,
        enable_commands: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._log = logger or logging.getLogger(__name__)
        self._sinks: List[SampleSink] = list(sinks or [])
        self.last_session: Optional[SessionStats] = None

        self._acceptor = ConnectionAcceptor(
            config.address,
            run_session=self._run_session,
            logger=self._log,
        )

        self._intake: Optional[CommandIntake] = None
        if enable_commands:
            executor = CommandExecutor(
                launcher=launcher or ProcessLauncher(logger=self._log),
                helper_app=config.helper_app or default_helper_app(),
                terminate=terminate,
                logger=self._log,
            )
            self._intake = CommandIntake(executor, stream=command_stream, logger=self._log)

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def acceptor(self) -> ConnectionAcceptor:
        return self._acceptor

    @property
    def intake(self) -> Optional[CommandIntake]:
        return self._intake

    def add_sink(self, sink: SampleSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def start(self) -> None:
        """Bind (fatal on failure) and start the command thread."""
        self._acceptor.bind()
        if self._intake is not None and self._intake.ident is None:
            self._intake.start()
            self._log.info("COMMAND_INTAKE_STARTED")

    def serve_forever(self) -> None:
        self.start()
        self._acceptor.serve_forever()

    def stop(self) -> None:
        self._acceptor.close()
        if self._intake is not None:
            self._intake.stop()

        for s in list(self._sinks):
            try:
                s.close()
            except Exception:
                self._log.exception("SINK_CLOSE_ERROR")
        self._sinks.clear()

    def _run_session(self, transport: Transport, peer: str) -> SessionStats:
        handler = SessionHandler(
            transport,
            peer,
            sinks=self._sinks,
            read_size=self._config.read_size,
            max_line_bytes=self._config.max_line_bytes or None,
            logger=self._log,
        )
        stats = handler.run()
        self.last_session = stats
        return stats

    def __enter__(self) -> "TelemetryServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
