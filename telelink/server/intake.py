# telelink/server/intake.py
from __future__ import annotations

import logging
import sys
import threading
from typing import Optional, TextIO

from telelink.core.errors import TelemetryError

from .commands import CommandExecutor, ServerCommand, parse_command


class CommandIntake(threading.Thread):
    """Thread that reads operator lines and runs the matching command."""

    def __init__(
        self,
        executor: CommandExecutor,
        *,
        stream: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(name="command-intake", daemon=True)
        self._executor = executor
        self._stream = stream
        self._log = logger or logging.getLogger(__name__)
        self._stop_event = threading.Event()
        self.commands_run = 0

    def run(self) -> None:
        stream = self._stream or sys.stdin
        while not self._stop_event.is_set():
            try:
                line = stream.readline()
            except (OSError, ValueError) as e:
                self._log.error("INTAKE_READ_FAILED err=%s", e)
                break

            if not line:
                self._log.info("INTAKE_EOF")
                break

            self.handle_line(line)

    def handle_line(self, line: str) -> Optional[ServerCommand]:
        command = parse_command(line)
        if command is None:
            if line.strip():
                self._log.debug("COMMAND_IGNORED input=%r", line.strip()[:32])
            return None

        self._log.debug("COMMAND_RECEIVED cmd=%s", command.value)
        try:
            self._executor.execute(command)
        except TelemetryError as e:
            self._log.error("COMMAND_FAILED cmd=%s err=%s hint=%s", command.value, e.message, e.hint)
        except Exception:
            self._log.exception("COMMAND_ERROR cmd=%s", command.value)
        else:
            self.commands_run += 1
        return command

    def stop(self) -> None:
        self._stop_event.set()
