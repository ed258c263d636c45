# telelink/server/commands.py
from __future__ import annotations

import logging
import os
import sys
from enum import Enum
from typing import Callable, Dict, Optional, Protocol, TextIO


class ServerCommand(str, Enum):
    LAUNCH = "launch"
    HELP = "help"
    QUIT = "quit"


COMMAND_TOKENS: Dict[str, ServerCommand] = {
    "E": ServerCommand.LAUNCH,
    "H": ServerCommand.HELP,
    "HELP": ServerCommand.HELP,
    "Q": ServerCommand.QUIT,
    "QUIT": ServerCommand.QUIT,
    "EXIT": ServerCommand.QUIT,
}

RULE = "=" * 50


def parse_command(text: str) -> Optional[ServerCommand]:
    """Case-insensitive token lookup; None for anything unrecognised."""
    return COMMAND_TOKENS.get(text.strip().upper())


def help_text(helper_app: str) -> str:
    return "\n".join(
        [
            "",
            RULE,
            "AVAILABLE COMMANDS",
            RULE,
            f"E        - Open {helper_app}",
            "H, HELP  - Show this help",
            "Q, QUIT  - Stop the server",
            RULE,
        ]
    )


def terminate_process(code: int = 0) -> None:
    """End the process now, without joining threads or finishing sessions."""
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass
    logging.shutdown()
    os._exit(code)


class Launcher(Protocol):
    def launch(self, name: str) -> object: ...


class CommandExecutor:
    """
    Maps parsed operator commands to their side effects.

    LAUNCH raises LaunchError when the helper cannot be started; the caller
    decides how to report it.
    """

    def __init__(
        self,
        *,
        launcher: Launcher,
        helper_app: str,
        terminate: Callable[[int], None] = terminate_process,
        out: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._launcher = launcher
        self.helper_app = helper_app
        self._terminate = terminate
        self._out = out
        self._log = logger or logging.getLogger(__name__)

    def execute(self, command: ServerCommand) -> None:
        if command is ServerCommand.LAUNCH:
            self._launcher.launch(self.helper_app)
        elif command is ServerCommand.HELP:
            out = self._out or sys.stdout
            print(help_text(self.helper_app), file=out, flush=True)
        elif command is ServerCommand.QUIT:
            self._log.info("SERVER_TERMINATING reason=operator")
            self._terminate(0)
