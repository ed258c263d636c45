# telelink/server/launcher.py
from __future__ import annotations

import logging
import subprocess
import sys
from typing import List, Optional

from telelink.core.errors import LaunchError


def default_helper_app(platform: Optional[str] = None) -> str:
    """Name of the browser the `E` command opens on this platform."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return "msedge"
    if platform == "darwin":
        return "Microsoft Edge"
    return "microsoft-edge"


def launch_argv(name: str, platform: Optional[str] = None) -> List[str]:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return ["cmd", "/C", "start", "", name]
    if platform == "darwin":
        return ["open", "-a", name]
    return [name]


class ProcessLauncher:
    """
    Starts named external applications without waiting for them.
    """

    def __init__(self, *, platform: Optional[str] = None, logger: Optional[logging.Logger] = None):
        self._platform = platform or sys.platform
        self._log = logger or logging.getLogger(__name__)

    def launch(self, name: str) -> subprocess.Popen:
        argv = launch_argv(name, self._platform)
        self._log.info("LAUNCHING app=%s argv=%s", name, argv)
        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise LaunchError(
                f"Could not start '{name}'.",
                hint=str(e),
                details={"app": name, "argv": argv},
            ) from None

        self._log.info("LAUNCHED app=%s pid=%s", name, proc.pid)
        return proc
