# telelink/core/errors.py
from __future__ import annotations


class TelemetryError(Exception):
    """
    Base class for all expected operational errors in telelink.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, log filtering, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no sockets touched yet)
# ---------------------------------------------------------------------------

class ConfigError(TelemetryError):
    """
    Configuration is invalid or inconsistent.

    Examples:
      - malformed "host:port" address
      - unknown key in the YAML config file
      - non-positive sampling interval
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Connection lifecycle errors
# ---------------------------------------------------------------------------

class ConnectError(TelemetryError):
    """
    The producer could not establish its first connection.

    Examples:
      - connection refused (server not running)
      - host unreachable
    """
    code = "connect_error"


class ReconnectFailedError(TelemetryError):
    """
    A send failed and the single re-dial attempt that followed also failed.
    The producer cannot continue.
    """
    code = "reconnect_failed"


class ServerBindError(TelemetryError):
    """
    The listening socket could not be bound.

    Examples:
      - address already in use
      - permission denied on a privileged port
    """
    code = "server_bind_error"


# ---------------------------------------------------------------------------
# Record / data errors
# ---------------------------------------------------------------------------

class MalformedRecordError(TelemetryError):
    """
    A received line could not be decoded into a metric sample.

    Examples:
      - invalid JSON
      - JSON that is not an object
      - non-numeric metric values
      - bytes that are not valid UTF-8
    """
    code = "malformed_record"


# ---------------------------------------------------------------------------
# Operator command errors
# ---------------------------------------------------------------------------

class LaunchError(TelemetryError):
    """
    An external helper application could not be started.
    """
    code = "launch_error"
