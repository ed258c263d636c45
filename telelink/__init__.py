"""telelink: point-to-point host telemetry over newline-delimited JSON."""

__version__ = "0.1.0"
