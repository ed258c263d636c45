# telelink/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from telelink.core.errors import ConfigError
from telelink.transport.tcp import parse_address

DEFAULT_ADDRESS = "127.0.0.1:8080"
DEFAULT_METRICS: Tuple[str, ...] = ("CPU", "MEM")


@dataclass(frozen=True)
class ClientConfig:
    address: str = DEFAULT_ADDRESS
    interval_s: float = 1.0
    reconnect_backoff_s: float = 2.0
    connect_timeout_s: Optional[float] = None
    metrics: Tuple[str, ...] = DEFAULT_METRICS
    report_every: int = 10

    def validate(self) -> "ClientConfig":
        parse_address(self.address)
        if self.interval_s <= 0:
            raise ConfigError(
                f"Sampling interval must be positive, got {self.interval_s}.",
                details={"interval_s": self.interval_s},
            )
        if self.reconnect_backoff_s < 0:
            raise ConfigError(
                f"Reconnect backoff must not be negative, got {self.reconnect_backoff_s}.",
                details={"reconnect_backoff_s": self.reconnect_backoff_s},
            )
        if self.connect_timeout_s is not None and self.connect_timeout_s <= 0:
            raise ConfigError(
                f"Connect timeout must be positive, got {self.connect_timeout_s}.",
                hint="Leave it unset to block until the OS gives up.",
                details={"connect_timeout_s": self.connect_timeout_s},
            )
        if not self.metrics:
            raise ConfigError("At least one metric must be configured.")
        return self


@dataclass(frozen=True)
class ServerConfig:
    address: str = DEFAULT_ADDRESS
    read_size: int = 4096
    max_line_bytes: int = 64 * 1024
    helper_app: Optional[str] = None
    clear_screen: bool = True
    record_path: Optional[str] = None

    def validate(self) -> "ServerConfig":
        parse_address(self.address)
        if self.read_size <= 0:
            raise ConfigError(
                f"read_size must be positive, got {self.read_size}.",
                details={"read_size": self.read_size},
            )
        if self.max_line_bytes < 0:
            raise ConfigError(
                f"max_line_bytes must not be negative, got {self.max_line_bytes}.",
                hint="Use 0 to disable the limit.",
                details={"max_line_bytes": self.max_line_bytes},
            )
        return self


@dataclass(frozen=True)
class AppConfig:
    client: ClientConfig = field(default_factory=ClientConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
