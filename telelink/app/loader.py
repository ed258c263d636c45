# telelink/app/loader.py
from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, TypeVar, Union

import yaml

from telelink.app.config import AppConfig, ClientConfig, ServerConfig
from telelink.core.errors import ConfigError

# field -> schema type, per section
CLIENT_SCHEMA: Dict[str, str] = {
    "address": "str",
    "interval_s": "float",
    "reconnect_backoff_s": "float",
    "connect_timeout_s": "float?",
    "metrics": "str_list",
    "report_every": "int",
}

SERVER_SCHEMA: Dict[str, str] = {
    "address": "str",
    "read_size": "int",
    "max_line_bytes": "int",
    "helper_app": "str?",
    "clear_screen": "bool",
    "record_path": "str?",
}

C = TypeVar("C", ClientConfig, ServerConfig)


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Load client/server settings from a YAML file.

    Layout:
        client:
          address: 127.0.0.1:8080
          interval_s: 1.0
        server:
          address: 0.0.0.0:8080

    Missing file sections fall back to the dataclass defaults. With no path,
    the defaults are returned as-is.
    """
    if path is None:
        return AppConfig()

    full_path = Path(path)
    if not full_path.exists():
        raise ConfigError(
            f"Config file not found: {full_path}",
            hint="Check the --config path.",
            details={"path": str(full_path)},
        )

    try:
        with open(full_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Config file is not valid YAML: {full_path}",
            hint=str(e),
            details={"path": str(full_path)},
        ) from None
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(
            f"Cannot read config file: {full_path}",
            hint=str(e),
            details={"path": str(full_path)},
        ) from None

    if not isinstance(data, dict):
        raise ConfigError(
            "Config root must be a mapping with 'client' and/or 'server' sections.",
            details={"path": str(full_path)},
        )

    unknown = sorted(set(data.keys()) - {"client", "server"})
    if unknown:
        raise ConfigError(
            f"Unknown config section(s): {unknown}",
            hint="Valid sections: ['client', 'server']",
            details={"path": str(full_path)},
        )

    client = _build_section(ClientConfig, CLIENT_SCHEMA, data.get("client"), "client")
    server = _build_section(ServerConfig, SERVER_SCHEMA, data.get("server"), "server")
    return AppConfig(client=client.validate(), server=server.validate())


def apply_overrides(cfg: C, **overrides: Any) -> C:
    """Replace fields with every override that is not None, then validate."""
    changes = {k: v for k, v in overrides.items() if v is not None}
    updated = replace(cfg, **changes) if changes else cfg
    return updated.validate()


def _build_section(cls: type, schema: Mapping[str, str], raw: Any, section: str):
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config section '{section}' must be a mapping.",
            details={"section": section},
        )

    kwargs: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in schema:
            raise ConfigError(
                f"Unknown key '{key}' in config section '{section}'.",
                hint=f"Valid keys: {sorted(schema.keys())}",
                details={"section": section, "key": key},
            )
        try:
            kwargs[key] = _cast_value(value, schema[key])
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"Invalid value for '{section}.{key}'.",
                hint=str(e),
                details={"section": section, "key": key, "value": value, "expected_type": schema[key]},
            ) from None

    return cls(**kwargs)


def _cast_value(value: Any, type_name: str) -> Any:
    if type_name.endswith("?"):
        if value is None:
            return None
        type_name = type_name[:-1]

    if type_name == "str":
        if not isinstance(value, str):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        return value

    if type_name == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected int, got {type(value).__name__}")
        return value

    if type_name == "float":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Expected float, got {type(value).__name__}")
        return float(value)

    if type_name == "bool":
        if isinstance(value, bool):
            return value
        raise TypeError(f"Expected bool, got {type(value).__name__}")

    if type_name == "str_list":
        if isinstance(value, str):
            value = [v.strip() for v in value.split(",") if v.strip()]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise TypeError("Expected a list of strings")
        return tuple(value)

    raise TypeError(f"Unknown schema type '{type_name}'")
