# telelink/cli/main.py
from __future__ import annotations

import logging
import sys
import time
from typing import Optional

from telelink.app.client import build_producer
from telelink.app.config import ServerConfig
from telelink.app.display import RULE, format_metric
from telelink.app.loader import apply_overrides, load_config
from telelink.app.server import TelemetryServer
from telelink.app.sinks import ConsoleDisplaySink, CsvRecordingSink
from telelink.cli.args import parse_args
from telelink.common.logging import configure_logging
from telelink.core.errors import TelemetryError
from telelink.model.metrics import default_registry
from telelink.server.commands import help_text
from telelink.server.launcher import default_helper_app

log = logging.getLogger("telelink.cli")


def print_server_banner(cfg: ServerConfig, bound: str) -> None:
    print("Telemetry server started")
    print(f"Listening on: {bound}")
    print(help_text(cfg.helper_app or default_helper_app()).lstrip("\n"))
    print("Waiting for connections...\n", flush=True)


def cmd_client(args) -> int:
    cfg = load_config(args.config)
    client_cfg = apply_overrides(
        cfg.client,
        address=args.address,
        interval_s=args.interval_s,
        reconnect_backoff_s=args.backoff_s,
        metrics=tuple(args.metric) if args.metric else None,
    )

    producer = build_producer(client_cfg)
    try:
        producer.connect()
        print(f"Connected to {client_cfg.address}, streaming {list(client_cfg.metrics)}")
        print(RULE, flush=True)
        producer.run()
    except KeyboardInterrupt:
        log.info("CLIENT_INTERRUPTED sent=%d", producer.status().total_sent)
    finally:
        producer.close()
    return 0


def cmd_server(args) -> int:
    cfg = load_config(args.config)
    server_cfg = apply_overrides(
        cfg.server,
        address=args.address,
        helper_app=args.helper_app,
        record_path=args.record,
        clear_screen=False if args.no_clear else None,
    )

    server = TelemetryServer(
        server_cfg,
        sinks=[ConsoleDisplaySink(clear_screen=server_cfg.clear_screen)],
        enable_commands=not args.no_commands,
    )
    try:
        if server_cfg.record_path:
            server.add_sink(CsvRecordingSink(server_cfg.record_path))
        server.start()
        host, port = server.acceptor.bound_address
        print_server_banner(server_cfg, f"{host}:{port}")
        server.serve_forever()
    except KeyboardInterrupt:
        log.info("SERVER_INTERRUPTED")
    finally:
        server.stop()
    return 0


def cmd_metrics() -> int:
    registry = default_registry()
    # psutil needs an interval between CPU readings
    time.sleep(0.5)
    sample = registry.sample()
    print("Available metrics:")
    for src in registry.sources():
        print(f"  {src.name:<6} unit={src.unit or '-':<4} {format_metric(src.name, sample[src.name])}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO, log_file=args.log_file)

    try:
        if args.cmd == "client":
            return cmd_client(args)
        if args.cmd == "server":
            return cmd_server(args)
        if args.cmd == "metrics":
            return cmd_metrics()
        return 2
    except TelemetryError as e:
        log.debug("FATAL code=%s details=%s", e.code, e.details)
        print(f"ERROR: {e.message}", file=sys.stderr)
        if e.hint:
            print(f"Hint: {e.hint}", file=sys.stderr)
        return 1


def cli() -> None:
    sys.exit(main())
