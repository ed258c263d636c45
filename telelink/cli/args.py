# telelink/cli/args.py
from __future__ import annotations

import argparse
from typing import Optional

from telelink import __version__


def _ms_to_s(value: Optional[int]) -> Optional[float]:
    return None if value is None else value / 1000.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="telelink",
        description="Stream host CPU/memory telemetry over TCP as newline-delimited JSON.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=None, help="YAML config file with client/server sections.")
    common.add_argument("--address", default=None, help="host:port (overrides the config file).")
    common.add_argument("--log-file", default=None, help="Also write logs to this file.")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")

    pc = sub.add_parser("client", parents=[common], help="Sample metrics and stream them to a server.")
    pc.add_argument("--interval-ms", type=int, default=None, help="Sampling interval (default 1000).")
    pc.add_argument("--backoff-ms", type=int, default=None, help="Wait before the single re-dial (default 2000).")
    pc.add_argument(
        "--metric",
        action="append",
        default=None,
        help="Metric to send; repeat for several (default: CPU and MEM).",
    )

    ps = sub.add_parser("server", parents=[common], help="Receive and display telemetry.")
    ps.add_argument("--record", default=None, help="Append decoded samples to this CSV file.")
    ps.add_argument("--no-clear", action="store_true", help="Do not clear the screen between samples.")
    ps.add_argument("--helper-app", default=None, help="Application the E command launches.")
    ps.add_argument("--no-commands", action="store_true", help="Do not read operator commands from stdin.")

    pm = sub.add_parser("metrics", help="List the available metrics with a live reading.")
    pm.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    pm.add_argument("--log-file", default=None, help="Also write logs to this file.")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    args = build_parser().parse_args(argv)
    if args.cmd == "client":
        args.interval_s = _ms_to_s(args.interval_ms)
        args.backoff_s = _ms_to_s(args.backoff_ms)
    return args
