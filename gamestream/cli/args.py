# gamestream/cli/args.py
from __future__ import annotations

import argparse
from typing import Optional

DEFAULT_CONFIG = "config.yml"


def _positive_int(v: str) -> int:
    try:
        n = int(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid integer '{v}'") from None
    if n < 0:
        raise argparse.ArgumentTypeError("Value must be >= 0")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gamestream", description="GameStream client session runner")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to the client configuration file (default: {DEFAULT_CONFIG}).",
    )
    parser.add_argument(
        "--debug",
        action="count",
        default=None,
        help="Enable debug logging (overrides 'debug' from the config file).",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("hosts", help="List configured hosts and their effective stream settings.")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--host", required=True, help="Host address.")

    sub.add_parser("status", parents=[common], help="Query a host's server info.")
    sub.add_parser("apps", parents=[common], help="List the applications a host offers.")
    sub.add_parser("pair", parents=[common], help="Pair with a host using a PIN.")

    p_run = sub.add_parser("run", help="Run the interactive session (a/b/x/up/down/q, 'exit' to quit).")
    p_run.add_argument(
        "--gamepads",
        type=_positive_int,
        default=1,
        help="Number of simulated local controllers (default: 1).",
    )

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
