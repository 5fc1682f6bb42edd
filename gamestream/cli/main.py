# gamestream/cli/main.py
from __future__ import annotations

from typing import Optional

from gamestream.app.config import AppConfig
from gamestream.common.logging_config import configure_logging
from gamestream.core.errors import GameStreamError

from gamestream.cli.args import parse_args
from gamestream.cli.commands import (
    cmd_hosts,
    cmd_status,
    cmd_apps,
    cmd_pair,
    cmd_run,
)


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args = parse_args(argv)
        cfg = AppConfig.load(args.config)
        configure_logging(args.debug if args.debug is not None else cfg.debug)

        if args.cmd == "hosts":
            return cmd_hosts(cfg)
        if args.cmd == "status":
            return cmd_status(cfg, address=args.host)
        if args.cmd == "apps":
            return cmd_apps(cfg, address=args.host)
        if args.cmd == "pair":
            return cmd_pair(cfg, address=args.host)
        if args.cmd == "run":
            return cmd_run(cfg, args)

        return 2
    except GameStreamError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
