# gamestream/cli/commands.py
from __future__ import annotations

import argparse
from dataclasses import fields, replace

from gamestream.app.config import AppConfig
from gamestream.app.console import ConsoleEventSource, ConsoleRenderer, LoggingShortcuts, SimulatedInput
from gamestream.app.runner import open_client, start_run
from gamestream.engine.host_client import HostSessionClient
from gamestream.model.host import HostRecord, ServerInfo
from gamestream.runtime.pairing import PairingHandler
from gamestream.runtime.session_machine import classify_connect_failure

# ---------------- Helpers ----------------

def _with_host(cfg: AppConfig, address: str) -> AppConfig:
    if address in cfg.hosts:
        return cfg
    return replace(cfg, hosts=cfg.hosts + (address,))


def _query(client: HostSessionClient, cfg: AppConfig, address: str) -> ServerInfo | None:
    overrides = cfg.host_override_loader()(address)
    stream = cfg.stream.merged(overrides)
    res = client.query_status(address, allow_unsupported=stream.unsupported)
    if not res.ok or res.value is None:
        _, msg = classify_connect_failure(res)
        print(f"ERROR: {msg}")
        return None
    return res.value


def print_server(info: ServerInfo) -> None:
    print(f"Host:      {info.address} ({info.hostname or '-'})")
    print(f"GPU:       {info.gpu_type or '-'}")
    print(f"Server:    GFE {info.gfe_version or '-'} (gs {info.gs_version or '-'}, app {info.app_version or '-'})")
    print(f"Codecs:    0x{info.codec_support:x}")
    print(f"Paired:    {'yes' if info.paired else 'no'}")
    print(f"Running:   {info.current_game or '-'}")

# ---------------- Commands ----------------

def cmd_hosts(cfg: AppConfig) -> int:
    if not cfg.hosts:
        print("No hosts configured.")
        print(f"Add addresses under 'hosts:' in {cfg.config_path}")
        return 0

    load = cfg.host_override_loader()
    print("Configured hosts:\n")
    for addr in cfg.hosts:
        overrides = load(addr)
        eff = cfg.stream.merged(overrides)
        tag = " (override)" if overrides else ""
        print(f"{addr}{tag}")
        print(
            f"  app={eff.app} {eff.width}x{eff.height}@{eff.fps} {eff.bitrate}kbps "
            f"codecs={','.join(eff.codecs)} sops={eff.sops} local_audio={eff.local_audio}"
        )
        changed = [f.name for f in fields(eff) if f.name in overrides]
        if changed:
            print(f"  overridden: {', '.join(changed)}")
    return 0


def cmd_status(cfg: AppConfig, *, address: str) -> int:
    cfg = _with_host(cfg, address)
    client = open_client(cfg)
    try:
        info = _query(client, cfg, address)
        if info is None:
            return 1
        print_server(info)
        return 0
    finally:
        client.close()


def cmd_apps(cfg: AppConfig, *, address: str) -> int:
    cfg = _with_host(cfg, address)
    client = open_client(cfg)
    try:
        info = _query(client, cfg, address)
        if info is None:
            return 1
        res = client.list_apps(info)
        if not res.ok:
            print("ERROR: Can't get app list")
            return 1
        for app in res.value or ():
            marker = "*" if app.app_id == info.current_game else " "
            print(f"{marker} {app.app_id:>6}  {app.name}")
        return 0
    finally:
        client.close()


def cmd_pair(cfg: AppConfig, *, address: str) -> int:
    cfg = _with_host(cfg, address)
    client = open_client(cfg)
    try:
        info = _query(client, cfg, address)
        if info is None:
            return 1
        if info.paired:
            print(f"Already paired with {address}")
            return 0

        handler = PairingHandler(client, pair_timeout_s=cfg.pair_timeout_s)
        host = HostRecord(address=address).with_server(info)
        result = handler.pair(
            host,
            on_pin=lambda pin: print(f"Please enter the following PIN on the target PC: {pin}", flush=True),
        )
        if not result.ok:
            print(f"ERROR: {result.error}")
            return 1
        print("Successfully paired")
        return 0
    finally:
        client.close()


def cmd_run(cfg: AppConfig, args: argparse.Namespace) -> int:
    events = ConsoleEventSource()
    run = start_run(
        cfg,
        input_capability=SimulatedInput(gamepads=args.gamepads),
        events=events,
        renderer=ConsoleRenderer(),
        shortcuts=LoggingShortcuts(),
    )
    events.start()
    try:
        return run.controller.run(keep_running=lambda: not events.closed)
    except KeyboardInterrupt:
        return 0
    finally:
        if run.client is not None:
            run.client.close()
