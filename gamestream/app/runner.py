# gamestream/app/runner.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from gamestream.app.config import AppConfig
from gamestream.app.controller import SessionController
from gamestream.core.errors import GameStreamError
from gamestream.engine.base import StreamingEngine
from gamestream.engine.host_client import HostSessionClient
from gamestream.engine.registry import EngineDriverRegistry
from gamestream.engine.simulated import demo_hosts
from gamestream.interfaces.input_capability import InputCapability
from gamestream.interfaces.menu_events import MenuEventSource
from gamestream.interfaces.renderer import Renderer
from gamestream.interfaces.system_shortcuts import SystemShortcuts
from gamestream.model.host import HostRecord
from gamestream.runtime.session_machine import SessionStateMachine


@dataclass(frozen=True)
class AppRun:
    controller: SessionController
    machine: SessionStateMachine
    client: Optional[HostSessionClient]
    engine: Optional[StreamingEngine]


def create_engine(
    cfg: AppConfig,
    *,
    registry: Optional[EngineDriverRegistry] = None,
) -> StreamingEngine:
    registry = registry or EngineDriverRegistry.default()
    params = {"hosts": demo_hosts(cfg.hosts)} if cfg.engine.lower() == "sim" else {}
    return registry.create(cfg.engine, **params)


def open_client(
    cfg: AppConfig,
    *,
    engine: Optional[StreamingEngine] = None,
    registry: Optional[EngineDriverRegistry] = None,
    logger: Optional[logging.Logger] = None,
) -> HostSessionClient:
    engine = engine or create_engine(cfg, registry=registry)
    return HostSessionClient.create(
        engine,
        cfg.key_dir,
        default_timeout_s=cfg.default_timeout_s,
        logger=logger,
    )


def start_run(
    cfg: AppConfig,
    *,
    input_capability: InputCapability,
    events: MenuEventSource,
    renderer: Optional[Renderer] = None,
    shortcuts: Optional[SystemShortcuts] = None,
    engine: Optional[StreamingEngine] = None,
    registry: Optional[EngineDriverRegistry] = None,
) -> AppRun:
    """
    Wire configuration, engine, client and state machine together.

    Setup failures do not raise: the machine starts in INVALID with the
    error as its pending message.
    """
    log = logging.getLogger(__name__)

    client: Optional[HostSessionClient] = None
    fatal: Optional[str] = None
    try:
        client = open_client(cfg, engine=engine, registry=registry, logger=log)
    except GameStreamError as e:
        log.error("CLIENT_INIT_FAILED code=%s msg=%s hint=%s", e.code, e.message, e.hint)
        fatal = f"{e.message}\n{e.hint}" if e.hint else e.message

    machine = SessionStateMachine(
        client=client,
        hosts=[HostRecord(address=a) for a in cfg.hosts],
        stream_config=cfg.stream,
        input_capability=input_capability,
        renderer=renderer,
        shortcuts=shortcuts,
        load_overrides=cfg.host_override_loader(),
        pair_timeout_s=cfg.pair_timeout_s,
        poll_hz=cfg.input_poll_hz,
        fatal_error=fatal,
        logger=log,
    )

    controller = SessionController(machine, events, logger=log)

    return AppRun(
        controller=controller,
        machine=machine,
        client=client,
        engine=client.engine if client is not None else engine,
    )
