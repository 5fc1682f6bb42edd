# gamestream/engine/host_client.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from gamestream.core.errors import ClientInitError
from gamestream.model.host import AppEntry, ServerInfo
from gamestream.model.input import ControllerEvent
from gamestream.model.stream import StreamParameters

from .base import ConnectionListener, GsStatus, Outcome, PairOutcome, StreamingEngine

DEFAULT_TIMEOUT_S = 5.0


class HostSessionClient:
    """
    Synchronous request/response API over a StreamingEngine.

    Every call returns the engine's Outcome unchanged; classification is
    left to the caller.
    """

    def __init__(
        self,
        engine: StreamingEngine,
        *,
        default_timeout_s: float = DEFAULT_TIMEOUT_S,
        logger: Optional[logging.Logger] = None,
    ):
        self._engine = engine
        self._log = logger or logging.getLogger(__name__)
        self._default_timeout_s = float(default_timeout_s)
        self._timeout_s = self._default_timeout_s
        self._engine.set_request_timeout(self._timeout_s)

    @classmethod
    def create(
        cls,
        engine: StreamingEngine,
        key_dir: str,
        *,
        default_timeout_s: float = DEFAULT_TIMEOUT_S,
        logger: Optional[logging.Logger] = None,
    ) -> "HostSessionClient":
        """
        Open the engine with the client identity in `key_dir`.

        A missing/bad identity is initialised once and the open retried.
        """
        log = logger or logging.getLogger(__name__)

        res = engine.open(key_dir)
        if res.status == GsStatus.BAD_CONF:
            log.info("CLIENT_IDENTITY_INIT key_dir=%s", key_dir)
            init = engine.init_identity(key_dir)
            if not init.ok:
                raise ClientInitError(
                    "Failed to create client info.",
                    hint=init.detail or None,
                    details={"key_dir": key_dir, "status": int(init.status)},
                )
            res = engine.open(key_dir)

        if not res.ok:
            raise ClientInitError(
                "Failed to create GameStream client.",
                hint=res.detail or None,
                details={"key_dir": key_dir, "status": int(res.status)},
            )

        return cls(engine, default_timeout_s=default_timeout_s, logger=log)

    @property
    def engine(self) -> StreamingEngine:
        return self._engine

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    @property
    def default_timeout_s(self) -> float:
        return self._default_timeout_s

    def set_timeout(self, seconds: float) -> None:
        self._timeout_s = float(seconds)
        self._engine.set_request_timeout(self._timeout_s)

    @contextmanager
    def extended_timeout(self, seconds: float) -> Iterator[None]:
        """Raise the request timeout for the block, then restore the default."""
        self.set_timeout(seconds)
        try:
            yield
        finally:
            self.set_timeout(self._default_timeout_s)

    # host requests
    def query_status(self, address: str, *, allow_unsupported: bool = True) -> Outcome[ServerInfo]:
        self._log.debug("HOST_STATUS address=%s", address)
        return self._engine.query_host_status(address, allow_unsupported)

    def list_apps(self, server: ServerInfo) -> Outcome[Sequence[AppEntry]]:
        return self._engine.list_applications(server)

    def pair(self, server: ServerInfo, pin: str) -> Outcome[PairOutcome]:
        self._log.debug("PAIR address=%s timeout_s=%s", server.address, self._timeout_s)
        return self._engine.request_pairing(server, pin)

    def start_app(
        self,
        server: ServerInfo,
        app_id: int,
        params: StreamParameters,
        gamepad_mask: int,
        *,
        sops: bool,
        local_audio: bool,
    ) -> Outcome[StreamParameters]:
        self._log.debug(
            "START_APP address=%s app_id=%d gamepad_mask=0x%x sops=%s local_audio=%s",
            server.address,
            int(app_id),
            int(gamepad_mask),
            sops,
            local_audio,
        )
        return self._engine.start_application(
            server,
            int(app_id),
            params,
            int(gamepad_mask),
            is_gfe=server.is_gfe,
            sops=sops,
            local_audio=local_audio,
        )

    def quit_app(self, server: ServerInfo) -> Outcome[None]:
        self._log.debug("QUIT_APP address=%s", server.address)
        return self._engine.request_app_quit(server)

    # stream connection
    def open_connection(
        self,
        params: StreamParameters,
        audio_device: Optional[str],
        listener: Optional[ConnectionListener] = None,
    ) -> Outcome[None]:
        return self._engine.open_stream_connection(params, audio_device, listener)

    def close_connection(self) -> None:
        self._engine.close_stream_connection()

    def submit_input(self, event: ControllerEvent) -> None:
        self._engine.submit_input_event(event)

    def close(self) -> None:
        self._engine.close()
