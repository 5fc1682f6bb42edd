# gamestream/runtime/stream_lifecycle.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from gamestream.core.errors import ErrorKind
from gamestream.engine.base import ConnectionListener, GsStatus, Outcome
from gamestream.engine.host_client import HostSessionClient
from gamestream.interfaces.input_capability import InputCapability
from gamestream.model.host import HostRecord, ServerInfo
from gamestream.model.input import gamepad_mask
from gamestream.model.stream import StreamConfig, StreamParameters, negotiate_parameters
from gamestream.runtime.input_loop import DEFAULT_POLL_HZ, InputCaptureLoop


@dataclass(frozen=True)
class StreamStartResult:
    ok: bool
    kind: Optional[ErrorKind] = None
    message: str = ""
    app_id: Optional[int] = None
    params: Optional[StreamParameters] = None

    @classmethod
    def failed(cls, kind: ErrorKind, message: str, *, app_id: Optional[int] = None) -> "StreamStartResult":
        return cls(ok=False, kind=kind, message=message, app_id=app_id)


@dataclass
class _ActiveStream:
    server: ServerInfo
    app_id: int
    params: StreamParameters
    quit_app_after: bool
    loop: InputCaptureLoop


def classify_start_failure(res: Outcome, config: StreamConfig) -> tuple[ErrorKind, str]:
    status = res.status
    if status == GsStatus.NOT_SUPPORTED_4K:
        kind = ErrorKind.NOT_SUPPORTED_4K
        return kind, kind.format()
    if status == GsStatus.NOT_SUPPORTED_MODE:
        kind = ErrorKind.NOT_SUPPORTED_MODE
        return kind, kind.format(width=config.width, height=config.height, fps=config.fps)
    if status == GsStatus.NOT_SUPPORTED_SOPS_RESOLUTION:
        kind = ErrorKind.NOT_SUPPORTED_SOPS_RESOLUTION
        return kind, kind.format(width=config.width, height=config.height)
    if status == GsStatus.ERROR:
        kind = ErrorKind.STREAM_ERROR
        return kind, kind.format(detail=res.detail or "unknown error")
    kind = ErrorKind.START_FAILED
    return kind, kind.format(code=int(status))


class StreamLifecycleController:
    """
    Starts and stops one stream at a time against a host.

    Responsibilities:
      - resolve the configured app name to a host app id
      - negotiate stream parameters and issue stream-start
      - open the stream connection and hand off to the input loop
      - tear down in order: input loop, connection, optional app quit
    """

    def __init__(
        self,
        client: HostSessionClient,
        input_capability: InputCapability,
        *,
        poll_hz: float = DEFAULT_POLL_HZ,
        join_timeout_s: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._client = client
        self._input = input_capability
        self._poll_hz = float(poll_hz)
        self._join_timeout_s = float(join_timeout_s)
        self._log = logger or logging.getLogger(__name__)
        self._active: Optional[_ActiveStream] = None

    @property
    def is_streaming(self) -> bool:
        return self._active is not None

    @property
    def input_loop(self) -> Optional[InputCaptureLoop]:
        return self._active.loop if self._active is not None else None

    def resolve_app_id(self, server: ServerInfo, name: str) -> Outcome[Optional[int]]:
        """
        Look up `name` (case-sensitive, exact) in the host's app list.

        A successful Outcome holding None means the list has no such app.
        """
        res = self._client.list_apps(server)
        if not res.ok:
            self._log.warning("APP_LIST_FAILED address=%s status=%s", server.address, res.status.name)
            return Outcome.failure(res.status, res.detail)

        for app in res.value or ():
            if app.name == name:
                return Outcome.success(int(app.app_id))
        return Outcome.success(None)

    def start_stream(
        self,
        host: HostRecord,
        config: StreamConfig,
        *,
        listener: Optional[ConnectionListener] = None,
        on_quit: Optional[Callable[[], None]] = None,
    ) -> StreamStartResult:
        if self._active is not None:
            raise RuntimeError("A stream is already active; stop it first")

        server = host.server or ServerInfo(address=host.address)

        app = self.resolve_app_id(server, config.app)
        if not app.ok:
            kind = ErrorKind.APP_LIST_FAILED
            return StreamStartResult.failed(kind, kind.format())
        if app.value is None:
            kind = ErrorKind.APP_NOT_FOUND
            self._log.warning("APP_NOT_FOUND address=%s app=%s", host.address, config.app)
            return StreamStartResult.failed(kind, kind.format(app=config.app))
        app_id = app.value

        mask = gamepad_mask(self._input.count_attached_devices())
        params = negotiate_parameters(config, server.codec_support)

        res = self._client.start_app(
            server,
            app_id,
            params,
            mask,
            sops=config.sops,
            local_audio=config.local_audio,
        )
        if not res.ok:
            kind, msg = classify_start_failure(res, config)
            self._log.warning(
                "STREAM_START_FAILED address=%s status=%s (%d) detail=%s",
                host.address,
                res.status.name,
                int(res.status),
                res.detail,
            )
            return StreamStartResult.failed(kind, msg, app_id=app_id)

        negotiated = res.value or params
        self._log.debug(
            "Stream %d x %d, %d fps, %d kbps",
            negotiated.width,
            negotiated.height,
            negotiated.fps,
            negotiated.bitrate,
        )

        conn = self._client.open_connection(negotiated, config.audio_device, listener)
        if not conn.ok:
            kind = ErrorKind.CONNECTION_START_FAILED
            self._log.warning(
                "CONNECTION_START_FAILED address=%s app_id=%d status=%s detail=%s",
                host.address,
                app_id,
                conn.status.name,
                conn.detail,
            )
            return StreamStartResult.failed(kind, kind.format(), app_id=app_id)

        loop = InputCaptureLoop(
            self._input,
            self._client.submit_input,
            poll_hz=self._poll_hz,
            on_quit=on_quit,
            logger=self._log,
        )
        self._active = _ActiveStream(
            server=server,
            app_id=app_id,
            params=negotiated,
            quit_app_after=config.quit_app_after,
            loop=loop,
        )
        loop.start()

        self._log.info(
            "STREAM_STARTED address=%s app=%s app_id=%d gamepad_mask=0x%x formats=%s",
            host.address,
            config.app,
            app_id,
            mask,
            negotiated.video_formats,
        )
        return StreamStartResult(ok=True, app_id=app_id, params=negotiated)

    def stop_stream(self) -> None:
        active = self._active
        if active is None:
            return
        self._active = None

        self._log.info("STREAM_STOP address=%s app_id=%d", active.server.address, active.app_id)

        # input must be quiet before the connection goes away
        if not active.loop.stop_and_join(timeout=self._join_timeout_s):
            # at most one submit is in flight; the stop flag blocks the next one
            self._log.warning("INPUT_LOOP_JOIN_TIMEOUT timeout_s=%s waiting", self._join_timeout_s)
            active.loop.join()

        try:
            self._client.close_connection()
        except Exception:
            self._log.exception("CONNECTION_CLOSE_ERROR")

        if active.quit_app_after:
            self._log.debug("Sending app quit request ...")
            res = self._client.quit_app(active.server)
            if not res.ok:
                self._log.warning(
                    "APP_QUIT_FAILED address=%s status=%s detail=%s",
                    active.server.address,
                    res.status.name,
                    res.detail,
                )
