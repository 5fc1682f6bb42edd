# gamestream/runtime/session_machine.py
from __future__ import annotations

import logging
import queue
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from gamestream.core.errors import ErrorKind, GameStreamError
from gamestream.engine.base import GsStatus, Outcome
from gamestream.engine.host_client import HostSessionClient
from gamestream.interfaces.input_capability import InputCapability
from gamestream.interfaces.renderer import Renderer
from gamestream.interfaces.system_shortcuts import SystemShortcuts
from gamestream.model.host import HostRecord, ServerInfo
from gamestream.model.stream import StreamConfig
from gamestream.runtime.input_loop import DEFAULT_POLL_HZ
from gamestream.runtime.pairing import PAIR_TIMEOUT_S, PairingHandler
from gamestream.runtime.state import (
    IllegalTransition,
    MenuEvent,
    PendingError,
    SessionSnapshot,
    SessionState,
    can_transition,
)
from gamestream.runtime.stream_lifecycle import StreamLifecycleController

OverrideLoader = Callable[[str], Mapping[str, object]]

NO_HOST_MESSAGE = (
    "Specify an IP address in the configuration file.\n"
    "Make sure the 'hosts' list is not empty."
)

_CONNECT_ERRORS: Dict[GsStatus, ErrorKind] = {
    GsStatus.OUT_OF_MEMORY: ErrorKind.OUT_OF_MEMORY,
    GsStatus.ERROR: ErrorKind.GAMESTREAM_ERROR,
    GsStatus.INVALID: ErrorKind.INVALID_RESPONSE,
    GsStatus.UNSUPPORTED_VERSION: ErrorKind.UNSUPPORTED_VERSION,
}


def classify_connect_failure(res: Outcome) -> Tuple[ErrorKind, str]:
    kind = _CONNECT_ERRORS.get(res.status, ErrorKind.CONNECT_FAILED)
    return kind, kind.format(detail=res.detail)


class SessionStateMachine:
    """
    Top-level session controller.

    Holds the current state, the known hosts, the selected host and the
    pending error, and applies at most one transition per step(). Everything
    here runs on the caller's thread; other threads only post() events.
    """

    def __init__(
        self,
        *,
        client: Optional[HostSessionClient],
        hosts: Sequence[HostRecord],
        stream_config: StreamConfig,
        input_capability: InputCapability,
        renderer: Optional[Renderer] = None,
        shortcuts: Optional[SystemShortcuts] = None,
        load_overrides: Optional[OverrideLoader] = None,
        pair_timeout_s: float = PAIR_TIMEOUT_S,
        poll_hz: float = DEFAULT_POLL_HZ,
        fatal_error: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._log = logger or logging.getLogger(__name__)
        self._client = client
        self._hosts: List[HostRecord] = list(hosts)
        self._base_config = stream_config
        self._config = stream_config
        self._renderer = renderer
        self._shortcuts = shortcuts
        self._load_overrides = load_overrides

        self._events: "queue.Queue[MenuEvent]" = queue.Queue()
        self._selected = 0
        self._current: Optional[int] = None
        self._pin: Optional[str] = None
        self._terminated_code: Optional[int] = None
        self._pending = PendingError.none()

        self._pairing: Optional[PairingHandler] = None
        self._lifecycle: Optional[StreamLifecycleController] = None
        if client is not None:
            self._pairing = PairingHandler(client, pair_timeout_s=pair_timeout_s, logger=self._log)
            self._lifecycle = StreamLifecycleController(
                client,
                input_capability,
                poll_hz=poll_hz,
                logger=self._log,
            )

        if fatal_error is not None or client is None:
            self._state = SessionState.INVALID
            self._pending = PendingError.error(fatal_error or "Streaming client is not available")
        elif not self._hosts:
            self._state = SessionState.INVALID
            self._pending = PendingError.error(NO_HOST_MESSAGE)
        elif len(self._hosts) == 1:
            # connect right away on first launch
            self._current = 0
            self._state = SessionState.CONNECTING
        else:
            self._state = SessionState.DISCONNECTED

        if self._state == SessionState.INVALID:
            self._log.error("SESSION_INVALID msg=%s", self._pending.message)

        self._handlers: Dict[SessionState, Callable[[List[MenuEvent]], None]] = {
            SessionState.INVALID: self._on_invalid,
            SessionState.DISCONNECTED: self._on_disconnected,
            SessionState.CONNECTING: self._on_connecting,
            SessionState.CONNECTED: self._on_connected,
            SessionState.PAIRING: self._on_pairing,
            SessionState.STARTING_STREAM: self._on_starting_stream,
            SessionState.STREAMING: self._on_streaming,
            SessionState.STOPPING_STREAM: self._on_stopping_stream,
        }

    # ------------------------------------------------------------------
    # read-only views
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def pending(self) -> PendingError:
        return self._pending

    @property
    def hosts(self) -> Tuple[HostRecord, ...]:
        return tuple(self._hosts)

    @property
    def selected(self) -> int:
        return self._selected

    @property
    def current_host(self) -> Optional[HostRecord]:
        if self._current is None:
            return None
        return self._hosts[self._current]

    @property
    def effective_config(self) -> StreamConfig:
        return self._config

    @property
    def lifecycle(self) -> Optional[StreamLifecycleController]:
        return self._lifecycle

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            host=self.current_host,
            pending=self._pending,
            hosts=tuple(self._hosts),
            selected=self._selected,
            pin=self._pin,
        )

    # ------------------------------------------------------------------
    # event intake
    # ------------------------------------------------------------------
    def post(self, event: MenuEvent) -> None:
        """Queue an event for the next step(); safe from any thread."""
        self._events.put(event)

    def on_connection_terminated(self, error_code: int) -> None:
        # engine callback thread
        self._log.warning("CONNECTION_TERMINATED error_code=%d", int(error_code))
        self._terminated_code = int(error_code)
        self.post(MenuEvent.STREAM_ERROR)

    def _drain_events(self, external: Iterable[MenuEvent]) -> List[MenuEvent]:
        out: List[MenuEvent] = []
        while True:
            try:
                out.append(self._events.get_nowait())
            except queue.Empty:
                break
        out.extend(external)
        return out

    # ------------------------------------------------------------------
    # main loop turn
    # ------------------------------------------------------------------
    def step(self, events: Iterable[MenuEvent] = ()) -> SessionState:
        batch = self._drain_events(events)
        self._render()
        self._handlers[self._state](batch)
        return self._state

    def shutdown(self) -> None:
        """Tear down an active stream when the process is stopping."""
        if self._lifecycle is not None and self._lifecycle.is_streaming:
            self._log.info("SESSION_SHUTDOWN_STOP_STREAM")
            self._lifecycle.stop_stream()
            self._set_home_enabled(True)

    def _transition(
        self,
        target: SessionState,
        *,
        pending: Optional[PendingError] = None,
        preserve: bool = False,
    ) -> None:
        if not can_transition(self._state, target):
            raise IllegalTransition(self._state, target)

        self._log.info("SESSION_TRANSITION %s -> %s", self._state.name, target.name)
        self._state = target
        if pending is not None:
            self._pending = pending
        elif not preserve:
            self._pending = PendingError.none()

    def _render(self) -> None:
        if self._renderer is None:
            return
        try:
            self._renderer.render(self.snapshot())
        except Exception:
            self._log.exception("RENDER_ERROR state=%s", self._state.name)

    def _set_home_enabled(self, enabled: bool) -> None:
        if self._shortcuts is None:
            return
        try:
            self._shortcuts.set_home_enabled(enabled)
        except Exception:
            self._log.exception("HOME_SHORTCUT_TOGGLE_ERROR enabled=%s", enabled)

    def _replace_current(self, record: HostRecord) -> None:
        assert self._current is not None
        self._hosts[self._current] = record

    def _require_client(self) -> HostSessionClient:
        if self._client is None:
            raise RuntimeError("SessionStateMachine has no client")
        return self._client

    # ------------------------------------------------------------------
    # state handlers
    # ------------------------------------------------------------------
    def _on_invalid(self, events: List[MenuEvent]) -> None:
        return

    def _on_disconnected(self, events: List[MenuEvent]) -> None:
        count = len(self._hosts)
        for ev in events:
            if ev == MenuEvent.CONFIRM:
                self._current = self._selected
                self._transition(SessionState.CONNECTING)
                return
            if ev == MenuEvent.DOWN:
                self._selected = (self._selected + 1) % count
            elif ev == MenuEvent.UP:
                self._selected = max(self._selected - 1, 0)

    def _on_connecting(self, events: List[MenuEvent]) -> None:
        client = self._require_client()
        host = self.current_host
        assert host is not None

        try:
            overrides = self._load_overrides(host.address) if self._load_overrides else host.overrides
            self._config = self._base_config.merged(overrides)
        except (GameStreamError, ValueError, OSError) as e:
            detail = str(e)
            if isinstance(e, GameStreamError) and e.hint:
                detail = f"{e.message}\n{e.hint}"
            self._log.warning("HOST_CONFIG_INVALID address=%s err=%s", host.address, detail)
            self._transition(
                SessionState.DISCONNECTED,
                pending=PendingError.error(ErrorKind.HOST_CONFIG_INVALID.format(detail=detail)),
            )
            return
        host = host.with_overrides(overrides)
        self._replace_current(host)

        self._log.info("Connecting to %s...", host.address)
        res = client.query_status(host.address, allow_unsupported=self._config.unsupported)
        if not res.ok or res.value is None:
            kind, msg = classify_connect_failure(res)
            self._log.warning(
                "HOST_STATUS_FAILED address=%s status=%s kind=%s detail=%s",
                host.address,
                res.status.name,
                kind.name,
                res.detail,
            )
            self._transition(SessionState.DISCONNECTED, pending=PendingError.error(msg))
            return

        server: ServerInfo = res.value
        self._replace_current(host.with_server(server))
        self._log.debug(
            "NVIDIA %s, GFE %s (%s, %s)",
            server.gpu_type,
            server.gfe_version,
            server.gs_version,
            server.app_version,
        )
        self._log.debug("Server codec flags: 0x%x", server.codec_support)

        if self._config.autostream:
            self._transition(SessionState.STARTING_STREAM)
            return
        self._transition(SessionState.CONNECTED)

    def _on_connected(self, events: List[MenuEvent]) -> None:
        for ev in events:
            if ev == MenuEvent.CONFIRM:
                self._transition(SessionState.STARTING_STREAM)
                return
            if ev == MenuEvent.PAIR:
                self._transition(SessionState.PAIRING)
                return
            if ev == MenuEvent.BACK:
                self._transition(SessionState.DISCONNECTED)
                return

    def _on_pairing(self, events: List[MenuEvent]) -> None:
        assert self._pairing is not None
        host = self.current_host
        assert host is not None

        try:
            result = self._pairing.pair(host, on_pin=self._show_pin)
        finally:
            self._pin = None

        if not result.ok:
            self._transition(SessionState.CONNECTED, pending=PendingError.error(result.error or ""))
            return

        self._replace_current(host.with_pairing(paired=result.paired, current_game=result.current_game))
        notice = PendingError.info("Successfully paired")

        if result.current_game != 0:
            # host is still running a session from elsewhere; reconnect first
            self._log.info("PAIRING_STALE_SESSION address=%s current_game=%d", host.address, result.current_game)
            self._transition(SessionState.DISCONNECTED, pending=notice)
            return
        self._transition(SessionState.CONNECTED, pending=notice)

    def _show_pin(self, pin: str) -> None:
        self._pin = pin
        self._log.info("Please enter the following PIN on the target PC: %s", pin)
        self._render()

    def _on_starting_stream(self, events: List[MenuEvent]) -> None:
        assert self._lifecycle is not None
        host = self.current_host
        assert host is not None

        if not host.paired:
            kind = ErrorKind.NOT_PAIRED
            self._log.warning("STREAM_NOT_PAIRED address=%s", host.address)
            self._transition(SessionState.CONNECTED, pending=PendingError.error(kind.format()))
            return

        self._terminated_code = None
        result = self._lifecycle.start_stream(
            host,
            self._config,
            listener=self,
            on_quit=lambda: self.post(MenuEvent.STOP_STREAM),
        )
        if not result.ok:
            if result.kind == ErrorKind.CONNECTION_START_FAILED and result.app_id is not None:
                # the host launched the app even though we never connected
                self._quit_launched_app(host, result.app_id)
            self._transition(SessionState.CONNECTED, pending=PendingError.error(result.message))
            return

        self._set_home_enabled(False)
        self._transition(SessionState.STREAMING)

    def _quit_launched_app(self, host: HostRecord, app_id: int) -> None:
        server = host.server or ServerInfo(address=host.address)
        res = self._require_client().quit_app(server)
        if res.ok:
            self._replace_current(host.with_pairing(paired=host.paired, current_game=0))
            return
        # single attempt; the record keeps the app the host still runs
        self._log.warning(
            "APP_QUIT_FAILED address=%s app_id=%d status=%s detail=%s",
            host.address,
            int(app_id),
            res.status.name,
            res.detail,
        )
        self._replace_current(host.with_pairing(paired=host.paired, current_game=app_id))

    def _on_streaming(self, events: List[MenuEvent]) -> None:
        for ev in events:
            if ev == MenuEvent.STOP_STREAM:
                self._transition(SessionState.STOPPING_STREAM)
                return
            if ev == MenuEvent.STREAM_ERROR:
                code = self._terminated_code if self._terminated_code is not None else -1
                msg = ErrorKind.CONNECTION_TERMINATED.format(code=code)
                self._transition(SessionState.STOPPING_STREAM, pending=PendingError.error(msg))
                return

    def _on_stopping_stream(self, events: List[MenuEvent]) -> None:
        assert self._lifecycle is not None
        try:
            self._lifecycle.stop_stream()
        finally:
            self._set_home_enabled(True)
        self._transition(SessionState.DISCONNECTED, preserve=True)
