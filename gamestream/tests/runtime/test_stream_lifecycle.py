from __future__ import annotations

from dataclasses import replace
import threading
import time

import pytest

from gamestream.core.errors import ErrorKind
from gamestream.engine.base import GsStatus, Outcome
from gamestream.engine.host_client import HostSessionClient
from gamestream.engine.simulated import SimulatedEngine, demo_hosts
from gamestream.model.host import HostRecord
from gamestream.model.input import ControllerState, InputState
from gamestream.model.stream import StreamConfig
from gamestream.runtime.stream_lifecycle import StreamLifecycleController, classify_start_failure

ADDR = "10.0.0.2"


class FakeInput:
    def __init__(self, count: int = 1):
        self.count = count

    def count_attached_devices(self) -> int:
        return self.count

    def sample_current_input_state(self) -> InputState:
        return InputState(controllers=tuple(ControllerState() for _ in range(self.count)))


class CallLogEngine(SimulatedEngine):
    def __init__(self, hosts, *, fail_connection: bool = False, fail_quit: bool = False):
        super().__init__(hosts)
        self.calls: list[str] = []
        self.fail_connection = fail_connection
        self.fail_quit = fail_quit
        self.start_masks: list[int] = []
        self.loop_alive_at_close = None
        self.loop = None

    def list_applications(self, server):
        self.calls.append("list_applications")
        return super().list_applications(server)

    def start_application(self, server, app_id, params, gamepad_mask, **kw):
        self.calls.append("start_application")
        self.start_masks.append(gamepad_mask)
        return super().start_application(server, app_id, params, gamepad_mask, **kw)

    def open_stream_connection(self, params, audio_device, listener=None):
        self.calls.append("open_stream_connection")
        if self.fail_connection:
            return Outcome.failure(GsStatus.FAILED, "rtsp handshake failed")
        return super().open_stream_connection(params, audio_device, listener)

    def close_stream_connection(self):
        self.calls.append("close_stream_connection")
        if self.loop is not None:
            self.loop_alive_at_close = self.loop.is_alive()
        super().close_stream_connection()

    def request_app_quit(self, server):
        self.calls.append("request_app_quit")
        if self.fail_quit:
            return Outcome.failure(GsStatus.FAILED, "busy")
        return super().request_app_quit(server)


def _setup(*, paired: bool = True, gamepads: int = 1, **engine_kw):
    hosts = demo_hosts([ADDR])
    hosts[ADDR].server = replace(hosts[ADDR].server, paired=paired)
    eng = CallLogEngine(hosts, **engine_kw)
    client = HostSessionClient(eng)
    info = client.query_status(ADDR).value
    host = HostRecord(address=ADDR).with_server(info)
    ctl = StreamLifecycleController(client, FakeInput(gamepads), poll_hz=200)
    return eng, ctl, host


def test_resolve_app_id():
    eng, ctl, host = _setup()
    assert ctl.resolve_app_id(host.server, "Steam").value == 1
    assert ctl.resolve_app_id(host.server, "Desktop").value == 2

    missing = ctl.resolve_app_id(host.server, "steam")
    assert missing.ok and missing.value is None


def test_resolve_app_id_list_failure():
    eng, ctl, host = _setup()
    eng.hosts[ADDR].reachable = False
    assert not ctl.resolve_app_id(host.server, "Steam").ok


def test_unknown_app_never_starts():
    eng, ctl, host = _setup()
    res = ctl.start_stream(host, StreamConfig(app="Unknown"))

    assert not res.ok
    assert res.kind == ErrorKind.APP_NOT_FOUND
    assert res.message == "Can't find app Unknown"
    assert "start_application" not in eng.calls
    assert not ctl.is_streaming


def test_4k_failure_message():
    eng, ctl, host = _setup()
    res = ctl.start_stream(host, StreamConfig(width=3840, height=2160))

    assert res.kind == ErrorKind.NOT_SUPPORTED_4K
    assert res.message == "Server doesn't support 4K"
    assert "open_stream_connection" not in eng.calls


def test_unsupported_mode_message():
    eng, ctl, host = _setup()
    eng.query_host_status(ADDR, False)
    res = ctl.start_stream(host, StreamConfig(fps=30, unsupported=False))

    assert res.kind == ErrorKind.NOT_SUPPORTED_MODE
    assert "1280x720 (30 fps)" in res.message


def test_start_and_stop_ordering():
    eng, ctl, host = _setup(gamepads=2)
    res = ctl.start_stream(host, StreamConfig(quit_app_after=True))

    assert res.ok
    assert res.app_id == 1
    assert eng.start_masks == [0b11]
    assert ctl.is_streaming
    loop = ctl.input_loop
    assert loop is not None and loop.is_alive()

    eng.loop = loop
    ctl.stop_stream()

    assert eng.calls[-2:] == ["close_stream_connection", "request_app_quit"]
    assert eng.loop_alive_at_close is False
    assert not loop.is_alive()
    assert not ctl.is_streaming
    assert eng.hosts[ADDR].server.current_game == 0


def test_stop_without_quit_leaves_app_running():
    eng, ctl, host = _setup()
    assert ctl.start_stream(host, StreamConfig(app="Desktop")).ok
    ctl.stop_stream()

    assert "request_app_quit" not in eng.calls
    assert eng.hosts[ADDR].server.current_game == 2


def test_stop_quit_failure_is_not_raised():
    eng, ctl, host = _setup(fail_quit=True)
    assert ctl.start_stream(host, StreamConfig(quit_app_after=True)).ok
    ctl.stop_stream()
    assert eng.calls[-1] == "request_app_quit"


def test_stop_is_noop_when_idle():
    eng, ctl, host = _setup()
    ctl.stop_stream()
    assert "close_stream_connection" not in eng.calls


def test_connection_failure_reports_app_id():
    eng, ctl, host = _setup(fail_connection=True)
    res = ctl.start_stream(host, StreamConfig())

    assert res.kind == ErrorKind.CONNECTION_START_FAILED
    assert res.app_id == 1
    assert not ctl.is_streaming


def test_double_start_raises():
    eng, ctl, host = _setup()
    assert ctl.start_stream(host, StreamConfig()).ok
    try:
        with pytest.raises(RuntimeError):
            ctl.start_stream(host, StreamConfig())
    finally:
        ctl.stop_stream()


def test_input_reaches_engine_while_streaming():
    eng, ctl, host = _setup()
    assert ctl.start_stream(host, StreamConfig()).ok
    loop = ctl.input_loop

    deadline = time.time() + 0.5
    while not eng.input_events and time.time() < deadline:
        time.sleep(0.005)
    ctl.stop_stream()

    assert eng.input_events
    assert loop.events_sent >= 1


class SlowSubmitEngine(CallLogEngine):
    def __init__(self, hosts, *, delay_s: float):
        super().__init__(hosts)
        self.delay_s = delay_s
        self.in_submit = threading.Event()
        self.submits_after_close = 0

    def submit_input_event(self, event):
        self.in_submit.set()
        time.sleep(self.delay_s)
        if not self.connection_open:
            self.submits_after_close += 1
        super().submit_input_event(event)


def test_stop_waits_for_in_flight_submit_before_close():
    hosts = demo_hosts([ADDR])
    hosts[ADDR].server = replace(hosts[ADDR].server, paired=True)
    eng = SlowSubmitEngine(hosts, delay_s=0.3)
    client = HostSessionClient(eng)
    host = HostRecord(address=ADDR).with_server(client.query_status(ADDR).value)
    ctl = StreamLifecycleController(client, FakeInput(1), poll_hz=200, join_timeout_s=0.02)

    assert ctl.start_stream(host, StreamConfig()).ok
    loop = ctl.input_loop
    eng.loop = loop
    assert eng.in_submit.wait(1.0)

    ctl.stop_stream()

    assert not loop.is_alive()
    assert eng.loop_alive_at_close is False
    assert eng.submits_after_close == 0
    assert eng.dropped_input_events == 0


@pytest.mark.parametrize(
    "status, detail, kind, message",
    [
        (GsStatus.NOT_SUPPORTED_4K, "", ErrorKind.NOT_SUPPORTED_4K, "Server doesn't support 4K"),
        (
            GsStatus.NOT_SUPPORTED_MODE,
            "",
            ErrorKind.NOT_SUPPORTED_MODE,
            "Server doesn't support 1600x900 (30 fps) or enable unsupported resolutions",
        ),
        (
            GsStatus.NOT_SUPPORTED_SOPS_RESOLUTION,
            "",
            ErrorKind.NOT_SUPPORTED_SOPS_RESOLUTION,
            "Optimal Playable Settings isn't supported for the resolution 1600x900, "
            "use supported resolution or disable sops",
        ),
        (GsStatus.ERROR, "host busy", ErrorKind.STREAM_ERROR, "Gamestream error: host busy"),
        (GsStatus.ERROR, "", ErrorKind.STREAM_ERROR, "Gamestream error: unknown error"),
        (GsStatus.IO_ERROR, "", ErrorKind.START_FAILED, "Errorcode starting app: -9"),
        (GsStatus.FAILED, "x", ErrorKind.START_FAILED, "Errorcode starting app: -1"),
    ],
)
def test_classify_start_failure_messages(status, detail, kind, message):
    cfg = StreamConfig(width=1600, height=900, fps=30)
    got_kind, got_msg = classify_start_failure(Outcome.failure(status, detail), cfg)
    assert got_kind == kind
    assert got_msg == message


def test_sops_failure_through_start_stream():
    eng, ctl, host = _setup()
    res = ctl.start_stream(host, StreamConfig(width=1600, height=900, sops=True))

    assert res.kind == ErrorKind.NOT_SUPPORTED_SOPS_RESOLUTION
    assert "1600x900" in res.message
    assert res.app_id == 1
    assert "open_stream_connection" not in eng.calls


def test_host_error_through_start_stream():
    eng, ctl, host = _setup(paired=False)
    res = ctl.start_stream(host, StreamConfig())

    assert res.kind == ErrorKind.STREAM_ERROR
    assert res.message == "Gamestream error: Client is not paired"
