from __future__ import annotations

import io
import time

from gamestream.app.console import ConsoleEventSource, ConsoleRenderer, LoggingShortcuts, SimulatedInput
from gamestream.model.host import HostRecord
from gamestream.runtime.state import MenuEvent, PendingError, SessionSnapshot, SessionState


def _wait_closed(src: ConsoleEventSource) -> list:
    events = []
    deadline = time.time() + 1.0
    while time.time() < deadline:
        events.extend(src.read_events())
        if src.closed:
            break
        time.sleep(0.005)
    return events


def test_event_source_maps_keys_and_closes_on_exit():
    src = ConsoleEventSource(io.StringIO("a\nDOWN\nnonsense\nx\nexit\nb\n"))
    src.start()
    events = _wait_closed(src)

    assert events == [MenuEvent.CONFIRM, MenuEvent.DOWN, MenuEvent.PAIR]
    assert src.closed


def test_event_source_closes_at_end_of_input():
    src = ConsoleEventSource(io.StringIO("q\n"))
    src.start()
    assert _wait_closed(src) == [MenuEvent.STOP_STREAM]


def test_renderer_skips_identical_snapshots():
    out = io.StringIO()
    r = ConsoleRenderer(out=out)
    snap = SessionSnapshot(state=SessionState.CONNECTING, host=HostRecord(address="10.0.0.2"), pending=PendingError.none())

    r.render(snap)
    r.render(snap)

    assert out.getvalue().count("Connecting to 10.0.0.2...") == 1


def test_renderer_formats_host_list_and_pending():
    r = ConsoleRenderer(title="gs")
    snap = SessionSnapshot(
        state=SessionState.DISCONNECTED,
        host=None,
        pending=PendingError.error("Can't connect to server"),
        hosts=(HostRecord(address="a"), HostRecord(address="b")),
        selected=1,
    )
    text = r.format(snap)

    assert text.splitlines()[0] == "gs (Disconnected), press a to select"
    assert "  Connect to a" in text
    assert "> Connect to b" in text
    assert text.endswith("[error] Can't connect to server")


def test_renderer_shows_pin_while_pairing():
    r = ConsoleRenderer()
    snap = SessionSnapshot(
        state=SessionState.PAIRING,
        host=HostRecord(address="h"),
        pending=PendingError.none(),
        pin="0421",
    )
    assert "0421" in r.format(snap)


def test_simulated_input_and_shortcuts():
    inp = SimulatedInput(gamepads=2)
    assert inp.count_attached_devices() == 2
    assert inp.sample_current_input_state().active_mask == 0b11

    inp.set_controller(3, None)
    inp.hold_quit_combo(0)
    st = inp.sample_current_input_state()
    assert st.controller(0).is_quit_combo()
    assert inp.count_attached_devices() == 2

    sc = LoggingShortcuts()
    sc.set_home_enabled(False)
    assert sc.home_enabled is False
