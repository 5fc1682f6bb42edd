from __future__ import annotations

import time

import pytest

from gamestream.model.input import A_FLAG, QUIT_COMBO, ControllerState, InputState
from gamestream.runtime.input_loop import InputCaptureLoop


class FakeInput:
    def __init__(self, *pads):
        self.pads = list(pads)
        self.samples = 0
        self.raise_once = False

    def count_attached_devices(self) -> int:
        return sum(1 for p in self.pads if p is not None)

    def sample_current_input_state(self) -> InputState:
        self.samples += 1
        if self.raise_once:
            self.raise_once = False
            raise RuntimeError("boom")
        return InputState(controllers=tuple(self.pads))


def test_poll_hz_must_be_positive():
    with pytest.raises(ValueError):
        InputCaptureLoop(FakeInput(), lambda ev: None, poll_hz=0)


def test_only_changes_are_submitted():
    inp = FakeInput(ControllerState())
    sent = []
    loop = InputCaptureLoop(inp, sent.append)

    loop._poll_once()
    assert len(sent) == 1
    assert sent[0].controller_number == 0
    assert sent[0].active_mask == 0b1

    loop._poll_once()
    loop._poll_once()
    assert len(sent) == 1

    inp.pads[0] = ControllerState(buttons=A_FLAG)
    loop._poll_once()
    assert len(sent) == 2
    assert sent[-1].buttons == A_FLAG
    assert loop.events_sent == 2
    assert loop.samples == 4


def test_mask_change_resends_present_pads_and_neutralises_detached():
    inp = FakeInput(ControllerState(buttons=A_FLAG), ControllerState(left_x=100))
    sent = []
    loop = InputCaptureLoop(inp, sent.append)
    loop._poll_once()
    assert [e.controller_number for e in sent] == [0, 1]

    sent.clear()
    inp.pads[1] = None
    loop._poll_once()

    assert [e.controller_number for e in sent] == [0, 1]
    assert all(e.active_mask == 0b1 for e in sent)
    neutral = sent[1]
    assert neutral.buttons == 0 and neutral.left_x == 0

    sent.clear()
    loop._poll_once()
    assert sent == []


def test_quit_combo_requests_stop_once_and_is_not_forwarded():
    inp = FakeInput(ControllerState(buttons=QUIT_COMBO))
    sent = []
    quits = []
    loop = InputCaptureLoop(inp, sent.append, on_quit=lambda: quits.append(1))

    loop._poll_once()
    loop._poll_once()

    assert quits == [1]
    assert sent == []


def test_loop_stops_within_a_period():
    inp = FakeInput(ControllerState())
    loop = InputCaptureLoop(inp, lambda ev: None, poll_hz=200)

    loop.start()
    deadline = time.time() + 0.5
    while inp.samples < 3 and time.time() < deadline:
        time.sleep(0.005)

    t0 = time.time()
    assert loop.stop_and_join(timeout=0.5) is True
    assert time.time() - t0 < 0.5
    assert not loop.is_alive()

    # no samples after the join
    n = inp.samples
    time.sleep(0.03)
    assert inp.samples == n


def test_loop_survives_sampling_exception():
    inp = FakeInput(ControllerState())
    inp.raise_once = True
    loop = InputCaptureLoop(inp, lambda ev: None, poll_hz=200)

    loop.start()
    deadline = time.time() + 0.5
    while inp.samples < 3 and time.time() < deadline:
        time.sleep(0.005)
    loop.stop_and_join(timeout=0.5)

    assert inp.samples >= 3
    assert not loop.is_alive()
