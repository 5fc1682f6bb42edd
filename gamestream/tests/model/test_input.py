from __future__ import annotations

from gamestream.model.host import HostRecord, ServerInfo
from gamestream.model.input import (
    A_FLAG,
    BACK_FLAG,
    LB_FLAG,
    MAX_GAMEPADS,
    PLAY_FLAG,
    QUIT_COMBO,
    RB_FLAG,
    ControllerEvent,
    ControllerState,
    InputState,
    gamepad_mask,
)


def test_gamepad_mask_one_bit_per_device() -> None:
    assert gamepad_mask(0) == 0
    assert gamepad_mask(1) == 0b1
    assert gamepad_mask(2) == 0b11
    assert gamepad_mask(4) == 0b1111


def test_gamepad_mask_is_clamped() -> None:
    assert gamepad_mask(-3) == 0
    assert gamepad_mask(MAX_GAMEPADS + 5) == (1 << MAX_GAMEPADS) - 1


def test_active_mask_skips_empty_slots() -> None:
    st = InputState(controllers=(ControllerState(), None, ControllerState()))
    assert st.active_mask == 0b101
    assert st.controller(1) is None
    assert st.controller(7) is None


def test_quit_combo_requires_all_buttons() -> None:
    assert ControllerState(buttons=QUIT_COMBO).is_quit_combo()
    assert ControllerState(buttons=QUIT_COMBO | A_FLAG).is_quit_combo()
    assert not ControllerState(buttons=PLAY_FLAG | BACK_FLAG | LB_FLAG).is_quit_combo()
    assert not ControllerState(buttons=RB_FLAG).is_quit_combo()


def test_controller_event_from_state() -> None:
    ev = ControllerEvent.from_state(2, 0b111, ControllerState(buttons=A_FLAG, left_trigger=10, right_y=-5))
    assert ev.controller_number == 2
    assert ev.active_mask == 0b111
    assert ev.buttons == A_FLAG
    assert ev.left_trigger == 10
    assert ev.right_y == -5


def test_host_record_updates_are_copies() -> None:
    rec = HostRecord(address="h")
    assert rec.running_app_id == 0

    info = ServerInfo(address="h", paired=True, current_game=7)
    updated = rec.with_server(info)
    assert updated.paired is True
    assert updated.running_app_id == 7
    assert rec.server is None

    paired = HostRecord(address="h").with_pairing(paired=True, current_game=0)
    assert paired.paired is True
    assert paired.server is not None and paired.server.paired is True
