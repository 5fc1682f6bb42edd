# gamestream/model/input.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

MAX_GAMEPADS = 16

# Controller button flags (GameStream layout).
UP_FLAG = 0x0001
DOWN_FLAG = 0x0002
LEFT_FLAG = 0x0004
RIGHT_FLAG = 0x0008
PLAY_FLAG = 0x0010
BACK_FLAG = 0x0020
LS_CLK_FLAG = 0x0040
RS_CLK_FLAG = 0x0080
LB_FLAG = 0x0100
RB_FLAG = 0x0200
SPECIAL_FLAG = 0x0400
A_FLAG = 0x1000
B_FLAG = 0x2000
X_FLAG = 0x4000
Y_FLAG = 0x8000

# Start + Select + LB + RB held together ends the stream.
QUIT_COMBO = PLAY_FLAG | BACK_FLAG | LB_FLAG | RB_FLAG


@dataclass(frozen=True)
class ControllerState:
    buttons: int = 0
    left_trigger: int = 0    # 0..255
    right_trigger: int = 0   # 0..255
    left_x: int = 0          # -32768..32767
    left_y: int = 0
    right_x: int = 0
    right_y: int = 0

    def is_quit_combo(self) -> bool:
        return (self.buttons & QUIT_COMBO) == QUIT_COMBO


@dataclass(frozen=True)
class InputState:
    """
    One sample of all local controllers, indexed by slot.

    A slot holding None has no device attached.
    """
    controllers: Tuple[Optional[ControllerState], ...] = ()

    @property
    def active_mask(self) -> int:
        mask = 0
        for i, c in enumerate(self.controllers[:MAX_GAMEPADS]):
            if c is not None:
                mask |= 1 << i
        return mask

    def controller(self, index: int) -> Optional[ControllerState]:
        if 0 <= index < len(self.controllers):
            return self.controllers[index]
        return None


@dataclass(frozen=True)
class ControllerEvent:
    """A multi-controller event as submitted to the streaming engine."""
    controller_number: int
    active_mask: int
    buttons: int
    left_trigger: int
    right_trigger: int
    left_x: int
    left_y: int
    right_x: int
    right_y: int

    @classmethod
    def from_state(cls, index: int, active_mask: int, state: ControllerState) -> "ControllerEvent":
        return cls(
            controller_number=index,
            active_mask=active_mask,
            buttons=state.buttons,
            left_trigger=state.left_trigger,
            right_trigger=state.right_trigger,
            left_x=state.left_x,
            left_y=state.left_y,
            right_x=state.right_x,
            right_y=state.right_y,
        )


def gamepad_mask(count: int) -> int:
    """One bit per attached controller, low to high."""
    n = max(0, min(int(count), MAX_GAMEPADS))
    return (1 << n) - 1
