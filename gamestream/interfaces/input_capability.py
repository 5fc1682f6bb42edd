from __future__ import annotations

from typing import Protocol

from gamestream.model.input import InputState


class InputCapability(Protocol):
    """Read-only view of the local input devices (platform polling lives elsewhere)."""
    def count_attached_devices(self) -> int: ...
    def sample_current_input_state(self) -> InputState: ...
