# gamestream/runtime/input_loop.py
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from gamestream.interfaces.input_capability import InputCapability
from gamestream.model.input import MAX_GAMEPADS, ControllerEvent, ControllerState, InputState

DEFAULT_POLL_HZ = 100.0

SubmitFn = Callable[[ControllerEvent], None]


class InputCaptureLoop(threading.Thread):
    """
    Thread that samples local input at a fixed cadence and forwards changes
    to the streaming engine.

    One instance per stream: the last-sampled state starts empty, and a
    stopped thread is never restarted.
    """

    def __init__(
        self,
        capability: InputCapability,
        submit: SubmitFn,
        *,
        poll_hz: float = DEFAULT_POLL_HZ,
        on_quit: Optional[Callable[[], None]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(name="input-capture", daemon=True)
        if poll_hz <= 0:
            raise ValueError("poll_hz must be > 0")
        self._capability = capability
        self._submit = submit
        self._on_quit = on_quit
        self._log = logger or logging.getLogger(__name__)
        self.period_s = 1.0 / float(poll_hz)

        self._stop_event = threading.Event()
        self._last: List[Optional[ControllerState]] = [None] * MAX_GAMEPADS
        self._last_mask = 0
        self._quit_sent = False

        self.samples = 0
        self.events_sent = 0

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._poll_once()
            except Exception:
                self._log.exception("INPUT_LOOP_EXCEPTION samples=%d", self.samples)
            self._stop_event.wait(self.period_s)

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def stop_and_join(self, timeout: Optional[float] = None) -> bool:
        """Signal stop and wait for the thread; returns True once it has exited."""
        self.stop()
        if self.is_alive():
            self.join(timeout=timeout)
        return not self.is_alive()

    def _poll_once(self) -> None:
        state: InputState = self._capability.sample_current_input_state()
        self.samples += 1

        mask = state.active_mask
        mask_changed = mask != self._last_mask

        for i in range(MAX_GAMEPADS):
            cur = state.controller(i)
            prev = self._last[i]

            if cur is not None and cur.is_quit_combo():
                self._request_quit()
                return

            if cur == prev and not (mask_changed and cur is not None):
                continue

            self._last[i] = cur
            if self._stop_event.is_set():
                return
            # a detached pad is reported once as neutral so the host releases its buttons
            ev = ControllerEvent.from_state(i, mask, cur if cur is not None else ControllerState())
            self._submit(ev)
            self.events_sent += 1

        self._last_mask = mask

    def _request_quit(self) -> None:
        if self._quit_sent:
            return
        self._quit_sent = True
        self._log.info("INPUT_QUIT_COMBO")
        if self._on_quit is not None:
            self._on_quit()
