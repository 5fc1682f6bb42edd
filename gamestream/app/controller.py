# gamestream/app/controller.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from gamestream.interfaces.menu_events import MenuEventSource
from gamestream.runtime.session_machine import SessionStateMachine
from gamestream.runtime.state import SessionState

FRAME_INTERVAL_S = 1.0 / 60.0


class SessionController:
    """
    App-level main loop: reads menu events and steps the state machine
    until told to stop.
    """

    def __init__(
        self,
        machine: SessionStateMachine,
        events: MenuEventSource,
        *,
        frame_interval_s: float = FRAME_INTERVAL_S,
        logger: Optional[logging.Logger] = None,
    ):
        self._machine = machine
        self._events = events
        self._frame_interval_s = float(frame_interval_s)
        self._log = logger or logging.getLogger(__name__)
        self._stop_event = threading.Event()

    @property
    def machine(self) -> SessionStateMachine:
        return self._machine

    @property
    def state(self) -> SessionState:
        return self._machine.state

    def run(self, keep_running: Optional[Callable[[], bool]] = None) -> int:
        """
        Run until stop() is called or `keep_running` returns False.

        Returns the process exit status (always 0).
        """
        self._stop_event.clear()
        try:
            while not self._stop_event.is_set():
                if keep_running is not None and not keep_running():
                    break
                self.step_once()
                self._stop_event.wait(self._frame_interval_s)
        finally:
            self.shutdown()
        return 0

    def step_once(self) -> SessionState:
        try:
            events = self._events.read_events()
        except Exception:
            self._log.exception("EVENT_SOURCE_ERROR")
            events = []
        return self._machine.step(events)

    def stop(self) -> None:
        self._stop_event.set()

    def shutdown(self) -> None:
        try:
            self._machine.shutdown()
        except Exception:
            self._log.exception("SESSION_SHUTDOWN_ERROR")

    def __enter__(self) -> "SessionController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
        self.shutdown()
