# gamestream/app/console.py
from __future__ import annotations

import logging
import queue
import sys
import threading
from threading import Lock
from typing import Dict, List, Optional, TextIO

from gamestream.model.input import ControllerState, InputState, QUIT_COMBO
from gamestream.runtime.state import MenuEvent, SessionSnapshot, SessionState

SCREEN_BAR = "━" * 40

KEYMAP: Dict[str, MenuEvent] = {
    "a": MenuEvent.CONFIRM,
    "": MenuEvent.CONFIRM,
    "b": MenuEvent.BACK,
    "x": MenuEvent.PAIR,
    "up": MenuEvent.UP,
    "u": MenuEvent.UP,
    "down": MenuEvent.DOWN,
    "d": MenuEvent.DOWN,
    "q": MenuEvent.STOP_STREAM,
}


class ConsoleRenderer:
    """
    Prints one screen per distinct snapshot.

    Repeated identical snapshots (the main loop renders every turn) are
    skipped.
    """

    def __init__(self, *, out: Optional[TextIO] = None, title: str = "gamestream"):
        self._out = out or sys.stdout
        self._title = title
        self._last: Optional[SessionSnapshot] = None
        self._lock = Lock()

    def render(self, snapshot: SessionSnapshot) -> None:
        with self._lock:
            if snapshot == self._last:
                return
            self._last = snapshot

        print(self.format(snapshot), file=self._out, flush=True)

    def format(self, snap: SessionSnapshot) -> str:
        addr = snap.host.address if snap.host is not None else "?"
        st = snap.state
        lines: List[str] = []

        if st == SessionState.INVALID:
            lines.append(f"{self._title} (Invalid configuration)")
        elif st == SessionState.DISCONNECTED:
            lines.append(f"{self._title} (Disconnected), press a to select")
            lines.append(SCREEN_BAR)
            for i, h in enumerate(snap.hosts):
                marker = ">" if i == snap.selected else " "
                lines.append(f"{marker} Connect to {h.address}")
        elif st == SessionState.CONNECTING:
            lines.append(f"Connecting to {addr}...")
        elif st == SessionState.CONNECTED:
            lines.append(f"{self._title} (Connected to {addr})")
            lines.append(SCREEN_BAR)
            lines.append("Press a to stream\nPress x to pair\n\nPress b to go back")
        elif st == SessionState.PAIRING:
            if snap.pin:
                lines.append(f"Please enter the following PIN on the target PC:\n{snap.pin}")
            else:
                lines.append(f"Pairing with {addr}...")
        elif st == SessionState.STARTING_STREAM:
            lines.append("Starting stream...")
        elif st == SessionState.STREAMING:
            lines.append(f"Streaming from {addr} (press q to stop)")
        elif st == SessionState.STOPPING_STREAM:
            lines.append("Stopping stream...")

        if snap.pending:
            tag = "error" if snap.pending.is_error else "ok"
            lines.append(f"[{tag}] {snap.pending.message}")

        return "\n".join(lines)


class ConsoleEventSource:
    """
    Reads menu keys from a text stream on a background thread.

    One key per line; 'exit' or end of input closes the source.
    """

    def __init__(self, stream: Optional[TextIO] = None, *, logger: Optional[logging.Logger] = None):
        self._stream = stream or sys.stdin
        self._log = logger or logging.getLogger(__name__)
        self._queue: "queue.Queue[MenuEvent]" = queue.Queue()
        self._closed = threading.Event()
        self._thread = threading.Thread(target=self._read_loop, name="console-input", daemon=True)

    @property
    def closed(self) -> bool:
        return self._closed.is_set() and self._queue.empty()

    def start(self) -> None:
        self._thread.start()

    def read_events(self) -> List[MenuEvent]:
        out: List[MenuEvent] = []
        while True:
            try:
                out.append(self._queue.get_nowait())
            except queue.Empty:
                return out

    def _read_loop(self) -> None:
        try:
            for line in self._stream:
                key = line.strip().lower()
                if key in ("exit", "quit"):
                    break
                ev = KEYMAP.get(key)
                if ev is None:
                    self._log.warning("UNKNOWN_KEY key=%r (use a/b/x/up/down/q/exit)", key)
                    continue
                self._queue.put(ev)
        finally:
            self._closed.set()


class SimulatedInput:
    """Input capability with a fixed number of idle controllers."""

    def __init__(self, gamepads: int = 1):
        self._lock = Lock()
        self._controllers: List[Optional[ControllerState]] = [ControllerState() for _ in range(max(0, gamepads))]

    def count_attached_devices(self) -> int:
        with self._lock:
            return sum(1 for c in self._controllers if c is not None)

    def sample_current_input_state(self) -> InputState:
        with self._lock:
            return InputState(controllers=tuple(self._controllers))

    def set_controller(self, index: int, state: Optional[ControllerState]) -> None:
        with self._lock:
            while len(self._controllers) <= index:
                self._controllers.append(None)
            self._controllers[index] = state

    def hold_quit_combo(self, index: int = 0) -> None:
        self.set_controller(index, ControllerState(buttons=QUIT_COMBO))


class LoggingShortcuts:
    """SystemShortcuts stand-in for platforms without a home-button overlay."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)
        self.home_enabled = True

    def set_home_enabled(self, enabled: bool) -> None:
        self.home_enabled = bool(enabled)
        self._log.debug("HOME_SHORTCUT enabled=%s", self.home_enabled)
