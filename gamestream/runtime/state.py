# gamestream/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from gamestream.model.host import HostRecord


class SessionState(Enum):
    INVALID = "invalid"
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    PAIRING = "pairing"
    STARTING_STREAM = "starting_stream"
    STREAMING = "streaming"
    STOPPING_STREAM = "stopping_stream"


class MenuEvent(Enum):
    """Button-press edges and internal completions consumed by the state machine."""
    CONFIRM = "confirm"          # A
    BACK = "back"                # B
    PAIR = "pair"                # X
    UP = "up"
    DOWN = "down"
    STOP_STREAM = "stop_stream"  # user-requested stop (quit combo)
    STREAM_ERROR = "stream_error"  # connection terminated by the engine


# Valid state flows. INVALID is only ever an initial state.
TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.INVALID: frozenset(),
    SessionState.DISCONNECTED: frozenset({SessionState.CONNECTING}),
    SessionState.CONNECTING: frozenset({
        SessionState.CONNECTED,
        SessionState.STARTING_STREAM,
        SessionState.DISCONNECTED,
    }),
    SessionState.CONNECTED: frozenset({
        SessionState.STARTING_STREAM,
        SessionState.PAIRING,
        SessionState.DISCONNECTED,
    }),
    SessionState.PAIRING: frozenset({SessionState.CONNECTED, SessionState.DISCONNECTED}),
    SessionState.STARTING_STREAM: frozenset({SessionState.STREAMING, SessionState.CONNECTED}),
    SessionState.STREAMING: frozenset({SessionState.STOPPING_STREAM}),
    SessionState.STOPPING_STREAM: frozenset({SessionState.DISCONNECTED}),
}


class IllegalTransition(RuntimeError):
    def __init__(self, current: SessionState, target: SessionState):
        super().__init__(f"Illegal session transition {current.name} -> {target.name}")
        self.current = current
        self.target = target


def can_transition(current: SessionState, target: SessionState) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


@dataclass(frozen=True)
class PendingError:
    """
    Last user-facing message plus its error flag.

    An informational message (e.g. after a successful pairing) has
    is_error=False.
    """
    message: str = ""
    is_error: bool = False

    @classmethod
    def none(cls) -> "PendingError":
        return cls()

    @classmethod
    def error(cls, message: str) -> "PendingError":
        return cls(message=message, is_error=True)

    @classmethod
    def info(cls, message: str) -> "PendingError":
        return cls(message=message, is_error=False)

    def __bool__(self) -> bool:
        return bool(self.message)


@dataclass(frozen=True)
class SessionSnapshot:
    """
    What the rendering collaborator receives each iteration, safe to share
    across threads.
    """
    state: SessionState
    host: Optional[HostRecord]
    pending: PendingError
    hosts: Tuple[HostRecord, ...] = ()
    selected: int = 0
    pin: Optional[str] = None
