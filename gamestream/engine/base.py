from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Generic, Optional, Protocol, Sequence, TypeVar

from gamestream.model.host import AppEntry, ServerInfo
from gamestream.model.input import ControllerEvent
from gamestream.model.stream import StreamParameters

T = TypeVar("T")


class GsStatus(IntEnum):
    """GameStream client status codes."""
    OK = 0
    FAILED = -1
    OUT_OF_MEMORY = -2
    INVALID = -3
    UNSUPPORTED_VERSION = -4
    NOT_SUPPORTED_4K = -5
    NOT_SUPPORTED_MODE = -6
    ERROR = -7
    NOT_SUPPORTED_SOPS_RESOLUTION = -8
    IO_ERROR = -9
    BAD_CONF = -10
    WRONG_STATE = -11


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Discriminated result of a host interaction.

    `value` is only meaningful when ok; `detail` carries the engine's
    error text otherwise.
    """
    status: GsStatus
    value: Optional[T] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status == GsStatus.OK

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Outcome[T]":
        return cls(GsStatus.OK, value)

    @classmethod
    def failure(cls, status: GsStatus, detail: str = "") -> "Outcome[T]":
        if status == GsStatus.OK:
            raise ValueError("failure() needs a non-OK status")
        return cls(status, None, detail)


@dataclass(frozen=True)
class PairOutcome:
    paired: bool
    current_game: int


class ConnectionListener(Protocol):
    def on_connection_terminated(self, error_code: int) -> None: ...


class StreamingEngine(ABC):
    """
    Abstract streaming engine binding (GameStream/Moonlight client library).

    Contract:
      - open()/close() manage the client identity and engine resources.
      - every host request returns an Outcome; expected failures never raise.
      - host requests block for at most the configured request timeout.
      - submit_input_event() may be called from the input thread while a
        stream connection is open.
    """

    @abstractmethod
    def open(self, key_dir: str) -> Outcome[None]: ...

    @abstractmethod
    def init_identity(self, key_dir: str) -> Outcome[None]: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def set_request_timeout(self, seconds: float) -> None: ...

    @abstractmethod
    def query_host_status(self, address: str, allow_unsupported: bool) -> Outcome[ServerInfo]: ...

    @abstractmethod
    def list_applications(self, server: ServerInfo) -> Outcome[Sequence[AppEntry]]: ...

    @abstractmethod
    def request_pairing(self, server: ServerInfo, pin: str) -> Outcome[PairOutcome]: ...

    @abstractmethod
    def start_application(
        self,
        server: ServerInfo,
        app_id: int,
        params: StreamParameters,
        gamepad_mask: int,
        *,
        is_gfe: bool,
        sops: bool,
        local_audio: bool,
    ) -> Outcome[StreamParameters]: ...

    @abstractmethod
    def open_stream_connection(
        self,
        params: StreamParameters,
        audio_device: Optional[str],
        listener: Optional[ConnectionListener] = None,
    ) -> Outcome[None]: ...

    @abstractmethod
    def close_stream_connection(self) -> None: ...

    @abstractmethod
    def request_app_quit(self, server: ServerInfo) -> Outcome[None]: ...

    @abstractmethod
    def submit_input_event(self, event: ControllerEvent) -> None: ...

    def __enter__(self) -> "StreamingEngine":
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
