# gamestream/core/errors.py
from __future__ import annotations

from enum import Enum, auto


class GameStreamError(Exception):
    """
    Base class for all expected setup errors in gamestream.

    Host interactions never raise these; they return an Outcome that the
    runtime classifies into an ErrorKind instead.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, logs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no host access yet)
# ---------------------------------------------------------------------------

class ConfigError(GameStreamError):
    """
    Configuration is missing, unreadable or inconsistent.

    Examples:
      - config.yml not found or not valid YAML
      - no host address configured
      - unknown stream setting in a per-host override file
    """
    code = "config_error"


class ClientInitError(GameStreamError):
    """
    The client identity (key material) could not be created or loaded.
    """
    code = "client_init_error"


class EngineConfigError(GameStreamError):
    """
    Unknown streaming engine driver or constructor mismatch.
    """
    code = "engine_config_error"


# ---------------------------------------------------------------------------
# Recoverable session errors (surfaced as PendingError, never raised)
# ---------------------------------------------------------------------------

class ErrorKind(Enum):
    """
    Failure taxonomy surfaced by Connecting / Pairing / StartingStream.

    Members are distinct by construction; `format()` fills in the
    member's message template.
    """

    OUT_OF_MEMORY = auto()
    INVALID_RESPONSE = auto()
    UNSUPPORTED_VERSION = auto()
    GAMESTREAM_ERROR = auto()
    CONNECT_FAILED = auto()

    NOT_SUPPORTED_4K = auto()
    NOT_SUPPORTED_MODE = auto()
    NOT_SUPPORTED_SOPS_RESOLUTION = auto()
    STREAM_ERROR = auto()
    START_FAILED = auto()
    CONNECTION_START_FAILED = auto()
    APP_NOT_FOUND = auto()
    APP_LIST_FAILED = auto()
    NOT_PAIRED = auto()

    PAIRING_FAILED = auto()

    CONNECTION_TERMINATED = auto()
    HOST_CONFIG_INVALID = auto()

    @property
    def template(self) -> str:
        return _MESSAGES[self]

    def format(self, **fields: object) -> str:
        return _MESSAGES[self].format(**fields)


_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.OUT_OF_MEMORY: "Not enough memory",
    ErrorKind.INVALID_RESPONSE: "Invalid data received from server:\n{detail}",
    ErrorKind.UNSUPPORTED_VERSION: "Unsupported version:\n{detail}",
    ErrorKind.GAMESTREAM_ERROR: "Gamestream error:\n{detail}",
    ErrorKind.CONNECT_FAILED: "Can't connect to server",
    ErrorKind.NOT_SUPPORTED_4K: "Server doesn't support 4K",
    ErrorKind.NOT_SUPPORTED_MODE: (
        "Server doesn't support {width}x{height} ({fps} fps) "
        "or enable unsupported resolutions"
    ),
    ErrorKind.NOT_SUPPORTED_SOPS_RESOLUTION: (
        "Optimal Playable Settings isn't supported for the resolution "
        "{width}x{height}, use supported resolution or disable sops"
    ),
    ErrorKind.STREAM_ERROR: "Gamestream error: {detail}",
    ErrorKind.START_FAILED: "Errorcode starting app: {code}",
    ErrorKind.CONNECTION_START_FAILED: "Failed to start connection",
    ErrorKind.APP_NOT_FOUND: "Can't find app {app}",
    ErrorKind.APP_LIST_FAILED: "Can't get app list",
    ErrorKind.NOT_PAIRED: "You must pair with the PC first",
    ErrorKind.PAIRING_FAILED: "Failed to pair to server:\n{detail}",
    ErrorKind.CONNECTION_TERMINATED: "Connection terminated (error {code})",
    ErrorKind.HOST_CONFIG_INVALID: "Invalid host configuration:\n{detail}",
}
