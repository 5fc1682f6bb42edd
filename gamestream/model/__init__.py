from .host import HostRecord, ServerInfo, AppEntry
from .stream import StreamConfig, StreamParameters, VideoFormat
from .input import ControllerState, InputState, ControllerEvent, gamepad_mask
from .loader import ConfigLoader

__all__ = ["HostRecord",
           "ServerInfo",
           "AppEntry",
           "StreamConfig",
           "StreamParameters",
           "VideoFormat",
           "ControllerState",
           "InputState",
           "ControllerEvent",
           "gamepad_mask",
           "ConfigLoader"]
