# gamestream/model/stream.py
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import IntFlag
from typing import Any, Mapping, Optional, Tuple

from .host import SCM_AV1_MAIN8, SCM_H264, SCM_HEVC


class VideoFormat(IntFlag):
    H264 = 0x0001
    H265 = 0x0100
    H265_MAIN10 = 0x0200
    AV1_MAIN8 = 0x1000
    AV1_MAIN10 = 0x2000


# codec name -> (format flag, server codec bit required)
CODECS: dict[str, tuple[VideoFormat, int]] = {
    "h264": (VideoFormat.H264, SCM_H264),
    "hevc": (VideoFormat.H265, SCM_HEVC),
    "av1": (VideoFormat.AV1_MAIN8, SCM_AV1_MAIN8),
}


@dataclass(frozen=True)
class StreamConfig:
    """
    Requested stream settings.

    Immutable once a stream-start attempt begins; per-host overrides are
    applied with merged(), which returns a new instance.
    """
    app: str = "Steam"
    width: int = 1280
    height: int = 720
    fps: int = 60
    bitrate: int = 10000  # kbps
    packet_size: int = 1392
    codecs: Tuple[str, ...] = ("h264",)
    sops: bool = False
    local_audio: bool = False
    unsupported: bool = True
    quit_app_after: bool = False
    audio_device: Optional[str] = None
    autostream: bool = False

    def __post_init__(self) -> None:
        for name in ("width", "height", "fps", "bitrate", "packet_size"):
            if int(getattr(self, name)) <= 0:
                raise ValueError(f"Stream setting '{name}' must be > 0")
        if not self.codecs:
            raise ValueError("Stream setting 'codecs' must not be empty")
        unknown = [c for c in self.codecs if c not in CODECS]
        if unknown:
            raise ValueError(f"Unknown codec(s) {unknown} (known: {sorted(CODECS)})")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "StreamConfig":
        return cls().merged(data)

    def merged(self, overrides: Mapping[str, Any]) -> "StreamConfig":
        """Return a new config with `overrides` applied on top of this one."""
        if not overrides:
            return self

        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown stream setting(s): {', '.join(unknown)}")

        values = {name: _coerce(name, getattr(self, name), v) for name, v in overrides.items()}
        return replace(self, **values)


def _coerce(name: str, current: Any, value: Any) -> Any:
    if name == "audio_device":
        return None if value is None else str(value)
    if value is None:
        raise ValueError(f"Stream setting '{name}' must not be null")
    if name == "codecs":
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValueError("Stream setting 'codecs' must be a list")
        return tuple(str(v).strip().lower() for v in value)
    if isinstance(current, bool):
        if isinstance(value, bool):
            return value
        s = str(value).strip().lower()
        if s in ("1", "true", "yes", "on"):
            return True
        if s in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"Stream setting '{name}' expects a bool, got {value!r}")
    if isinstance(current, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Stream setting '{name}' expects an int, got {value!r}") from None
    text = str(value).strip()
    if not text:
        raise ValueError(f"Stream setting '{name}' must not be empty")
    return text


@dataclass(frozen=True)
class StreamParameters:
    """Parameters sent with stream-start and used to open the connection."""
    width: int
    height: int
    fps: int
    bitrate: int
    packet_size: int
    video_formats: VideoFormat
    audio_on_host: bool = False


def negotiate_video_formats(codecs: Tuple[str, ...], codec_support: int) -> VideoFormat:
    """
    Intersect the codec preference with what the host advertises.

    H.264 is the baseline every host decodes, so it is used when nothing
    else matches.
    """
    out = VideoFormat(0)
    for name in codecs:
        fmt, scm_bit = CODECS[name]
        if codec_support & scm_bit:
            out |= fmt
    return out or VideoFormat.H264


def negotiate_parameters(config: StreamConfig, codec_support: int) -> StreamParameters:
    return StreamParameters(
        width=config.width,
        height=config.height,
        fps=config.fps,
        bitrate=config.bitrate,
        packet_size=config.packet_size,
        video_formats=negotiate_video_formats(config.codecs, codec_support),
        audio_on_host=config.local_audio,
    )
