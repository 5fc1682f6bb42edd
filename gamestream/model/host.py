# gamestream/model/host.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Tuple

# Server codec mode support bits (as reported by the host's serverinfo).
SCM_H264 = 0x00001
SCM_HEVC = 0x00100
SCM_HEVC_MAIN10 = 0x00200
SCM_AV1_MAIN8 = 0x10000
SCM_AV1_MAIN10 = 0x20000


@dataclass(frozen=True)
class ServerInfo:
    """
    Last-known metadata of a streaming host, as returned by a status query.

    current_game is the id of the app the host is running (0 = none).
    display_modes lists (width, height, fps) tuples the host advertises.
    """
    address: str
    hostname: str = ""
    gpu_type: str = ""
    gfe_version: str = ""
    app_version: str = ""
    gs_version: str = ""
    codec_support: int = SCM_H264
    current_game: int = 0
    paired: bool = False
    supports_4k: bool = False
    is_gfe: bool = True
    display_modes: Tuple[Tuple[int, int, int], ...] = ()


@dataclass(frozen=True)
class AppEntry:
    name: str
    app_id: int


@dataclass(frozen=True)
class HostRecord:
    """
    A host in the known list.

    Created from configuration, replaced with an updated copy after every
    successful status query or pairing; never deleted automatically.
    """
    address: str
    overrides: Mapping[str, Any] = field(default_factory=dict)
    paired: bool = False
    server: Optional[ServerInfo] = None

    @property
    def running_app_id(self) -> int:
        return self.server.current_game if self.server is not None else 0

    def with_server(self, server: ServerInfo) -> "HostRecord":
        return replace(self, server=server, paired=server.paired)

    def with_pairing(self, *, paired: bool, current_game: int) -> "HostRecord":
        server = self.server or ServerInfo(address=self.address)
        return replace(
            self,
            paired=paired,
            server=replace(server, paired=paired, current_game=int(current_game)),
        )

    def with_overrides(self, overrides: Mapping[str, Any]) -> "HostRecord":
        return replace(self, overrides=dict(overrides))
