# gamestream/engine/simulated.py
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from gamestream.model.host import SCM_H264, SCM_HEVC, AppEntry, ServerInfo
from gamestream.model.input import ControllerEvent
from gamestream.model.stream import StreamParameters

from .base import ConnectionListener, GsStatus, Outcome, PairOutcome, StreamingEngine

UNIQUE_ID_FILE = "uniqueid.dat"


@dataclass
class SimulatedHost:
    """In-memory stand-in for a streaming host."""
    server: ServerInfo
    apps: List[AppEntry] = field(default_factory=list)
    accept_pairing: bool = True
    reachable: bool = True


def demo_hosts(addresses: Sequence[str]) -> Dict[str, SimulatedHost]:
    """One unpaired 1080p60-capable host per address, with a Steam/Desktop app list."""
    out: Dict[str, SimulatedHost] = {}
    for i, addr in enumerate(addresses):
        out[addr] = SimulatedHost(
            server=ServerInfo(
                address=addr,
                hostname=f"SIM-HOST-{i + 1}",
                gpu_type="GeForce RTX 3070",
                gfe_version="3.27.0.120",
                app_version="7.1.431.-1",
                gs_version="7.1.431",
                codec_support=SCM_H264 | SCM_HEVC,
                display_modes=((1280, 720, 60), (1920, 1080, 60), (1920, 1080, 120)),
            ),
            apps=[AppEntry("Steam", 1), AppEntry("Desktop", 2)],
        )
    return out


class SimulatedEngine(StreamingEngine):
    """
    Streaming engine driver backed by SimulatedHost entries.

    Applies the host-side stream-start checks (4K, display mode, SOPS
    resolution) so every failure path can be exercised without a host.
    """

    def __init__(
        self,
        hosts: Optional[Dict[str, SimulatedHost]] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self.hosts: Dict[str, SimulatedHost] = dict(hosts or {})
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()

        self.timeout_s: float = 0.0
        self.unique_id: Optional[str] = None
        self._allow_unsupported: Dict[str, bool] = {}

        self._listener: Optional[ConnectionListener] = None
        self._streaming_host: Optional[str] = None
        self.connection_open = False
        self.connections_opened = 0
        self.input_events: List[ControllerEvent] = []
        self.dropped_input_events = 0

    # identity
    def open(self, key_dir: str) -> Outcome[None]:
        path = Path(key_dir) / UNIQUE_ID_FILE
        if not path.exists():
            return Outcome.failure(GsStatus.BAD_CONF, f"{path} not found")
        try:
            self.unique_id = path.read_text(encoding="utf-8").strip()
        except OSError as e:
            return Outcome.failure(GsStatus.IO_ERROR, str(e))
        if not self.unique_id:
            return Outcome.failure(GsStatus.BAD_CONF, f"{path} is empty")
        return Outcome.success()

    def init_identity(self, key_dir: str) -> Outcome[None]:
        try:
            root = Path(key_dir)
            root.mkdir(parents=True, exist_ok=True)
            (root / UNIQUE_ID_FILE).write_text(uuid.uuid4().hex[:16], encoding="utf-8")
        except OSError as e:
            return Outcome.failure(GsStatus.IO_ERROR, str(e))
        return Outcome.success()

    def close(self) -> None:
        self.close_stream_connection()

    def set_request_timeout(self, seconds: float) -> None:
        self.timeout_s = float(seconds)

    # host requests
    def _host(self, address: str) -> Optional[SimulatedHost]:
        host = self.hosts.get(address)
        if host is None or not host.reachable:
            return None
        return host

    def query_host_status(self, address: str, allow_unsupported: bool) -> Outcome[ServerInfo]:
        host = self._host(address)
        if host is None:
            return Outcome.failure(GsStatus.FAILED, f"no route to {address}")
        self._allow_unsupported[address] = bool(allow_unsupported)
        return Outcome.success(host.server)

    def list_applications(self, server: ServerInfo) -> Outcome[Sequence[AppEntry]]:
        host = self._host(server.address)
        if host is None:
            return Outcome.failure(GsStatus.FAILED, f"no route to {server.address}")
        return Outcome.success(list(host.apps))

    def request_pairing(self, server: ServerInfo, pin: str) -> Outcome[PairOutcome]:
        host = self._host(server.address)
        if host is None:
            return Outcome.failure(GsStatus.FAILED, f"no route to {server.address}")
        if not host.accept_pairing:
            return Outcome.failure(GsStatus.FAILED, "Pairing was declined by the host")

        self._log.info("SIM_PAIR address=%s pin=%s", server.address, pin)
        host.server = replace(host.server, paired=True)
        return Outcome.success(PairOutcome(paired=True, current_game=host.server.current_game))

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
    ) -> Outcome[StreamParameters]:
        host = self._host(server.address)
        if host is None:
            return Outcome.failure(GsStatus.FAILED, f"no route to {server.address}")
        info = host.server
        if not info.paired:
            return Outcome.failure(GsStatus.ERROR, "Client is not paired")

        if params.height >= 2160 and not info.supports_4k:
            return Outcome.failure(GsStatus.NOT_SUPPORTED_4K)

        supported_resolution = False
        correct_mode = False
        for w, h, fps in info.display_modes:
            if w == params.width and h == params.height:
                supported_resolution = True
                if fps == params.fps:
                    correct_mode = True

        if not correct_mode and not self._allow_unsupported.get(info.address, False):
            return Outcome.failure(GsStatus.NOT_SUPPORTED_MODE)
        if sops and not supported_resolution:
            return Outcome.failure(GsStatus.NOT_SUPPORTED_SOPS_RESOLUTION)

        if all(a.app_id != app_id for a in host.apps):
            return Outcome.failure(GsStatus.ERROR, f"Unknown app id {app_id}")

        host.server = replace(info, current_game=int(app_id))
        self._log.info(
            "SIM_APP_STARTED address=%s app_id=%d gamepad_mask=0x%x",
            info.address,
            int(app_id),
            int(gamepad_mask),
        )
        return Outcome.success(params)

    def request_app_quit(self, server: ServerInfo) -> Outcome[None]:
        host = self._host(server.address)
        if host is None:
            return Outcome.failure(GsStatus.FAILED, f"no route to {server.address}")
        host.server = replace(host.server, current_game=0)
        return Outcome.success()

    # stream connection
    def open_stream_connection(
        self,
        params: StreamParameters,
        audio_device: Optional[str],
        listener: Optional[ConnectionListener] = None,
    ) -> Outcome[None]:
        running = [a for a, h in self.hosts.items() if h.server.current_game != 0]
        if not running:
            return Outcome.failure(GsStatus.FAILED, "No app running on any host")
        with self._lock:
            if self.connection_open:
                return Outcome.failure(GsStatus.WRONG_STATE, "Connection already open")
            self.connection_open = True
            self.connections_opened += 1
            self._listener = listener
            self._streaming_host = running[0]
        return Outcome.success()

    def close_stream_connection(self) -> None:
        with self._lock:
            self.connection_open = False
            self._listener = None
            self._streaming_host = None

    def submit_input_event(self, event: ControllerEvent) -> None:
        with self._lock:
            if not self.connection_open:
                self.dropped_input_events += 1
                return
            self.input_events.append(event)

    def terminate(self, error_code: int = -1) -> None:
        """Simulate the host dropping the stream."""
        with self._lock:
            listener = self._listener
        if listener is not None:
            listener.on_connection_terminated(error_code)
