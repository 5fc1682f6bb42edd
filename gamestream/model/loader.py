# gamestream/model/loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml

from .stream import StreamConfig

HOSTS_SUBDIR = "hosts"


class ConfigLoader:
    """
    Loads client configuration from YAML.

    Loads:
        - <config>.yml             (host list, client settings, stream settings)
        - hosts/<address>.yml      (optional per-host stream overrides, on demand)

    After calling load_all(), exposes:
        self.hosts    : list[str]          (known host addresses, config order)
        self.settings : dict[str, Any]     (client-level settings)
        self.stream   : StreamConfig       (base stream settings)
    """

    SETTINGS_DEFAULTS: Dict[str, Any] = {
        "key_dir": "keys",
        "engine": "sim",
        "default_timeout_s": 5.0,
        "pair_timeout_s": 60.0,
        "input_poll_hz": 100.0,
        "debug": 0,
    }

    def __init__(self, config_path: str | Path):
        self.config_path = Path(config_path)
        self.config_dir = self.config_path.parent
        self.hosts: List[str] = []
        self.settings: Dict[str, Any] = dict(self.SETTINGS_DEFAULTS)
        self.stream: StreamConfig = StreamConfig()

    # ---------------------------------------------------------------------
    # YAML utility
    # ---------------------------------------------------------------------
    @staticmethod
    def _load_yaml(full_path: Path) -> dict:
        if not full_path.exists():
            raise FileNotFoundError(f"Missing config file: {full_path}")

        with open(full_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{full_path.name} must contain a mapping at the root")
        return data

    # ---------------------------------------------------------------------
    # Public entry point
    # ---------------------------------------------------------------------
    def load_all(self) -> None:
        data = self._load_yaml(self.config_path)

        self.hosts = self._parse_hosts(data)
        self.settings = self._parse_settings(data)

        stream = data.get("stream") or {}
        if not isinstance(stream, dict):
            raise ValueError("'stream' must be a mapping")
        self.stream = StreamConfig.from_mapping(stream)

    def host_override_path(self, address: str) -> Path:
        return self.config_dir / HOSTS_SUBDIR / f"{address}.yml"

    def load_host_overrides(self, address: str) -> Dict[str, Any]:
        """
        Read the per-host override file for `address`.

        Returns an empty mapping when the host has no override file.
        """
        path = self.host_override_path(address)
        if not path.exists():
            return {}

        data = self._load_yaml(path)
        stream = data.get("stream", data)
        if not isinstance(stream, dict):
            raise ValueError(f"{path.name}: 'stream' must be a mapping")

        # validate early so a bad file is reported before connecting
        self.stream.merged(stream)
        return dict(stream)

    # ---------------------------------------------------------------------
    # Sections
    # ---------------------------------------------------------------------
    @staticmethod
    def _parse_hosts(data: dict) -> List[str]:
        raw = data.get("hosts", data.get("address"))
        if raw is None:
            return []
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list):
            raise ValueError("'hosts' must be a list of addresses")

        hosts: List[str] = []
        for entry in raw:
            addr = str(entry).strip()
            if not addr:
                raise ValueError("'hosts' contains an empty address")
            if addr not in hosts:
                hosts.append(addr)
        return hosts

    def _parse_settings(self, data: dict) -> Dict[str, Any]:
        out = dict(self.SETTINGS_DEFAULTS)

        for key in ("key_dir", "engine"):
            if data.get(key) is not None:
                out[key] = str(data[key])

        for key in ("default_timeout_s", "pair_timeout_s", "input_poll_hz"):
            if data.get(key) is not None:
                try:
                    value = float(data[key])
                except (TypeError, ValueError):
                    raise ValueError(f"'{key}' must be a number") from None
                if value <= 0:
                    raise ValueError(f"'{key}' must be > 0")
                out[key] = value

        if data.get("debug") is not None:
            try:
                out["debug"] = int(data["debug"])
            except (TypeError, ValueError):
                raise ValueError("'debug' must be an integer level") from None

        key_dir = Path(out["key_dir"])
        if not key_dir.is_absolute():
            out["key_dir"] = str(self.config_dir / key_dir)

        return out
