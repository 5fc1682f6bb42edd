# gamestream/app/config.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

import yaml

from gamestream.core.errors import ConfigError
from gamestream.model.loader import ConfigLoader
from gamestream.model.stream import StreamConfig


@dataclass(frozen=True)
class AppConfig:
    config_path: str
    hosts: Tuple[str, ...]
    stream: StreamConfig
    key_dir: str
    engine: str = "sim"
    default_timeout_s: float = 5.0
    pair_timeout_s: float = 60.0
    input_poll_hz: float = 100.0
    debug: int = 0

    @classmethod
    def load(cls, config_path: str | Path) -> "AppConfig":
        """
        Load and validate the client configuration file.

        Raises ConfigError with the underlying reason as hint.
        """
        config_path = Path(config_path)
        loader = ConfigLoader(config_path)
        try:
            loader.load_all()
        except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(
                "Failed to load configuration.",
                hint=str(e),
                details={"path": str(config_path)},
            ) from None
        except Exception as e:
            raise ConfigError(
                "Unexpected error while loading configuration.",
                hint=str(e),
                details={"path": str(config_path)},
            ) from None

        s = loader.settings
        return cls(
            config_path=str(config_path),
            hosts=tuple(loader.hosts),
            stream=loader.stream,
            key_dir=str(s["key_dir"]),
            engine=str(s["engine"]),
            default_timeout_s=float(s["default_timeout_s"]),
            pair_timeout_s=float(s["pair_timeout_s"]),
            input_poll_hz=float(s["input_poll_hz"]),
            debug=int(s["debug"]),
        )

    def host_override_loader(self) -> Callable[[str], Dict[str, Any]]:
        """
        Return a callable reading hosts/<address>.yml next to the config file.

        Read on every call, so edits take effect on the next connect.
        """
        loader = ConfigLoader(self.config_path)
        loader.stream = self.stream

        def _load(address: str) -> Dict[str, Any]:
            path = loader.host_override_path(address)
            try:
                return loader.load_host_overrides(address)
            except (ValueError, yaml.YAMLError, OSError) as e:
                raise ConfigError(
                    f"Failed to load host overrides for {address}.",
                    hint=str(e),
                    details={"path": str(path)},
                ) from None

        return _load
