from __future__ import annotations

from typing import Dict, Type

from gamestream.core.errors import EngineConfigError

from .base import StreamingEngine
from .simulated import SimulatedEngine


class EngineDriverRegistry:
    """
    Maps driver keys -> concrete StreamingEngine classes.

    - NO configuration loading
    - NO host access
    """

    def __init__(self, drivers: Dict[str, Type[StreamingEngine]]):
        # normalize keys to be case-insensitive
        self._drivers: Dict[str, Type[StreamingEngine]] = {k.lower(): v for k, v in drivers.items()}

    @classmethod
    def default(cls) -> "EngineDriverRegistry":
        return cls(
            drivers={
                "sim": SimulatedEngine,
            }
        )

    def keys(self) -> list[str]:
        return sorted(self._drivers)

    def has(self, driver: str) -> bool:
        return driver.lower() in self._drivers

    def get_class(self, driver: str) -> Type[StreamingEngine]:
        key = driver.lower()
        if key not in self._drivers:
            raise EngineConfigError(
                f"Streaming engine driver '{driver}' not registered.",
                hint=f"Known drivers: {', '.join(self.keys()) or '(none)'}",
                details={"driver": driver},
            )
        return self._drivers[key]

    def create(self, driver: str, **params) -> StreamingEngine:
        engine_cls = self.get_class(driver)
        try:
            return engine_cls(**params)
        except TypeError as e:
            raise EngineConfigError(
                f"Failed to construct streaming engine '{driver}'.",
                hint=str(e),
                details={"driver": driver, "params": sorted(params)},
            ) from None
