from __future__ import annotations

from typing import List, Protocol

from gamestream.runtime.state import MenuEvent


class MenuEventSource(Protocol):
    def read_events(self) -> List[MenuEvent]: ...
