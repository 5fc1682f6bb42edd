from typing import Protocol
from gamestream.runtime.state import SessionSnapshot


class Renderer(Protocol):
    def render(self, snapshot: SessionSnapshot) -> None: ...
