from typing import Protocol


class SystemShortcuts(Protocol):
    """Platform "home" shortcut toggle; disabled while a stream is active."""
    def set_home_enabled(self, enabled: bool) -> None: ...
