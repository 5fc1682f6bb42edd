from .input_capability import InputCapability
from .menu_events import MenuEventSource
from .renderer import Renderer
from .system_shortcuts import SystemShortcuts

__all__ = ["InputCapability", "MenuEventSource", "Renderer", "SystemShortcuts"]
