# engine/__init__.py

from .base import StreamingEngine, GsStatus, Outcome, PairOutcome, ConnectionListener
from .host_client import HostSessionClient

__all__ = [
    "StreamingEngine",
    "GsStatus", "Outcome", "PairOutcome", "ConnectionListener",
    "HostSessionClient"]
