"""Host-authoritative UNO engine for peer-to-peer play."""

from .engine import TurnEngine
from .relay import HostContext, create_client, create_host
from .session import Session

__version__ = "1.0.0"

__all__ = ["HostContext", "Session", "TurnEngine", "create_client", "create_host"]
