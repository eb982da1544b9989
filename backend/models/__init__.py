"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Guardian Realtime - Models Package                                          ║
║                                                                              ║
║  Exports every model for easy import                                         ║
║  from models import EventKind, RealtimeEvent, etc.                           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from .realtime import (
    EventKind,
    RealtimeEvent,
    connected_event,
    heartbeat_event,
)

__all__ = [
    "EventKind",
    "RealtimeEvent",
    "connected_event",
    "heartbeat_event",
]
