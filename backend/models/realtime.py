"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Guardian Realtime - Event model                                             ║
║                                                                              ║
║  One RealtimeEvent = one frame on the SSE wire (then a blank line):          ║
║      data: {"type": <kind>, "data": <payload>, "timestamp": <ISO>}           ║
║                                                                              ║
║  Events are transient: built on each poll tick, written, then discarded.    ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from config import utcnow


class EventKind(str, Enum):
    """Closed set of event tags sent to clients"""
    STORM = "storm"            # WeatherEvent inserted
    INTEL = "intel"            # IntelItem inserted
    CUSTOMER = "customer"      # High-value customer updated
    HEARTBEAT = "heartbeat"    # Per-connection keep-alive
    CONNECTED = "connected"    # First frame of every stream


class RealtimeEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: EventKind
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "data": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_sse(self) -> str:
        """Serialized SSE frame, computed once per broadcast"""
        return f"data: {json.dumps(self.to_wire(), default=str)}\n\n"


def connected_event(client_count: int, timestamp: Optional[datetime] = None) -> RealtimeEvent:
    return RealtimeEvent(
        kind=EventKind.CONNECTED,
        payload={
            "message": "Connected to Guardian Intel real-time feed",
            "clientCount": client_count,
        },
        timestamp=timestamp or utcnow(),
    )


def heartbeat_event(client_count: Optional[int] = None) -> RealtimeEvent:
    payload: Dict[str, Any] = {"ping": True}
    if client_count is not None:
        payload["clientCount"] = client_count
    return RealtimeEvent(kind=EventKind.HEARTBEAT, payload=payload)
