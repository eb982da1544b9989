"""
Guardian Realtime - Broadcaster

Fan-out of one event to every registered channel.
A failing channel is pruned; the others still get the frame.
"""

import logging

from models.realtime import RealtimeEvent
from services.subscriber_registry import SubscriberRegistry

logger = logging.getLogger("realtime.broadcaster")


class Broadcaster:

    def __init__(self, registry: SubscriberRegistry):
        self.registry = registry

    def broadcast(self, event: RealtimeEvent) -> int:
        """
        Write `event` to all channels registered at call time.

        Returns the number of channels that accepted the frame.
        """
        frame = event.to_sse()
        delivered = 0

        # Snapshot: pruning below mutates the registry
        for channel in list(self.registry):
            try:
                channel.send(frame)
                delivered += 1
            except Exception as e:
                logger.warning(f"Pruning broken channel ({event.kind.value}): {str(e)}")
                try:
                    channel.close()
                except Exception as close_error:
                    logger.debug(f"Channel close failed: {str(close_error)}")
                self.registry.remove(channel)

        return delivered
