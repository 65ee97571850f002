"""
Router Contracts

Event envelope and event types published to Redis Streams.
"""

from whatsapp_router.contracts.envelope import NotificationEnvelope
from whatsapp_router.contracts.event_types import RouterEventType

__all__ = [
    "NotificationEnvelope",
    "RouterEventType",
]
