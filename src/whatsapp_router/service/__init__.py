"""
Router Services

- WebhookProcessor: inbound messages and delivery statuses
- OutboundDispatcher: bot replies, operator sends and templates
- ConversationService: operator read path
- LocalMediaStore: downloaded media on disk
"""

from whatsapp_router.service.conversations import ConversationService, ConversationSummary
from whatsapp_router.service.inbound_handler import WebhookProcessor, map_status
from whatsapp_router.service.media_store import LocalMediaStore
from whatsapp_router.service.outbound_handler import OutboundDispatcher

__all__ = [
    "ConversationService",
    "ConversationSummary",
    "LocalMediaStore",
    "OutboundDispatcher",
    "WebhookProcessor",
    "map_status",
]
