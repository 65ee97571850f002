"""
WhatsApp Providers

Provider implementations for different WhatsApp APIs.
Supports Meta Cloud API (production) and Stub (development).
"""

from whatsapp_router.providers.base import (
    InboundMessage,
    InboundType,
    MediaDescriptor,
    ProviderError,
    ProviderResponse,
    StatusUpdate,
    WebhookBatch,
    WhatsAppProvider,
)
from whatsapp_router.providers.factory import get_provider

__all__ = [
    "InboundMessage",
    "InboundType",
    "MediaDescriptor",
    "ProviderError",
    "ProviderResponse",
    "StatusUpdate",
    "WebhookBatch",
    "WhatsAppProvider",
    "get_provider",
]
