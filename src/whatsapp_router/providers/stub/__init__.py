"""Stub WhatsApp provider for development."""

from whatsapp_router.providers.stub.client import StubWhatsAppProvider

__all__ = ["StubWhatsAppProvider"]
