"""Meta Cloud API WhatsApp provider."""

from whatsapp_router.providers.meta_cloud.client import MetaCloudWhatsAppProvider
from whatsapp_router.providers.meta_cloud.templates import TemplateRegistry, get_template_registry
from whatsapp_router.providers.meta_cloud.webhook import (
    parse_webhook,
    validate_signature,
    verify_webhook,
)

__all__ = [
    "MetaCloudWhatsAppProvider",
    "TemplateRegistry",
    "get_template_registry",
    "parse_webhook",
    "validate_signature",
    "verify_webhook",
]
