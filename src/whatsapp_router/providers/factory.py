"""
Provider selection from settings.
"""

from whatsapp_router.core.settings import Settings, get_settings
from whatsapp_router.providers.base import WhatsAppProvider
from whatsapp_router.providers.meta_cloud import MetaCloudWhatsAppProvider
from whatsapp_router.providers.stub import StubWhatsAppProvider


def get_provider(settings: Settings | None = None) -> WhatsAppProvider:
    """
    Get the configured provider.

    Uses WHATSAPP_PROVIDER ("meta" or "stub"); anything else falls back to stub.
    """
    settings = settings or get_settings()

    if settings.WHATSAPP_PROVIDER == "meta":
        return MetaCloudWhatsAppProvider(
            phone_number_id=settings.WHATSAPP_PHONE_NUMBER_ID,
            access_token=settings.WHATSAPP_ACCESS_TOKEN,
            api_version=settings.WHATSAPP_GRAPH_API_VERSION,
            timeout=settings.WHATSAPP_TIMEOUT,
        )
    return StubWhatsAppProvider()
