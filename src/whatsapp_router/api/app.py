"""
WhatsApp Router API

FastAPI app that receives WhatsApp webhooks from Meta Cloud API and
serves the operator conversation endpoints.
"""

import logging

from fastapi import FastAPI

from whatsapp_router import __version__
from whatsapp_router.api import conversations, webhook
from whatsapp_router.core.logging import setup_logging
from whatsapp_router.core.redis import get_redis_client
from whatsapp_router.core.settings import Settings, get_settings
from whatsapp_router.providers import WhatsAppProvider, get_provider
from whatsapp_router.routing.membership import MembershipResolver
from whatsapp_router.service.inbound_handler import Notifier
from whatsapp_router.service.media_store import LocalMediaStore
from whatsapp_router.streams.producer import NotificationProducer

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    provider: WhatsAppProvider | None = None,
    resolver: MembershipResolver | None = None,
    media_store: LocalMediaStore | None = None,
    notifier: Notifier | None = None,
) -> FastAPI:
    """
    Build the application.

    Collaborators not passed in are built from settings.
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="WhatsApp Router",
        description="Routes WhatsApp conversations to external projects",
        version=__version__,
    )

    app.state.settings = settings
    app.state.provider = provider or get_provider(settings)
    app.state.resolver = resolver or MembershipResolver(timeout=settings.MEMBERSHIP_PROBE_TIMEOUT)
    app.state.media_store = media_store or LocalMediaStore(
        settings.MEDIA_UPLOAD_DIR, settings.MEDIA_PUBLIC_PREFIX
    )
    app.state.notifier = notifier or NotificationProducer(
        get_redis_client(), settings.NOTIFICATIONS_STREAM
    )

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "service": "whatsapp-router"}

    @app.on_event("shutdown")
    async def shutdown():
        await app.state.provider.close()

    app.include_router(webhook.router)
    app.include_router(conversations.router)

    logger.info(
        "WhatsApp router app created",
        extra={"provider": settings.WHATSAPP_PROVIDER},
    )
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8090)
