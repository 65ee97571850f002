"""
FastAPI dependencies.

Long-lived collaborators (provider, resolver, media store, notifier) live
on ``app.state``; request-scoped services are built per request around
the database session.
"""

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from whatsapp_router.core.db import get_db
from whatsapp_router.core.settings import Settings
from whatsapp_router.persistence.models import Project
from whatsapp_router.persistence.repo import RouterRepository
from whatsapp_router.service.conversations import ConversationService
from whatsapp_router.service.inbound_handler import WebhookProcessor
from whatsapp_router.service.outbound_handler import OutboundDispatcher


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request, db: Session = Depends(get_db)) -> OutboundDispatcher:
    state = request.app.state
    return OutboundDispatcher(
        db,
        state.provider,
        template_footer=state.settings.TEMPLATE_FOOTER,
    )


def get_processor(
    request: Request,
    db: Session = Depends(get_db),
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
) -> WebhookProcessor:
    state = request.app.state
    return WebhookProcessor(
        db,
        provider=state.provider,
        resolver=state.resolver,
        media_store=state.media_store,
        notifier=state.notifier,
        bot_name=state.settings.BOT_DISPLAY_NAME,
        dispatcher=dispatcher,
    )


def get_conversation_service(db: Session = Depends(get_db)) -> ConversationService:
    return ConversationService(db)


def require_project(
    x_api_key: str | None = Header(default=None, alias="X-API-KEY"),
    db: Session = Depends(get_db),
) -> Project:
    """Authenticate a calling project by its external API key."""
    if not x_api_key:
        raise HTTPException(status_code=401, detail="Missing API key")

    project = RouterRepository(db).get_project_by_external_api_key(x_api_key)
    if project is None:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return project
