"""
WhatsApp webhook endpoints.

Meta sends a GET to verify the subscription and POSTs every event.
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from whatsapp_router.api.dependencies import get_app_settings, get_processor
from whatsapp_router.core.settings import Settings
from whatsapp_router.errors import WebhookProcessingError
from whatsapp_router.providers.meta_cloud.webhook import validate_signature, verify_webhook
from whatsapp_router.service.inbound_handler import WebhookProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhook"])


@router.get("")
async def verify_subscription(
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
    settings: Settings = Depends(get_app_settings),
):
    """
    Handle Meta webhook verification.

    Returns hub.challenge as plain text when the token matches.
    """
    logger.info(
        "Webhook verification request",
        extra={"mode": hub_mode, "token_received": bool(hub_verify_token)},
    )

    if not settings.WHATSAPP_WEBHOOK_VERIFY_TOKEN:
        logger.error("Webhook verify token is not configured")
        raise HTTPException(status_code=500, detail="Webhook verify token not configured")

    if not verify_webhook(hub_mode, hub_verify_token, settings.WHATSAPP_WEBHOOK_VERIFY_TOKEN):
        raise HTTPException(status_code=403, detail="Verification failed")

    return Response(content=hub_challenge or "", media_type="text/plain")


@router.post("")
async def receive_webhook(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    processor: WebhookProcessor = Depends(get_processor),
):
    """
    Receive a webhook delivery from Meta and process it synchronously.

    A 500 makes Meta retry the delivery later.
    """
    body = await request.body()

    if settings.WHATSAPP_APP_SECRET:
        signature = request.headers.get("X-Hub-Signature-256", "")
        if not validate_signature(body, signature, settings.WHATSAPP_APP_SECRET):
            logger.warning("Invalid Meta webhook signature")
            raise HTTPException(status_code=403, detail="Invalid signature")

    try:
        payload = json.loads(body)
    except ValueError:
        # JSONDecodeError, or UnicodeDecodeError for a body that is not UTF-8
        logger.warning("Invalid JSON payload")
        raise HTTPException(status_code=400, detail="Invalid JSON")

    try:
        await processor.process(payload)
    except WebhookProcessingError:
        raise HTTPException(status_code=500, detail="Error processing webhook")

    return Response(content="Webhook processed", media_type="text/plain")
