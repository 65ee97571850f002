"""
Conversation endpoints for operators and calling projects.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from whatsapp_router.api.dependencies import (
    get_conversation_service,
    get_dispatcher,
    require_project,
)
from whatsapp_router.api.schemas import (
    ContactOut,
    ConversationOut,
    CustomNameRequest,
    InviteRequest,
    MessageOut,
    PasswordResetRequest,
    SendMediaRequest,
    SendMessageRequest,
)
from whatsapp_router.errors import DispatchError, NotFoundError
from whatsapp_router.persistence.models import Project
from whatsapp_router.service.conversations import ConversationService, ConversationSummary
from whatsapp_router.service.outbound_handler import OutboundDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["conversations"])


def _conversation_out(summary: ConversationSummary) -> ConversationOut:
    conversation = summary.conversation
    return ConversationOut(
        id=conversation.id,
        contact=ContactOut.model_validate(summary.contact),
        last_message_at=conversation.last_message_at,
        unread_count=conversation.unread_count,
        last_message=MessageOut.model_validate(summary.last_message) if summary.last_message else None,
        is_within_24_hours=summary.is_within_24_hours,
        last_relevant_message_at=summary.last_relevant_message_at,
    )


@router.get("", response_model=list[ConversationOut])
def list_conversations(service: ConversationService = Depends(get_conversation_service)):
    return [_conversation_out(summary) for summary in service.list_conversations()]


@router.get("/{conversation_id}/messages", response_model=list[MessageOut])
def get_messages(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service),
):
    try:
        return service.get_messages(conversation_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{conversation_id}/messages", response_model=MessageOut)
async def send_message(
    conversation_id: str,
    body: SendMessageRequest,
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
):
    try:
        return await dispatcher.send_text(conversation_id, body.text, reply_to_id=body.reply_to_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DispatchError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/{conversation_id}/media", response_model=MessageOut)
async def send_media(
    conversation_id: str,
    body: SendMediaRequest,
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
):
    try:
        return await dispatcher.send_media(
            conversation_id,
            body.media_type,
            body.link,
            caption=body.caption,
            filename=body.filename,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DispatchError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.patch("/{contact_id}/custom-name", response_model=ContactOut)
def update_custom_name(
    contact_id: str,
    body: CustomNameRequest,
    service: ConversationService = Depends(get_conversation_service),
):
    try:
        return service.update_custom_name(contact_id, body.custom_name)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


async def _send_template(
    dispatcher: OutboundDispatcher,
    template_name: str,
    to: str,
    variables: dict,
    request: Request,
    project: Project,
):
    logger.info(
        f"Project {project.name} requested template {template_name}",
        extra={"project_id": project.id, "to": to},
    )
    try:
        return await dispatcher.send_template(
            to,
            template_name,
            variables,
            request_host=request.headers.get("host", ""),
        )
    except DispatchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/invite", response_model=MessageOut)
async def send_invite(
    body: InviteRequest,
    request: Request,
    project: Project = Depends(require_project),
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
):
    """Send platform credentials with the access_created template."""
    variables = body.model_dump(exclude={"to"})
    return await _send_template(dispatcher, "access_created", body.to, variables, request, project)


@router.post("/password-reset", response_model=MessageOut)
async def send_password_reset(
    body: PasswordResetRequest,
    request: Request,
    project: Project = Depends(require_project),
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
):
    """Send a password reset link with the password_reset_url template."""
    variables = body.model_dump(exclude={"to"})
    return await _send_template(dispatcher, "password_reset_url", body.to, variables, request, project)
