"""
Outbound Message Dispatcher

Sends messages through the provider and records them:
1. Sends via provider (nothing is stored if this fails)
2. Persists an OUTBOUND message with status SENT
3. Bumps the conversation's last activity
"""

import logging
import time
from typing import Any
from uuid import uuid4

from sqlalchemy.orm import Session

from whatsapp_router.errors import DispatchError, NotFoundError
from whatsapp_router.persistence.models import (
    Contact,
    Conversation,
    Message,
    MessageDirection,
    MessageStatus,
    MessageType,
    utcnow,
)
from whatsapp_router.persistence.repo import RouterRepository
from whatsapp_router.providers.base import ProviderResponse, WhatsAppProvider
from whatsapp_router.providers.meta_cloud.templates import TemplateRegistry, get_template_registry
from whatsapp_router.routing.contact_state import ContactRouting

logger = logging.getLogger(__name__)

MEDIA_MESSAGE_TYPES = {
    "image": MessageType.IMAGE,
    "video": MessageType.VIDEO,
    "audio": MessageType.AUDIO,
    "document": MessageType.DOCUMENT,
}


def now_ms() -> int:
    return int(time.time() * 1000)


def synthesize_message_id() -> str:
    """Placeholder id for a successful send that came back without one."""
    return f"temp_{now_ms()}_{uuid4().hex[:8]}"


def hostname_of(request_host: str | None) -> str:
    """Strip the port: "example.com:3000" -> "example.com"."""
    return (request_host or "").split(":", 1)[0].strip()


class OutboundDispatcher:
    """
    Sends outbound WhatsApp messages and persists them.

    Every method commits on success. A failed send raises DispatchError
    and leaves no message row behind.
    """

    def __init__(
        self,
        db: Session,
        provider: WhatsAppProvider,
        template_registry: TemplateRegistry | None = None,
        template_footer: str | None = None,
    ):
        self.db = db
        self.repo = RouterRepository(db)
        self.provider = provider
        self.templates = template_registry or get_template_registry()
        self.template_footer = template_footer

    def _checked_id(self, response: ProviderResponse, to: str) -> str:
        """Message id from a send response, raising if the send failed."""
        if not response.success:
            logger.warning(
                f"Send to {to} failed: {response.error_message}",
                extra={"to": to, "error_code": response.error_code},
            )
            raise DispatchError(
                response.error_message or "Failed to send message",
                code=response.error_code,
            )
        return response.message_id or synthesize_message_id()

    def _record(
        self,
        message_id: str,
        conversation: Conversation,
        contact: Contact,
        message_type: MessageType = MessageType.TEXT,
        **fields: Any,
    ) -> Message:
        sent_at = utcnow()
        message = self.repo.create_message(
            id=message_id,
            conversation_id=conversation.id,
            contact_id=contact.id,
            direction=MessageDirection.OUTBOUND.value,
            type=message_type.value,
            timestamp=now_ms(),
            status=MessageStatus.SENT.value,
            sent_at=sent_at,
            **fields,
        )
        self.repo.record_outbound(conversation, sent_at)
        self.db.commit()
        return message

    def _get_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.repo.get_conversation_by_id(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)
        return conversation

    async def reply(
        self,
        contact: Contact,
        conversation: Conversation,
        text: str,
    ) -> Message:
        """Send an automated text reply to a contact."""
        response = await self.provider.send_text(contact.wa_id, text)
        message_id = self._checked_id(response, contact.wa_id)
        return self._record(message_id, conversation, contact, text_body=text)

    async def send_text(
        self,
        conversation_id: str,
        text: str,
        reply_to_id: str | None = None,
    ) -> Message:
        """Send an operator's text message into a conversation."""
        conversation = self._get_conversation(conversation_id)
        contact = conversation.contact

        response = await self.provider.send_text(contact.wa_id, text, reply_to=reply_to_id)
        message_id = self._checked_id(response, contact.wa_id)

        logger.info(
            f"Sent text to conversation {conversation_id}",
            extra={"conversation_id": conversation_id, "message_id": message_id},
        )
        return self._record(
            message_id,
            conversation,
            contact,
            text_body=text,
            reply_to_id=reply_to_id,
        )

    async def send_media(
        self,
        conversation_id: str,
        media_type: str,
        link: str,
        caption: str | None = None,
        filename: str | None = None,
    ) -> Message:
        """Send an image, video, audio or document by public link."""
        message_type = MEDIA_MESSAGE_TYPES.get(media_type)
        if message_type is None:
            raise ValueError(f"Unsupported media type: {media_type}")

        conversation = self._get_conversation(conversation_id)
        contact = conversation.contact

        response = await self.provider.send_media(
            contact.wa_id, media_type, link, caption=caption, filename=filename
        )
        message_id = self._checked_id(response, contact.wa_id)

        return self._record(
            message_id,
            conversation,
            contact,
            message_type=message_type,
            caption=caption,
            media_filename=filename,
            media_local_path=link,
        )

    async def send_template(
        self,
        to: str,
        template_name: str,
        variables: dict[str, Any],
        request_host: str | None = None,
    ) -> Message:
        """
        Send an approved template to a phone number.

        The contact is found (or created) through the Brazilian number
        variants, named after variables["name"] and bound to the project
        whose api_url contains the request host.

        Raises:
            ValueError: Unknown template or missing variables
            DispatchError: The provider rejected the send
        """
        template = self.templates.get_or_raise(template_name)
        components = template.build_components(variables)

        response = await self.provider.send_template(
            to, template.name, template.language, components
        )
        message_id = self._checked_id(response, to)

        name = variables.get("name")
        project = self.repo.find_project_by_host(hostname_of(request_host))

        contact = self.repo.find_contact_by_wa_id_variants(to)
        if contact is None:
            contact = self.repo.create_contact(wa_id=to, custom_name=name)
        elif name:
            contact.custom_name = name

        if project is not None and not (template.keep_existing_project and contact.project_id):
            ContactRouting.assigned(project.id).apply_to(contact)

        self.db.flush()
        conversation, _ = self.repo.get_or_create_conversation(contact)
        self.db.flush()

        rendered = template.render(variables)

        logger.info(
            f"Sent template {template.name} to {to}",
            extra={
                "to": to,
                "template": template.name,
                "message_id": message_id,
                "project_id": contact.project_id,
            },
        )
        return self._record(
            message_id,
            conversation,
            contact,
            text_body=rendered.body,
            template_header=rendered.header,
            template_footer=self.template_footer,
        )
