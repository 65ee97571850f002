"""
Webhook Event Processor

Processes one WhatsApp webhook delivery:
1. Parses the payload (malformed payloads are ignored)
2. Resolves or creates the contact and its conversation
3. Greets first-time contacts
4. Runs project routing (reset, pending selection, membership)
5. Persists the inbound message, downloading media
6. Publishes a new-message notification
Status updates set delivery lifecycle timestamps on stored messages.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy.orm import Session

from whatsapp_router.errors import NotFoundError, WebhookProcessingError
from whatsapp_router.persistence.models import (
    Contact,
    Conversation,
    Message,
    MessageDirection,
    MessageStatus,
    MessageType,
)
from whatsapp_router.persistence.repo import RouterRepository
from whatsapp_router.providers.base import InboundMessage, InboundType, StatusUpdate, WhatsAppProvider
from whatsapp_router.providers.meta_cloud.webhook import parse_webhook
from whatsapp_router.routing.contact_state import (
    NOT_REGISTERED_TEXT,
    ContactRouting,
    RoutingState,
    Transition,
    apply_selection_reply,
    greeting_texts,
    is_reset_command,
    resolve_membership,
)
from whatsapp_router.routing.membership import MembershipResolver
from whatsapp_router.service.media_store import LocalMediaStore
from whatsapp_router.service.outbound_handler import OutboundDispatcher

logger = logging.getLogger(__name__)

DEFAULT_BOT_NAME = "Alessandro"

STATUS_MAP: dict[str, MessageStatus] = {
    "sent": MessageStatus.SENT,
    "delivered": MessageStatus.DELIVERED,
    "read": MessageStatus.READ,
    "failed": MessageStatus.FAILED,
}


class Notifier(Protocol):
    def notify_new_message(
        self,
        display_name: str,
        body_preview: str,
        conversation_id: str,
    ) -> Any: ...


def map_status(status: str) -> MessageStatus:
    """Map a WhatsApp status name; unknown names fall back to SENT."""
    return STATUS_MAP.get(status, MessageStatus.SENT)


def from_epoch_seconds(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class WebhookProcessor:
    """
    Handles WhatsApp webhook deliveries.

    Responsibilities:
    - Keep contacts and conversations in sync with inbound traffic
    - Drive the contact routing state machine
    - Persist inbound messages and delivery statuses
    - Trigger new-message notifications
    """

    def __init__(
        self,
        db: Session,
        provider: WhatsAppProvider,
        resolver: MembershipResolver,
        media_store: LocalMediaStore,
        notifier: Notifier | None = None,
        bot_name: str = DEFAULT_BOT_NAME,
        dispatcher: OutboundDispatcher | None = None,
    ):
        self.db = db
        self.repo = RouterRepository(db)
        self.provider = provider
        self.resolver = resolver
        self.media_store = media_store
        self.notifier = notifier
        self.bot_name = bot_name
        self.dispatcher = dispatcher or OutboundDispatcher(db, provider)

    async def process(self, payload: Any) -> None:
        """
        Process one webhook payload.

        Raises:
            WebhookProcessingError: Any failure while handling the payload
        """
        try:
            batch = parse_webhook(payload)
            if batch is None:
                return

            for message in batch.messages:
                await self.handle_message(message)

            for status in batch.statuses:
                self.handle_status(status)

        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Failed to process webhook: {e}",
                extra={"error_type": type(e).__name__},
                exc_info=True,
            )
            raise WebhookProcessingError(str(e)) from e

    # =========================================================================
    # Inbound messages
    # =========================================================================

    async def handle_message(self, message: InboundMessage) -> Message:
        """Run the inbound pipeline for a single message."""
        contact = self._resolve_contact(message)

        conversation, _ = self.repo.get_or_create_conversation(contact)
        self.repo.record_inbound(conversation, from_epoch_seconds(message.timestamp))
        is_first_message = self.repo.count_messages_for_contact(contact.id) == 0
        self.db.commit()

        if is_first_message:
            for text in greeting_texts(self.bot_name):
                await self.dispatcher.reply(contact, conversation, text)

        text = (message.text or "").strip() if message.message_type == InboundType.TEXT else ""

        if is_reset_command(text):
            logger.info(f"Contact {contact.wa_id} asked to re-run project detection")
            await self._apply(contact, conversation, await self._resolve_membership(message.from_phone))
            return await self._save_inbound(message, contact, conversation)

        routing = ContactRouting.from_contact(contact)

        if routing.state == RoutingState.PENDING_SELECTION and text:
            names = self.repo.get_project_names(list(routing.available_project_ids))
            await self._apply(contact, conversation, apply_selection_reply(routing, text, names))
            return await self._save_inbound(message, contact, conversation)

        if contact.project_id is None:
            transition = await self._resolve_membership(message.from_phone)
            await self._apply(contact, conversation, transition)

            if transition.state == RoutingState.UNASSIGNED:
                await self.dispatcher.reply(contact, conversation, NOT_REGISTERED_TEXT)
                return await self._save_inbound(message, contact, conversation)

            if transition.state == RoutingState.PENDING_SELECTION:
                return await self._save_inbound(message, contact, conversation)

        saved = await self._save_inbound(message, contact, conversation)
        self._notify(contact, conversation, message)

        logger.info(
            f"Saved {message.raw_type} message from {contact.display_name}",
            extra={"message_id": message.message_id, "contact_id": contact.id},
        )
        return saved

    def _resolve_contact(self, message: InboundMessage) -> Contact:
        """Find the contact under any number variant, or create it."""
        contact = self.repo.find_contact_by_wa_id_variants(message.from_phone)

        if contact is None:
            contact = self.repo.create_contact(
                wa_id=message.from_phone,
                name=message.profile_name,
            )
            self.db.flush()
            logger.info(f"Created contact for {message.from_phone}")
        elif message.profile_name and message.profile_name != contact.name:
            contact.name = message.profile_name

        return contact

    async def _resolve_membership(self, phone: str) -> Transition:
        project_ids = await self.resolver.resolve(self.repo.list_projects(), phone)
        return resolve_membership(project_ids, self.repo.get_project_names(project_ids))

    async def _apply(
        self,
        contact: Contact,
        conversation: Conversation,
        transition: Transition,
    ) -> None:
        """Commit the new routing, then send the replies describing it."""
        transition.routing.apply_to(contact)
        self.db.commit()

        logger.info(
            f"Contact {contact.wa_id} routing is now {transition.state.value}",
            extra={"contact_id": contact.id, "project_id": contact.project_id},
        )

        for text in transition.replies:
            await self.dispatcher.reply(contact, conversation, text)

    async def _save_inbound(
        self,
        message: InboundMessage,
        contact: Contact,
        conversation: Conversation,
    ) -> Message:
        """Persist an inbound message with its type-specific fields."""
        fields: dict[str, Any] = {
            "id": message.message_id,
            "conversation_id": conversation.id,
            "contact_id": contact.id,
            "direction": MessageDirection.INBOUND.value,
            "type": MessageType[message.message_type.name].value,
            "timestamp": message.timestamp_ms,
            "status": MessageStatus.DELIVERED.value,
            "reply_to_id": message.context_message_id,
        }

        if message.message_type == InboundType.TEXT:
            fields["text_body"] = message.text

        elif message.media is not None:
            media = message.media
            fields.update(
                media_id=media.media_id,
                media_mime_type=media.mime_type,
                media_filename=media.filename,
                media_local_path=await self._download_media(media.media_id, media.mime_type, media.filename),
                caption=media.caption,
                is_voice=media.is_voice,
                is_animated=media.is_animated,
            )

        elif message.message_type == InboundType.LOCATION:
            fields["latitude"] = message.latitude
            fields["longitude"] = message.longitude

        elif message.message_type == InboundType.REACTION:
            fields["reaction_emoji"] = message.reaction_emoji
            fields["reply_to_id"] = message.reaction_message_id

        saved = self.repo.create_message(**fields)
        self.db.commit()
        return saved

    async def _download_media(
        self,
        media_id: str,
        mime_type: str,
        filename: str | None,
    ) -> str:
        """Fetch media from WhatsApp and store it locally."""
        data = await self.provider.download_media(media_id)
        return self.media_store.save(data, mime_type, filename)

    def _notify(
        self,
        contact: Contact,
        conversation: Conversation,
        message: InboundMessage,
    ) -> None:
        """Best-effort new-message notification."""
        if self.notifier is None:
            return

        if message.message_type == InboundType.TEXT:
            body = message.text or ""
        else:
            body = f"Nova mensagem ({message.raw_type})"

        try:
            self.notifier.notify_new_message(contact.display_name, body, conversation.id)
        except Exception as e:
            logger.warning(
                f"Failed to publish new-message notification: {e}",
                extra={"conversation_id": conversation.id},
            )

    # =========================================================================
    # Status updates
    # =========================================================================

    def handle_status(self, status: StatusUpdate) -> Message:
        """
        Apply a delivery status to the stored message.

        Raises:
            NotFoundError: No message with the status' id
        """
        message = self.repo.get_message(status.message_id)
        if message is None:
            raise NotFoundError("Message", status.message_id)

        mapped = map_status(status.status)
        applied = self.repo.apply_status(message, mapped, from_epoch_seconds(status.timestamp))
        self.db.commit()

        if applied:
            logger.debug(f"Updated message {message.id} to status: {mapped.value}")
        else:
            logger.warning(
                f"Message {message.id} already failed, ignoring status {status.status}",
                extra={"message_id": message.id, "status": status.status},
            )
        return message
