"""
Conversation Read Path

Conversation list with the 24-hour customer-service window, message
history and contact naming for operators.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from whatsapp_router.errors import NotFoundError
from whatsapp_router.persistence.models import Contact, Conversation, Message
from whatsapp_router.persistence.repo import RouterRepository

logger = logging.getLogger(__name__)

# WhatsApp allows free-form messages for 24h after the last engagement
SERVICE_WINDOW_MS = 24 * 60 * 60 * 1000


@dataclass
class ConversationSummary:
    """A conversation as shown in the operator inbox."""

    conversation: Conversation
    contact: Contact
    last_message: Message | None
    is_within_24_hours: bool
    last_relevant_message_at: datetime | None


def is_within_window(last_relevant_ms: int | None, now_ms: int) -> bool:
    if last_relevant_ms is None:
        return False
    return now_ms - last_relevant_ms < SERVICE_WINDOW_MS


def ms_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class ConversationService:
    """Operator-facing conversation queries."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RouterRepository(db)

    def list_conversations(self, now: datetime | None = None) -> list[ConversationSummary]:
        """
        All conversations, most recent activity first.

        The 24-hour window is measured from the latest inbound message or
        outbound template and recomputed on every call.
        """
        now_ms = int(now.timestamp() * 1000) if now else int(time.time() * 1000)
        summaries = []

        for conversation in self.repo.list_conversations():
            relevant = self.repo.get_last_engagement_message(conversation.id)
            relevant_ms = relevant.timestamp if relevant else None

            summaries.append(ConversationSummary(
                conversation=conversation,
                contact=conversation.contact,
                last_message=self.repo.get_last_message(conversation.id),
                is_within_24_hours=is_within_window(relevant_ms, now_ms),
                last_relevant_message_at=ms_to_datetime(relevant_ms) if relevant_ms is not None else None,
            ))

        return summaries

    def get_messages(self, conversation_id: str) -> list[Message]:
        """Messages oldest first; opening a conversation clears its unread count."""
        conversation = self.repo.get_conversation_by_id(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)

        self.repo.mark_read(conversation)
        self.db.commit()

        return self.repo.list_messages(conversation_id)

    def update_custom_name(self, contact_id: str, custom_name: str | None) -> Contact:
        contact = self.repo.get_contact(contact_id)
        if contact is None:
            raise NotFoundError("Contact", contact_id)

        contact.custom_name = custom_name or None
        self.db.commit()

        logger.info(f"Updated custom name of contact {contact_id}")
        return contact
