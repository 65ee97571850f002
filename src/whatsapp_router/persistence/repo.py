"""
Router Repository

Point CRUD operations for projects, contacts, conversations and messages.
The repository never commits; callers own the transaction.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from whatsapp_router.persistence.models import (
    Contact,
    Conversation,
    Message,
    MessageDirection,
    MessageStatus,
    Project,
    new_id,
    utcnow,
)
from whatsapp_router.routing.contact_state import ContactRouting
from whatsapp_router.routing.phone import lookup_candidates

# Lifecycle timestamp column for each status
STATUS_TIMESTAMP_FIELDS: dict[MessageStatus, str] = {
    MessageStatus.SENT: "sent_at",
    MessageStatus.DELIVERED: "delivered_at",
    MessageStatus.READ: "read_at",
    MessageStatus.FAILED: "failed_at",
}


class RouterRepository:
    """Repository for router database operations."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Projects
    # =========================================================================

    def list_projects(self) -> list[Project]:
        """All projects in id order."""
        return self.db.query(Project).order_by(Project.id.asc()).all()

    def get_project(self, project_id: int) -> Project | None:
        return self.db.get(Project, project_id)

    def get_project_names(self, project_ids: list[int]) -> dict[int, str]:
        """Map of id -> name for the given project ids."""
        if not project_ids:
            return {}
        rows = (
            self.db.query(Project.id, Project.name)
            .filter(Project.id.in_(project_ids))
            .all()
        )
        return {row.id: row.name for row in rows}

    def get_project_by_external_api_key(self, api_key: str) -> Project | None:
        """Project authenticated by the key it uses when calling us."""
        return (
            self.db.query(Project)
            .filter(Project.external_api_key == api_key)
            .first()
        )

    def find_project_by_host(self, hostname: str) -> Project | None:
        """First project whose api_url contains the hostname."""
        if not hostname:
            return None
        return (
            self.db.query(Project)
            .filter(Project.api_url.contains(hostname))
            .order_by(Project.id.asc())
            .first()
        )

    def create_project(
        self,
        name: str,
        api_url: str | None = None,
        user_numbers_api_url: str | None = None,
        api_key: str | None = None,
        external_api_key: str | None = None,
    ) -> Project:
        """Create a new project."""
        project = Project(
            name=name,
            api_url=api_url,
            user_numbers_api_url=user_numbers_api_url,
            api_key=api_key,
            external_api_key=external_api_key,
        )
        self.db.add(project)
        return project

    def update_project(self, project: Project, **fields: Any) -> Project:
        """Set the given attributes on a project."""
        for key, value in fields.items():
            setattr(project, key, value)
        return project

    def delete_project(self, project: Project) -> None:
        """
        Delete a project, unbinding its contacts.

        Pending contacts lose the project as a candidate. A choice left
        with one candidate or none is dropped, so the contact's next
        message runs membership detection again.
        """
        self.db.query(Contact).filter(Contact.project_id == project.id).update(
            {Contact.project_id: None}, synchronize_session=False
        )

        pending = (
            self.db.query(Contact)
            .filter(Contact.pending_project_selection.is_(True))
            .all()
        )
        for contact in pending:
            routing = ContactRouting.from_contact(contact)
            if project.id not in routing.available_project_ids:
                continue

            remaining = [pid for pid in routing.available_project_ids if pid != project.id]
            if len(remaining) > 1:
                ContactRouting.pending(remaining).apply_to(contact)
            else:
                ContactRouting.unassigned().apply_to(contact)

        self.db.delete(project)

    # =========================================================================
    # Contacts
    # =========================================================================

    def get_contact(self, contact_id: str) -> Contact | None:
        return self.db.get(Contact, contact_id)

    def get_contact_by_wa_id(self, wa_id: str) -> Contact | None:
        return self.db.query(Contact).filter(Contact.wa_id == wa_id).first()

    def find_contact_by_wa_id_variants(self, wa_id: str) -> Contact | None:
        """
        Find a contact by exact wa_id, falling back to the Brazilian
        alternate form (with/without the mobile 9).
        """
        for candidate in lookup_candidates(wa_id):
            contact = self.get_contact_by_wa_id(candidate)
            if contact:
                return contact
        return None

    def create_contact(
        self,
        wa_id: str,
        name: str | None = None,
        custom_name: str | None = None,
        project_id: int | None = None,
    ) -> Contact:
        """Create a new contact."""
        contact = Contact(
            id=new_id(),
            wa_id=wa_id,
            name=name,
            custom_name=custom_name,
            project_id=project_id,
            pending_project_selection=False,
            available_project_ids=None,
        )
        self.db.add(contact)
        return contact

    # =========================================================================
    # Conversations
    # =========================================================================

    def get_conversation_by_id(self, conversation_id: str) -> Conversation | None:
        return self.db.get(Conversation, conversation_id)

    def get_conversation_for_contact(self, contact_id: str) -> Conversation | None:
        return (
            self.db.query(Conversation)
            .filter(Conversation.contact_id == contact_id)
            .first()
        )

    def get_or_create_conversation(self, contact: Contact) -> tuple[Conversation, bool]:
        """
        Get the contact's conversation or create it.

        Returns:
            Tuple of (conversation, created) where created is True if new.
        """
        conversation = self.get_conversation_for_contact(contact.id)
        if conversation:
            return conversation, False

        conversation = Conversation(
            id=new_id(),
            contact_id=contact.id,
            unread_count=0,
        )
        self.db.add(conversation)
        return conversation, True

    def record_inbound(self, conversation: Conversation, at: datetime) -> None:
        """Bump activity and the unread counter for an inbound message."""
        conversation.last_message_at = at
        conversation.unread_count = (conversation.unread_count or 0) + 1

    def record_outbound(self, conversation: Conversation, at: datetime | None = None) -> None:
        """Bump activity for an outbound message."""
        conversation.last_message_at = at or utcnow()

    def mark_read(self, conversation: Conversation) -> None:
        conversation.unread_count = 0

    def list_conversations(self) -> list[Conversation]:
        """Conversations, most recent activity first."""
        return (
            self.db.query(Conversation)
            .order_by(Conversation.last_message_at.desc())
            .all()
        )

    # =========================================================================
    # Messages
    # =========================================================================

    def get_message(self, message_id: str) -> Message | None:
        return self.db.get(Message, message_id)

    def count_messages_for_contact(self, contact_id: str) -> int:
        return (
            self.db.query(func.count(Message.id))
            .filter(Message.contact_id == contact_id)
            .scalar()
        ) or 0

    def create_message(self, **fields: Any) -> Message:
        """Create a new message record."""
        message = Message(**fields)
        self.db.add(message)
        return message

    def list_messages(self, conversation_id: str) -> list[Message]:
        """Messages of a conversation, oldest first."""
        return (
            self.db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.timestamp.asc())
            .all()
        )

    def get_last_message(self, conversation_id: str) -> Message | None:
        return (
            self.db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.timestamp.desc())
            .first()
        )

    def get_last_engagement_message(self, conversation_id: str) -> Message | None:
        """
        Latest message that opens the customer-service window: any inbound
        message, or an outbound template (one with a template header).
        """
        return (
            self.db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                or_(
                    Message.direction == MessageDirection.INBOUND.value,
                    and_(
                        Message.direction == MessageDirection.OUTBOUND.value,
                        Message.template_header.isnot(None),
                    ),
                ),
            )
            .order_by(Message.timestamp.desc())
            .first()
        )

    def apply_status(
        self,
        message: Message,
        status: MessageStatus,
        at: datetime,
    ) -> bool:
        """
        Apply a delivery status to a message.

        The lifecycle timestamp for the status is always written (last write
        wins per field). A FAILED message keeps its FAILED status.

        Returns:
            False if the status was not applied because the message had failed.
        """
        setattr(message, STATUS_TIMESTAMP_FIELDS[status], at)

        if message.status == MessageStatus.FAILED.value and status != MessageStatus.FAILED:
            return False

        message.status = status.value
        return True
