"""
Router Database Models

Tables:
- projects: External projects that own phone numbers
- contacts: WhatsApp users, optionally bound to a project
- conversations: One per contact, tracks unread counter and last activity
- messages: Inbound/outbound messages keyed by the provider message ID
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from whatsapp_router.core.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class MessageDirection(str, Enum):
    """Direction of a WhatsApp message."""

    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class MessageType(str, Enum):
    """Stored message types. Anything else is kept as UNSUPPORTED."""

    TEXT = "TEXT"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    STICKER = "STICKER"
    DOCUMENT = "DOCUMENT"
    LOCATION = "LOCATION"
    REACTION = "REACTION"
    UNSUPPORTED = "UNSUPPORTED"


class MessageStatus(str, Enum):
    """Delivery status of a WhatsApp message."""

    SENT = "SENT"
    DELIVERED = "DELIVERED"
    READ = "READ"
    FAILED = "FAILED"


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Project(Base, TimestampMixin):
    """
    An external project that can claim phone numbers as members.

    api_url + user_numbers_api_url form the membership probe endpoint;
    api_key is sent to that endpoint, external_api_key authenticates the
    project when it calls us.
    """

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    api_url = Column(String(500), nullable=True)
    user_numbers_api_url = Column(String(500), nullable=True)
    api_key = Column(Text, nullable=True)
    external_api_key = Column(String(255), nullable=True, unique=True)

    contacts = relationship("Contact", back_populates="project")


class Contact(Base, TimestampMixin):
    """
    A WhatsApp user identified by wa_id.

    pending_project_selection is true exactly when available_project_ids is
    non-empty, and then project_id is null.
    """

    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=new_id)
    wa_id = Column(String(32), nullable=False, unique=True)
    name = Column(String(255), nullable=True)  # From WhatsApp profile
    custom_name = Column(String(255), nullable=True)  # Set by operators or invites
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    pending_project_selection = Column(Boolean, nullable=False, default=False)
    available_project_ids = Column(JSON, nullable=True)

    project = relationship("Project", back_populates="contacts")
    conversation = relationship("Conversation", back_populates="contact", uselist=False)

    @property
    def display_name(self) -> str:
        return self.custom_name or self.name or self.wa_id


class Conversation(Base, TimestampMixin):
    """One conversation per contact."""

    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=new_id)
    contact_id = Column(String(36), ForeignKey("contacts.id"), nullable=False, unique=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    unread_count = Column(Integer, nullable=False, default=0)

    contact = relationship("Contact", back_populates="conversation")

    __table_args__ = (
        Index("idx_conversations_last_message", "last_message_at"),
    )


class Message(Base):
    """
    A WhatsApp message. The primary key is the provider message ID
    (or a synthesized temp_ id when the provider did not return one).
    """

    __tablename__ = "messages"

    id = Column(String(128), primary_key=True)
    conversation_id = Column(String(36), ForeignKey("conversations.id"), nullable=False)
    contact_id = Column(String(36), ForeignKey("contacts.id"), nullable=False)
    direction = Column(String(10), nullable=False)
    type = Column(String(20), nullable=False, default=MessageType.TEXT.value)
    timestamp = Column(BigInteger, nullable=False)  # epoch milliseconds
    status = Column(String(20), nullable=False, default=MessageStatus.SENT.value)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)

    reply_to_id = Column(String(128), nullable=True)
    text_body = Column(Text, nullable=True)
    caption = Column(Text, nullable=True)

    media_id = Column(String(128), nullable=True)
    media_mime_type = Column(String(128), nullable=True)
    media_filename = Column(String(255), nullable=True)
    media_local_path = Column(String(500), nullable=True)
    is_voice = Column(Boolean, nullable=True)
    is_animated = Column(Boolean, nullable=True)

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    reaction_emoji = Column(String(32), nullable=True)

    template_header = Column(Text, nullable=True)
    template_footer = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    conversation = relationship("Conversation")
    contact = relationship("Contact")

    __table_args__ = (
        Index("idx_messages_conversation_timestamp", "conversation_id", "timestamp"),
        Index("idx_messages_contact", "contact_id"),
    )
