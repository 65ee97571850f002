"""
Router Persistence

SQLAlchemy models and repository for router tables.
"""

from whatsapp_router.persistence.models import (
    Contact,
    Conversation,
    Message,
    MessageDirection,
    MessageStatus,
    MessageType,
    Project,
)
from whatsapp_router.persistence.repo import RouterRepository

__all__ = [
    "Contact",
    "Conversation",
    "Message",
    "MessageDirection",
    "MessageStatus",
    "MessageType",
    "Project",
    "RouterRepository",
]
