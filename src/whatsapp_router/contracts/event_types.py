"""
Router Event Types

Events published by the router for downstream consumers (push, dashboards).
"""

from enum import Enum


class RouterEventType(str, Enum):
    """
    Event types published by the router.

    - NEW_MESSAGE: a contact sent a message that operators should see
    """

    NEW_MESSAGE = "whatsapp_new_message"
