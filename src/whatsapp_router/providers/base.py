"""
WhatsApp Provider Base

Abstract interface for WhatsApp API providers and the provider-agnostic
webhook event types.
Implementations: Meta Cloud API, Stub (for development).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProviderError(Exception):
    """Error from WhatsApp provider."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.retryable = retryable


class InboundType(str, Enum):
    """Inbound message types we understand. Anything else is UNSUPPORTED."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    STICKER = "sticker"
    DOCUMENT = "document"
    LOCATION = "location"
    REACTION = "reaction"
    UNSUPPORTED = "unsupported"

    @property
    def is_media(self) -> bool:
        return self in MEDIA_TYPES


MEDIA_TYPES = frozenset({
    InboundType.IMAGE,
    InboundType.VIDEO,
    InboundType.AUDIO,
    InboundType.STICKER,
    InboundType.DOCUMENT,
})


@dataclass
class MediaDescriptor:
    """Media attached to an inbound message."""

    media_id: str
    mime_type: str
    caption: str | None = None
    filename: str | None = None
    is_voice: bool | None = None
    is_animated: bool | None = None


@dataclass
class InboundMessage:
    """
    Parsed inbound message from webhook.

    Provider-agnostic representation of an incoming WhatsApp message.
    """

    message_id: str
    from_phone: str
    message_type: InboundType
    timestamp: int  # epoch seconds, as sent by WhatsApp
    profile_name: str | None = None
    text: str | None = None
    media: MediaDescriptor | None = None
    context_message_id: str | None = None  # Replied-to message
    latitude: float | None = None
    longitude: float | None = None
    reaction_emoji: str | None = None
    reaction_message_id: str | None = None
    raw_type: str = ""
    raw_payload: dict[str, Any] = field(default_factory=dict)

    @property
    def timestamp_ms(self) -> int:
        return self.timestamp * 1000


@dataclass
class StatusUpdate:
    """
    Parsed delivery status update from webhook.
    """

    message_id: str
    status: str  # sent, delivered, read, failed
    timestamp: int  # epoch seconds
    recipient_phone: str | None = None
    raw_payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class WebhookBatch:
    """Events carried by one webhook delivery."""

    messages: list[InboundMessage] = field(default_factory=list)
    statuses: list[StatusUpdate] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.messages and not self.statuses


@dataclass
class ProviderResponse:
    """
    Response from provider after sending a message.
    """

    success: bool
    message_id: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


class WhatsAppProvider(ABC):
    """
    Abstract interface for WhatsApp API providers.

    Send methods never raise on API errors; they return a failed
    ProviderResponse. download_media raises ProviderError.
    """

    @abstractmethod
    async def send_text(
        self,
        to: str,
        text: str,
        reply_to: str | None = None,
    ) -> ProviderResponse:
        """
        Send a text message.

        Args:
            to: Recipient WhatsApp id
            text: Message text
            reply_to: Message ID to reply to (optional)
        """
        ...

    @abstractmethod
    async def send_template(
        self,
        to: str,
        template_name: str,
        language_code: str,
        components: list[dict[str, Any]] | None = None,
    ) -> ProviderResponse:
        """
        Send a template message.

        Args:
            to: Recipient WhatsApp id
            template_name: Approved template name
            language_code: Template language code (e.g., "pt_BR")
            components: Template components (header, body variables)
        """
        ...

    @abstractmethod
    async def send_media(
        self,
        to: str,
        media_type: str,
        link: str,
        caption: str | None = None,
        filename: str | None = None,
    ) -> ProviderResponse:
        """
        Send an image, video, audio or document by public link.
        """
        ...

    @abstractmethod
    async def download_media(self, media_id: str) -> bytes:
        """
        Download the bytes of an inbound media file.

        Raises:
            ProviderError: If the media URL cannot be resolved or fetched
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        return None
