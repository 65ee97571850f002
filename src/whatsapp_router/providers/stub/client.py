"""
Stub WhatsApp Provider

Development provider that logs all operations without making real API calls.
Useful for local development and testing.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from whatsapp_router.providers.base import (
    ProviderError,
    ProviderResponse,
    WhatsAppProvider,
)

logger = logging.getLogger(__name__)


class StubWhatsAppProvider(WhatsAppProvider):
    """
    Stub provider for development and testing.

    - Logs all outbound messages
    - Generates fake message IDs
    - Serves media from an in-memory map
    - Can be configured to simulate failures
    """

    def __init__(
        self,
        simulate_failures: bool = False,
        failure_rate: float = 1.0,
        media_files: dict[str, bytes] | None = None,
    ):
        self.simulate_failures = simulate_failures
        self.failure_rate = failure_rate
        self.media_files: dict[str, bytes] = dict(media_files or {})
        self.sent_messages: list[dict[str, Any]] = []

    def _record(self, message_type: str, to: str, prefix: str, **data: Any) -> str:
        message_id = f"{prefix}_{uuid4().hex[:16]}"
        self.sent_messages.append({
            "type": message_type,
            "to": to,
            "message_id": message_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **data,
        })
        return message_id

    def _result(self, message_id: str) -> ProviderResponse:
        if self._should_fail():
            return ProviderResponse(
                success=False,
                error_code="STUB_SIMULATED_FAILURE",
                error_message="Simulated failure for testing",
            )

        return ProviderResponse(
            success=True,
            message_id=message_id,
            raw_response={"stub": True, "message_id": message_id},
        )

    async def send_text(
        self,
        to: str,
        text: str,
        reply_to: str | None = None,
    ) -> ProviderResponse:
        """Log and return success for text message."""
        message_id = self._record("text", to, "stub_msg", text=text, reply_to=reply_to)

        logger.info(
            f"[STUB] Sending text message",
            extra={
                "to": to,
                "text": text[:100] + "..." if len(text) > 100 else text,
                "message_id": message_id,
            },
        )

        return self._result(message_id)

    async def send_template(
        self,
        to: str,
        template_name: str,
        language_code: str,
        components: list[dict[str, Any]] | None = None,
    ) -> ProviderResponse:
        """Log and return success for template message."""
        message_id = self._record(
            "template",
            to,
            "stub_tmpl",
            template_name=template_name,
            language_code=language_code,
            components=components,
        )

        logger.info(
            f"[STUB] Sending template message",
            extra={
                "to": to,
                "template": template_name,
                "language": language_code,
                "message_id": message_id,
            },
        )

        return self._result(message_id)

    async def send_media(
        self,
        to: str,
        media_type: str,
        link: str,
        caption: str | None = None,
        filename: str | None = None,
    ) -> ProviderResponse:
        """Log and return success for media message."""
        message_id = self._record(
            media_type,
            to,
            "stub_media",
            link=link,
            caption=caption,
            filename=filename,
        )

        logger.info(
            f"[STUB] Sending {media_type} message",
            extra={"to": to, "link": link, "message_id": message_id},
        )

        return self._result(message_id)

    async def download_media(self, media_id: str) -> bytes:
        """Return registered bytes for a media id."""
        logger.debug(f"[STUB] Downloading media: {media_id}")
        if media_id not in self.media_files:
            raise ProviderError(
                message=f"Unknown media: {media_id}",
                code="STUB_MEDIA_NOT_FOUND",
            )
        return self.media_files[media_id]

    def _should_fail(self) -> bool:
        """Check if we should simulate a failure."""
        if not self.simulate_failures:
            return False
        return random.random() < self.failure_rate

    def get_sent_messages(self) -> list[dict[str, Any]]:
        """Get all sent messages (for testing)."""
        return self.sent_messages.copy()

    def clear_sent_messages(self) -> None:
        """Clear sent messages history (for testing)."""
        self.sent_messages.clear()
