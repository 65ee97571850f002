"""
Meta Cloud API WhatsApp Provider

Production provider for WhatsApp Business Cloud API.
Sends messages and downloads media through the Graph API.
"""

import logging
from typing import Any

import httpx

from whatsapp_router.providers.base import (
    ProviderError,
    ProviderResponse,
    WhatsAppProvider,
)

logger = logging.getLogger(__name__)

# Meta Graph API configuration
DEFAULT_GRAPH_API_VERSION = "v21.0"
GRAPH_API_HOST = "https://graph.facebook.com"

SENDABLE_MEDIA_TYPES = ("image", "video", "audio", "document")


class MetaCloudWhatsAppProvider(WhatsAppProvider):
    """
    Meta Cloud API provider for WhatsApp Business.

    Uses the Graph API to send messages from one business phone number.
    """

    def __init__(
        self,
        phone_number_id: str,
        access_token: str,
        api_version: str = DEFAULT_GRAPH_API_VERSION,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.phone_number_id = phone_number_id
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return f"{GRAPH_API_HOST}/{self.api_version}"

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/{self.phone_number_id}/messages"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def _make_request(
        self,
        method: str,
        url: str,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated API request."""
        client = await self._get_client()

        try:
            if method.upper() == "GET":
                response = await client.get(url, headers=self._auth_headers())
            else:
                response = await client.post(url, headers=self._auth_headers(), json=json_data)
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed: {e}")
            raise ProviderError(
                message=f"HTTP request failed: {e}",
                code="HTTP_ERROR",
                retryable=True,
            )

        try:
            response_data = response.json()
        except ValueError:
            response_data = {}

        if response.status_code >= 400:
            error = response_data.get("error", {}) if isinstance(response_data, dict) else {}
            raise ProviderError(
                message=error.get("message", f"HTTP {response.status_code}"),
                code=str(error.get("code", response.status_code)),
                details=error,
                retryable=response.status_code >= 500,
            )

        return response_data

    async def _send(self, payload: dict[str, Any], kind: str) -> ProviderResponse:
        """POST a message payload and wrap the outcome."""
        try:
            response = await self._make_request("POST", self.messages_url, payload)
        except ProviderError as e:
            logger.error(
                f"Failed to send {kind} message: {e}",
                extra={"to": payload.get("to"), "error_code": e.code},
            )
            return ProviderResponse(
                success=False,
                error_code=e.code,
                error_message=str(e),
                raw_response=e.details,
            )

        messages = response.get("messages") or [{}]
        message_id = messages[0].get("id")

        logger.info(
            f"Sent {kind} message via Meta API",
            extra={"to": payload.get("to"), "message_id": message_id},
        )

        return ProviderResponse(
            success=True,
            message_id=message_id,
            raw_response=response,
        )

    @staticmethod
    def _base_payload(to: str, message_type: str) -> dict[str, Any]:
        return {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": message_type,
        }

    async def send_text(
        self,
        to: str,
        text: str,
        reply_to: str | None = None,
    ) -> ProviderResponse:
        """Send a text message via Graph API."""
        payload = self._base_payload(to, "text")
        payload["text"] = {"preview_url": False, "body": text}

        if reply_to:
            payload["context"] = {"message_id": reply_to}

        return await self._send(payload, "text")

    async def send_template(
        self,
        to: str,
        template_name: str,
        language_code: str,
        components: list[dict[str, Any]] | None = None,
    ) -> ProviderResponse:
        """Send a template message via Graph API."""
        payload = self._base_payload(to, "template")
        payload["template"] = {
            "name": template_name,
            "language": {"code": language_code},
        }

        if components:
            payload["template"]["components"] = components

        return await self._send(payload, "template")

    async def send_media(
        self,
        to: str,
        media_type: str,
        link: str,
        caption: str | None = None,
        filename: str | None = None,
    ) -> ProviderResponse:
        """Send media by public link via Graph API."""
        if media_type not in SENDABLE_MEDIA_TYPES:
            return ProviderResponse(
                success=False,
                error_code="UNSUPPORTED_MEDIA_TYPE",
                error_message=f"Cannot send media of type {media_type}",
            )

        media: dict[str, Any] = {"link": link}
        # Audio messages carry no caption
        if caption and media_type != "audio":
            media["caption"] = caption
        if filename and media_type == "document":
            media["filename"] = filename

        payload = self._base_payload(to, media_type)
        payload[media_type] = media

        return await self._send(payload, media_type)

    async def get_media_url(self, media_id: str) -> str:
        """Get the download URL for a media file."""
        response = await self._make_request("GET", f"{self.base_url}/{media_id}")
        url = response.get("url")
        if not url:
            raise ProviderError(
                message=f"No download URL for media {media_id}",
                code="MEDIA_URL_MISSING",
                details=response,
            )
        return url

    async def download_media(self, media_id: str) -> bytes:
        """Resolve the media URL, then fetch its bytes with the same token."""
        url = await self.get_media_url(media_id)
        client = await self._get_client()

        try:
            response = await client.get(url, headers=self._auth_headers())
        except httpx.RequestError as e:
            raise ProviderError(
                message=f"Media download failed: {e}",
                code="HTTP_ERROR",
                retryable=True,
            )

        if response.status_code >= 400:
            raise ProviderError(
                message=f"Media download failed with HTTP {response.status_code}",
                code=str(response.status_code),
                retryable=response.status_code >= 500,
            )

        logger.debug(
            f"Downloaded media {media_id}",
            extra={"media_id": media_id, "size": len(response.content)},
        )
        return response.content
