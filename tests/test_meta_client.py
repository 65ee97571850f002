"""
Tests for the Meta Cloud API provider, against httpx.MockTransport.
"""

import json

import httpx
import pytest

from whatsapp_router.providers.base import ProviderError
from whatsapp_router.providers.meta_cloud import MetaCloudWhatsAppProvider


class GraphAPI:
    """Records requests and answers like the Graph API."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.send_status = 200
        self.media_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path.endswith("/messages"):
            if self.send_status >= 400:
                return httpx.Response(
                    self.send_status,
                    json={"error": {"message": "Invalid parameter", "code": 100}},
                )
            return httpx.Response(200, json={"messages": [{"id": "wamid.SENT"}]})

        if request.url.path.endswith("/media-1"):
            return httpx.Response(200, json={"url": "https://lookaside.example.com/file-1"})
        if request.url.path.endswith("/media-no-url"):
            return httpx.Response(200, json={"id": "media-no-url"})
        if request.url.host == "lookaside.example.com":
            return httpx.Response(self.media_status, content=b"binary-data")

        return httpx.Response(404, json={"error": {"message": "Not found", "code": 404}})

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def graph():
    return GraphAPI()


@pytest.fixture
def meta_provider(graph):
    return MetaCloudWhatsAppProvider(
        phone_number_id="PHONE_123",
        access_token="token-abc",
        transport=httpx.MockTransport(graph.handler),
    )


class TestSend:
    """Tests for message sends."""

    @pytest.mark.asyncio
    async def test_send_text(self, meta_provider, graph):
        result = await meta_provider.send_text("5511888888888", "Olá")

        assert result.success is True
        assert result.message_id == "wamid.SENT"

        request = graph.requests[0]
        assert str(request.url) == "https://graph.facebook.com/v21.0/PHONE_123/messages"
        assert request.headers["Authorization"] == "Bearer token-abc"
        body = graph.last_json()
        assert body["messaging_product"] == "whatsapp"
        assert body["to"] == "5511888888888"
        assert body["text"]["body"] == "Olá"
        assert "context" not in body

    @pytest.mark.asyncio
    async def test_send_text_as_reply(self, meta_provider, graph):
        await meta_provider.send_text("5511888888888", "Olá", reply_to="wamid.IN")

        assert graph.last_json()["context"] == {"message_id": "wamid.IN"}

    @pytest.mark.asyncio
    async def test_send_template(self, meta_provider, graph):
        components = [{"type": "body", "parameters": [{"type": "text", "parameter_name": "name", "text": "Maria"}]}]

        result = await meta_provider.send_template("5511888888888", "access_created", "en", components)

        assert result.success is True
        template = graph.last_json()["template"]
        assert template["name"] == "access_created"
        assert template["language"] == {"code": "en"}
        assert template["components"] == components

    @pytest.mark.asyncio
    async def test_send_document(self, meta_provider, graph):
        await meta_provider.send_media(
            "5511888888888", "document", "https://cdn.example.com/a.pdf", caption="Boleto", filename="a.pdf"
        )

        body = graph.last_json()
        assert body["type"] == "document"
        assert body["document"] == {
            "link": "https://cdn.example.com/a.pdf",
            "caption": "Boleto",
            "filename": "a.pdf",
        }

    @pytest.mark.asyncio
    async def test_audio_has_no_caption(self, meta_provider, graph):
        await meta_provider.send_media("5511888888888", "audio", "https://cdn.example.com/a.ogg", caption="x")

        assert graph.last_json()["audio"] == {"link": "https://cdn.example.com/a.ogg"}

    @pytest.mark.asyncio
    async def test_unsupported_media_type(self, meta_provider, graph):
        result = await meta_provider.send_media("5511888888888", "sticker", "https://cdn.example.com/s.webp")

        assert result.success is False
        assert result.error_code == "UNSUPPORTED_MEDIA_TYPE"
        assert graph.requests == []

    @pytest.mark.asyncio
    async def test_api_error(self, meta_provider, graph):
        graph.send_status = 400

        result = await meta_provider.send_text("5511888888888", "Olá")

        assert result.success is False
        assert result.error_code == "100"
        assert result.error_message == "Invalid parameter"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = MetaCloudWhatsAppProvider("PHONE_123", "token", transport=httpx.MockTransport(refuse))

        result = await provider.send_text("5511888888888", "Olá")

        assert result.success is False
        assert result.error_code == "HTTP_ERROR"


class TestDownloadMedia:
    """Tests for media download."""

    @pytest.mark.asyncio
    async def test_download(self, meta_provider, graph):
        data = await meta_provider.download_media("media-1")

        assert data == b"binary-data"
        assert str(graph.requests[0].url) == "https://graph.facebook.com/v21.0/media-1"
        assert graph.requests[1].headers["Authorization"] == "Bearer token-abc"

    @pytest.mark.asyncio
    async def test_missing_url(self, meta_provider):
        with pytest.raises(ProviderError) as exc_info:
            await meta_provider.download_media("media-no-url")

        assert exc_info.value.code == "MEDIA_URL_MISSING"

    @pytest.mark.asyncio
    async def test_download_failure(self, meta_provider, graph):
        graph.media_status = 503

        with pytest.raises(ProviderError) as exc_info:
            await meta_provider.download_media("media-1")

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_close(self, meta_provider):
        await meta_provider.send_text("5511888888888", "Olá")
        await meta_provider.close()
        await meta_provider.close()
