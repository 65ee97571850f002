"""
Tests for the outbound dispatcher.
"""

import pytest

from whatsapp_router.errors import DispatchError, NotFoundError
from whatsapp_router.persistence.models import Message, MessageDirection, MessageStatus, MessageType
from whatsapp_router.providers.base import ProviderResponse
from whatsapp_router.providers.stub import StubWhatsAppProvider
from whatsapp_router.service.outbound_handler import (
    OutboundDispatcher,
    hostname_of,
    synthesize_message_id,
)

FOOTER = "Equipe Plataforma"

INVITE_VARIABLES = {
    "name": "João",
    "platform": "Escola",
    "platform_url": "https://escola.example.com",
    "login": "joao@example.com",
    "password": "s3cret",
}

RESET_VARIABLES = {
    "name": "João",
    "platform_name": "Escola",
    "password_reset_url": "https://escola.example.com/reset/abc",
}


class NoIdProvider(StubWhatsAppProvider):
    """Accepts every send but never returns a message id."""

    async def send_text(self, to, text, reply_to=None):
        await super().send_text(to, text, reply_to)
        return ProviderResponse(success=True)


@pytest.fixture
def dispatcher(db_session, provider):
    return OutboundDispatcher(db_session, provider, template_footer=FOOTER)


@pytest.fixture
def conversation(repo, db_session, sample_phone):
    contact = repo.create_contact(wa_id=sample_phone, name="Maria")
    db_session.flush()
    conversation, _ = repo.get_or_create_conversation(contact)
    db_session.commit()
    return conversation


def messages(db_session):
    return db_session.query(Message).all()


class TestHelpers:
    """Tests for module helpers."""

    def test_hostname_strips_port(self):
        assert hostname_of("escola.example.com:3000") == "escola.example.com"
        assert hostname_of("escola.example.com") == "escola.example.com"
        assert hostname_of(None) == ""

    def test_synthesized_ids_are_unique(self):
        first, second = synthesize_message_id(), synthesize_message_id()

        assert first.startswith("temp_")
        assert first != second


class TestSendText:
    """Tests for operator text messages."""

    @pytest.mark.asyncio
    async def test_send_persists_outbound(self, dispatcher, provider, conversation, db_session, sample_phone):
        message = await dispatcher.send_text(conversation.id, "Olá Maria", reply_to_id="wamid.in")

        assert provider.sent_messages[0]["to"] == sample_phone
        assert provider.sent_messages[0]["reply_to"] == "wamid.in"

        assert message.id == provider.sent_messages[0]["message_id"]
        assert message.direction == MessageDirection.OUTBOUND.value
        assert message.type == MessageType.TEXT.value
        assert message.status == MessageStatus.SENT.value
        assert message.text_body == "Olá Maria"
        assert message.reply_to_id == "wamid.in"
        assert message.sent_at is not None

        db_session.refresh(conversation)
        assert conversation.last_message_at is not None

    @pytest.mark.asyncio
    async def test_unknown_conversation(self, dispatcher, provider):
        with pytest.raises(NotFoundError):
            await dispatcher.send_text("missing", "Olá")

        assert provider.sent_messages == []

    @pytest.mark.asyncio
    async def test_failed_send_persists_nothing(self, db_session, conversation):
        failing = StubWhatsAppProvider(simulate_failures=True)
        dispatcher = OutboundDispatcher(db_session, failing)

        with pytest.raises(DispatchError) as exc_info:
            await dispatcher.send_text(conversation.id, "Olá")

        assert exc_info.value.code == "STUB_SIMULATED_FAILURE"
        assert messages(db_session) == []

    @pytest.mark.asyncio
    async def test_missing_provider_id_is_synthesized(self, db_session, conversation):
        dispatcher = OutboundDispatcher(db_session, NoIdProvider())

        first = await dispatcher.send_text(conversation.id, "um")
        second = await dispatcher.send_text(conversation.id, "dois")

        assert first.id.startswith("temp_")
        assert first.id != second.id
        assert len(messages(db_session)) == 2


class TestReply:
    """Tests for automated replies."""

    @pytest.mark.asyncio
    async def test_reply(self, dispatcher, provider, conversation, db_session):
        contact = conversation.contact

        message = await dispatcher.reply(contact, conversation, "Olá!")

        assert provider.sent_messages[0]["text"] == "Olá!"
        assert provider.sent_messages[0]["reply_to"] is None
        assert message.contact_id == contact.id
        assert message.text_body == "Olá!"


class TestSendMedia:
    """Tests for media sends."""

    @pytest.mark.asyncio
    async def test_document(self, dispatcher, provider, conversation):
        message = await dispatcher.send_media(
            conversation.id,
            "document",
            "https://cdn.example.com/boleto.pdf",
            caption="Seu boleto",
            filename="boleto.pdf",
        )

        sent = provider.sent_messages[0]
        assert sent["type"] == "document"
        assert sent["link"] == "https://cdn.example.com/boleto.pdf"
        assert sent["filename"] == "boleto.pdf"

        assert message.type == MessageType.DOCUMENT.value
        assert message.caption == "Seu boleto"
        assert message.media_filename == "boleto.pdf"
        assert message.media_local_path == "https://cdn.example.com/boleto.pdf"

    @pytest.mark.asyncio
    async def test_unsupported_type(self, dispatcher, provider, conversation):
        with pytest.raises(ValueError):
            await dispatcher.send_media(conversation.id, "sticker", "https://cdn.example.com/s.webp")

        assert provider.sent_messages == []


class TestSendTemplate:
    """Tests for invite and password reset templates."""

    @pytest.mark.asyncio
    async def test_invite_creates_bound_contact(self, dispatcher, provider, make_project, repo, sample_phone):
        escola = make_project("Escola", host="escola.example.com")

        message = await dispatcher.send_template(
            sample_phone, "access_created", INVITE_VARIABLES, request_host="escola.example.com:443"
        )

        sent = provider.sent_messages[0]
        assert sent["template_name"] == "access_created"
        assert sent["language_code"] == "en"
        assert sent["components"][0]["parameters"][0]["text"] == "João"

        contact = repo.get_contact_by_wa_id(sample_phone)
        assert contact.custom_name == "João"
        assert contact.project_id == escola.id
        assert contact.pending_project_selection is False

        assert message.template_header == "Bem vindo João"
        assert message.template_footer == FOOTER
        assert "https://escola.example.com" in message.text_body
        assert "Senha: s3cret" in message.text_body
        assert "Bem vindo" not in message.text_body
        assert message.conversation_id == contact.conversation.id

    @pytest.mark.asyncio
    async def test_invite_finds_alternate_number(self, dispatcher, repo, db_session, make_project):
        make_project("Escola", host="escola.example.com")
        existing = repo.create_contact(wa_id="551187654321", name="Joao")
        db_session.commit()

        await dispatcher.send_template(
            "5511987654321", "access_created", INVITE_VARIABLES, request_host="escola.example.com"
        )

        assert repo.get_contact_by_wa_id("5511987654321") is None
        db_session.refresh(existing)
        assert existing.custom_name == "João"

    @pytest.mark.asyncio
    async def test_invite_rebinds_existing_project(self, dispatcher, repo, db_session, make_project, sample_phone):
        igreja = make_project("Igreja", host="igreja.example.com")
        escola = make_project("Escola", host="escola.example.com")
        contact = repo.create_contact(wa_id=sample_phone, project_id=igreja.id)
        db_session.commit()

        await dispatcher.send_template(
            sample_phone, "access_created", INVITE_VARIABLES, request_host="escola.example.com"
        )

        db_session.refresh(contact)
        assert contact.project_id == escola.id

    @pytest.mark.asyncio
    async def test_password_reset_keeps_existing_project(self, dispatcher, repo, db_session, make_project, sample_phone):
        igreja = make_project("Igreja", host="igreja.example.com")
        make_project("Escola", host="escola.example.com")
        contact = repo.create_contact(wa_id=sample_phone, project_id=igreja.id)
        db_session.commit()

        message = await dispatcher.send_template(
            sample_phone, "password_reset_url", RESET_VARIABLES, request_host="escola.example.com"
        )

        db_session.refresh(contact)
        assert contact.project_id == igreja.id
        assert message.template_header == "Redefinição de senha Escola"
        assert "https://escola.example.com/reset/abc" in message.text_body

    @pytest.mark.asyncio
    async def test_password_reset_binds_unassigned_contact(self, dispatcher, repo, make_project, sample_phone):
        escola = make_project("Escola", host="escola.example.com")

        await dispatcher.send_template(
            sample_phone, "password_reset_url", RESET_VARIABLES, request_host="escola.example.com"
        )

        assert repo.get_contact_by_wa_id(sample_phone).project_id == escola.id

    @pytest.mark.asyncio
    async def test_unknown_host_leaves_contact_unbound(self, dispatcher, repo, make_project, sample_phone):
        make_project("Escola", host="escola.example.com")

        await dispatcher.send_template(
            sample_phone, "access_created", INVITE_VARIABLES, request_host="other.example.org"
        )

        assert repo.get_contact_by_wa_id(sample_phone).project_id is None

    @pytest.mark.asyncio
    async def test_missing_variable_sends_nothing(self, dispatcher, provider, db_session, sample_phone):
        variables = dict(INVITE_VARIABLES)
        del variables["password"]

        with pytest.raises(ValueError):
            await dispatcher.send_template(sample_phone, "access_created", variables)

        assert provider.sent_messages == []
        assert messages(db_session) == []

    @pytest.mark.asyncio
    async def test_failed_template_creates_nothing(self, db_session, repo, sample_phone):
        dispatcher = OutboundDispatcher(db_session, StubWhatsAppProvider(simulate_failures=True))

        with pytest.raises(DispatchError):
            await dispatcher.send_template(sample_phone, "access_created", INVITE_VARIABLES)

        assert repo.get_contact_by_wa_id(sample_phone) is None
        assert messages(db_session) == []
