"""
Tests for the conversation read path.
"""

from datetime import datetime, timedelta, timezone

import pytest

from whatsapp_router.errors import NotFoundError
from whatsapp_router.persistence.models import MessageDirection, MessageStatus, MessageType
from whatsapp_router.service.conversations import ConversationService, is_within_window

NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)
HOUR_MS = 60 * 60 * 1000


def ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


@pytest.fixture
def service(db_session):
    return ConversationService(db_session)


@pytest.fixture
def add_message(repo, db_session):
    counter = iter(range(1000))

    def _add(conversation, direction, at, template_header=None, text="oi"):
        message = repo.create_message(
            id=f"wamid.{next(counter)}",
            conversation_id=conversation.id,
            contact_id=conversation.contact_id,
            direction=direction.value,
            type=MessageType.TEXT.value,
            timestamp=ms(at),
            status=MessageStatus.DELIVERED.value,
            text_body=text,
            template_header=template_header,
        )
        conversation.last_message_at = at
        db_session.commit()
        return message

    return _add


@pytest.fixture
def make_conversation(repo, db_session):
    def _make(wa_id, name="Maria"):
        contact = repo.create_contact(wa_id=wa_id, name=name)
        db_session.flush()
        conversation, _ = repo.get_or_create_conversation(contact)
        db_session.commit()
        return conversation

    return _make


class TestWindow:
    """Tests for the 24-hour window check."""

    def test_boundaries(self):
        now = ms(NOW)
        assert is_within_window(now - 23 * HOUR_MS, now) is True
        assert is_within_window(now - 24 * HOUR_MS, now) is False
        assert is_within_window(None, now) is False


class TestListConversations:
    """Tests for the conversation list."""

    def test_most_recent_first(self, service, make_conversation, add_message):
        older = make_conversation("5511900000001")
        newer = make_conversation("5511900000002")
        add_message(older, MessageDirection.INBOUND, NOW - timedelta(hours=5))
        add_message(newer, MessageDirection.INBOUND, NOW - timedelta(hours=1))

        summaries = service.list_conversations(now=NOW)

        assert [s.conversation.id for s in summaries] == [newer.id, older.id]
        assert summaries[0].contact.wa_id == "5511900000002"

    def test_inbound_opens_window(self, service, make_conversation, add_message):
        conversation = make_conversation("5511900000001")
        add_message(conversation, MessageDirection.INBOUND, NOW - timedelta(hours=2))

        summary = service.list_conversations(now=NOW)[0]

        assert summary.is_within_24_hours is True
        assert summary.last_relevant_message_at == NOW - timedelta(hours=2)

    def test_plain_outbound_does_not_open_window(self, service, make_conversation, add_message):
        conversation = make_conversation("5511900000001")
        add_message(conversation, MessageDirection.INBOUND, NOW - timedelta(hours=30))
        last = add_message(conversation, MessageDirection.OUTBOUND, NOW - timedelta(hours=1), text="bom dia")

        summary = service.list_conversations(now=NOW)[0]

        assert summary.is_within_24_hours is False
        assert summary.last_message.id == last.id
        assert summary.last_relevant_message_at == NOW - timedelta(hours=30)

    def test_template_opens_window(self, service, make_conversation, add_message):
        conversation = make_conversation("5511900000001")
        add_message(
            conversation,
            MessageDirection.OUTBOUND,
            NOW - timedelta(hours=3),
            template_header="Bem vindo Maria",
        )

        assert service.list_conversations(now=NOW)[0].is_within_24_hours is True

    def test_window_closes_over_time(self, service, make_conversation, add_message):
        conversation = make_conversation("5511900000001")
        add_message(conversation, MessageDirection.INBOUND, NOW - timedelta(hours=2))

        later = NOW + timedelta(hours=23)

        assert service.list_conversations(now=later)[0].is_within_24_hours is False

    def test_empty_conversation(self, service, make_conversation):
        make_conversation("5511900000001")

        summary = service.list_conversations(now=NOW)[0]

        assert summary.last_message is None
        assert summary.last_relevant_message_at is None
        assert summary.is_within_24_hours is False


class TestMessages:
    """Tests for message history and naming."""

    def test_get_messages_clears_unread(self, service, make_conversation, add_message, repo, db_session):
        conversation = make_conversation("5511900000001")
        second = add_message(conversation, MessageDirection.INBOUND, NOW - timedelta(hours=1))
        first = add_message(conversation, MessageDirection.INBOUND, NOW - timedelta(hours=2))
        repo.record_inbound(conversation, NOW)
        repo.record_inbound(conversation, NOW)
        db_session.commit()

        result = service.get_messages(conversation.id)

        assert [m.id for m in result] == [first.id, second.id]
        db_session.refresh(conversation)
        assert conversation.unread_count == 0

    def test_get_messages_unknown(self, service):
        with pytest.raises(NotFoundError):
            service.get_messages("missing")

    def test_update_custom_name(self, service, make_conversation):
        conversation = make_conversation("5511900000001")

        contact = service.update_custom_name(conversation.contact_id, "Dona Maria")
        assert contact.custom_name == "Dona Maria"
        assert contact.display_name == "Dona Maria"

        contact = service.update_custom_name(conversation.contact_id, "")
        assert contact.custom_name is None
        assert contact.display_name == "Maria"

    def test_update_custom_name_unknown(self, service):
        with pytest.raises(NotFoundError):
            service.update_custom_name("missing", "x")
