"""
Tests for the notification stream producer.
"""

import json
from unittest.mock import MagicMock

import pytest

from whatsapp_router.contracts import NotificationEnvelope, RouterEventType
from whatsapp_router.streams.producer import DEFAULT_MAX_LEN, NotificationProducer


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.xadd.return_value = "1704067200000-0"
    return client


class TestNotificationProducer:
    """Tests for NotificationProducer."""

    def test_publishes_envelope(self, redis_client):
        producer = NotificationProducer(redis_client, "notifications:whatsapp")

        msg_id = producer.notify_new_message("Maria", "Olá!", "conv-1")

        assert msg_id == "1704067200000-0"
        stream, data = redis_client.xadd.call_args.args
        assert stream == "notifications:whatsapp"
        assert redis_client.xadd.call_args.kwargs == {"maxlen": DEFAULT_MAX_LEN, "approximate": True}

        envelope = NotificationEnvelope.from_stream_message(msg_id, data)
        assert envelope.event_type == RouterEventType.NEW_MESSAGE.value
        assert envelope.payload == {"title": "Maria", "body": "Olá!", "conversation_id": "conv-1"}
        assert envelope.metadata["stream_msg_id"] == msg_id

    def test_long_preview_is_truncated(self, redis_client):
        producer = NotificationProducer(redis_client, "notifications:whatsapp")

        producer.notify_new_message("Maria", "a" * 150, "conv-1")

        data = redis_client.xadd.call_args.args[1]
        body = json.loads(data["payload"])["body"]
        assert body == "a" * 100 + "..."

    def test_short_preview_untouched(self, redis_client):
        producer = NotificationProducer(redis_client, "notifications:whatsapp")

        producer.notify_new_message("Maria", "a" * 100, "conv-1")

        data = redis_client.xadd.call_args.args[1]
        assert json.loads(data["payload"])["body"] == "a" * 100

    def test_redis_errors_propagate(self, redis_client):
        redis_client.xadd.side_effect = ConnectionError("down")
        producer = NotificationProducer(redis_client, "notifications:whatsapp")

        with pytest.raises(ConnectionError):
            producer.notify_new_message("Maria", "Olá!", "conv-1")
