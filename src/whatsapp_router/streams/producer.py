"""
Notification Stream Producer

Publishes new-message notifications to a Redis Stream. A separate
consumer turns them into push notifications.
"""

import logging

import redis

from whatsapp_router.contracts.envelope import NotificationEnvelope
from whatsapp_router.contracts.event_types import RouterEventType

logger = logging.getLogger(__name__)

DEFAULT_MAX_LEN = 10000
PREVIEW_LENGTH = 100


class NotificationProducer:
    """
    Producer for new-message notifications.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        stream: str,
        max_len: int = DEFAULT_MAX_LEN,
    ):
        self.redis = redis_client
        self.stream = stream
        self.max_len = max_len

    def notify_new_message(
        self,
        display_name: str,
        body_preview: str,
        conversation_id: str,
    ) -> str:
        """
        Publish a new-message notification.

        Returns:
            Stream message ID
        """
        if len(body_preview) > PREVIEW_LENGTH:
            body_preview = body_preview[:PREVIEW_LENGTH] + "..."

        envelope = NotificationEnvelope.create(
            event_type=RouterEventType.NEW_MESSAGE.value,
            payload={
                "title": display_name,
                "body": body_preview,
                "conversation_id": conversation_id,
            },
        )

        msg_id = self.redis.xadd(
            self.stream,
            envelope.to_stream_data(),
            maxlen=self.max_len,
            approximate=True,
        )

        logger.debug(
            f"Published to {self.stream}",
            extra={
                "stream": self.stream,
                "event_type": envelope.event_type,
                "event_id": str(envelope.event_id),
                "msg_id": msg_id,
            },
        )

        return msg_id
