"""Redis Streams publishing for router notifications."""

from whatsapp_router.streams.producer import DEFAULT_MAX_LEN, NotificationProducer

__all__ = ["DEFAULT_MAX_LEN", "NotificationProducer"]
