"""
Router error types.

Provider failures live in ``whatsapp_router.providers.base.ProviderError``.
"""


class NotFoundError(Exception):
    """An entity referenced explicitly by id does not exist."""

    def __init__(self, entity: str, key: object):
        super().__init__(f"{entity} not found: {key}")
        self.entity = entity
        self.key = key


class DispatchError(Exception):
    """An outbound message could not be sent; nothing was persisted for it."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


class WebhookProcessingError(Exception):
    """A webhook delivery failed; the sender is expected to retry."""
