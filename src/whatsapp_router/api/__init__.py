"""HTTP transport: webhook and conversation endpoints."""

from whatsapp_router.api.app import create_app

__all__ = ["create_app"]
