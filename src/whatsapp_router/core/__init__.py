"""
Core infrastructure: settings, logging, database and Redis clients.
"""

from whatsapp_router.core.db import Base, get_db, get_engine, get_sessionmaker
from whatsapp_router.core.logging import setup_logging
from whatsapp_router.core.redis import get_redis_client
from whatsapp_router.core.settings import Settings, get_settings

__all__ = [
    "Base",
    "Settings",
    "get_db",
    "get_engine",
    "get_redis_client",
    "get_sessionmaker",
    "get_settings",
    "setup_logging",
]
