import functools

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from whatsapp_router.core.settings import get_settings

Base = declarative_base()


@functools.lru_cache()
def get_engine():
    """
    Get SQLAlchemy engine (cached).

    This function lazily initializes the engine to avoid import-time side effects.
    The engine is created using DATABASE_URL from settings.
    """
    settings = get_settings()
    connect_args = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,
        echo=False,
        connect_args=connect_args,
    )


@functools.lru_cache()
def get_sessionmaker():
    """
    Get SQLAlchemy sessionmaker (cached).
    """
    engine = get_engine()
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency generator for FastAPI to get database session.

    Yields a database session and ensures it's closed after use.
    """
    SessionLocal = get_sessionmaker()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
