"""
Pytest fixtures for router tests.

Tests run against an in-memory SQLite database, the stub provider and
httpx.MockTransport for project membership probes.
"""

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from whatsapp_router.core.db import Base
from whatsapp_router.persistence import RouterRepository
from whatsapp_router.providers.stub import StubWhatsAppProvider
from whatsapp_router.routing.membership import MembershipResolver
from whatsapp_router.service.inbound_handler import WebhookProcessor
from whatsapp_router.service.media_store import LocalMediaStore


class FakeNotifier:
    """Records notifications instead of writing to Redis."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.notifications: list[tuple[str, str, str]] = []

    def notify_new_message(self, display_name, body_preview, conversation_id):
        if self.fail:
            raise ConnectionError("redis unavailable")
        self.notifications.append((display_name, body_preview, conversation_id))


class ProjectDirectory:
    """
    Fake project APIs answering membership probes.

    members maps a project host to the set of phone numbers it knows;
    hosts in `failing` answer 500, hosts in `timeouts` time out.
    """

    def __init__(self):
        self.members: dict[str, set[str]] = {}
        self.failing: set[str] = set()
        self.timeouts: set[str] = set()
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host

        if host in self.timeouts:
            raise httpx.ReadTimeout("probe timed out", request=request)
        if host in self.failing:
            return httpx.Response(500, json={"error": "boom"})

        phone = request.url.params.get("phone")
        return httpx.Response(200, json={"exists": phone in self.members.get(host, set())})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    Session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def repo(db_session):
    return RouterRepository(db_session)


@pytest.fixture
def provider():
    return StubWhatsAppProvider()


@pytest.fixture
def directory():
    return ProjectDirectory()


@pytest.fixture
def resolver(directory):
    return MembershipResolver(timeout=5.0, transport=directory.transport())


@pytest.fixture
def media_store(tmp_path):
    return LocalMediaStore(tmp_path / "uploads", "/uploads")


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def processor(db_session, provider, resolver, media_store, notifier):
    return WebhookProcessor(
        db_session,
        provider=provider,
        resolver=resolver,
        media_store=media_store,
        notifier=notifier,
        bot_name="Alessandro",
    )


@pytest.fixture
def make_project(repo, db_session):
    """Create a project whose membership route lives on <host>."""

    def _make(name: str, host: str | None = None, external_api_key: str | None = None):
        project = repo.create_project(
            name=name,
            api_url=f"https://{host}" if host else None,
            user_numbers_api_url="/api/users/exists" if host else None,
            api_key=f"key-{name}",
            external_api_key=external_api_key,
        )
        db_session.commit()
        return project

    return _make


def make_webhook(messages=None, statuses=None, contacts=None):
    """Build a Meta webhook payload around a value object."""
    value = {"messaging_product": "whatsapp"}
    if contacts is not None:
        value["contacts"] = contacts
    if messages is not None:
        value["messages"] = messages
    if statuses is not None:
        value["statuses"] = statuses
    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA_1", "changes": [{"field": "messages", "value": value}]}],
    }


def text_message(from_phone: str, body: str, message_id: str, timestamp: int = 1704067200, name: str | None = "Maria"):
    """Webhook payload for a single text message."""
    contacts = [{"wa_id": from_phone, "profile": {"name": name}}] if name else []
    return make_webhook(
        messages=[{
            "from": from_phone,
            "id": message_id,
            "timestamp": str(timestamp),
            "type": "text",
            "text": {"body": body},
        }],
        contacts=contacts,
    )


@pytest.fixture
def sample_phone():
    """Brazilian mobile number with the 9 digit."""
    return "5511987654321"
