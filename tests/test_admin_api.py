"""Tests for the listing approval API."""

from decimal import Decimal

import httpx
import pytest

from listing_bot.adapters.base import OutgoingMessage, PlatformAdapter
from listing_bot.admin_api import app, get_notifier
from listing_bot.config import settings
from listing_bot.db.models import PropertyStatus
from listing_bot.db.repositories import create_property, get_property, set_property_status
from listing_bot.db.session import get_session

ADMIN_KEY = "test-admin-key"


class RecordingNotifier(PlatformAdapter):
    def __init__(self) -> None:
        self.sent: list[OutgoingMessage] = []

    async def send_message(self, message: OutgoingMessage) -> None:
        self.sent.append(message)

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
async def client(session_factory, notifier, monkeypatch):
    monkeypatch.setattr(settings, "admin_api_key", ADMIN_KEY)

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://admin.test",
        headers={"X-Admin-Key": ADMIN_KEY},
    ) as c:
        yield c

    app.dependency_overrides.clear()


async def add_listing(session_factory, host, title: str, status=PropertyStatus.PENDING) -> int:
    async with session_factory() as session:
        prop = await create_property(
            session,
            host_id=host.id,
            status=status,
            title=title,
            price=Decimal("500000"),
            location="Mikocheni",
            property_type="House",
            images=["https://cdn.example/1.jpg"],
        )
        await session.commit()
        return prop.id


async def test_wrong_admin_key(client):
    response = await client.get("/listings/pending", headers={"X-Admin-Key": "nope"})
    assert response.status_code == 403


async def test_unconfigured_admin_key_refuses_everyone(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_api_key", "")
    response = await client.get("/listings/pending", headers={"X-Admin-Key": ""})
    assert response.status_code == 403


async def test_pending_listings(client, session_factory, host):
    first = await add_listing(session_factory, host, "First")
    await add_listing(session_factory, host, "Already live", PropertyStatus.APPROVED)
    second = await add_listing(session_factory, host, "Second")

    response = await client.get("/listings/pending")

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [first, second]
    assert response.json()[0]["status"] == "pending"


async def test_get_listing(client, session_factory, host):
    listing_id = await add_listing(session_factory, host, "Villa")
    response = await client.get(f"/listings/{listing_id}")
    assert response.status_code == 200
    assert response.json()["title"] == "Villa"
    assert response.json()["bathrooms"] == 1


async def test_approve(client, session_factory, host, notifier):
    listing_id = await add_listing(session_factory, host, "Villa")

    response = await client.post(f"/listings/{listing_id}/approve")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "approved"
    assert body["reviewed_at"] is not None

    async with session_factory() as session:
        prop = await get_property(session, listing_id)
    assert prop.status == PropertyStatus.APPROVED

    assert len(notifier.sent) == 1
    assert notifier.sent[0].chat_id == str(host.telegram_id)
    assert "approved" in notifier.sent[0].text
    assert notifier.sent[0].format_type == "plain"


async def test_reject(client, session_factory, host, notifier):
    listing_id = await add_listing(session_factory, host, "Villa")

    response = await client.post(
        f"/listings/{listing_id}/reject", json={"reason": "Photos are blurry"}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["rejection_reason"] == "Photos are blurry"
    assert "Photos are blurry" in notifier.sent[0].text
    assert f"/editlisting {listing_id}" in notifier.sent[0].text


async def test_reject_requires_reason(client, session_factory, host):
    listing_id = await add_listing(session_factory, host, "Villa")
    response = await client.post(f"/listings/{listing_id}/reject", json={"reason": ""})
    assert response.status_code == 422


async def test_review_twice_conflicts(client, session_factory, host):
    listing_id = await add_listing(session_factory, host, "Villa")
    assert (await client.post(f"/listings/{listing_id}/approve")).status_code == 200

    response = await client.post(f"/listings/{listing_id}/reject", json={"reason": "Late"})
    assert response.status_code == 409


async def test_unknown_listing(client):
    assert (await client.post("/listings/999/approve")).status_code == 404
    assert (await client.get("/listings/999")).status_code == 404


async def test_host_without_bot_is_not_notified(client, session_factory, host, notifier):
    async with session_factory() as session:
        user = await session.get(type(host), host.id)
        user.is_bot_started = False
        await session.commit()
    listing_id = await add_listing(session_factory, host, "Villa")

    assert (await client.post(f"/listings/{listing_id}/approve")).status_code == 200
    assert notifier.sent == []


async def test_status_change_sets_review_time(session_factory, host):
    listing_id = await add_listing(session_factory, host, "Villa")
    async with session_factory() as session:
        prop = await get_property(session, listing_id)
        await set_property_status(session, prop, PropertyStatus.ARCHIVED)
        await session.commit()
        assert prop.reviewed_at is not None
        assert prop.rejection_reason is None
