"""
Pytest fixtures and configuration.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from listing_bot.core.form_state import FormState
from listing_bot.db.models import Base, User

IMAGE_URLS = [
    "https://store.example/storage/v1/object/public/property-images/1/a.jpg",
    "https://store.example/storage/v1/object/public/property-images/1/b.jpg",
    "https://store.example/storage/v1/object/public/property-images/1/c.jpg",
]


@pytest.fixture
async def session_factory():
    """In-memory SQLite shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    yield factory

    await engine.dispose()


@pytest.fixture
async def host(session_factory) -> User:
    async with session_factory() as session:
        user = User(telegram_id=610379797, full_name="Asha Mushi", is_bot_started=True)
        session.add(user)
        await session.commit()
    return user


@pytest.fixture
def complete_form() -> FormState:
    form = FormState(
        title="Modern 2-bedroom apartment",
        price="850000",
        location="Masaki",
        description="Bright apartment close to the beach.",
        property_type="Apartment",
        bedrooms="2",
        bathrooms="1",
        square_meters="85",
        contact_phone="+255712345678",
        full_address="12 Haile Selassie Rd\nMasaki\nDar es Salaam\nKinondoni\n14111",
        amenities={"wifi", "water"},
        nearby_services={"school"},
    )
    form.set_field("images", IMAGE_URLS)
    return form
