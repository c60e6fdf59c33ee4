"""
Database repository for listing-related operations.

All raw database queries live here. Core business logic calls these
functions instead of touching SQLAlchemy directly, keeping the layers
cleanly separated.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from listing_bot.db.models import (
    DraftEntry,
    Property,
    PropertyAddress,
    PropertyStatus,
    User,
)

logger = logging.getLogger(__name__)


# ── Users ────────────────────────────────────────────────────


async def get_user_by_telegram_id(
    session: AsyncSession,
    telegram_id: int,
) -> User | None:
    """Find a user by their Telegram ID."""
    result = await session.execute(
        select(User).where(User.telegram_id == telegram_id)
    )
    return result.scalar_one_or_none()


async def get_or_create_user(
    session: AsyncSession,
    *,
    telegram_id: int,
    full_name: str,
) -> User:
    """Return the user with this Telegram ID, creating it on first contact."""
    user = await get_user_by_telegram_id(session, telegram_id)
    if user is None:
        user = User(telegram_id=telegram_id, full_name=full_name or "Unknown")
        session.add(user)
        await session.flush()
        logger.info("New user registered: %s (tg_id=%d)", full_name, telegram_id)
    return user


# ── Properties ───────────────────────────────────────────────


async def create_property(
    session: AsyncSession,
    *,
    host_id: int,
    status: PropertyStatus = PropertyStatus.PENDING,
    **fields: Any,
) -> Property:
    """Create a new listing. `fields` match Property column names."""
    prop = Property(host_id=host_id, status=status, **fields)
    session.add(prop)
    await session.flush()  # get prop.id without committing
    logger.info("Created property: %s (id=%d, host_id=%d)", prop.title, prop.id, host_id)
    return prop


async def get_property(
    session: AsyncSession,
    property_id: int,
) -> Property | None:
    """Load a listing with its address and host eagerly loaded."""
    result = await session.execute(
        select(Property)
        .where(Property.id == property_id)
        .options(selectinload(Property.address), selectinload(Property.host))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_host_property(
    session: AsyncSession,
    property_id: int,
    host_id: int,
) -> Property | None:
    """Load a listing only if it belongs to the given host."""
    result = await session.execute(
        select(Property)
        .where(Property.id == property_id, Property.host_id == host_id)
        .options(selectinload(Property.address))
    )
    return result.scalar_one_or_none()


async def get_host_properties(
    session: AsyncSession,
    host_id: int,
) -> Sequence[Property]:
    """All listings of a host, newest first."""
    result = await session.execute(
        select(Property)
        .where(Property.host_id == host_id)
        .order_by(Property.created_at.desc(), Property.id.desc())
    )
    return result.scalars().all()


async def update_property(
    session: AsyncSession,
    property_id: int,
    *,
    host_id: int | None = None,
    **fields: Any,
) -> Property | None:
    """
    Update a listing's fields.

    When `host_id` is given, only a listing owned by that host is updated.
    Returns None if no matching listing exists.
    """
    query = select(Property).where(Property.id == property_id)
    if host_id is not None:
        query = query.where(Property.host_id == host_id)
    result = await session.execute(query)
    prop = result.scalar_one_or_none()
    if prop is None:
        return None

    for key, value in fields.items():
        setattr(prop, key, value)
    await session.flush()
    logger.info("Updated property id=%d: %s", property_id, list(fields.keys()))
    return prop


async def save_property_address(
    session: AsyncSession,
    *,
    property_id: int,
    **fields: Any,
) -> PropertyAddress:
    """Insert or update the address row of a listing."""
    result = await session.execute(
        select(PropertyAddress).where(PropertyAddress.property_id == property_id)
    )
    address = result.scalar_one_or_none()
    if address is None:
        address = PropertyAddress(property_id=property_id, **fields)
        session.add(address)
    else:
        for key, value in fields.items():
            setattr(address, key, value)
    await session.flush()
    return address


async def get_pending_properties(session: AsyncSession) -> Sequence[Property]:
    """Listings awaiting approval, oldest first."""
    result = await session.execute(
        select(Property)
        .where(Property.status == PropertyStatus.PENDING)
        .order_by(Property.created_at, Property.id)
    )
    return result.scalars().all()


async def set_property_status(
    session: AsyncSession,
    prop: Property,
    status: PropertyStatus,
    *,
    reason: str | None = None,
) -> Property:
    """Record an approval decision on a listing."""
    prop.status = status
    prop.rejection_reason = reason
    prop.reviewed_at = datetime.now(timezone.utc)
    await session.flush()
    logger.info("Property id=%d → %s", prop.id, status.value)
    return prop


# ── Draft entries ────────────────────────────────────────────


async def get_draft_value(session: AsyncSession, key: str) -> str | None:
    result = await session.execute(
        select(DraftEntry.value).where(DraftEntry.key == key)
    )
    return result.scalar_one_or_none()


async def set_draft_value(session: AsyncSession, key: str, value: str) -> None:
    entry = await session.get(DraftEntry, key)
    if entry is None:
        session.add(DraftEntry(key=key, value=value))
    else:
        entry.value = value
    await session.flush()


async def delete_draft_value(session: AsyncSession, key: str) -> None:
    await session.execute(delete(DraftEntry).where(DraftEntry.key == key))
