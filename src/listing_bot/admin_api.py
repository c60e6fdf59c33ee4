"""
Admin API for reviewing submitted listings.

Run standalone:
    uvicorn listing_bot.admin_api:app --port 8080

Endpoints:
    GET  /listings/pending          — listings awaiting review, oldest first
    GET  /listings/{id}             — one listing
    POST /listings/{id}/approve     — approve a pending listing
    POST /listings/{id}/reject      — reject a pending listing with a reason

Authentication: shared admin API key in the X-Admin-Key header
(ADMIN_API_KEY). Requests are refused while the key is not configured.

After a decision the host is told about it through the messaging
platform, if a bot token is configured.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from listing_bot.adapters.base import OutgoingMessage, PlatformAdapter
from listing_bot.config import settings
from listing_bot.db.models import Property, PropertyStatus
from listing_bot.db.repositories import get_pending_properties, get_property, set_property_status
from listing_bot.db.session import get_session

logger = logging.getLogger(__name__)

_notifier: PlatformAdapter | None = None


def get_notifier() -> PlatformAdapter | None:
    """Messaging adapter used to tell hosts about review results, if configured."""
    global _notifier
    if _notifier is None and settings.telegram_bot_token:
        from listing_bot.adapters.telegram.bot import TelegramAdapter

        _notifier = TelegramAdapter()
    return _notifier


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _notifier is not None:
        await _notifier.stop()


app = FastAPI(title="Listing Bot Admin API", version="1.0.0", lifespan=lifespan)


# ── Auth ──────────────────────────────────────────────────────


async def verify_admin_key(x_admin_key: str = Header(...)) -> None:
    if not settings.admin_api_key or x_admin_key != settings.admin_api_key:
        raise HTTPException(status_code=403, detail="Invalid admin key")


# ── Schemas ───────────────────────────────────────────────────


class ListingOut(BaseModel):
    id: int
    host_id: int
    title: str
    description: str
    price: Decimal
    location: str
    property_type: str
    bedrooms: int
    bathrooms: int
    square_meters: int | None
    contact_phone: str | None
    contact_whatsapp_phone: str | None
    amenities: list[str]
    nearby_services: list[str]
    images: list[str]
    status: PropertyStatus
    rejection_reason: str | None
    created_at: datetime
    reviewed_at: datetime | None

    model_config = {"from_attributes": True}


class RejectBody(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


# ── Helpers ───────────────────────────────────────────────────


async def _get_pending(session: AsyncSession, property_id: int) -> Property:
    prop = await get_property(session, property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Listing not found")
    if prop.status != PropertyStatus.PENDING:
        raise HTTPException(
            status_code=409,
            detail=f"Listing is {prop.status.value}, only pending listings can be reviewed",
        )
    return prop


async def _notify_host(notifier: PlatformAdapter | None, prop: Property) -> None:
    host = prop.host
    if notifier is None or host is None or not host.telegram_id or not host.is_bot_started:
        return

    if prop.status == PropertyStatus.APPROVED:
        text = f"✅ Your listing \"{prop.title}\" (#{prop.id}) has been approved and is now published."
    else:
        text = (
            f"❌ Your listing \"{prop.title}\" (#{prop.id}) was not approved.\n"
            f"Reason: {prop.rejection_reason}\n\n"
            f"Fix it with /editlisting {prop.id}"
        )

    try:
        await notifier.send_message(OutgoingMessage(chat_id=str(host.telegram_id), text=text))
    except Exception as e:
        # Decision is already committed
        logger.warning("Failed to notify host %d about listing %d: %s", host.id, prop.id, e)


# ── Endpoints ─────────────────────────────────────────────────


@app.get("/listings/pending", response_model=list[ListingOut])
async def list_pending(
    session: AsyncSession = Depends(get_session),
    _: None = Depends(verify_admin_key),
):
    """Listings awaiting review, oldest first."""
    listings = await get_pending_properties(session)
    return [ListingOut.model_validate(p) for p in listings]


@app.get("/listings/{property_id}", response_model=ListingOut)
async def get_listing(
    property_id: int,
    session: AsyncSession = Depends(get_session),
    _: None = Depends(verify_admin_key),
):
    prop = await get_property(session, property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Listing not found")
    return ListingOut.model_validate(prop)


@app.post("/listings/{property_id}/approve", response_model=ListingOut)
async def approve_listing(
    property_id: int,
    session: AsyncSession = Depends(get_session),
    notifier: PlatformAdapter | None = Depends(get_notifier),
    _: None = Depends(verify_admin_key),
):
    prop = await _get_pending(session, property_id)
    await set_property_status(session, prop, PropertyStatus.APPROVED)
    await session.commit()
    logger.info("Listing %d approved", prop.id)

    await _notify_host(notifier, prop)
    return ListingOut.model_validate(prop)


@app.post("/listings/{property_id}/reject", response_model=ListingOut)
async def reject_listing(
    property_id: int,
    body: RejectBody,
    session: AsyncSession = Depends(get_session),
    notifier: PlatformAdapter | None = Depends(get_notifier),
    _: None = Depends(verify_admin_key),
):
    prop = await _get_pending(session, property_id)
    await set_property_status(session, prop, PropertyStatus.REJECTED, reason=body.reason.strip())
    await session.commit()
    logger.info("Listing %d rejected: %s", prop.id, body.reason)

    await _notify_host(notifier, prop)
    return ListingOut.model_validate(prop)
