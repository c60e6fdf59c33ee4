"""
Core service for saving a listing from the wizard.

Turns a complete FormState into a Property record: validates the values
the database cares about (numbers, phone formats, property type), builds
the row payload, and creates or updates the listing together with its
address in a single transaction.

New listings always start as `pending`; approval happens elsewhere
(see admin_api).

This service is called by the wizard controller and never imports
platform-specific code.
"""

import enum
import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from listing_bot.core.errors import SubmissionError
from listing_bot.core.form_state import FormState, PropertyType
from listing_bot.db.models import Property, PropertyAddress, PropertyStatus
from listing_bot.db.repositories import (
    create_property,
    get_property,
    save_property_address,
    update_property,
)

logger = logging.getLogger(__name__)

TANZANIA_PREFIX = "+255"
TANZANIA_PHONE_LENGTH = 13  # +255 followed by 9 digits
MIN_PHONE_LENGTH = 10


class SubmissionMode(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"


class ListingSubmitter(ABC):
    """Saves a validated form. Raises SubmissionError on any failure."""

    @abstractmethod
    async def submit(
        self,
        form: FormState,
        mode: SubmissionMode,
        property_id: int | None = None,
    ) -> Property:
        ...


# ── Validation ───────────────────────────────────────────────


def _parse_decimal(raw: str) -> Decimal | None:
    text = raw.strip().replace(" ", "").replace(",", "")
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _parse_int(raw: str) -> int | None:
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _phone_errors(phone: str, label: str, *, check_length: bool) -> list[str]:
    if not phone.startswith("+"):
        return [f"{label} must start with a country code (e.g. +255)"]
    if phone.startswith(TANZANIA_PREFIX) and len(phone) < TANZANIA_PHONE_LENGTH:
        return [f"Tanzanian {label.lower()} must be +255 followed by 9 digits (e.g. +255712345678)"]
    if check_length and len(phone) < MIN_PHONE_LENGTH:
        return [f"{label} is not valid"]
    return []


def validate_listing_payload(form: FormState) -> list[str]:
    """Return every problem that would stop the listing from being saved."""
    errors: list[str] = []

    price = _parse_decimal(form.price)
    if price is None or price <= 0:
        errors.append("Price must be a number greater than 0")

    if form.bedrooms.strip():
        bedrooms = _parse_int(form.bedrooms)
        if bedrooms is None or bedrooms < 0:
            errors.append("Bedrooms must be 0 or more")

    if form.bathrooms.strip():
        bathrooms = _parse_int(form.bathrooms)
        if bathrooms is None or bathrooms < 1:
            errors.append("Bathrooms must be at least 1")

    if form.square_meters.strip():
        area = _parse_int(form.square_meters)
        if area is None or area <= 0:
            errors.append("Square meters must be a positive whole number")

    property_type = form.property_type.strip()
    if not property_type:
        errors.append("Choose a property type")
    elif property_type not in {t.value for t in PropertyType}:
        errors.append(f"Unknown property type: {property_type}")

    phone = form.contact_phone.strip()
    if not phone:
        errors.append("Contact phone is required")
    else:
        errors.extend(_phone_errors(phone, "Phone number", check_length=True))

    whatsapp = form.contact_whatsapp_phone.strip()
    if whatsapp:
        errors.extend(_phone_errors(whatsapp, "WhatsApp number", check_length=False))

    return errors


# ── Payload building ─────────────────────────────────────────


def build_property_payload(form: FormState) -> dict[str, Any]:
    """Column values for a Property row. Assumes validate_listing_payload passed."""
    return {
        "title": form.title.strip(),
        "description": form.description.strip(),
        "price": _parse_decimal(form.price),
        "location": form.location.strip(),
        "property_type": form.property_type.strip() or PropertyType.APARTMENT.value,
        "bedrooms": _parse_int(form.bedrooms) if form.bedrooms.strip() else 0,
        "bathrooms": _parse_int(form.bathrooms) if form.bathrooms.strip() else 1,
        "square_meters": _parse_int(form.square_meters) if form.square_meters.strip() else None,
        "contact_phone": form.contact_phone.strip() or None,
        "contact_whatsapp_phone": form.contact_whatsapp_phone.strip() or None,
        "amenities": sorted(form.amenities),
        "nearby_services": sorted(form.nearby_services),
        "images": list(form.images),
    }


def build_address_payload(full_address: str, country: str) -> dict[str, Any] | None:
    """
    Split a multi-line address into columns.

    Line layout: street, (area), city, region, postal code.
    Returns None for an empty address.
    """
    full_address = full_address.strip()
    if not full_address:
        return None

    lines = [line.strip() for line in full_address.split("\n")]

    def line(index: int) -> str | None:
        if index >= len(lines):
            return None
        return lines[index] or None

    return {
        "location": full_address,
        "street": line(0),
        "city": line(2),
        "region": line(3),
        "postal_code": line(4),
        "country": country,
    }


def form_from_property(prop: Property, address: PropertyAddress | None = None) -> FormState:
    """Rebuild wizard form data from a saved listing, for editing."""
    form = FormState(
        title=prop.title or "",
        description=prop.description or "",
        price=_format_price(prop.price),
        location=prop.location or "",
        full_address=address.location if address else "",
        property_type=prop.property_type or "",
        bedrooms="" if prop.bedrooms is None else str(prop.bedrooms),
        bathrooms="" if prop.bathrooms is None else str(prop.bathrooms),
        square_meters="" if prop.square_meters is None else str(prop.square_meters),
        contact_phone=prop.contact_phone or "",
        contact_whatsapp_phone=prop.contact_whatsapp_phone or "",
        amenities=set(prop.amenities or []),
        nearby_services=set(prop.nearby_services or []),
    )
    form.set_field("images", prop.images or [])
    return form


def _format_price(price: Decimal | None) -> str:
    if price is None:
        return ""
    price = Decimal(price)
    return str(price.quantize(Decimal(1))) if price == price.to_integral_value() else str(price)


# ── Submitter ────────────────────────────────────────────────


class PropertySubmitter(ListingSubmitter):
    """
    Saves listings for one host.

    CREATE inserts a new `pending` listing; UPDATE rewrites an existing
    listing owned by the host and keeps its approval status. The listing
    and its address are committed together or not at all.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        host_id: int,
        country: str = "Tanzania",
    ) -> None:
        self._session_factory = session_factory
        self.host_id = host_id
        self.country = country

    async def submit(
        self,
        form: FormState,
        mode: SubmissionMode,
        property_id: int | None = None,
    ) -> Property:
        errors = validate_listing_payload(form)
        if errors:
            raise SubmissionError(errors[0], errors)

        if mode is SubmissionMode.UPDATE and property_id is None:
            raise SubmissionError("No listing selected for update")

        payload = build_property_payload(form)
        address = build_address_payload(form.full_address, self.country)

        async with self._session_factory() as session:
            try:
                if mode is SubmissionMode.CREATE:
                    prop = await create_property(
                        session, host_id=self.host_id, status=PropertyStatus.PENDING, **payload
                    )
                else:
                    prop = await update_property(
                        session, property_id, host_id=self.host_id, **payload
                    )
                    if prop is None:
                        raise SubmissionError("Listing not found or you are not allowed to edit it")

                if address is not None:
                    await save_property_address(session, property_id=prop.id, **address)

                saved = await get_property(session, prop.id)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Saving listing failed (mode=%s, host_id=%d): %s", mode.value, self.host_id, e)
                raise SubmissionError("Could not save the listing. Please try again.") from e

        logger.info(
            "Listing %s: %s (id=%d) by host_id=%d",
            "created" if mode is SubmissionMode.CREATE else "updated",
            saved.title, saved.id, self.host_id,
        )
        return saved  # type: ignore[return-value]
