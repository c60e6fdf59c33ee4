"""
SQLAlchemy ORM models for the listing bot.

This module defines the complete database schema:
- User            — a host who interacts with the bot
- Property        — a rental listing, created as `pending` and approved by an admin
- PropertyAddress — the structured full address of a listing (one per property)
- DraftEntry      — key-value rows backing saved listing-wizard drafts
"""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# SQLite only auto-increments INTEGER primary keys (used by the test suite)
BigIntId = BigInteger().with_variant(Integer, "sqlite")


# ── Base ──────────────────────────────────────────────────────


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# ── Enums ─────────────────────────────────────────────────────


class PropertyStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"


# ── Models ────────────────────────────────────────────────────


class User(Base):
    """A host who lists properties through the bot."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    telegram_id: Mapped[int | None] = mapped_column(BigInteger, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(20))
    is_bot_started: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    properties: Mapped[list["Property"]] = relationship(back_populates="host")


class Property(Base):
    """A rental listing."""

    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    host_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    location: Mapped[str] = mapped_column(String(255))
    property_type: Mapped[str] = mapped_column(String(50))
    bedrooms: Mapped[int] = mapped_column(Integer, default=0)
    bathrooms: Mapped[int] = mapped_column(Integer, default=1)
    square_meters: Mapped[int | None] = mapped_column(Integer)
    contact_phone: Mapped[str | None] = mapped_column(String(20))
    contact_whatsapp_phone: Mapped[str | None] = mapped_column(String(20))
    amenities: Mapped[list[str]] = mapped_column(JSON, default=list)
    nearby_services: Mapped[list[str]] = mapped_column(JSON, default=list)
    # Ordered; the first image is the primary thumbnail
    images: Mapped[list[str]] = mapped_column(JSON, default=list)
    status: Mapped[PropertyStatus] = mapped_column(
        Enum(PropertyStatus, name="property_status"), default=PropertyStatus.PENDING, index=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    host: Mapped["User"] = relationship(back_populates="properties")
    address: Mapped["PropertyAddress | None"] = relationship(
        back_populates="property", uselist=False, cascade="all, delete-orphan"
    )


class PropertyAddress(Base):
    """Structured address for a listing, parsed from the free-form full address."""

    __tablename__ = "property_addresses"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"), unique=True
    )
    location: Mapped[str] = mapped_column(Text)  # the full address as entered
    street: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(100))
    region: Mapped[str | None] = mapped_column(String(100))
    postal_code: Mapped[str | None] = mapped_column(String(20))
    country: Mapped[str] = mapped_column(String(100))

    # Relationships
    property: Mapped["Property"] = relationship(back_populates="address")


class DraftEntry(Base):
    """One saved value of a listing-wizard draft (form data or current step)."""

    __tablename__ = "draft_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
