"""
Listing form data for the property listing wizard.

FormState is the in-progress listing a host is editing. It is a plain
dataclass with a single mutation entry point (set_field) that is used
both for live user input and for replaying a saved draft.

The wizard has four pages:
  1. Basic Info — title, price, location
  2. Details    — description, property type, rooms, amenities
  3. Contact    — phone, WhatsApp phone, full address
  4. Photos     — at least 3 images, first one is the primary image
"""

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from listing_bot.core.errors import UnknownFieldError


class PropertyType(str, enum.Enum):
    APARTMENT = "Apartment"
    HOUSE = "House"
    SHARED_ROOM = "Shared Room"
    STUDIO = "Studio"
    BEDSITTER = "Bedsitter"


class WizardStep(enum.IntEnum):
    BASIC_INFO = 1
    DETAILS = 2
    CONTACT = 3
    PHOTOS = 4

    @property
    def label(self) -> str:
        return _STEP_LABELS[self]


_STEP_LABELS = {
    WizardStep.BASIC_INFO: "Basic Info",
    WizardStep.DETAILS: "Details",
    WizardStep.CONTACT: "Contact",
    WizardStep.PHOTOS: "Photos",
}

FIRST_STEP = WizardStep.BASIC_INFO
LAST_STEP = WizardStep.PHOTOS

AMENITY_LABELS: dict[str, str] = {
    "electricity": "Electricity",
    "water": "Water",
    "furnished": "Furnished",
    "parking": "Parking",
    "security": "Security",
    "wifi": "WiFi",
    "ac": "AC",
    "tv": "TV",
}

NEARBY_SERVICE_LABELS: dict[str, str] = {
    "school": "School",
    "hospital": "Hospital",
    "market": "Market",
    "transport": "Public transport",
    "bank": "Bank",
    "police": "Police station",
}

TEXT_FIELDS = (
    "title",
    "description",
    "price",
    "location",
    "full_address",
    "property_type",
    "bedrooms",
    "bathrooms",
    "square_meters",
    "contact_phone",
    "contact_whatsapp_phone",
)
SET_FIELDS = ("amenities", "nearby_services")
LIST_FIELDS = ("images",)


@dataclass
class FormState:
    """The listing being edited. Numeric fields are kept as raw strings."""

    title: str = ""
    description: str = ""
    price: str = ""
    location: str = ""
    full_address: str = ""
    property_type: str = ""
    bedrooms: str = ""
    bathrooms: str = ""
    square_meters: str = ""
    contact_phone: str = ""
    contact_whatsapp_phone: str = ""
    amenities: set[str] = field(default_factory=set)
    nearby_services: set[str] = field(default_factory=set)
    images: list[str] = field(default_factory=list)

    def set_field(self, name: str, value: Any) -> None:
        """
        Set one field, coercing the value to the field's type.

        Raises UnknownFieldError for names that are not form fields, and
        TypeError when a value has the wrong shape for the field.
        """
        if name in TEXT_FIELDS:
            if isinstance(value, (dict, list, set, tuple)):
                raise TypeError(f"Field {name!r} expects text, got {type(value).__name__}")
            setattr(self, name, "" if value is None else str(value))
        elif name in SET_FIELDS:
            setattr(self, name, set(_as_strings(name, value)))
        elif name in LIST_FIELDS:
            # Replace contents in place so ImageCollection views stay valid
            self.images[:] = _as_strings(name, value)
        else:
            raise UnknownFieldError(name)

    def toggle(self, name: str, key: str) -> bool:
        """Add or remove a key in amenities / nearby_services. Returns True if now selected."""
        if name not in SET_FIELDS:
            raise UnknownFieldError(name)
        selected: set[str] = getattr(self, name)
        if key in selected:
            selected.remove(key)
            return False
        selected.add(key)
        return True

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {name: getattr(self, name) for name in TEXT_FIELDS}
        for name in SET_FIELDS:
            data[name] = sorted(getattr(self, name))
        data["images"] = list(self.images)
        return data


def _as_strings(name: str, value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise TypeError(f"Field {name!r} expects a list of strings, got {type(value).__name__}")
    return [str(item) for item in value]
