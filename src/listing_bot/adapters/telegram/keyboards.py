"""
Telegram inline keyboard builders for the listing wizard.

These helpers produce aiogram InlineKeyboardMarkup objects.
They are Telegram-specific and belong in the adapter layer.

Callback data layout (all prefixed with "lw:"):
  lw:field:<name>    edit a text field
  lw:ptype[:<NAME>]  open the property type picker / pick a type
  lw:amen[:<key>]    open amenities / toggle one
  lw:svc[:<key>]     open nearby services / toggle one
  lw:show            back to the step screen
  lw:next, lw:prev, lw:goto:<n>
  lw:photos, lw:rmphoto:<index>
  lw:submit, lw:cancel
"""

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from listing_bot.core.form_state import (
    AMENITY_LABELS,
    LAST_STEP,
    NEARBY_SERVICE_LABELS,
    FormState,
    PropertyType,
    WizardStep,
)
from listing_bot.core.validation import is_step_valid

FIELD_LABELS: dict[str, str] = {
    "title": "Title",
    "price": "Price",
    "location": "Location",
    "description": "Description",
    "property_type": "Property type",
    "bedrooms": "Bedrooms",
    "bathrooms": "Bathrooms",
    "square_meters": "Size (m²)",
    "contact_phone": "Phone",
    "contact_whatsapp_phone": "WhatsApp",
    "full_address": "Full address",
    "images": "Photos",
}

# Text fields edited by typing, grouped by step
STEP_TEXT_FIELDS: dict[WizardStep, tuple[str, ...]] = {
    WizardStep.BASIC_INFO: ("title", "price", "location"),
    WizardStep.DETAILS: ("description", "bedrooms", "bathrooms", "square_meters"),
    WizardStep.CONTACT: ("contact_phone", "contact_whatsapp_phone", "full_address"),
    WizardStep.PHOTOS: (),
}


def _button(text: str, data: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=data)


def step_indicator_row(current: WizardStep, form: FormState) -> list[InlineKeyboardButton]:
    """Step buttons 1–4: current step in brackets, completed steps ticked."""
    row = []
    for step in WizardStep:
        if step == current:
            label = f"[{step.value}]"
        elif is_step_valid(step, form):
            label = f"✅ {step.value}"
        else:
            label = str(step.value)
        row.append(_button(label, f"lw:goto:{step.value}"))
    return row


def step_keyboard(step: WizardStep, form: FormState) -> InlineKeyboardMarkup:
    """Main keyboard for one wizard step."""
    rows: list[list[InlineKeyboardButton]] = []

    for name in STEP_TEXT_FIELDS[step]:
        mark = "✏️" if getattr(form, name).strip() else "➕"
        rows.append([_button(f"{mark} {FIELD_LABELS[name]}", f"lw:field:{name}")])

    if step == WizardStep.DETAILS:
        rows.append([_button(f"🏠 {form.property_type or 'Property type'}", "lw:ptype")])
        rows.append([
            _button(f"⚡ Amenities ({len(form.amenities)})", "lw:amen"),
            _button(f"🏫 Nearby ({len(form.nearby_services)})", "lw:svc"),
        ])

    if step == WizardStep.PHOTOS:
        rows.append([_button("📷 Add photos", "lw:photos")])
        for index in range(len(form.images)):
            label = "⭐ Photo 1 (primary)" if index == 0 else f"Photo {index + 1}"
            rows.append([_button(f"🗑 {label}", f"lw:rmphoto:{index}")])

    rows.append(step_indicator_row(step, form))

    nav = []
    if step > WizardStep.BASIC_INFO:
        nav.append(_button("⬅️ Back", "lw:prev"))
    if step < LAST_STEP:
        nav.append(_button("Next ➡️", "lw:next"))
    else:
        nav.append(_button("✅ Submit", "lw:submit"))
    rows.append(nav)
    rows.append([_button("❌ Cancel", "lw:cancel")])

    return InlineKeyboardMarkup(inline_keyboard=rows)


def property_type_keyboard(selected: str = "") -> InlineKeyboardMarkup:
    rows = []
    for ptype in PropertyType:
        prefix = "✅ " if ptype.value == selected else ""
        rows.append([_button(f"{prefix}{ptype.value}", f"lw:ptype:{ptype.name}")])
    rows.append([_button("⬅️ Back", "lw:show")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def toggle_keyboard(
    prefix: str,
    labels: dict[str, str],
    selected: set[str],
) -> InlineKeyboardMarkup:
    """
    Multi-select keyboard. Selected items get a ✅ prefix.

    User taps to toggle, then presses Done.
    """
    rows = []
    items = list(labels.items())
    for i in range(0, len(items), 2):
        rows.append([
            _button(f"{'✅ ' if key in selected else ''}{label}", f"lw:{prefix}:{key}")
            for key, label in items[i:i + 2]
        ])
    rows.append([_button("✅ Done", "lw:show")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def amenities_keyboard(selected: set[str]) -> InlineKeyboardMarkup:
    return toggle_keyboard("amen", AMENITY_LABELS, selected)


def nearby_services_keyboard(selected: set[str]) -> InlineKeyboardMarkup:
    return toggle_keyboard("svc", NEARBY_SERVICE_LABELS, selected)


def photos_done_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[_button("✅ Done", "lw:show")]])
